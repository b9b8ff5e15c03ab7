from fastapi import Request

from headerguard.middleware import NONCE_STATE_KEY
from headerguard.nonce import NonceProvider


def get_nonce_provider(request: Request) -> NonceProvider:
    provider = getattr(request.state, NONCE_STATE_KEY, None)
    if provider is None:
        raise RuntimeError(
            "No CSP nonce for this request; is SecurityHeadersMiddleware installed?"
        )
    return provider
