import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from headerguard.config import HeadersConfig, settings
from headerguard.nonce import NonceProvider
from headerguard.schemas.response import ResponseSnapshot
from headerguard.services.header_policy import HeaderPolicy

logger = logging.getLogger(__name__)

NONCE_STATE_KEY = "csp_nonce_provider"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        headers_config: HeadersConfig | None = None,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.headers_config = headers_config or settings.headers
        # Swagger UI loads its assets from a CDN and would be blocked by CSP
        self.exclude_paths = set(
            settings.get_exclude_paths() if exclude_paths is None else exclude_paths
        )

    async def dispatch(self, request: Request, call_next) -> Response:
        # One provider per request, shared with handlers through request.state
        nonce_provider = NonceProvider()
        setattr(request.state, NONCE_STATE_KEY, nonce_provider)

        response = await call_next(request)

        path = request.url.path
        if path in self.exclude_paths:
            return response

        snapshot = ResponseSnapshot.from_raw_headers(
            response.status_code, response.raw_headers
        )
        if not HeaderPolicy.applies_to(snapshot):
            return response

        policy = HeaderPolicy(self.headers_config, nonce_provider)

        if not snapshot.accepts_nonce_injection:
            # Leave the body stream alone (e.g. SSE), only the headers change
            hardened = policy.process(path, snapshot)
            response.raw_headers = hardened.raw_headers()
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        snapshot = snapshot.with_body(body)
        hardened = policy.process(path, snapshot)

        raw_headers = hardened.raw_headers()
        if hardened.body != body:
            logger.debug("Rewrote inline script/style nonces for %s", path)
            raw_headers = [
                (name, value) for name, value in raw_headers if name != b"content-length"
            ]
            raw_headers.append((b"content-length", str(len(hardened.body)).encode()))

        new_response = Response(
            content=hardened.body,
            status_code=hardened.status_code,
        )
        new_response.raw_headers = raw_headers
        return new_response
