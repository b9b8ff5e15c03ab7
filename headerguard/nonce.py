"""Per-request CSP nonce.

A NonceProvider is created for every request by the middleware and must never
be shared between requests: the same value is written into the
Content-Security-Policy header and into the nonce attributes of the body.
"""

import secrets

NONCE_BYTES = 16


class NonceUnavailableError(RuntimeError):
    """Raised when the OS secure random source cannot produce a nonce."""

    pass


class NonceProvider:
    """Holds one random nonce and records whether it has been handed out."""

    def __init__(self) -> None:
        try:
            self._nonce = secrets.token_hex(NONCE_BYTES)
        except (NotImplementedError, OSError) as exc:
            raise NonceUnavailableError(
                "Secure random source is unavailable, cannot create a CSP nonce"
            ) from exc
        self._used = False

    def get_nonce(self) -> str:
        """Return the nonce and mark it as used. Same value on every call."""
        self._used = True
        return self._nonce

    @property
    def is_used(self) -> bool:
        return self._used
