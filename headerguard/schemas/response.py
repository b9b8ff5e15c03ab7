"""Immutable view of an HTTP response used by the header policy.

Every change produces a new snapshot, so a response is never mutated from two
places at once.
"""

from pydantic import ConfigDict

from headerguard.schemas import AppBaseModel

HTML_MEDIA_TYPES = {"text/html", "application/xhtml+xml"}
DEFAULT_CHARSET = "utf-8"


class ResponseSnapshot(AppBaseModel):
    model_config = ConfigDict(frozen=True, str_max_length=None)

    status_code: int
    # Ordered (name, value) pairs; a name may repeat (e.g. set-cookie).
    headers: tuple[tuple[str, str], ...] = ()
    body: bytes = b""

    @classmethod
    def from_raw_headers(
        cls,
        status_code: int,
        raw_headers: list[tuple[bytes, bytes]],
        body: bytes = b"",
    ) -> "ResponseSnapshot":
        return cls(
            status_code=status_code,
            headers=tuple(
                (name.decode("latin-1"), value.decode("latin-1"))
                for name, value in raw_headers
            ),
            body=body,
        )

    def raw_headers(self) -> list[tuple[bytes, bytes]]:
        return [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in self.headers
        ]

    def has_header(self, name: str) -> bool:
        name = name.lower()
        return any(key.lower() == name for key, _ in self.headers)

    def header_line(self, name: str) -> str:
        """All values of a header joined by ", ", or "" when absent."""
        name = name.lower()
        return ", ".join(value for key, value in self.headers if key.lower() == name)

    def with_header(self, name: str, value: str) -> "ResponseSnapshot":
        """Return a copy where ``name`` has the single value ``value``.

        An existing header keeps its position; a new one is appended.
        """
        lowered = name.lower()
        headers: list[tuple[str, str]] = []
        replaced = False
        for key, current in self.headers:
            if key.lower() != lowered:
                headers.append((key, current))
            elif not replaced:
                headers.append((key, value))
                replaced = True
        if not replaced:
            headers.append((name, value))
        return self.model_copy(update={"headers": tuple(headers)})

    def with_header_if_absent(self, name: str, value: str) -> "ResponseSnapshot":
        if self.has_header(name):
            return self
        return self.with_header(name, value)

    def with_body(self, body: bytes) -> "ResponseSnapshot":
        return self.model_copy(update={"body": body})

    @property
    def media_type(self) -> str:
        content_type = self.header_line("content-type")
        return content_type.split(";", 1)[0].strip().lower()

    @property
    def charset(self) -> str:
        for param in self.header_line("content-type").split(";")[1:]:
            key, _, value = param.partition("=")
            if key.strip().lower() == "charset" and value.strip():
                return value.strip().strip("\"'")
        return DEFAULT_CHARSET

    @property
    def accepts_nonce_injection(self) -> bool:
        """Body is uncompressed HTML, or untyped and therefore treated as HTML."""
        encoding = self.header_line("content-encoding").strip().lower()
        if encoding and encoding != "identity":
            return False
        return not self.media_type or self.media_type in HTML_MEDIA_TYPES
