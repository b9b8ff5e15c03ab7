"""Content-Security-Policy authoring and augmentation.

The nonce appended to script-src/style-src is always the one written into the
body by the rewriter, both taken from the same per-request NonceProvider.
"""

import codecs
import logging
import re
from collections.abc import Callable

from headerguard.config import ContentSecurityPolicyConfig
from headerguard.nonce import NonceProvider
from headerguard.schemas.response import DEFAULT_CHARSET, ResponseSnapshot
from headerguard.services.body_rewriter import TagPatternRewriter, body_rewriter

logger = logging.getLogger(__name__)

CSP_HEADER = "Content-Security-Policy"
UNSAFE_INLINE = "'unsafe-inline'"
UNSAFE_EVAL = "'unsafe-eval'"

_NONCE_TOKEN_RE = re.compile(r"\s+'nonce-[^']*'")


class CspComposer:
    def __init__(
        self,
        csp_config: ContentSecurityPolicyConfig,
        nonce_provider: NonceProvider,
        rewriter: TagPatternRewriter = body_rewriter,
    ) -> None:
        self._config = csp_config
        self._nonce_provider = nonce_provider
        self._rewriter = rewriter

    def compose(self, path: str, response: ResponseSnapshot) -> ResponseSnapshot:
        if response.has_header(CSP_HEADER):
            logger.debug("Augmenting upstream CSP for %s", path)
            return self.augment(response)
        logger.debug("Authoring CSP for %s", path)
        return self.author(path, response)

    def augment(self, response: ResponseSnapshot) -> ResponseSnapshot:
        """Add the nonce to the script-src/style-src of an existing policy.

        Directives already allowing 'unsafe-inline' are left alone: browsers
        ignore 'unsafe-inline' once a nonce is present.
        """
        directives: list[str] = []
        for directive in response.header_line(CSP_HEADER).split(";"):
            directive = directive.strip()
            if not directive:
                continue

            if UNSAFE_INLINE in directive:
                directives.append(directive)
                continue

            if directive.startswith("script-src"):
                directive = _NONCE_TOKEN_RE.sub("", directive)
                response = self._rewrite_body(
                    response, self._rewriter.inject_into_scripts
                )
                directive += f" {self._nonce_source()}"
            elif directive.startswith("style-src"):
                directive = _NONCE_TOKEN_RE.sub("", directive)
                response = self._rewrite_body(
                    response, self._rewriter.inject_into_styles
                )
                directive += f" {self._nonce_source()}"

            directives.append(directive)

        return response.with_header(CSP_HEADER, "; ".join(directives))

    def author(self, path: str, response: ResponseSnapshot) -> ResponseSnapshot:
        """Build the policy from the configured directives."""
        directives: list[str] = []
        for directive, value in self._config.parts.items():
            if value is None:
                continue

            if directive == "script-src":
                response = self._rewrite_body(
                    response, self._rewriter.inject_into_scripts
                )
                value += f" {self._nonce_source()}"
                if (
                    self._config.allow_unsafe_eval_in_backend
                    and path == self._config.backend_content_path
                ):
                    value += f" {UNSAFE_EVAL}"
            elif directive == "style-src":
                if (
                    self._config.allow_unsafe_inline_styles_in_backend
                    and path.startswith(self._config.backend_path_prefix)
                ):
                    # A nonce would make browsers ignore 'unsafe-inline'.
                    value += f" {UNSAFE_INLINE}"
                else:
                    response = self._rewrite_body(
                        response, self._rewriter.inject_into_styles
                    )
                    value += f" {self._nonce_source()}"

            value = value.strip()
            if not value:
                continue
            directives.append(f"{directive} {value}")

        if directives:
            response = response.with_header(CSP_HEADER, "; ".join(directives))
        return response

    def _nonce_source(self) -> str:
        return f"'nonce-{self._nonce_provider.get_nonce()}'"

    def _rewrite_body(
        self,
        response: ResponseSnapshot,
        inject: Callable[[str, str], str],
    ) -> ResponseSnapshot:
        if not response.body or not response.accepts_nonce_injection:
            return response

        charset = response.charset
        try:
            # bytes-to-bytes codecs such as base64 cannot decode to text
            is_text = getattr(codecs.lookup(charset), "_is_text_encoding", True)
        except LookupError:
            is_text = False
        if not is_text:
            logger.warning(
                "Unknown response charset %r, rewriting body as %s",
                charset,
                DEFAULT_CHARSET,
            )
            charset = DEFAULT_CHARSET

        nonce = self._nonce_provider.get_nonce()
        try:
            # surrogateescape keeps undecodable bytes intact through the round
            # trip; it cannot help with truncated multi-byte encodings
            document = response.body.decode(charset, errors="surrogateescape")
            body = inject(document, nonce).encode(charset, errors="surrogateescape")
        except UnicodeError as exc:
            logger.warning("Cannot rewrite %s body, leaving it unchanged: %s", charset, exc)
            return response
        return response.with_body(body)
