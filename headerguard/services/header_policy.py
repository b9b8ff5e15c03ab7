import logging

from headerguard.config import HeadersConfig
from headerguard.nonce import NonceProvider
from headerguard.schemas.response import ResponseSnapshot
from headerguard.services.body_rewriter import TagPatternRewriter, body_rewriter
from headerguard.services.csp_composer import CspComposer

logger = logging.getLogger(__name__)


class HeaderPolicy:
    """Applies the security headers to a successful, non-redirect response.

    Headers already set by the application are kept as they are. The only
    exception is Content-Security-Policy, which gets the request nonce added.
    """

    def __init__(
        self,
        headers_config: HeadersConfig,
        nonce_provider: NonceProvider,
        rewriter: TagPatternRewriter = body_rewriter,
    ) -> None:
        self._config = headers_config
        self._csp_composer = CspComposer(
            headers_config.content_security_policy, nonce_provider, rewriter
        )

    @staticmethod
    def applies_to(response: ResponseSnapshot) -> bool:
        # Redirects and error pages are not hardened.
        return not response.has_header("Location") and response.status_code == 200

    def process(self, path: str, response: ResponseSnapshot) -> ResponseSnapshot:
        if not self.applies_to(response):
            logger.debug(
                "Skipping security headers for %s (status %s)",
                path,
                response.status_code,
            )
            return response

        response = response.with_header_if_absent("X-Content-Type-Options", "nosniff")
        response = response.with_header_if_absent("X-XSS-Protection", "0")

        response = self._csp_composer.compose(path, response)

        config = self._config
        for name, value in (
            ("Strict-Transport-Security", config.strict_transport_security.header_value()),
            ("X-Frame-Options", config.x_frame_options),
            ("Referrer-Policy", config.referrer_policy),
            ("X-Permitted-Cross-Domain-Policies", config.x_permitted_cross_domain_policies),
            ("Cross-Origin-Opener-Policy", config.cross_origin_opener_policy),
            ("Cross-Origin-Resource-Policy", config.cross_origin_resource_policy),
            ("Permissions-Policy", config.permissions_policy),
        ):
            response = response.with_header_if_absent(name, value)

        return response
