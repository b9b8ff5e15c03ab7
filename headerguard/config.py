from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PERMISSIONS_POLICY = (
    "geolocation=(), microphone=(), camera=(), payment=(), usb=(), interest-cohort=()"
)


def _default_csp_parts() -> dict[str, str | None]:
    return {
        "default-src": "'self'",
        "script-src": "'self'",
        "style-src": "'self'",
        "img-src": "'self' data:",
        "font-src": "'self'",
        "connect-src": "'self'",
        "object-src": "'none'",
        "base-uri": "'self'",
        "form-action": "'self'",
        "frame-ancestors": "'none'",
    }


class _HeadersModel(BaseModel):
    # Keys are accepted both as the header-style alias and the Python name.
    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


class StrictTransportSecurityConfig(_HeadersModel):
    max_age: int = Field(default=31536000, ge=0, alias="maxAge")
    include_sub_domains: bool = Field(default=True, alias="includeSubDomains")
    preload: bool = True

    def header_value(self) -> str:
        value = f"max-age={self.max_age}"
        if self.include_sub_domains:
            value += "; includeSubDomains"
        if self.preload:
            value += "; preload"
        return value


class ContentSecurityPolicyConfig(_HeadersModel):
    # Insertion order is the order directives are written to the header.
    parts: dict[str, str | None] = Field(default_factory=_default_csp_parts)
    allow_unsafe_eval_in_backend: bool = Field(
        default=False, alias="allowUnsafeEvalInNeosBackend"
    )
    allow_unsafe_inline_styles_in_backend: bool = Field(
        default=False, alias="allowUnsafeInlineStylesInNeosBackend"
    )
    backend_path_prefix: str = Field(default="/neos/", alias="backendPathPrefix")
    backend_content_path: str = Field(
        default="/neos/content", alias="backendContentPath"
    )


class HeadersConfig(_HeadersModel):
    strict_transport_security: StrictTransportSecurityConfig = Field(
        default_factory=StrictTransportSecurityConfig,
        alias="Strict-Transport-Security",
    )
    x_frame_options: str = Field(default="DENY", alias="X-Frame-Options")
    referrer_policy: str = Field(default="strict-origin", alias="Referrer-Policy")
    x_permitted_cross_domain_policies: str = Field(
        default="none", alias="X-Permitted-Cross-Domain-Policies"
    )
    cross_origin_opener_policy: str = Field(
        default="same-origin", alias="Cross-Origin-Opener-Policy"
    )
    cross_origin_resource_policy: str = Field(
        default="same-origin", alias="Cross-Origin-Resource-Policy"
    )
    permissions_policy: str = Field(
        default=DEFAULT_PERMISSIONS_POLICY, alias="Permissions-Policy"
    )
    content_security_policy: ContentSecurityPolicyConfig = Field(
        default_factory=ContentSecurityPolicyConfig,
        alias="ContentSecurityPolicy",
    )


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: str = "development"
    # HEADERS is read as a JSON object using the header-style keys,
    # e.g. HEADERS='{"X-Frame-Options": "SAMEORIGIN"}'.
    headers: HeadersConfig = Field(default_factory=HeadersConfig)
    # Stored as a comma-separated string to avoid pydantic-settings
    # complex type parsing (json.loads) which fails on plain CSV values.
    exclude_paths: str = "/docs,/redoc,/openapi.json"

    def get_exclude_paths(self) -> list[str]:
        return [s.strip() for s in self.exclude_paths.split(",") if s.strip()]

    def validate_production(self) -> None:
        if self.environment == "production":
            if self.headers.strict_transport_security.max_age == 0:
                raise ValueError(
                    "Strict-Transport-Security maxAge is 0, which disables HSTS. "
                    "Set a positive maxAge in HEADERS for production."
                )
            if not any(
                value is not None
                for value in self.headers.content_security_policy.parts.values()
            ):
                raise ValueError(
                    "ContentSecurityPolicy parts are empty, no CSP header would be sent. "
                    "Configure at least one directive in HEADERS for production."
                )


settings = Settings()
