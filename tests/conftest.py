import pytest
from fastapi import Depends, FastAPI
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from headerguard.config import ContentSecurityPolicyConfig, HeadersConfig
from headerguard.dependencies import get_nonce_provider
from headerguard.middleware import SecurityHeadersMiddleware
from headerguard.nonce import NonceProvider
from headerguard.services.template_helpers import csp_nonce

PAGE = (
    "<!DOCTYPE html>\n"
    "<html><head>"
    "<style>body { color: red; }</style>"
    '<script src="/static/app.js"></script>'
    "</head><body>"
    "<script>alert(1)</script>"
    "</body></html>"
)


def build_app(headers_config: HeadersConfig | None = None) -> FastAPI:
    """Small app exercising the middleware with typical responses."""
    app = FastAPI(docs_url=None, redoc_url=None)
    app.add_middleware(
        SecurityHeadersMiddleware,
        headers_config=headers_config,
        exclude_paths=["/docs"],
    )

    @app.get("/page")
    async def page():
        return HTMLResponse(PAGE)

    @app.get("/neos/content")
    async def backend_content():
        return HTMLResponse(PAGE)

    @app.get("/neos/media")
    async def backend_media():
        return HTMLResponse(PAGE)

    @app.get("/docs")
    async def docs():
        return HTMLResponse(PAGE)

    @app.get("/redirect")
    async def redirect():
        return RedirectResponse("/page")

    @app.get("/moved")
    async def moved():
        return Response(PAGE, media_type="text/html", headers={"Location": "/page"})

    @app.get("/missing")
    async def missing():
        return HTMLResponse(PAGE, status_code=404)

    @app.get("/upstream-csp")
    async def upstream_csp():
        return HTMLResponse(
            PAGE,
            headers={
                "Content-Security-Policy": "script-src 'self'; style-src 'unsafe-inline'"
            },
        )

    @app.get("/framed")
    async def framed():
        return HTMLResponse(PAGE, headers={"X-Frame-Options": "SAMEORIGIN"})

    @app.get("/data")
    async def data():
        return {"snippet": "<script>alert(1)</script>"}

    @app.get("/cookies")
    async def cookies():
        response = HTMLResponse(PAGE)
        response.set_cookie("first", "1")
        response.set_cookie("second", "2")
        return response

    @app.get("/template")
    async def template(request: Request):
        return HTMLResponse(f'<script nonce="{csp_nonce(request)}">init()</script>')

    @app.get("/provider")
    async def provider(nonce_provider: NonceProvider = Depends(get_nonce_provider)):
        return {"nonce": nonce_provider.get_nonce()}

    return app


@pytest.fixture
async def client():
    async with AsyncClient(
        transport=ASGITransport(app=build_app()),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def page_html() -> str:
    return PAGE


@pytest.fixture
async def backend_client():
    """Client for an app allowing the backend CSP relaxations."""
    config = HeadersConfig(
        content_security_policy=ContentSecurityPolicyConfig(
            parts={"script-src": "'self'", "style-src": "'self'"},
            allow_unsafe_eval_in_backend=True,
            allow_unsafe_inline_styles_in_backend=True,
        )
    )
    async with AsyncClient(
        transport=ASGITransport(app=build_app(config)),
        base_url="http://test",
    ) as ac:
        yield ac
