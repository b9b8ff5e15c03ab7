"""Tests for request-scoped template helpers."""

import pytest
from starlette.requests import Request

from headerguard.middleware import NONCE_STATE_KEY
from headerguard.nonce import NonceProvider
from headerguard.services.template_helpers import (
    add_nonce_to_scripts,
    add_nonce_to_styles,
    csp_nonce,
    hash_string,
    sha256,
)


def _request(provider: NonceProvider | None = None) -> Request:
    request = Request({"type": "http", "method": "GET", "path": "/", "headers": []})
    if provider is not None:
        setattr(request.state, NONCE_STATE_KEY, provider)
    return request


def test_csp_nonce_returns_request_nonce():
    provider = NonceProvider()
    request = _request(provider)

    assert csp_nonce(request) == provider.get_nonce()
    assert provider.is_used is True


def test_fragments_untouched_while_nonce_unused():
    provider = NonceProvider()
    request = _request(provider)
    fragment = "<script>a()</script><style>b{}</style>"

    assert add_nonce_to_scripts(request, fragment) == fragment
    assert add_nonce_to_styles(request, fragment) == fragment
    assert provider.is_used is False


def test_fragments_get_nonce_once_used():
    provider = NonceProvider()
    request = _request(provider)
    nonce = csp_nonce(request)

    assert add_nonce_to_scripts(request, "<script>a()</script>") == (
        f'<script nonce="{nonce}">a()</script>'
    )
    assert add_nonce_to_styles(request, "<style>b{}</style>") == (
        f'<style nonce="{nonce}">b{{}}</style>'
    )


def test_missing_middleware_raises():
    with pytest.raises(RuntimeError):
        csp_nonce(_request())


def test_sha256_hex_and_binary():
    expected = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    assert sha256("abc") == expected
    assert sha256("abc", binary=True) == bytes.fromhex(expected)


def test_hash_string_with_named_algorithm():
    assert hash_string("abc", "md5") == "900150983cd24fb0d6963f7d28e17f72"


def test_hash_string_unknown_algorithm():
    with pytest.raises(ValueError):
        hash_string("abc", "no-such-hash")
