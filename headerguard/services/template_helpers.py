"""Helpers for handlers and templates that render inline scripts/styles.

A handler can place the request nonce into its markup directly
(``csp_nonce``), or run a rendered fragment through the rewriter once the
nonce is already in use.
"""

import hashlib

from starlette.requests import Request

from headerguard.dependencies import get_nonce_provider
from headerguard.services.body_rewriter import body_rewriter


def csp_nonce(request: Request) -> str:
    """Return the request nonce, marking it as used."""
    return get_nonce_provider(request).get_nonce()


def add_nonce_to_scripts(request: Request, fragment: str) -> str:
    """Inject the nonce into inline scripts if the request nonce is in use."""
    provider = get_nonce_provider(request)
    if provider.is_used:
        fragment = body_rewriter.inject_into_scripts(fragment, provider.get_nonce())
    return fragment


def add_nonce_to_styles(request: Request, fragment: str) -> str:
    """Inject the nonce into inline styles if the request nonce is in use."""
    provider = get_nonce_provider(request)
    if provider.is_used:
        fragment = body_rewriter.inject_into_styles(fragment, provider.get_nonce())
    return fragment


def hash_string(value: str, algorithm: str, binary: bool = False) -> str | bytes:
    """Hash ``value`` (UTF-8) with any algorithm known to hashlib.

    Raises:
        ValueError: Unknown algorithm.
    """
    digest = hashlib.new(algorithm, value.encode("utf-8"))
    return digest.digest() if binary else digest.hexdigest()


def sha256(value: str, binary: bool = False) -> str | bytes:
    return hash_string(value, "sha256", binary)
