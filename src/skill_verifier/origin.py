"""
Origin pinning for the caller-supplied certificate chain URL.
"""

from __future__ import annotations

import posixpath
from urllib.parse import urlsplit, urlunsplit

from .errors import InvalidOriginError

DEFAULT_CERT_HOST = "s3.amazonaws.com"
DEFAULT_CERT_PATH_PREFIX = "/echo.api/"
HTTPS_PORT = 443


def _remove_dot_segments(path: str) -> str:
    if not path:
        return "/"
    normalized = posixpath.normpath(path)
    # normpath keeps a leading "//" and drops the trailing slash
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    if path.endswith("/") and not normalized.endswith("/"):
        normalized += "/"
    return normalized


def normalize_cert_chain_url(url: str) -> str:
    """
    Collapse ``.`` and ``..`` path segments of a chain URL.

    Examples:
        >>> normalize_cert_chain_url("https://s3.amazonaws.com/echo.api/../echo.api/cert.pem")
        'https://s3.amazonaws.com/echo.api/cert.pem'
        >>> normalize_cert_chain_url("https://s3.amazonaws.com/../echo.api/cert.pem")
        'https://s3.amazonaws.com/echo.api/cert.pem'
    """
    parts = urlsplit(url.strip())
    return urlunsplit(
        (parts.scheme, parts.netloc, _remove_dot_segments(parts.path), parts.query, "")
    )


def validate_cert_chain_url(
    url: str,
    host: str = DEFAULT_CERT_HOST,
    path_prefix: str = DEFAULT_CERT_PATH_PREFIX,
) -> str:
    """
    Check that a chain URL points at the trusted certificate location.

    Rules:
    1. Scheme is ``https`` (case-insensitive)
    2. Port is absent or 443
    3. Host equals ``host`` exactly (case-insensitive)
    4. Normalized path starts with ``path_prefix`` (case-sensitive)

    Args:
        url: Value of the ``SignatureCertChainUrl`` header
        host: Trusted certificate host
        path_prefix: Trusted path prefix

    Returns:
        The normalized URL, which is the one to fetch

    Raises:
        InvalidOriginError: If any rule is violated
    """
    try:
        normalized = normalize_cert_chain_url(url)
        parts = urlsplit(normalized)
        port = parts.port
    except ValueError as e:
        raise InvalidOriginError(url, str(e)) from e

    if parts.scheme.lower() != "https":
        raise InvalidOriginError(url, "scheme must be https")
    if port is not None and port != HTTPS_PORT:
        raise InvalidOriginError(url, f"port {port} is not allowed")
    if parts.username is not None or parts.password is not None:
        raise InvalidOriginError(url, "credentials are not allowed")
    if (parts.hostname or "").lower() != host.lower():
        raise InvalidOriginError(url, f"host must be {host}")
    if not parts.path.startswith(path_prefix):
        raise InvalidOriginError(url, f"path must start with {path_prefix}")

    return normalized
