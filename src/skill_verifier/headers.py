"""
Header lookup for signed skill requests.
"""

from typing import Any, Mapping


SIGNATURE_HEADER = "signature"
CERT_CHAIN_URL_HEADER = "signaturecertchainurl"

# Display names used in error messages
HEADER_DISPLAY_NAMES = {
    SIGNATURE_HEADER: "Signature",
    CERT_CHAIN_URL_HEADER: "SignatureCertChainUrl",
}


def get_header(headers: Mapping[str, str], name: str) -> str | None:
    """
    Case-insensitive header lookup.

    Blank values are treated as missing.
    """
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            value = value.strip()
            return value or None
    return None


def extract_wsgi_headers(environ: Mapping[str, Any]) -> dict[str, str]:
    """
    Extract HTTP headers from a WSGI environ.

    Examples:
        >>> extract_wsgi_headers({"HTTP_SIGNATURECERTCHAINURL": "https://x"})
        {'signaturecertchainurl': 'https://x'}
    """
    headers: dict[str, str] = {}
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            # HTTP_SIGNATURECERTCHAINURL -> signaturecertchainurl
            header_name = key[5:].replace("_", "-").lower()
            headers[header_name] = value
        elif key == "CONTENT_TYPE":
            headers["content-type"] = value
        elif key == "CONTENT_LENGTH":
            headers["content-length"] = value
    return headers
