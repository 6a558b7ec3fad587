"""
Certificate fetcher for the signing certificate chain.
"""

import logging

import httpx

from .errors import FetchError

logger = logging.getLogger(__name__)

# Bounds worst-case request latency on a slow certificate host
DEFAULT_FETCH_TIMEOUT_S = 10.0


class CertificateFetcher:
    """
    Downloads the certificate chain named by ``SignatureCertChainUrl``.

    A fresh HTTP client is scoped to every call. Nothing is cached and
    nothing is retried: a failure is terminal for the request.

    Args:
        timeout_s: Request timeout in seconds. Default: 10.0

    Example:
        >>> fetcher = CertificateFetcher()
        >>> pem = await fetcher.fetch("https://s3.amazonaws.com/echo.api/echo-api-cert.pem")
    """

    def __init__(self, timeout_s: float = DEFAULT_FETCH_TIMEOUT_S):
        self.timeout_s = timeout_s

    async def fetch(self, url: str) -> bytes:
        """
        Fetch certificate bytes asynchronously.

        Raises:
            FetchError: On network errors, non-success status or empty body
        """
        logger.info("Attempting to download cert from %s...", url)
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch certificate from {url}: {e}") from e

        return self._parse_response(url, response)

    def fetch_sync(self, url: str) -> bytes:
        """
        Fetch certificate bytes synchronously.

        Raises:
            FetchError: On network errors, non-success status or empty body
        """
        logger.info("Attempting to download cert from %s...", url)
        try:
            with httpx.Client(timeout=self.timeout_s) as client:
                response = client.get(url)
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch certificate from {url}: {e}") from e

        return self._parse_response(url, response)

    def _parse_response(self, url: str, response: httpx.Response) -> bytes:
        """Check the certificate host's response and return its body."""
        if not response.is_success:
            raise FetchError(
                f"Certificate host returned {response.status_code} for {url}"
            )

        content = response.content
        if not content:
            raise FetchError(f"Certificate host returned an empty body for {url}")

        logger.debug("Downloaded %d certificate bytes from %s", len(content), url)
        return content
