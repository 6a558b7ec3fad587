"""
Request authenticity verification: origin, certificate and body signature.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Mapping

from .certificates import DEFAULT_CERT_SUBJECT, CertificateChainValidator, TrustStore
from .client import DEFAULT_FETCH_TIMEOUT_S, CertificateFetcher
from .config import SkillSettings
from .errors import MissingHeaderError, SkillVerificationError
from .headers import (
    CERT_CHAIN_URL_HEADER,
    HEADER_DISPLAY_NAMES,
    SIGNATURE_HEADER,
    get_header,
)
from .models import VerificationResult
from .origin import DEFAULT_CERT_HOST, DEFAULT_CERT_PATH_PREFIX, validate_cert_chain_url
from .signature import verify_body_signature

logger = logging.getLogger(__name__)


def _require_header(headers: Mapping[str, str], name: str) -> str:
    value = get_header(headers, name)
    if value is None:
        raise MissingHeaderError(HEADER_DISPLAY_NAMES[name])
    return value


class RequestVerifier:
    """
    Verifies that a skill request was signed by the voice platform.

    Stages run in a fixed order and the first failure wins:
    bypass, required headers, origin of the chain URL, certificate
    download, certificate chain validation, body signature.

    Args:
        trust_store: Trust anchors for the certificate chain.
            Default: the certifi bundle
        cert_host: Trusted host of the certificate chain URL
        cert_path_prefix: Trusted path prefix of the certificate chain URL
        cert_subject: Token the signing certificate's subject must contain
        fetch_timeout_s: Certificate download timeout in seconds
        bypass: Skip verification entirely. Only ever set from
            non-production configuration
        fetcher: Certificate fetcher, mainly for tests

    Example:
        >>> verifier = RequestVerifier()
        >>> result = await verifier.verify(request.headers, await request.body())
        >>> if not result.verified:
        ...     print(result.reason, result.error)
    """

    def __init__(
        self,
        trust_store: TrustStore | None = None,
        cert_host: str = DEFAULT_CERT_HOST,
        cert_path_prefix: str = DEFAULT_CERT_PATH_PREFIX,
        cert_subject: str = DEFAULT_CERT_SUBJECT,
        fetch_timeout_s: float = DEFAULT_FETCH_TIMEOUT_S,
        bypass: bool = False,
        fetcher: CertificateFetcher | None = None,
    ):
        self.cert_host = cert_host
        self.cert_path_prefix = cert_path_prefix
        self.bypass = bypass
        self.fetcher = fetcher or CertificateFetcher(timeout_s=fetch_timeout_s)
        if trust_store is None:
            trust_store = TrustStore.default()
        self.validator = CertificateChainValidator(
            trust_store,
            subject=cert_subject,
        )

    @classmethod
    def from_settings(cls, settings: SkillSettings) -> "RequestVerifier":
        if settings.trust_store_path:
            trust_store = TrustStore.from_pem_file(settings.trust_store_path, settings.crl_path)
        else:
            trust_store = TrustStore.default(settings.crl_path)
        return cls(
            trust_store=trust_store,
            cert_host=settings.cert_host,
            cert_path_prefix=settings.cert_path_prefix,
            cert_subject=settings.cert_subject,
            fetch_timeout_s=settings.fetch_timeout_s,
            bypass=settings.bypass_enabled,
        )

    async def verify(
        self,
        headers: Mapping[str, str],
        body: bytes,
        now: datetime | None = None,
    ) -> VerificationResult:
        """
        Verify a request asynchronously.

        Args:
            headers: Request headers (case-insensitive names)
            body: Raw request body, exactly as received
            now: Current instant for certificate date checks

        Returns:
            VerificationResult with the first failure, or verified=True
        """
        if self.bypass:
            return self._bypassed()

        logger.info("Verifying certificate...")
        cert_url = None
        try:
            signature, cert_url = self._resolve_headers(headers)
            cert_bytes = await self.fetcher.fetch(cert_url)
            self._check_certificate(cert_bytes, body, signature, now)
        except SkillVerificationError as e:
            return self._failed(e, cert_url)

        logger.info("DONE Verifying certificate.")
        return VerificationResult(verified=True, cert_url=cert_url)

    def verify_sync(
        self,
        headers: Mapping[str, str],
        body: bytes,
        now: datetime | None = None,
    ) -> VerificationResult:
        """
        Verify a request synchronously.

        Args:
            headers: Request headers (case-insensitive names)
            body: Raw request body, exactly as received
            now: Current instant for certificate date checks

        Returns:
            VerificationResult with the first failure, or verified=True
        """
        if self.bypass:
            return self._bypassed()

        logger.info("Verifying certificate...")
        cert_url = None
        try:
            signature, cert_url = self._resolve_headers(headers)
            cert_bytes = self.fetcher.fetch_sync(cert_url)
            self._check_certificate(cert_bytes, body, signature, now)
        except SkillVerificationError as e:
            return self._failed(e, cert_url)

        logger.info("DONE Verifying certificate.")
        return VerificationResult(verified=True, cert_url=cert_url)

    def _resolve_headers(self, headers: Mapping[str, str]) -> tuple[str, str]:
        """Return the signature token and the validated chain URL."""
        signature = _require_header(headers, SIGNATURE_HEADER)
        chain_url = _require_header(headers, CERT_CHAIN_URL_HEADER)
        cert_url = validate_cert_chain_url(
            chain_url,
            host=self.cert_host,
            path_prefix=self.cert_path_prefix,
        )
        logger.info("SignatureCertChainUrl %s accepted", cert_url)
        return signature, cert_url

    def _check_certificate(
        self,
        cert_bytes: bytes,
        body: bytes,
        signature: str,
        now: datetime | None,
    ) -> None:
        public_key = self.validator.validate(cert_bytes, now=now)
        logger.info("Attempting to validate Signature hash...")
        logger.debug("Body: %r", body)
        verify_body_signature(public_key, body, signature)
        logger.info("Done validating certificate!")

    def _bypassed(self) -> VerificationResult:
        logger.info("Verification bypass enabled. Skipping certificate validation.")
        return VerificationResult(verified=True, bypassed=True)

    def _failed(self, exc: SkillVerificationError, cert_url: str | None) -> VerificationResult:
        logger.error("Request verification failed [%s]: %s", exc.reason, exc)
        return VerificationResult.failure(exc, cert_url)
