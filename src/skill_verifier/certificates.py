"""
X.509 validation of the signing certificate: validity window, subject
identity and trust chain.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

import certifi
from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import ExtensionOID

from .errors import (
    ChainTrustError,
    ExpiredCertificateError,
    ParseError,
    SubjectMismatchError,
)

logger = logging.getLogger(__name__)

DEFAULT_CERT_SUBJECT = "CN=echo-api.amazon.com"
MAX_CHAIN_DEPTH = 8

# Critical extensions this validator understands; any other one fails the chain
HANDLED_CRITICAL_EXTENSIONS = frozenset({
    ExtensionOID.BASIC_CONSTRAINTS,
    ExtensionOID.KEY_USAGE,
    ExtensionOID.EXTENDED_KEY_USAGE,
    ExtensionOID.SUBJECT_ALTERNATIVE_NAME,
})

_PEM_CRL_RE = re.compile(
    rb"-----BEGIN X509 CRL-----.+?-----END X509 CRL-----", re.DOTALL
)


def load_certificate_chain(data: bytes) -> list[x509.Certificate]:
    """
    Parse a PEM bundle (leaf first) or a single DER certificate.

    Raises:
        ParseError: If the bytes hold no parseable certificate
    """
    try:
        if b"-----BEGIN CERTIFICATE-----" in data:
            return x509.load_pem_x509_certificates(data)
        return [x509.load_der_x509_certificate(data)]
    except ValueError as e:
        raise ParseError(f"Unable to parse certificate: {e}") from e


def load_crls(data: bytes) -> list[x509.CertificateRevocationList]:
    """Parse one DER CRL or any number of concatenated PEM CRLs."""
    blocks = _PEM_CRL_RE.findall(data)
    if blocks:
        return [x509.load_pem_x509_crl(block) for block in blocks]
    return [x509.load_der_x509_crl(data)]


def _fingerprint(cert: x509.Certificate) -> bytes:
    return cert.fingerprint(hashes.SHA256())


def _is_within_validity(cert: x509.Certificate, now: datetime) -> bool:
    return cert.not_valid_before_utc <= now <= cert.not_valid_after_utc


def _basic_constraints(cert: x509.Certificate) -> x509.BasicConstraints | None:
    try:
        return cert.extensions.get_extension_for_class(x509.BasicConstraints).value
    except x509.ExtensionNotFound:
        return None


def _is_ca(cert: x509.Certificate) -> bool:
    constraints = _basic_constraints(cert)
    return constraints is not None and constraints.ca


def _can_sign_certificates(cert: x509.Certificate) -> bool:
    """A missing KeyUsage extension places no restriction."""
    try:
        usage = cert.extensions.get_extension_for_class(x509.KeyUsage).value
    except x509.ExtensionNotFound:
        return True
    return usage.key_cert_sign


def _unhandled_critical_extensions(cert: x509.Certificate) -> list[str]:
    return [
        ext.oid.dotted_string
        for ext in cert.extensions
        if ext.critical and ext.oid not in HANDLED_CRITICAL_EXTENSIONS
    ]


def _is_issued_by(cert: x509.Certificate, issuer: x509.Certificate) -> bool:
    try:
        cert.verify_directly_issued_by(issuer)
    except (ValueError, TypeError, InvalidSignature, UnsupportedAlgorithm):
        return False
    return True


class TrustStore:
    """
    Trust anchors, plus optional CRLs, loaded once at start-up.

    Args:
        anchors: Root certificates a chain must end at
        crls: Revocation lists consulted for every chain element
    """

    def __init__(
        self,
        anchors: Iterable[x509.Certificate],
        crls: Iterable[x509.CertificateRevocationList] = (),
    ):
        self.anchors = list(anchors)
        self.crls = list(crls)
        self._fingerprints = {_fingerprint(a) for a in self.anchors}

    @classmethod
    def from_pem_file(cls, path: str | Path, crl_path: str | Path | None = None) -> "TrustStore":
        anchors = x509.load_pem_x509_certificates(Path(path).read_bytes())
        crls = load_crls(Path(crl_path).read_bytes()) if crl_path else []
        logger.info(
            "Loaded %d trust anchors from %s (%d CRLs)", len(anchors), path, len(crls)
        )
        return cls(anchors, crls)

    @classmethod
    def default(cls, crl_path: str | Path | None = None) -> "TrustStore":
        """Trust store backed by the Mozilla bundle shipped with certifi."""
        return cls.from_pem_file(certifi.where(), crl_path)

    def is_anchor(self, cert: x509.Certificate) -> bool:
        return _fingerprint(cert) in self._fingerprints

    def anchors_named(self, name: x509.Name) -> list[x509.Certificate]:
        return [a for a in self.anchors if a.subject == name]

    def is_revoked(self, cert: x509.Certificate, issuer: x509.Certificate) -> bool:
        """Check every CRL signed by ``issuer`` for the certificate's serial."""
        for crl in self.crls:
            if crl.issuer != cert.issuer:
                continue
            try:
                if not crl.is_signature_valid(issuer.public_key()):
                    continue
            except TypeError:
                continue
            if crl.get_revoked_certificate_by_serial_number(cert.serial_number) is not None:
                return True
        return False


class CertificateChainValidator:
    """
    Validates the downloaded signing certificate.

    Checks run in a fixed order and stop at the first failure:
    validity window, subject identity, trust chain.

    Args:
        trust_store: Anchors the chain must reach
        subject: Token the leaf subject must contain, e.g. ``CN=echo-api.amazon.com``
    """

    def __init__(self, trust_store: TrustStore, subject: str = DEFAULT_CERT_SUBJECT):
        self.trust_store = trust_store
        self.subject = subject

    def validate(self, cert_bytes: bytes, now: datetime | None = None):
        """
        Validate a certificate bundle and return the leaf's public key.

        Raises:
            ParseError: Malformed certificate bytes
            ExpiredCertificateError: Leaf outside its validity window
            SubjectMismatchError: Leaf subject lacks the required token
            ChainTrustError: Chain does not verify up to a trust anchor
        """
        now = now or datetime.now(timezone.utc)
        leaf, *intermediates = load_certificate_chain(cert_bytes)

        if not _is_within_validity(leaf, now):
            raise ExpiredCertificateError(
                "Certificate date is invalid "
                f"(not_before={leaf.not_valid_before_utc.isoformat()}, "
                f"not_after={leaf.not_valid_after_utc.isoformat()})"
            )

        subject = leaf.subject.rfc4514_string()
        if self.subject not in subject:
            raise SubjectMismatchError(
                f"Certificate subject '{subject}' incorrect. "
                f"(IssuerName: '{leaf.issuer.rfc4514_string()}')"
            )

        chain = self._build_chain(leaf, intermediates)
        self._verify_chain(chain, now)
        logger.info("Certificate chain of %d elements is valid", len(chain))

        return leaf.public_key()

    def _find_issuer(
        self,
        cert: x509.Certificate,
        pool: list[x509.Certificate],
    ) -> x509.Certificate | None:
        # Anchors first so cross-signed chains stop at the trusted root
        candidates = self.trust_store.anchors_named(cert.issuer)
        candidates += [c for c in pool if c.subject == cert.issuer and c is not cert]
        for candidate in candidates:
            if _is_issued_by(cert, candidate):
                return candidate
        return None

    def _build_chain(
        self,
        leaf: x509.Certificate,
        intermediates: list[x509.Certificate],
    ) -> list[x509.Certificate]:
        chain = [leaf]
        current = leaf
        for _ in range(MAX_CHAIN_DEPTH):
            if self.trust_store.is_anchor(current):
                return chain
            issuer = self._find_issuer(current, intermediates)
            if issuer is None:
                raise ChainTrustError(
                    "Certificate chain is not valid: no trusted issuer for "
                    f"'{current.subject.rfc4514_string()}'"
                )
            chain.append(issuer)
            current = issuer
        raise ChainTrustError("Certificate chain is not valid: chain too long")

    def _verify_chain(self, chain: list[x509.Certificate], now: datetime) -> None:
        """
        Verify each element against its issuer, leaf first.

        An issuer at position ``i`` (the leaf is 0) has ``i - 1`` CA
        certificates below it, which its path length constraint must allow.
        """
        for depth, (cert, issuer) in enumerate(zip(chain, chain[1:] + [None])):
            name = cert.subject.rfc4514_string()
            if not _is_within_validity(cert, now):
                raise ChainTrustError(f"Certificate chain is not valid: '{name}' is out of date")
            if issuer is None:
                # Trust anchor
                continue

            unhandled = _unhandled_critical_extensions(cert)
            if unhandled:
                raise ChainTrustError(
                    f"Certificate chain is not valid: '{name}' has unsupported "
                    f"critical extensions {', '.join(unhandled)}"
                )

            issuer_name = issuer.subject.rfc4514_string()
            if not _is_ca(issuer) and not self.trust_store.is_anchor(issuer):
                raise ChainTrustError(f"Certificate chain is not valid: '{issuer_name}' is not a CA")
            if not _can_sign_certificates(issuer):
                raise ChainTrustError(
                    f"Certificate chain is not valid: '{issuer_name}' may not sign certificates"
                )
            constraints = _basic_constraints(issuer)
            if constraints is not None and constraints.path_length is not None:
                if constraints.path_length < depth:
                    raise ChainTrustError(
                        f"Certificate chain is not valid: '{issuer_name}' path length "
                        f"{constraints.path_length} exceeded"
                    )
            if self.trust_store.is_revoked(cert, issuer):
                raise ChainTrustError(f"Certificate chain is not valid: '{name}' is revoked")
