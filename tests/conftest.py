"""Shared fixtures: a throwaway platform PKI and signed skill requests."""

from __future__ import annotations

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
import respx
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.x509.oid import NameOID

from skill_verifier.certificates import TrustStore

CERT_URL = "https://s3.amazonaws.com/echo.api/echo-api-cert.pem"
APP_ID = "amzn1.ask.skill.test-skill"
LEAF_CN = "echo-api.amazon.com"


def _name(cn: str) -> x509.Name:
    return x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, "US"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test Platform"),
        x509.NameAttribute(NameOID.COMMON_NAME, cn),
    ])


def _new_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def issue_cert(
    cn: str,
    public_key,
    issuer_key,
    issuer: x509.Certificate | None = None,
    ca: bool = False,
    not_before: datetime | None = None,
    not_after: datetime | None = None,
    path_length: int | None = None,
    extensions: tuple = (),
) -> x509.Certificate:
    """
    Issue a certificate; self-signed when ``issuer`` is None.

    ``extensions`` holds extra ``(extension, critical)`` pairs.
    """
    now = datetime.now(timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(_name(cn))
        .issuer_name(issuer.subject if issuer is not None else _name(cn))
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=path_length), critical=True)
    )
    for extension, critical in extensions:
        builder = builder.add_extension(extension, critical=critical)
    return builder.sign(issuer_key, hashes.SHA256())


def to_pem(*certs: x509.Certificate) -> bytes:
    return b"".join(c.public_bytes(serialization.Encoding.PEM) for c in certs)


def sign_body(key: rsa.RSAPrivateKey, body: bytes) -> str:
    """Sign like the platform does: SHA-1, RSA PKCS#1 v1.5, base64."""
    signature = key.sign(body, padding.PKCS1v15(), hashes.SHA1())
    return base64.b64encode(signature).decode("ascii")


class FakePlatform:
    """Root CA -> intermediate -> echo-api leaf, plus signing helpers."""

    def __init__(self):
        self.root_key = _new_key()
        self.root = issue_cert("Test Root CA", self.root_key.public_key(), self.root_key, ca=True)

        self.intermediate_key = _new_key()
        self.intermediate = issue_cert(
            "Test Intermediate CA",
            self.intermediate_key.public_key(),
            self.root_key,
            issuer=self.root,
            ca=True,
        )

        self.leaf_key = _new_key()
        self.leaf = self.issue_leaf()

    def issue_leaf(self, cn: str = LEAF_CN, key=None, **kwargs) -> x509.Certificate:
        key = key or self.leaf_key
        return issue_cert(
            cn,
            key.public_key(),
            self.intermediate_key,
            issuer=self.intermediate,
            **kwargs,
        )

    def bundle(self, leaf: x509.Certificate | None = None) -> bytes:
        return to_pem(leaf or self.leaf, self.intermediate)

    def trust_store(self, **kwargs) -> TrustStore:
        return TrustStore([self.root], **kwargs)

    def sign(self, body: bytes) -> str:
        return sign_body(self.leaf_key, body)

    def headers(self, body: bytes, cert_url: str = CERT_URL) -> dict[str, str]:
        return {
            "Signature": self.sign(body),
            "SignatureCertChainUrl": cert_url,
            "Content-Type": "application/json",
        }


@pytest.fixture(scope="session")
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def mock_cert_host():
    """Create a respx mock for the certificate host."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


def iso_timestamp(when: datetime | None = None) -> str:
    when = when or datetime.now(timezone.utc)
    return when.strftime("%Y-%m-%dT%H:%M:%SZ")


def skill_body(
    intent: str | None = "SayIntent",
    request_type: str = "IntentRequest",
    application_id: str = APP_ID,
    timestamp: str | None = None,
) -> bytes:
    request = {
        "type": request_type,
        "requestId": "amzn1.echo-api.request.0001",
        "timestamp": timestamp or iso_timestamp(),
        "locale": "en-US",
    }
    if intent is not None:
        request["intent"] = {"name": intent, "slots": {}}
    payload = {
        "version": "1.0",
        "session": {
            "new": True,
            "sessionId": "amzn1.echo-api.session.0001",
            "application": {"applicationId": application_id},
        },
        "request": request,
    }
    return json.dumps(payload).encode("utf-8")
