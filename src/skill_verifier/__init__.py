"""
Skill Verifier

Voice skill backend that verifies platform-signed requests (certificate
chain URL, X.509 chain and SHA-1/RSA body signature) before dispatching
intents.
"""

from .certificates import CertificateChainValidator, TrustStore
from .client import CertificateFetcher
from .config import SkillSettings
from .errors import SkillVerificationError
from .models import SkillState, VerificationResult
from .origin import validate_cert_chain_url
from .signature import verify_body_signature
from .timestamp import check_request_timestamp
from .verifier import RequestVerifier
from .middleware import SkillVerificationASGIMiddleware, SkillVerificationWSGIMiddleware

__version__ = "0.1.0"

__all__ = [
    "CertificateChainValidator",
    "CertificateFetcher",
    "RequestVerifier",
    "SkillSettings",
    "SkillState",
    "SkillVerificationASGIMiddleware",
    "SkillVerificationError",
    "SkillVerificationWSGIMiddleware",
    "TrustStore",
    "VerificationResult",
    "check_request_timestamp",
    "validate_cert_chain_url",
    "verify_body_signature",
]
