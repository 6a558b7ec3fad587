"""
Error taxonomy for skill request verification.

Every failure carries a stable ``reason`` code so callers can report it
without parsing the message.
"""

from __future__ import annotations


class SkillVerificationError(Exception):
    """Base class for every rejection scoped to a single request."""

    reason = "verification_failed"


class MissingHeaderError(SkillVerificationError):
    reason = "missing_header"

    def __init__(self, header: str):
        super().__init__(f"Request does not contain `{header}` header")
        self.header = header


class InvalidOriginError(SkillVerificationError):
    reason = "invalid_origin"

    def __init__(self, url: str, detail: str | None = None):
        message = f"`SignatureCertChainUrl` is invalid [{url}]"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.url = url


class FetchError(SkillVerificationError):
    reason = "fetch_failed"


class ParseError(SkillVerificationError):
    reason = "parse_failed"


class ExpiredCertificateError(SkillVerificationError):
    reason = "certificate_expired"


class SubjectMismatchError(SkillVerificationError):
    reason = "subject_mismatch"


class ChainTrustError(SkillVerificationError):
    reason = "chain_untrusted"


class SignatureDecodeError(SkillVerificationError):
    reason = "signature_decode"


class KeyTypeError(SkillVerificationError):
    reason = "key_type"


class SignatureMismatchError(SkillVerificationError):
    reason = "signature_mismatch"


class StaleRequestError(SkillVerificationError):
    reason = "stale_request"

    def __init__(self, elapsed_s: float):
        super().__init__(
            f"Request timestamp is outside the tolerance bounds ({int(elapsed_s)})"
        )
        self.elapsed_s = elapsed_s


class ApplicationMismatchError(SkillVerificationError):
    reason = "application_mismatch"


class MalformedRequestError(SkillVerificationError):
    reason = "malformed_request"
