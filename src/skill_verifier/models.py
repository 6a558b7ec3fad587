"""
Data models for skill request verification.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class VerificationResult:
    """
    Outcome of verifying one inbound request.

    Attributes:
        verified: Whether the request passed every check
        bypassed: True when verification was skipped by configuration
        reason: Stable error code of the first failing check
        error: Human-readable message for the failure
        cert_url: Normalized certificate chain URL, once validated
    """
    verified: bool
    bypassed: bool = False
    reason: str | None = None
    error: str | None = None
    cert_url: str | None = None

    @classmethod
    def failure(cls, exc: Exception, cert_url: str | None = None) -> "VerificationResult":
        return cls(
            verified=False,
            reason=getattr(exc, "reason", "verification_failed"),
            error=str(exc),
            cert_url=cert_url,
        )


@dataclass
class SkillState:
    """
    Verification state attached to gated requests.

    Attributes:
        raw_body: Request body captured once at the middleware boundary
        result: Verification result for the request
    """
    raw_body: bytes
    result: VerificationResult
