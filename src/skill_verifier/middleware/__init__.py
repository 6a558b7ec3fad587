"""
Skill verification middleware for ASGI and WSGI frameworks.

Re-exports middleware classes for convenient imports:
    from skill_verifier.middleware import SkillVerificationASGIMiddleware
    from skill_verifier.middleware import SkillVerificationWSGIMiddleware
"""

from .asgi import SkillVerificationASGIMiddleware
from .wsgi import SkillVerificationWSGIMiddleware

__all__ = [
    "SkillVerificationASGIMiddleware",
    "SkillVerificationWSGIMiddleware",
]
