"""
Skill server entry point.

Usage:
    skill-verifier

    # Or with uvicorn
    uvicorn --factory skill_verifier.server:build_app --port 3001

Environment variables:
    SKILL_APPLICATION_ID - Application id requests must carry
    SKILL_ENVIRONMENT - Deployment environment (default: production)
    SKILL_SKIP_VERIFICATION - Skip signature checks; ignored in production
    SKILL_LOG_LEVEL - Logging level (default: INFO)
    HOST / PORT - Bind address (default: 0.0.0.0:3001)

See ``skill_verifier.config`` for the full list.
"""

import logging

import uvicorn

from .app import create_app
from .config import SkillSettings

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_app():
    """App factory for ``uvicorn --factory``."""
    settings = SkillSettings.from_env()
    configure_logging(settings.log_level)
    return create_app(settings)


def main() -> None:
    settings = SkillSettings.from_env()
    configure_logging(settings.log_level)

    logger.info("Skill server running on http://%s:%d", settings.host, settings.port)
    logger.info("Skill endpoint: %s", settings.api_path)
    logger.info("Certificate origin: https://%s%s", settings.cert_host, settings.cert_path_prefix)

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
