"""
Process-wide configuration, read once at start-up.

Values come from an optional JSON settings file (``SKILL_SETTINGS_FILE``,
keys under ``"skill"``) overridden by environment variables.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

PRODUCTION = "production"

# field name -> environment variable
ENV_VARS = {
    "application_id": "SKILL_APPLICATION_ID",
    "environment": "SKILL_ENVIRONMENT",
    "skip_verification": "SKILL_SKIP_VERIFICATION",
    "cert_host": "SKILL_CERT_HOST",
    "cert_path_prefix": "SKILL_CERT_PATH_PREFIX",
    "cert_subject": "SKILL_CERT_SUBJECT",
    "trust_store_path": "SKILL_TRUST_STORE",
    "crl_path": "SKILL_CRL_PATH",
    "fetch_timeout_s": "SKILL_FETCH_TIMEOUT",
    "timestamp_min_skew_s": "SKILL_TIMESTAMP_MIN_SKEW",
    "timestamp_max_age_s": "SKILL_TIMESTAMP_MAX_AGE",
    "sound_dir": "SKILL_SOUND_DIR",
    "sound_url_prefix": "SKILL_SOUND_URL_PREFIX",
    "api_path": "SKILL_API_PATH",
    "skill_name": "SKILL_NAME",
    "random_seed": "SKILL_RANDOM_SEED",
    "log_level": "SKILL_LOG_LEVEL",
    "host": "HOST",
    "port": "PORT",
}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class SkillSettings:
    """Immutable skill configuration."""

    application_id: str = ""
    environment: str = PRODUCTION
    skip_verification: bool = False

    cert_host: str = "s3.amazonaws.com"
    cert_path_prefix: str = "/echo.api/"
    cert_subject: str = "CN=echo-api.amazon.com"
    trust_store_path: str | None = None
    crl_path: str | None = None
    fetch_timeout_s: float = 10.0

    timestamp_min_skew_s: float = -5
    timestamp_max_age_s: float = 150

    sound_dir: str = "SoundAssets"
    sound_url_prefix: str = "/Sounds"
    api_path: str = "/api/skill"
    skill_name: str = "Hair Band"
    random_seed: int | None = None

    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3001

    protected_paths: tuple[str, ...] = field(default=(), repr=False)

    def __post_init__(self):
        if not self.protected_paths:
            object.__setattr__(self, "protected_paths", (self.api_path,))

    @property
    def bypass_enabled(self) -> bool:
        """Verification can only be skipped outside production."""
        return self.skip_verification and self.environment.lower() != PRODUCTION

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "SkillSettings":
        """Build settings from raw (string or JSON) values, coercing types."""
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in values or values[f.name] is None:
                continue
            raw = values[f.name]
            if f.name == "skip_verification":
                kwargs[f.name] = _parse_bool(raw)
            elif f.name in ("fetch_timeout_s", "timestamp_min_skew_s", "timestamp_max_age_s"):
                kwargs[f.name] = float(raw)
            elif f.name in ("port", "random_seed"):
                kwargs[f.name] = int(raw)
            elif f.name == "protected_paths":
                kwargs[f.name] = tuple(raw)
            else:
                kwargs[f.name] = str(raw)
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SkillSettings":
        """
        Load settings from ``SKILL_SETTINGS_FILE`` and the environment.

        Environment variables take precedence over the settings file.
        """
        environ = os.environ if environ is None else environ

        values: dict[str, Any] = {}
        settings_file = environ.get("SKILL_SETTINGS_FILE")
        if settings_file:
            data = json.loads(Path(settings_file).read_text())
            values.update(data.get("skill", {}))

        for name, var in ENV_VARS.items():
            if environ.get(var):
                values[name] = environ[var]

        return cls.from_mapping(values)
