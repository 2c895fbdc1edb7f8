"""
Runtime settings for the integrity core.

Values come from the environment (optionally seeded from .env by
``load_env``). CLI flags override them per run.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_DATABASE_URL = "sqlite:///data/votorank.db"
DEFAULT_BATCH_SIZE = 30
DEFAULT_PROBE_TIMEOUT = 10.0
DEFAULT_PROBE_RETRIES = 1

# Alternate photo hosts tried when the original reference is dead
NATIONAL_ID_TEMPLATE = "https://votoinformado.jne.gob.pe/assets/fotocandidato/{dni}.jpg"
TOKEN_TEMPLATE = "https://plataformaelectoral.jne.gob.pe/Candidato/GetFoto?param={token}"


def _int_env(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}")


def _float_env(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}")


@dataclass
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    batch_size: int = DEFAULT_BATCH_SIZE
    batch_delay: float = 0.0
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    probe_retries: int = DEFAULT_PROBE_RETRIES
    national_id_template: str = NATIONAL_ID_TEMPLATE
    token_template: str = TOKEN_TEMPLATE
    log_level: str = "INFO"

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.probe_timeout <= 0:
            raise ValueError("probe_timeout must be positive")
        if self.batch_delay < 0:
            raise ValueError("batch_delay cannot be negative")
        if self.probe_retries < 0:
            raise ValueError("probe_retries cannot be negative")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if env is None else env
        return cls(
            database_url=env.get("VOTORANK_DATABASE_URL", DEFAULT_DATABASE_URL),
            batch_size=_int_env(env, "VOTORANK_BATCH_SIZE", DEFAULT_BATCH_SIZE),
            batch_delay=_float_env(env, "VOTORANK_BATCH_DELAY", 0.0),
            probe_timeout=_float_env(env, "VOTORANK_PROBE_TIMEOUT", DEFAULT_PROBE_TIMEOUT),
            probe_retries=_int_env(env, "VOTORANK_PROBE_RETRIES", DEFAULT_PROBE_RETRIES),
            national_id_template=env.get("VOTORANK_NATIONAL_ID_TEMPLATE", NATIONAL_ID_TEMPLATE),
            token_template=env.get("VOTORANK_TOKEN_TEMPLATE", TOKEN_TEMPLATE),
            log_level=env.get("VOTORANK_LOG_LEVEL", "INFO"),
        )
