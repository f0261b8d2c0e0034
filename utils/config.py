"""Environment-driven settings for the annotation service."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

ANNOTATOR_BACKENDS = ("simulated", "openai")
REPROCESS_POLICIES = ("replace", "reject")
_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


def _parse_bool(name: str, raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise RuntimeError(f"{name}={raw!r} is not a boolean value")


def _parse_choice(name: str, raw: Optional[str], choices: tuple, default: str) -> str:
    value = (raw or default).strip().lower()
    if value not in choices:
        raise RuntimeError(f"{name}={raw!r} must be one of: {', '.join(choices)}")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime configuration.

    Attributes:
        database_dir: Directory holding the SQLite file (DATABASE_DIR).
        reset_database_on_startup: Delete any existing database file on startup.
        annotator_backend: Which annotator implementation to build.
        skip_probability: Quality-gate rate of the simulated annotator.
        annotator_seed: Optional seed making the simulated annotator repeatable.
        reprocess_policy: `replace` overwrites an existing result, `reject` raises a conflict.
        openai_model: Model used by the OpenAI annotator.
        log_level: Root logging level name.
    """

    database_dir: Path
    reset_database_on_startup: bool = False
    annotator_backend: str = "simulated"
    skip_probability: float = 0.1
    annotator_seed: Optional[int] = None
    reprocess_policy: str = "replace"
    openai_model: str = "gpt-5"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Raises:
            RuntimeError: If a required variable is missing or a value is invalid.
        """
        env = os.environ if environ is None else environ

        db_dir = env.get("DATABASE_DIR")
        if db_dir is None or not db_dir.strip():
            raise RuntimeError(
                "DATABASE_DIR environment variable must be set to a writable "
                "directory path where the SQLite database file will be stored."
            )

        raw_skip = env.get("ANNOTATOR_SKIP_PROBABILITY", "0.1")
        try:
            skip_probability = float(raw_skip)
        except ValueError as exc:
            raise RuntimeError(f"ANNOTATOR_SKIP_PROBABILITY={raw_skip!r} is not a number") from exc
        if math.isnan(skip_probability) or not 0.0 <= skip_probability <= 1.0:
            raise RuntimeError("ANNOTATOR_SKIP_PROBABILITY must be between 0 and 1")

        raw_seed = env.get("ANNOTATOR_SEED")
        seed: Optional[int] = None
        if raw_seed is not None and raw_seed.strip():
            try:
                seed = int(raw_seed)
            except ValueError as exc:
                raise RuntimeError(f"ANNOTATOR_SEED={raw_seed!r} is not an integer") from exc

        return cls(
            database_dir=Path(db_dir).expanduser(),
            reset_database_on_startup=_parse_bool(
                "DATABASE_RESET_ON_STARTUP", env.get("DATABASE_RESET_ON_STARTUP"), False
            ),
            annotator_backend=_parse_choice(
                "ANNOTATOR_BACKEND", env.get("ANNOTATOR_BACKEND"), ANNOTATOR_BACKENDS, "simulated"
            ),
            skip_probability=skip_probability,
            annotator_seed=seed,
            reprocess_policy=_parse_choice(
                "REPROCESS_POLICY", env.get("REPROCESS_POLICY"), REPROCESS_POLICIES, "replace"
            ),
            openai_model=env.get("OPENAI_MODEL", "gpt-5"),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
