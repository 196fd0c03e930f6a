"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

HEADCOUNT_MODES = ("structured", "text")


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("true", "on", "1", "yes")


def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class AppConfig:
    """Settings for the attendance service.

    Build with `AppConfig.from_env()`; `.env` files are loaded by `main.py`
    before this is read.
    """

    database_dir: Optional[str] = None
    database_reset: bool = False
    seed_demo_attendees: bool = True
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    headcount_model: str = "gpt-4.1-mini"
    headcount_mode: str = "structured"
    rotation_seconds: float = 30.0
    poll_seconds: float = 2.0
    presenter_login_id: str = "teacher@school.edu"
    presenter_password: str = "password123"
    attendee_password: str = "password456"
    camera_index: int = 0
    log_level: str = "INFO"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """Read settings from `env` (defaults to `os.environ`)."""
        env = os.environ if env is None else env

        mode = (env.get("HEADCOUNT_MODE") or "structured").strip().lower()
        if mode not in HEADCOUNT_MODES:
            raise RuntimeError(f"HEADCOUNT_MODE must be one of {', '.join(HEADCOUNT_MODES)}, got {mode!r}")

        camera_raw = (env.get("CAMERA_INDEX") or "0").strip()
        try:
            camera_index = int(camera_raw)
        except ValueError as exc:
            raise RuntimeError(f"CAMERA_INDEX must be an integer, got {camera_raw!r}") from exc

        config = cls(
            database_dir=env.get("DATABASE_DIR") or None,
            database_reset=_flag(env.get("DATABASE_RESET"), False),
            seed_demo_attendees=_flag(env.get("SEED_DEMO_ATTENDEES"), True),
            supabase_url=(env.get("SUPABASE_URL") or "").strip() or None,
            supabase_key=(env.get("SUPABASE_KEY") or "").strip() or None,
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            headcount_model=env.get("HEADCOUNT_MODEL") or cls.headcount_model,
            headcount_mode=mode,
            rotation_seconds=_positive_float(env, "TOKEN_ROTATION_SECONDS", cls.rotation_seconds),
            poll_seconds=_positive_float(env, "ROSTER_POLL_SECONDS", cls.poll_seconds),
            presenter_login_id=env.get("PRESENTER_LOGIN_ID") or cls.presenter_login_id,
            presenter_password=env.get("PRESENTER_PASSWORD") or cls.presenter_password,
            attendee_password=env.get("ATTENDEE_PASSWORD") or cls.attendee_password,
            camera_index=camera_index,
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )

        if not config.supabase_configured and not config.database_dir:
            raise RuntimeError(
                "Either SUPABASE_URL and SUPABASE_KEY, or DATABASE_DIR for the local "
                "SQLite fallback, must be set."
            )
        return config
