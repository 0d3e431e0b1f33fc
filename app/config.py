from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from yaml import YAMLError, safe_load
from dotenv import load_dotenv


ROOT = Path(__file__).resolve().parent.parent
SCRIPT_CONFIG_PATH = Path(os.getenv("SCRIPT_CONFIG", str(ROOT / "config" / "script.yml")))
FALLBACK_SLOT_A = "Tomorrow 2:00 PM"
FALLBACK_SLOT_B = "Thursday 10:00 AM"
FALLBACK_BRAND = "Venturebnb"

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


@dataclass(slots=True)
class ScriptConfig:
    brand_name: str
    offer_slot_a: str
    offer_slot_b: str


def _load_script_config(path: Optional[Path] = None) -> ScriptConfig:
    path = path or SCRIPT_CONFIG_PATH
    defaults: dict[str, Any] = {
        "brand_name": FALLBACK_BRAND,
        "offer_slot_a": FALLBACK_SLOT_A,
        "offer_slot_b": FALLBACK_SLOT_B,
    }

    if path.exists():
        try:
            loaded = safe_load(path.read_text(encoding="utf-8")) or {}
        except OSError as exc:  # pragma: no cover - configuration read errors are rare
            raise RuntimeError(f"Unable to read script configuration: {exc}") from exc
        except YAMLError as exc:
            raise RuntimeError(f"Invalid YAML in {path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise RuntimeError(f"Invalid YAML in {path}: top-level document must be a mapping")
        defaults.update({k: v for k, v in loaded.items() if v is not None})

    return ScriptConfig(
        brand_name=str(defaults.get("brand_name") or FALLBACK_BRAND),
        offer_slot_a=str(defaults.get("offer_slot_a") or FALLBACK_SLOT_A),
        offer_slot_b=str(defaults.get("offer_slot_b") or FALLBACK_SLOT_B),
    )


@dataclass(slots=True)
class Settings:
    booking_webhook_url: Optional[str]
    booking_timeout: float
    offer_slot_a: str
    offer_slot_b: str
    brand_name: str
    port: int
    greeting_delay: float
    session_ttl_seconds: Optional[float]
    debug_log_json: bool

    def __post_init__(self) -> None:
        if self.booking_timeout <= 0:
            self.booking_timeout = 8.0
        if self.greeting_delay < 0:
            self.greeting_delay = 0.0
        if self.session_ttl_seconds is not None and self.session_ttl_seconds <= 0:
            self.session_ttl_seconds = None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    script = _load_script_config()

    port_raw = _env_float("PORT", 8080)
    return Settings(
        booking_webhook_url=_env_str("BOOKING_WEBHOOK_URL"),
        booking_timeout=_env_float("BOOKING_TIMEOUT", 8.0) or 8.0,
        offer_slot_a=_env_str("OFFER_SLOT_A") or script.offer_slot_a,
        offer_slot_b=_env_str("OFFER_SLOT_B") or script.offer_slot_b,
        brand_name=_env_str("BRAND_NAME") or script.brand_name,
        port=int(port_raw or 8080),
        greeting_delay=_env_float("GREETING_DELAY", 1.5) or 0.0,
        session_ttl_seconds=_env_float("SESSION_TTL_SECONDS", None),
        debug_log_json=_env_bool("DEBUG_LOG_JSON", False),
    )


__all__ = ["ScriptConfig", "Settings", "get_settings"]
