from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

_DEFAULT_DEBUG_LOG_PATH = "/tmp/clinote_extraction_raw.log"


def _getenv_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None else value


def _getenv_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _getenv_bounded_int(name: str, default: int, *, min_value: int, max_value: int) -> int:
    value = _getenv_int(name, default)
    return max(min_value, min(max_value, value))


@dataclass(frozen=True)
class EngineConfig:
    CLINOTE_TEMPLATE_DIR: str
    CLINOTE_EXTRACTION_MODEL: str
    CLINOTE_MAX_TRANSCRIPT_CHARS: int
    CLINOTE_EXTRACTION_DEBUG_LOG: str
    CLINOTE_LOG_LEVEL: str

    def template_dir_path(self) -> Optional[Path]:
        raw = self.CLINOTE_TEMPLATE_DIR.strip()
        if not raw:
            return None
        return Path(raw).expanduser().resolve()

    def debug_log_path(self) -> Optional[str]:
        raw = self.CLINOTE_EXTRACTION_DEBUG_LOG.strip()
        if not raw:
            return None
        if raw.lower() in {"1", "true", "on", "yes"}:
            return _DEFAULT_DEBUG_LOG_PATH
        return raw


def load_config() -> EngineConfig:
    return EngineConfig(
        CLINOTE_TEMPLATE_DIR=_getenv_str("CLINOTE_TEMPLATE_DIR", ""),
        CLINOTE_EXTRACTION_MODEL=_getenv_str("CLINOTE_EXTRACTION_MODEL", "openai/gpt-4-turbo"),
        CLINOTE_MAX_TRANSCRIPT_CHARS=_getenv_bounded_int(
            "CLINOTE_MAX_TRANSCRIPT_CHARS", 60000, min_value=1000, max_value=1_000_000
        ),
        CLINOTE_EXTRACTION_DEBUG_LOG=_getenv_str("CLINOTE_EXTRACTION_DEBUG_LOG", ""),
        CLINOTE_LOG_LEVEL=_getenv_str("CLINOTE_LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
