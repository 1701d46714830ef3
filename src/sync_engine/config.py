"""
Sync Engine Configuration

Loaded from environment variables or a YAML file.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_API_URL = "https://api.sync.example.com/sync/"
DEFAULT_POLL_INTERVAL = 900
MIN_POLL_INTERVAL = 15
DEFAULT_TIMEOUT = 30


def _int_or_default(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class SyncConfig:
    """Configuration for the sync engine."""

    api_url: str = DEFAULT_API_URL
    sync_id: str = ""
    api_key: Optional[str] = None
    polling_interval_seconds: int = DEFAULT_POLL_INTERVAL
    timeout_seconds: int = DEFAULT_TIMEOUT
    store_path: Optional[Path] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.polling_interval_seconds = max(
            MIN_POLL_INTERVAL,
            _int_or_default(self.polling_interval_seconds, DEFAULT_POLL_INTERVAL),
        )
        self.timeout_seconds = _int_or_default(self.timeout_seconds, DEFAULT_TIMEOUT)
        if self.store_path is not None and not isinstance(self.store_path, Path):
            self.store_path = Path(self.store_path).expanduser()

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Load configuration from environment variables."""
        return cls(
            api_url=os.environ.get("SYNC_ENGINE_API_URL", DEFAULT_API_URL),
            sync_id=os.environ.get("SYNC_ENGINE_SYNC_ID", ""),
            api_key=os.environ.get("SYNC_ENGINE_API_KEY"),
            polling_interval_seconds=os.environ.get("SYNC_ENGINE_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            timeout_seconds=os.environ.get("SYNC_ENGINE_TIMEOUT", DEFAULT_TIMEOUT),
            store_path=os.environ.get("SYNC_ENGINE_STORE_PATH") or None,
            log_level=os.environ.get("SYNC_ENGINE_LOG_LEVEL", "INFO"),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "SyncConfig":
        """
        Load configuration from a YAML file.

        Unknown keys are ignored; a missing file yields the defaults.
        """
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in raw.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "api_url": self.api_url,
            "sync_id": self.sync_id,
            "has_api_key": self.api_key is not None,
            "polling_interval_seconds": self.polling_interval_seconds,
            "timeout_seconds": self.timeout_seconds,
            "store_path": str(self.store_path) if self.store_path else None,
            "log_level": self.log_level,
        }
