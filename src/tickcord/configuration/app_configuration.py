from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import fcntl
from typing import Any, Dict, List
import yaml

from tickcord.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_BIRTHDAY_MESSAGE = "Today is {mention}'s birthday!"


@dataclass(frozen=True)
class AnnouncementConfig:
    """A daily announcement declared in the ``announcements`` config list."""
    name: str
    hour: int
    channel_id: int
    content: str


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches contents of ``./config/app_config.yml`` and exposes
    dictionary-like access helpers plus typed shortcuts for the timer,
    birthday and announcement settings. Uses fcntl file locks for safe
    concurrent access across processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                # Acquire a shared lock for reading
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)

                # Release the lock
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _section(self, key: str) -> Dict[str, Any]:
        section = self._data.get(key, {})
        return section if isinstance(section, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping.

        The returned dict is the internal cache (shallow reference). Callers
        should not mutate it.
        """
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for a top-level key, or ``default`` when absent."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def database_path(self) -> Path:
        """Return the SQLite file that stores persisted state."""
        return Path(str(self._data.get("database_path") or "./data/app.db")).resolve()

    @property
    def tick_seconds(self) -> float:
        """Return the scheduler period in seconds. Default is 3600 (one hour)."""
        try:
            return float(self._section("timer").get("tick_seconds", 3600.0))
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid timer.tick_seconds; using 3600")
            return 3600.0

    @property
    def birthday_channel_id(self) -> int | None:
        """Return the channel that receives birthday announcements, if configured."""
        value = self._section("birthday").get("channel_id")
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid birthday.channel_id %r", value)
            return None

    @property
    def birthday_message(self) -> str:
        """Return the birthday message template. ``{mention}`` is replaced per user."""
        value = self._section("birthday").get("message")
        return str(value or DEFAULT_BIRTHDAY_MESSAGE)

    @property
    def announcements(self) -> List[AnnouncementConfig]:
        """Return the daily announcements declared in config.

        Malformed entries are skipped with a warning.
        """
        raw = self._data.get("announcements") or []
        if not isinstance(raw, list):
            return []

        result: List[AnnouncementConfig] = []
        for entry in raw:
            try:
                result.append(
                    AnnouncementConfig(
                        name=str(entry["name"]),
                        hour=int(entry["hour"]),
                        channel_id=int(entry["channel_id"]),
                        content=str(entry["content"]),
                    )
                )
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("[APP CONFIGURATION] Skipping malformed announcement %r: %s", entry, exc)
        return result


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
