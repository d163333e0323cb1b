from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from guildkeeper.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_TICK_INTERVAL = 1.0
DEFAULT_DATABASE_PATH = "./data/app.db"


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    Caches the contents of ``./config/app_config.yml`` and exposes typed
    shortcuts for the values the runtime needs. The file is read under a
    shared ``fcntl`` lock so an editor holding an exclusive lock never hands
    us a half-written document.
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
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.warning("[APP CONFIGURATION] Config file %s not found, using defaults.", self.config_path)
            return {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            return {}
        return data

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._data.get(name, {})
        return section if isinstance(section, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file, replace the in-memory cache and return it."""
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """The cached configuration mapping. Do not mutate it."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def tick_interval(self) -> float:
        """Seconds between two reconciliation ticks. Default is 1 second."""
        value = self._section("scheduler").get("tick_interval_seconds", DEFAULT_TICK_INTERVAL)
        try:
            interval = float(value)
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Invalid tick interval %r, using %.1fs", value, DEFAULT_TICK_INTERVAL)
            return DEFAULT_TICK_INTERVAL
        return interval if interval > 0 else DEFAULT_TICK_INTERVAL

    @property
    def database_path(self) -> Path:
        """Location of the SQLite file holding guild data."""
        value = self._section("database").get("path") or DEFAULT_DATABASE_PATH
        return Path(str(value)).resolve()


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
