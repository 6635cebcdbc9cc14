"""Configuration and settings storage"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from capture_bridge.common.models import ALL_PERMISSIONS, Permission

logger = logging.getLogger(__name__)


def default_config_dir() -> Path:
    """Return the per-user settings directory."""
    return Path.home() / ".capture_bridge"


class Config:
    """Broker and integration settings backed by a JSON file"""

    def __init__(self, config_file: str = "capture_bridge_config.json", config_dir: Optional[Path] = None):
        """
        Initialize configuration

        Args:
            config_file: Name of the config file
            config_dir: Directory holding the config file and app-private pictures
                (defaults to ~/.capture_bridge)
        """
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.config_file = self.config_dir / config_file
        self._config: Dict[str, Any] = {}
        self.load()

    def load(self):
        """Load configuration from file, merged over the defaults"""
        if self.config_file.exists():
            try:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    loaded = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.error("Error loading config %s: %s", self.config_file, e)
                loaded = {}
            if not isinstance(loaded, dict):
                logger.error("Config %s is not a JSON object, ignoring it", self.config_file)
                loaded = {}
            self._config = {**self._default_config(), **loaded}
        else:
            self._config = self._default_config()
            self.save()

    def save(self):
        """Save configuration to file"""
        try:
            with open(self.config_file, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2)
        except OSError as e:
            logger.error("Error saving config %s: %s", self.config_file, e)

    def _default_config(self) -> Dict[str, Any]:
        """Return default configuration"""
        return {
            "picture_dir": str(self.config_dir / "Pictures"),
            "mime_filter": "image/*",
            "required_permissions": sorted(p.value for p in ALL_PERMISSIONS),
            "granted_permissions": [],
            "base64_line_wrap": False,
            "listener_target": "CaptureBridge",
            "listener_method": "OnCaptureResult",
        }

    @property
    def picture_dir(self) -> Path:
        return Path(self._config["picture_dir"]).expanduser()

    @property
    def required_permissions(self) -> frozenset:
        """Permission set gating every request, recomputed on each access."""
        return self._permission_set("required_permissions")

    @property
    def granted_permissions(self) -> frozenset:
        return self._permission_set("granted_permissions")

    def _permission_set(self, key: str) -> frozenset:
        permissions = set()
        for value in self._config.get(key) or []:
            try:
                permissions.add(Permission(value))
            except ValueError:
                logger.warning("Unknown permission %r in %s", value, key)
        return frozenset(permissions)

    def remember_grants(self, granted: Iterable[Permission]):
        """Persist the set of permissions the user has granted"""
        self.set("granted_permissions", sorted(Permission(p).value for p in granted))

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value"""
        return self._config.get(key, default)

    def set(self, key: str, value: Any):
        """Set a configuration value"""
        self._config[key] = value
        self.save()

    def __getitem__(self, key: str) -> Any:
        """Allow dict-like access"""
        return self._config.get(key)

    def __setitem__(self, key: str, value: Any):
        """Allow dict-like assignment"""
        self.set(key, value)
