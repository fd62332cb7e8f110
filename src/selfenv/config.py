"""Global configuration and app directory resolution."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import appdirs
import tomli

from selfenv.errors import SelfEnvError
from selfenv.logging import get_logger

logger = get_logger(__name__)

APP_NAME = "selfenv"
APP_DIR_ENV = "SELFENV_HOME"
CONFIG_FILENAME = "config.toml"


class ConfigError(SelfEnvError):
    """Configuration file could not be read or parsed."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"invalid config file {path}: {reason}", details={"path": str(path)})


def get_app_dir() -> Path:
    """Root under which helpers, interpreters, the self env and shims live."""
    override = os.environ.get(APP_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path(appdirs.user_data_dir(APP_NAME))


class Config:
    """Read-only view over ``<app_dir>/config.toml``."""

    def __init__(self, doc: Optional[Dict[str, Any]] = None, path: Optional[Path] = None):
        self.doc = doc or {}
        self.path = path

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        path = path or get_app_dir() / CONFIG_FILENAME
        if not path.is_file():
            return cls({}, path)
        try:
            with open(path, "rb") as f:
                doc = tomli.load(f)
        except (OSError, tomli.TOMLDecodeError) as e:
            raise ConfigError(path, str(e)) from e
        logger.debug({"event": "config_loaded", "path": str(path)})
        return cls(doc, path)

    def _proxy(self, key: str) -> Optional[str]:
        proxy = self.doc.get("proxy")
        if isinstance(proxy, dict):
            value = proxy.get(key)
            if isinstance(value, str) and value:
                return value
        for var in (f"{key}_proxy", f"{key.upper()}_PROXY"):
            value = os.environ.get(var)
            if value:
                return value
        return None

    def https_proxy_url(self) -> Optional[str]:
        return self._proxy("https")

    def http_proxy_url(self) -> Optional[str]:
        return self._proxy("http")

    def _checksums(self) -> Dict[str, Any]:
        checksums = self.doc.get("checksums")
        return checksums if isinstance(checksums, dict) else {}

    def pinned_sha256(self, url: str) -> Optional[str]:
        """Digest pinned for a download url under ``[checksums.sha256]``."""
        pins = self._checksums().get("sha256")
        if not isinstance(pins, dict):
            return None
        value = pins.get(url)
        if isinstance(value, str) and value.strip():
            return value.strip().lower()
        return None

    def require_pinned_checksums(self) -> bool:
        """Whether only pinned digests are accepted for downloads."""
        return self._checksums().get("require-pinned") is True


def proxy_env(config: Optional[Config] = None) -> Dict[str, str]:
    """Proxy variables forwarded to spawned helpers."""
    config = config or Config.load()
    env = {}
    if https := config.https_proxy_url():
        env["HTTPS_PROXY"] = https
    if http := config.http_proxy_url():
        env["HTTP_PROXY"] = http
    return env
