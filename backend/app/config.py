"""FileSync backend configuration.

Loads settings from two YAML files:
  * filesync.settings.yaml: non-secret configuration
  * filesync.secrets.yaml:  ImageKit credentials (never committed)

Environment variables (``IMAGEKIT_PUBLIC_KEY``, ``IMAGEKIT_PRIVATE_KEY``,
``IMAGEKIT_URL_ENDPOINT``, ``PORT``) take precedence over both files.  A
``.env`` file in the working directory is read as well, below the real
process environment, so the service can run without any YAML.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("filesync.settings.yaml")
SECRETS_FILE  = Path("filesync.secrets.yaml")
ENV_FILE      = Path(".env")

# Environment variable name for each required ImageKit credential.
REQUIRED_ENV_VARS = {
    "public_key":   "IMAGEKIT_PUBLIC_KEY",
    "private_key":  "IMAGEKIT_PRIVATE_KEY",
    "url_endpoint": "IMAGEKIT_URL_ENDPOINT",
}


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.debug("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _read_env_file(path: Path) -> Dict[str, str]:
    if not path.exists():
        return {}
    logger.info("Loading environment from %s", path)
    return {k: v for k, v in dotenv_values(path).items() if v is not None}


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class ImageKitSecrets(BaseModel):
    public_key:   Optional[str] = None
    private_key:  Optional[str] = None
    url_endpoint: Optional[str] = None

    @field_validator("public_key", "private_key", "url_endpoint", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class Secrets(BaseModel):
    imagekit: ImageKitSecrets = Field(default_factory=ImageKitSecrets)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 8080
    log_level:       str       = "info"
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class UploadSettings(BaseModel):
    max_file_size_bytes: int  = 5 * 1024 * 1024
    folder:              str  = "filesync"
    # False makes the provider reject a second write to an existing key.
    overwrite_existing:  bool = False


class ImageKitSettings(BaseModel):
    upload_url:      str             = "https://upload.imagekit.io/api/v1/files/upload"
    api_url:         str             = "https://api.imagekit.io/v1/files"
    timeout_seconds: Optional[float] = None


class AppSettings(BaseModel):
    server:   ServerSettings   = Field(default_factory=ServerSettings)
    uploads:  UploadSettings   = Field(default_factory=UploadSettings)
    imagekit: ImageKitSettings = Field(default_factory=ImageKitSettings)
    secrets:  Secrets          = Field(default_factory=Secrets)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------


def _apply_env_overrides(data: Dict[str, Any], environ: Dict[str, str]) -> None:
    """Overlay ImageKit credentials and the listen port from the environment."""
    imagekit = data.setdefault("secrets", {}).setdefault("imagekit", {})
    for field_name, env_name in REQUIRED_ENV_VARS.items():
        value = environ.get(env_name)
        if value:
            imagekit[field_name] = value

    port = environ.get("PORT")
    if port:
        data.setdefault("server", {})["port"] = int(port)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(
    settings_path: Optional[Path] = None,
    secrets_path: Optional[Path] = None,
    environ: Optional[Dict[str, str]] = None,
    env_file: Optional[Path] = None,
) -> AppSettings:
    """Load and merge settings, secrets and env overrides into *AppSettings*.

    When *environ* is not given, the process environment is used, layered
    over the values in *env_file* (default ``.env``).
    """
    settings_data = _load_yaml(settings_path or SETTINGS_FILE)
    secrets_data  = _load_yaml(secrets_path or SECRETS_FILE)

    # Merge: secrets live under the "secrets" key in AppSettings
    settings_data["secrets"] = secrets_data
    if environ is None:
        environ = _read_env_file(env_file or ENV_FILE)
        environ.update({k: v for k, v in os.environ.items() if v})
    _apply_env_overrides(settings_data, environ)

    app_settings = AppSettings(**settings_data)
    logger.info(
        "Settings loaded (server=%s:%s, folder=%s, max_file_size_bytes=%d)",
        app_settings.server.host,
        app_settings.server.port,
        app_settings.uploads.folder,
        app_settings.uploads.max_file_size_bytes,
    )
    return app_settings


def missing_credentials(settings: AppSettings) -> List[str]:
    """Return the env var names of every ImageKit credential that is not set."""
    creds = settings.secrets.imagekit
    return [
        env_name
        for field_name, env_name in REQUIRED_ENV_VARS.items()
        if not getattr(creds, field_name)
    ]


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_config: Optional[AppSettings] = None


def get_config() -> AppSettings:
    """Return the process-wide settings, loading them on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[AppSettings]) -> None:
    """Set (or clear) the process-wide settings."""
    global _config
    _config = config
