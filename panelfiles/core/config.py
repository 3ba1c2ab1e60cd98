"""Application configuration management."""
import json
import os
import secrets
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PANEL_URL = "http://127.0.0.1:3001"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_UPLOAD_TIMEOUT = 600.0
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_DISCLOSURE_BATCH = 100

EDITABLE_EXTENSIONS = [
    "txt", "json", "yml", "yaml", "properties", "cfg", "conf", "ini", "sh",
    "bat", "cmd", "log", "xml", "html", "css", "js", "ts", "md", "toml",
]
ARCHIVE_EXTENSIONS = ["zip", "tar", "gz"]


class AppConfig(BaseModel):
    """Values that may be stored in the JSON configuration file.

    Only fields written to the file override the environment; a fresh file
    holds just the generated `api_token`.
    """
    model_config = {"extra": "ignore"}

    panel_url: str = Field(DEFAULT_PANEL_URL, description="Base URL of the panel backend")
    panel_token: Optional[str] = Field(
        default=None,
        description="Bearer token forwarded to the panel backend file API",
    )
    host: str = Field("0.0.0.0", description="Application bind address")
    port: int = Field(5080, description="Application bind port")
    log_level: str = Field("INFO", description="Root logging level")
    api_token: Optional[str] = Field(
        default=None,
        description="Optional API token for authenticated requests",
    )
    auth_enabled: bool = Field(
        default=True,
        description="Enable or disable API auth enforcement",
    )


class Settings(BaseSettings):
    """Resolved application settings used by services and FastAPI dependencies."""

    model_config = SettingsConfigDict(env_prefix="PANELFILES_", extra="ignore")

    panel_url: str = Field(DEFAULT_PANEL_URL, description="Base URL of the panel backend")
    panel_token: Optional[str] = Field(default=None, description="Bearer token for the panel backend")
    request_timeout: float = Field(DEFAULT_REQUEST_TIMEOUT, description="Timeout for plain file API calls")
    upload_timeout: float = Field(DEFAULT_UPLOAD_TIMEOUT, description="Timeout for a single file upload")
    chunk_size: int = Field(DEFAULT_CHUNK_SIZE, description="Chunk size used for streamed transfers")
    disclosure_batch_size: int = Field(
        DEFAULT_DISCLOSURE_BATCH,
        description="Maximum children returned by one directory read",
    )
    editable_extensions: list[str] = Field(
        default_factory=lambda: list(EDITABLE_EXTENSIONS),
        description="Extensions opened in the text editor on activation",
    )
    archive_extensions: list[str] = Field(
        default_factory=lambda: list(ARCHIVE_EXTENSIONS),
        description="Extensions treated as extractable archives",
    )

    host: str = Field("0.0.0.0", description="Application bind address")
    port: int = Field(5080, description="Application bind port")
    log_level: str = Field("INFO", description="Root logging level")
    api_token: Optional[str] = Field(default=None, description="API token required by /api routes")
    auth_enabled: bool = Field(default=True, description="Enable or disable API auth enforcement")


def _get_config_file_path() -> Path:
    """Get the absolute path to the JSON configuration file."""
    override = os.environ.get("PANELFILES_CONFIG")
    if override:
        return Path(override)
    project_root = Path(__file__).parent.parent.parent
    return project_root / "panelfiles.json"


def _persist_config(config: AppConfig, path: Path) -> None:
    """Write the config next to its final location, then swap it in."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(config.model_dump(mode="json", exclude_unset=True), indent=2, ensure_ascii=False)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
        os.replace(tmp_name, path)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        raise RuntimeError(f"Cannot write configuration {path}: {exc}") from exc


def _ensure_config_file() -> Path:
    path = _get_config_file_path()
    if not path.exists():
        _persist_config(AppConfig(), path)
    return path


def _load_config_from_json() -> AppConfig:
    """Load the JSON configuration file, generating missing secrets (blocking, use at startup)."""
    config_path = _ensure_config_file()

    try:
        config = AppConfig.model_validate_json(config_path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration in {config_path}: {exc}") from exc
    except OSError as exc:
        raise RuntimeError(f"Cannot read configuration {config_path}: {exc}") from exc

    if not config.api_token:
        config.api_token = secrets.token_urlsafe(32)
        _persist_config(config, config_path)
    return config


def _create_settings_from_config(config: AppConfig) -> Settings:
    """Overlay values stored in the file on top of environment-derived settings."""
    persisted = config.model_dump(exclude_unset=True, exclude_none=True)
    return Settings(**persisted)


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return a cached Settings instance (blocking, use at startup only)."""

    config = _load_config_from_json()
    return _create_settings_from_config(config)
