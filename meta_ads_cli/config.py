import json
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from meta_ads_cli.errors import CliError, ErrorCode
from meta_ads_cli.services.graph_client import DEFAULT_API_VERSION, DEFAULT_TIMEOUT, normalize_account_id

# .env in the working directory; real environment variables win
load_dotenv(override=False)

logger = structlog.get_logger(__name__)

ENV_PREFIX = "META_ADS_"
CONFIG_FILE_NAME = "config.json"
DEFAULT_CONFIG_DIR = Path("~/.config/meta-ads")

OUTPUT_FORMATS = ("json", "table")
CONFIG_KEYS = ("account_id", "output_format", "api_version", "verbose")

_API_VERSION_RE = re.compile(r"^v\d+\.\d+$")


class Settings(BaseSettings):
    """Environment overrides, all read from ``META_ADS_*`` variables."""

    # Credentials / scoping
    access_token: Optional[str] = Field(default=None, description="Graph API access token")
    account_id: Optional[str] = Field(default=None, description="Default ad account (act_...)")

    # Presentation
    output: Optional[str] = Field(default=None, description="json or table")
    verbose: Optional[bool] = None
    log_level: Optional[str] = Field(default=None, description="Overrides the level picked from --verbose")

    # Transport
    api_version: Optional[str] = None
    request_timeout: float = DEFAULT_TIMEOUT

    # Where config.json lives
    config_dir: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def config_path(self) -> Path:
        directory = Path(self.config_dir) if self.config_dir else DEFAULT_CONFIG_DIR
        return directory.expanduser() / CONFIG_FILE_NAME


@lru_cache
def get_settings() -> Settings:
    return Settings()


class StoredConfig(BaseModel):
    """Contents of config.json."""

    access_token: Optional[str] = None
    account_id: Optional[str] = None
    output_format: Literal["json", "table"] = "json"
    api_version: str = DEFAULT_API_VERSION
    verbose: bool = False


def mask_token(token: str) -> str:
    return f"{token[:6]}...{token[-4:]}" if len(token) > 10 else "***"


class ConfigStore:
    """Reads and writes the persisted JSON config file."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> StoredConfig:
        if not self.path.exists():
            return StoredConfig()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            return StoredConfig.model_validate(raw)
        except (ValueError, ValidationError) as e:
            raise CliError(
                ErrorCode.INVALID_CONFIG,
                f"Could not read config file {self.path}: {e}",
                {"path": str(self.path)},
            ) from e

    def save(self, config: StoredConfig) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(config.model_dump(exclude_none=True), indent=2) + "\n",
            encoding="utf-8",
        )
        # The file can hold an access token
        os.chmod(self.path, 0o600)
        logger.debug("config_saved", path=str(self.path))

    def get(self, key: str) -> Any:
        return getattr(self.load(), key)

    def set(self, key: str, value: Any) -> Any:
        """Validate and persist one key; returns the stored value."""
        if key != "access_token" and key not in CONFIG_KEYS:
            raise CliError(
                ErrorCode.INVALID_PARAMETER,
                f"Invalid config key: {key}. Valid keys: {', '.join(CONFIG_KEYS)}",
            )
        value = coerce_config_value(key, value)
        data = self.load().model_dump()
        data[key] = value
        try:
            config = StoredConfig.model_validate(data)
        except ValidationError as e:
            raise CliError(ErrorCode.INVALID_PARAMETER, f"Invalid value for {key}: {value}", {"errors": e.errors()})
        self.save(config)
        return getattr(config, key)

    def delete(self, key: str) -> None:
        config = self.load()
        default = StoredConfig.model_fields[key].default
        setattr(config, key, default)
        self.save(config)

    def list_masked(self) -> Dict[str, Any]:
        data = self.load().model_dump(exclude_none=True)
        if data.get("access_token"):
            data["access_token"] = mask_token(data["access_token"])
        return data


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on")


def coerce_config_value(key: str, value: Any) -> Any:
    """Turn a command-line string into the stored type for ``key``."""
    if key == "verbose":
        return parse_bool(value)
    if key == "account_id":
        return normalize_account_id(str(value))
    if key == "output_format" and value not in OUTPUT_FORMATS:
        raise CliError(
            ErrorCode.INVALID_PARAMETER,
            f"Invalid output format {value}. Use one of: {', '.join(OUTPUT_FORMATS)}",
        )
    if key == "api_version" and not _API_VERSION_RE.match(str(value)):
        raise CliError(ErrorCode.INVALID_PARAMETER, f'Invalid API version {value}. Expected a form like "v22.0".')
    return value


@dataclass
class FlagValues:
    """Global command-line flags that take part in config resolution."""
    token: Optional[str] = None
    account: Optional[str] = None
    output: Optional[str] = None
    verbose: Optional[bool] = None
    quiet: bool = False


class ConfigManager:
    """
    Resolves effective settings.

    Precedence for every key: command-line flag, then ``META_ADS_*``
    environment, then config.json, then the built-in default.
    """

    def __init__(
        self,
        flags: Optional[FlagValues] = None,
        settings: Optional[Settings] = None,
        store: Optional[ConfigStore] = None,
    ):
        self.flags = flags or FlagValues()
        self.settings = settings or get_settings()
        self.store = store or ConfigStore(self.settings.config_path())
        self._stored: Optional[StoredConfig] = None

    @property
    def stored(self) -> StoredConfig:
        if self._stored is None:
            self._stored = self.store.load()
        return self._stored

    def access_token(self) -> Optional[str]:
        return self.flags.token or self.settings.access_token or self.stored.access_token

    def require_access_token(self) -> str:
        token = self.access_token()
        if not token:
            raise CliError(ErrorCode.AUTH_NOT_CONFIGURED)
        return token

    def account_id(self) -> Optional[str]:
        return self.flags.account or self.settings.account_id or self.stored.account_id

    def output_format(self) -> str:
        if self.flags.output in OUTPUT_FORMATS:
            return self.flags.output
        if self.settings.output in OUTPUT_FORMATS:
            return self.settings.output
        return self.stored.output_format

    def verbose(self) -> bool:
        if self.flags.quiet:
            return False
        if self.flags.verbose is not None:
            return self.flags.verbose
        if self.settings.verbose is not None:
            return self.settings.verbose
        return self.stored.verbose

    def api_version(self) -> str:
        return self.settings.api_version or self.stored.api_version

    def request_timeout(self) -> float:
        return self.settings.request_timeout

    def all(self) -> Dict[str, Any]:
        token = self.access_token()
        return {
            "access_token": mask_token(token) if token else None,
            "account_id": self.account_id(),
            "output_format": self.output_format(),
            "api_version": self.api_version(),
            "verbose": self.verbose(),
            "config_path": str(self.store.path),
        }
