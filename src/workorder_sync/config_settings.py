"""Settings model for workorder-sync (split from config.py)."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .config_models import RetryConfig
from .domain.entities.remote import RemoteCredentials
from .exceptions import ConfigurationError

ENV_PREFIX = "WORKORDER_SYNC_"

_FACADE_PATH_RE = re.compile(r"^[A-Za-z_][\w.]*:[A-Za-z_]\w*$")
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL"}


class Config(BaseSettings):
    """Service configuration using pydantic-settings."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    # Storage
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding the stack file and logs",
    )
    stack_file: Path = Field(
        default=Path("service_stack.json"),
        description="Stack file name, relative to data_dir",
    )
    tables_dir: Path = Field(
        default=Path("tables"),
        description="Directory with verbs.csv and nouns.csv",
    )
    work_orders_dir: Path = Field(
        default=Path("work_orders"),
        description="Directory with one <wo>/<wo>_notes.md per work order",
    )
    log_dir: Path = Field(
        default=Path("logs"),
        description="Log directory, relative to data_dir",
    )
    log_level: str = Field(default="INFO", description="Console log level")

    # Remote system
    remote_facade: str = Field(
        default="",
        description="Import path of the remote facade, as 'package.module:ClassName'",
    )
    remote_username: str = Field(default="", description="Remote login user name")
    remote_password: SecretStr = Field(
        default=SecretStr(""), description="Remote login password"
    )
    remote_domain: str = Field(default="", description="Remote login domain")
    servicer_name: str = Field(
        default="",
        description="Servicer whose records delete-month targets by default",
    )
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator(
        "data_dir", "stack_file", "tables_dir", "work_orders_dir", "log_dir",
        mode="before",
    )
    @classmethod
    def parse_path(cls, v: Any) -> Path:
        """Convert string to Path."""
        if isinstance(v, str):
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v
        msg = f"Path field must be string or Path, got {type(v).__name__}"
        raise ValueError(msg)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        return str(v).strip().upper()

    @model_validator(mode="after")
    def validate_config(self) -> Config:
        """Validate configuration values after initialization."""
        if self.log_level not in _VALID_LOG_LEVELS:
            msg = f"Invalid log_level: {self.log_level}"
            raise ConfigurationError(
                msg,
                suggestion=f"Use one of: {', '.join(sorted(_VALID_LOG_LEVELS))}",
            )

        if self.remote_facade and not _FACADE_PATH_RE.match(self.remote_facade):
            msg = f"Invalid remote_facade path: {self.remote_facade}"
            raise ConfigurationError(
                msg,
                suggestion="Use the form 'package.module:ClassName'",
            )

        if not self.stack_file.is_absolute() and ".." in self.stack_file.parts:
            msg = f"stack_file must stay inside data_dir: {self.stack_file}"
            raise ConfigurationError(
                msg,
                suggestion="Use a plain file name such as service_stack.json",
            )

        return self

    def get_data_path(self, relative_path: Path | str | None = None) -> Path:
        """Get absolute path within data_dir."""
        data_dir = self.data_dir
        if not data_dir.is_absolute():
            data_dir = Path.cwd() / data_dir
        data_dir = data_dir.resolve()

        if relative_path is None:
            return data_dir
        return data_dir / relative_path

    def get_stack_path(self) -> Path:
        """Get absolute path to the stack file."""
        return self.get_data_path(self.stack_file)

    def get_log_dir(self) -> Path:
        """Get absolute path to log directory."""
        return self.get_data_path(self.log_dir)

    def get_tables_dir(self) -> Path:
        return _absolute(self.tables_dir)

    def get_work_orders_dir(self) -> Path:
        return _absolute(self.work_orders_dir)

    def get_credentials(self) -> RemoteCredentials:
        """Build login credentials for the remote facade."""
        if not self.remote_username:
            msg = "remote_username is not configured"
            raise ConfigurationError(
                msg,
                suggestion=(
                    f"Set {ENV_PREFIX}REMOTE_USERNAME and {ENV_PREFIX}REMOTE_PASSWORD "
                    "in the environment or .env"
                ),
            )
        return RemoteCredentials(
            username=self.remote_username,
            password=self.remote_password.get_secret_value(),
            domain=self.remote_domain,
        )


def _absolute(path: Path) -> Path:
    if not path.is_absolute():
        path = Path.cwd() / path
    return path.resolve()


__all__ = ["ENV_PREFIX", "Config"]
