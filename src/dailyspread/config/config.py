"""Process-level settings for the DailySpread command-line interface.

Schedule tunables live in the persisted state file (see
``schedule_config``); the settings here only describe how this process runs:
which mode, where state and feeds live, the slot salt and logging options.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RunMode(str, Enum):
    """Represent what a single invocation of the CLI does."""

    CYCLE = "cycle"
    PREVIEW = "preview"
    CONFIGURE = "configure"


class AppSettings(BaseSettings):
    """Settings read from environment variables and CLI arguments.

    Attributes:
        mode: What to do in this invocation.
        log_format: Format for application logs (human or json).
        log_level: Logging level for the application.
        log_include_stacktrace: Include full stack traces in error logs.
        state_file: YAML file backing the persisted configuration store.
        feeds_file: YAML snapshot listing the host's feeds.
        salt: Installation-wide salt mixed into every feed's slot.
        tz: Timezone used to render times in the preview.
        interval_hours: New refresh interval (configure mode).
        followup_delay_minutes: New follow-up delay (configure mode).
        host_list: New eligible host list (configure mode).
    """

    mode: RunMode = Field(
        default=RunMode.CYCLE,
        validation_alias="MODE",
        description="What to run: 'cycle' (gate every feed once), 'preview' or 'configure'.",
    )
    log_format: Literal["human", "json"] = Field(
        default="human",
        validation_alias="LOG_FORMAT",
        description="Format for application logs ('human' or 'json').",
    )
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level for the application (e.g., DEBUG, INFO, WARNING). Case-insensitive.",
    )
    log_include_stacktrace: bool = Field(
        default=False,
        validation_alias="LOG_INCLUDE_STACKTRACE",
        description="Include full stack traces in error logs (true/false).",
    )
    state_file: Path = Field(
        default=Path("/data/dailyspread.yaml"),
        validation_alias="STATE_FILE",
        description="YAML file holding the persisted schedule settings and follow-up queue.",
    )
    feeds_file: Path = Field(
        default=Path("/config/feeds.yaml"),
        validation_alias="FEEDS_FILE",
        description="YAML snapshot of the host's feeds (a top-level 'feeds' list).",
    )
    salt: str = Field(
        default="",
        validation_alias="SALT",
        description="Salt mixed into slot hashing; change it to reshuffle every feed's slot.",
    )
    tz: ZoneInfo | None = Field(
        default=None,
        validation_alias="TZ",
        description="Timezone for rendering preview times (e.g., 'Europe/Paris'). Defaults to UTC.",
    )

    # Configure mode inputs
    interval_hours: int | None = Field(
        default=None,
        ge=1,
        validation_alias="INTERVAL_HOURS",
        description="Refresh interval in hours (configure mode).",
    )
    followup_delay_minutes: int | None = Field(
        default=None,
        ge=0,
        validation_alias="FOLLOWUP_DELAY_MINUTES",
        description="Follow-up delay in minutes, 0 to disable (configure mode).",
    )
    host_list: str | None = Field(
        default=None,
        validation_alias="HOST_LIST",
        description="Comma or newline separated follow-up hosts (configure mode).",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        cli_parse_args=True,
        cli_ignore_unknown_args=True,
        cli_kebab_case=True,
        extra="ignore",
    )

    @field_validator("tz", mode="before")
    @classmethod
    def parse_timezone_string(cls, v: Any) -> ZoneInfo | None:
        """Parse timezone string into a ZoneInfo object.

        Args:
            v: Value to parse, can be string or None.

        Returns:
            ZoneInfo object for the timezone, or None if not provided.

        Raises:
            ValueError: If the timezone string is invalid.
            TypeError: If the value is not a string or None.
        """
        match v:
            case None:
                return None
            case ZoneInfo():
                return v
            case str() as s if not s.strip():
                return None
            case str() as s:
                try:
                    return ZoneInfo(s.strip())
                except ZoneInfoNotFoundError as e:
                    raise ValueError(f"Invalid timezone string '{s}'.") from e
            case _:
                raise TypeError(f"tz must be a string, got {type(v).__name__}")
