"""
Configuration data models for taskmaster.

These models define the parts of .taskmaster/config.json and
~/.config/taskmaster/config.json that this package reads, with validation
and type safety via Pydantic.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class StorageConfig(BaseModel):
    """
    Tasks file locking and backup settings.

    Lock timings are in milliseconds.
    """
    lock_stale_ms: int = Field(
        default=10_000,
        ge=1,
        description="A lock file older than this is treated as abandoned"
    )
    lock_max_attempts: int = Field(
        default=40,
        ge=1,
        description="Give up acquiring a lock after this many attempts"
    )
    lock_retry_delay_ms: int = Field(
        default=20,
        ge=0,
        description="Delay before the first retry; doubles after each attempt"
    )
    lock_max_delay_ms: int = Field(
        default=500,
        ge=0,
        description="Upper bound for the delay between attempts"
    )
    create_backups: bool = Field(
        default=True,
        description="Archive the tasks file before it is overwritten or restored over"
    )

    @property
    def lock_options(self) -> dict[str, int]:
        """Keyword arguments for file_lock()."""
        return {
            "stale_ms": self.lock_stale_ms,
            "max_attempts": self.lock_max_attempts,
            "retry_delay_ms": self.lock_retry_delay_ms,
            "max_delay_ms": self.lock_max_delay_ms,
        }


class TagsConfig(BaseModel):
    """Tag settings."""
    default_tag: str = Field(
        default="master",
        pattern=r"^[a-zA-Z0-9_-]+$",
        description="Tag used when no tag is given and none is recorded in state.json"
    )


class LoggingConfig(BaseModel):
    """Logging settings for the CLI."""
    level: str = Field(
        default="WARNING",
        description="Log level when --debug is not given"
    )

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalize and check the level name."""
        level = str(v).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(LOG_LEVELS)}")
        return level


class TaskMasterConfig(BaseModel):
    """
    Top-level taskmaster configuration.

    The project config file is shared with settings this package does not
    own (AI model selection and so on); those keys are ignored.

    Example:
        >>> config = TaskMasterConfig(storage=StorageConfig(lock_stale_ms=5000))
        >>> config.tags.default_tag
        'master'
    """
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Locking and backups"
    )
    tags: TagsConfig = Field(
        default_factory=TagsConfig,
        description="Tag defaults"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging"
    )

    model_config = ConfigDict(
        extra="ignore",
        validate_assignment=True,
    )
