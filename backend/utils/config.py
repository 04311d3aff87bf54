"""
onchanged Configuration Module.

Centralizes all configuration settings using Pydantic Settings.
Requires Python 3.11+.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Load .env file into os.environ at module import time
# This ensures nested BaseSettings classes can read the values
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    # Try current working directory
    load_dotenv()


def _split_csv(v: str | list[str]) -> list[str]:
    """Parse a comma-separated string or pass a list through."""
    if isinstance(v, str):
        return [p.strip() for p in v.split(",") if p.strip()]
    return v


class WatcherSettings(BaseSettings):
    """Change notification and debounce settings."""

    model_config = SettingsConfigDict(env_prefix="WATCHER_")

    debounce_delay_ms: int = Field(default=200, ge=0, le=60000)
    queue_size: int = Field(default=1024, ge=1, description="Raw notification queue bound")
    print_notifications: bool = Field(default=True)


class DescriptorSettings(BaseSettings):
    """Solution/project descriptor parsing settings."""

    model_config = SettingsConfigDict(env_prefix="DESCRIPTOR_")

    ignored_reference_kinds: Annotated[list[str], NoDecode] = Field(
        default=[
            "2150E333-8FDC-42A3-9474-1A3956D46DE8",  # solution folder
        ],
        description="Container reference kinds that carry no files of their own",
    )
    include_attributes: Annotated[list[str], NoDecode] = Field(
        default=["Include"],
        description="Attribute names holding leaf source paths",
    )
    descriptor_suffixes: Annotated[list[str], NoDecode] = Field(
        default=[".proj", ".csproj", ".vbproj", ".fsproj", ".vcxproj"],
        description="Leaf references with these suffixes are parsed as sub-descriptors",
    )

    @field_validator(
        "ignored_reference_kinds", "include_attributes", "descriptor_suffixes", mode="before"
    )
    @classmethod
    def parse_lists(cls, v: str | list[str]) -> list[str]:
        """Parse lists from comma-separated strings."""
        return _split_csv(v)


class RunnerSettings(BaseSettings):
    """External process settings."""

    model_config = SettingsConfigDict(env_prefix="RUNNER_")

    search_path: bool = Field(default=True, description="Search PATH for bare executable names")
    executable_extensions: Annotated[list[str], NoDecode] = Field(
        default=[
            ".exe", ".com", ".bat", ".cmd", ".vbs", ".vbe",
            ".js", ".jse", ".wsf", ".wsh", ".msc",
        ],
    )

    @field_validator("executable_extensions", mode="before")
    @classmethod
    def parse_extensions(cls, v: str | list[str]) -> list[str]:
        """Parse extensions from comma-separated string or list."""
        return _split_csv(v)


class BuildSettings(BaseSettings):
    """Build tool settings used by autobuild."""

    model_config = SettingsConfigDict(env_prefix="BUILD_")

    tool_path: Path | None = Field(default=None, description="Absolute path to the build tool")
    tool_name: str = Field(default="msbuild", description="Name looked up on PATH")
    argument_template: str = Field(
        default="/nologo /maxcpucount /verbosity:minimal {args} {descriptor}",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="WARNING")
    format: str = Field(default="console")  # "json" or "console"
    file_path: Path | None = Field(default=None)


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="onchanged")
    app_version: str = Field(default="0.1.0")

    # Sub-settings
    watcher: WatcherSettings = Field(default_factory=WatcherSettings)
    descriptor: DescriptorSettings = Field(default_factory=DescriptorSettings)
    runner: RunnerSettings = Field(default_factory=RunnerSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns singleton instance of Settings for performance.
    """
    return Settings()
