"""Build configuration: CLI option parsing and .image-builder.yml settings."""

import os
import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_yaml import parse_yaml_file_as

_settings_cache: "ProjectSettings | None" = None

SETTINGS_FILE = ".image-builder.yml"

DEFAULT_IMAGE_NAME = "app"
DEFAULT_TAG = "latest"
DEFAULT_PLATFORM = "linux/amd64"
DEFAULT_RETRY_COUNT = 3
DEFAULT_BUILDER_NAME = "image-builder"
DEFAULT_PREFLIGHT_URL = "https://api.nuget.org/v3/index.json"
DEFAULT_RUN_PORT = 8080

MULTI_ARCH_PLATFORMS = "linux/amd64,linux/arm64"

_PLATFORM_PATTERN = re.compile(r"^[a-z0-9_]+/[a-z0-9_]+(/[a-z0-9_]+)?$")


class UsageError(ValueError):
    """Invalid command line usage."""


class HelpRequested(Exception):
    """Raised when -h/--help is given."""


def expand_env_vars(value: str | None) -> str | None:
    """Expand ${VAR} references in a string value.

    Returns None if the value is None or any referenced env var is undefined.
    """
    if value is None:
        return None

    if not value:
        return value

    pattern = r'\$\{([^}]+)\}'
    matches = list(re.finditer(pattern, value))

    if not matches:
        return value

    result = value
    for match in reversed(matches):  # Reverse to preserve positions during replacement
        env_value = os.environ.get(match.group(1))
        if env_value is None:
            return None
        result = result[:match.start()] + env_value + result[match.end():]

    return result


class ProjectSettings(BaseModel):
    """Per-project defaults from .image-builder.yml"""
    name: str | None = None
    tag: str | None = None
    platform: str | None = None
    registry: str | None = None
    retry: int | None = Field(default=None, ge=1)
    context: str = "."
    builder: str = DEFAULT_BUILDER_NAME
    preflight_url: str = DEFAULT_PREFLIGHT_URL
    run_port: int = DEFAULT_RUN_PORT

    @field_validator("name", "tag", "platform", "registry", "context", "builder", "preflight_url", mode="before")
    @classmethod
    def _expand(cls, value):
        if isinstance(value, str):
            return expand_env_vars(value)
        return value

    @property
    def context_path(self) -> Path:
        return Path(self.context or ".")


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    global _settings_cache
    _settings_cache = None


def load_settings() -> ProjectSettings:
    """Load .image-builder.yml from the current directory.

    Returns defaults if the file doesn't exist or is empty.
    Result is cached for the duration of the process.
    """
    global _settings_cache

    if _settings_cache is not None:
        return _settings_cache

    settings_path = Path.cwd() / SETTINGS_FILE

    if not settings_path.exists() or not settings_path.read_text().strip():
        _settings_cache = ProjectSettings()
    else:
        _settings_cache = parse_yaml_file_as(ProjectSettings, settings_path)

    return _settings_cache


class BuildConfig(BaseModel):
    """Immutable snapshot of all parameters for one build run."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    tag: str = Field(default=DEFAULT_TAG, min_length=1)
    platform: str = DEFAULT_PLATFORM
    registry: str | None = None
    push: bool = False
    retry: int = Field(default=DEFAULT_RETRY_COUNT, ge=1)
    use_buildx: bool = False
    cache_from: str | None = None
    cache_to: str | None = None
    build_args: tuple[str, ...] = ()

    @field_validator("platform")
    @classmethod
    def _check_platform(cls, value: str) -> str:
        entries = value.split(",")
        for entry in entries:
            if not _PLATFORM_PATTERN.match(entry):
                raise ValueError(f"invalid platform '{entry}', expected os/arch")
        return value

    @field_validator("build_args")
    @classmethod
    def _check_build_args(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        for arg in value:
            key, sep, _ = arg.partition("=")
            if not sep or not key:
                raise ValueError(f"invalid build argument '{arg}', expected KEY=VALUE")
        return value

    @model_validator(mode="before")
    @classmethod
    def _force_buildx(cls, data):
        # Cache import/export and multi-platform output need the buildx builder
        if isinstance(data, dict):
            platform = data.get("platform") or DEFAULT_PLATFORM
            if data.get("cache_from") or data.get("cache_to") or "," in platform:
                data = {**data, "use_buildx": True}
        return data

    @property
    def platforms(self) -> list[str]:
        return self.platform.split(",")

    @property
    def image_ref(self) -> str:
        """Fully qualified image reference (registry/name:tag or name:tag)"""
        if self.registry:
            return f"{self.registry}/{self.name}:{self.tag}"
        return f"{self.name}:{self.tag}"

    @property
    def produces_local_image(self) -> bool:
        """Whether the build leaves a runnable image in the local engine."""
        return not self.push and len(self.platforms) == 1


# Options that take a value, mapped to BuildConfig fields
_VALUE_OPTIONS = {
    "-n": "name",
    "--name": "name",
    "-t": "tag",
    "--tag": "tag",
    "-p": "platform",
    "--platform": "platform",
    "-r": "registry",
    "--registry": "registry",
    "--retry": "retry",
    "--cache-from": "cache_from",
    "--cache-to": "cache_to",
}


def parse_args(args: list[str], settings: ProjectSettings | None = None) -> BuildConfig:
    """Parse command line options into a BuildConfig.

    Options are processed left to right, later ones win. Settings from
    .image-builder.yml supply the defaults.

    Raises:
        HelpRequested: -h/--help was given
        UsageError: unknown option, missing value or invalid value
    """
    if settings is None:
        settings = ProjectSettings()

    values: dict = {
        "name": settings.name or DEFAULT_IMAGE_NAME,
        "tag": settings.tag or DEFAULT_TAG,
        "platform": settings.platform or DEFAULT_PLATFORM,
        "registry": settings.registry or None,
        "retry": settings.retry or DEFAULT_RETRY_COUNT,
        "push": False,
        "use_buildx": False,
    }
    build_args: list[str] = []

    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("-h", "--help"):
            raise HelpRequested()
        elif arg in _VALUE_OPTIONS:
            if i + 1 >= len(args):
                raise UsageError(f"Option {arg} requires a value")
            values[_VALUE_OPTIONS[arg]] = args[i + 1]
            i += 2
        elif arg == "--build-arg":
            if i + 1 >= len(args):
                raise UsageError(f"Option {arg} requires a value")
            build_args.append(args[i + 1])
            i += 2
        elif arg == "--multi-arch":
            values["platform"] = MULTI_ARCH_PLATFORMS
            values["use_buildx"] = True
            i += 1
        elif arg == "--push":
            values["push"] = True
            i += 1
        elif arg == "--buildx":
            values["use_buildx"] = True
            i += 1
        else:
            raise UsageError(f"Unknown option: {arg}")

    if isinstance(values["retry"], str):
        try:
            values["retry"] = int(values["retry"])
        except ValueError:
            raise UsageError(f"Retry count must be a positive integer, got '{values['retry']}'") from None

    values["build_args"] = tuple(build_args)

    try:
        return BuildConfig(**values)
    except ValidationError as e:
        messages = "; ".join(f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}" for err in e.errors())
        raise UsageError(f"Invalid configuration: {messages}") from None
