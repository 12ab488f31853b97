"""
Global configuration for the popg package.

This module provides a simple configuration system following Convention over Configuration (CoC).
Callers can optionally call POPG.configure() at application startup to customize defaults.
If not called, sensible defaults are used.

Hierarchy of precedence (highest to lowest):
1. SearchOptions passed to ArtistSearch / search_artist()
2. Values set via POPG.configure()
3. Environment variables (POPG_*) - when allow_env_override=True
4. Hardcoded defaults (in dataclass fields)

Example:
    >>> from popg import POPG
    >>>
    >>> # Pre-loaded with defaults + env vars
    >>> timeout = POPG.config.musicbrainz.request_timeout
    >>>
    >>> # Custom configuration
    >>> POPG.configure(
    ...     musicbrainz={"retry_max_retries": 5},
    ...     rate_limit={"time_window": 2.0},
    ... )
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import MISSING, dataclass, field, fields, replace
from typing import Any, Self

# =============================================================================
# Exceptions
# =============================================================================


class ConfigEnvVarError(ValueError):
    """Raised when an environment variable has an invalid value."""

    def __init__(
        self,
        env_var: str,
        value: str,
        expected_type: str,
        cause: Exception | None = None,
    ):
        self.env_var = env_var
        self.value = value
        self.expected_type = expected_type
        super().__init__(f"Invalid value for {env_var}: '{value}' (expected {expected_type})")
        self.__cause__ = cause


class ConfigValidationError(ValueError):
    """Raised when a configuration value fails validation."""

    def __init__(
        self,
        field: str,
        value: Any,
        message: str,
        section: str | None = None,
    ):
        self.field = field
        self.value = value
        self.section = section
        prefix = f"[{section}] " if section else ""
        super().__init__(f"{prefix}Invalid value for '{field}': {value!r}. {message}")


# =============================================================================
# Environment Variables
# =============================================================================


class EnvVars:
    """
    Utility class for reading environment variables with type conversion.

    Example:
        >>> EnvVars.get("POPG_MB_REQUEST_TIMEOUT", type_hint=float)
        5.0
        >>> EnvVars.get("UNDEFINED_VAR")
        None
    """

    @staticmethod
    def get(
        var_name: str,
        type_hint: Any = str,
        converter: Callable[[str], Any] | None = None,
    ) -> Any:
        """
        Read an environment variable with optional type conversion.

        Args:
            var_name: The environment variable name.
            type_hint: Type hint used to infer the converter (ignored if converter is provided).
            converter: Custom converter function (takes precedence over type_hint).

        Returns:
            The converted value, or None if env var is not set/empty.

        Raises:
            ConfigEnvVarError: If the value cannot be converted.
        """
        raw_value = os.environ.get(var_name)
        if not raw_value:  # None or empty string
            return None

        actual_converter = converter or EnvVars._infer_converter(type_hint)
        try:
            return actual_converter(raw_value)
        except (ValueError, TypeError) as e:
            raise ConfigEnvVarError(
                env_var=var_name,
                value=raw_value,
                expected_type=type_hint.__name__ if hasattr(type_hint, "__name__") else str(type_hint),
                cause=e,
            ) from e

    @staticmethod
    def _infer_converter(type_hint: Any) -> Callable[[str], Any]:
        """
        Infer converter function from type hint.

        Handles both actual types and string annotations (PEP 563).
        """
        type_str = str(type_hint)

        if type_hint is int or type_str == "int":
            return int
        if type_hint is float or type_str == "float":
            return float
        if type_hint is bool or type_str == "bool":
            return lambda v: v.lower() in ("true", "1", "yes")
        return str


# =============================================================================
# Base Class
# =============================================================================


@dataclass(frozen=True)
class OverridableConfig:
    """
    Base class for immutable configuration dataclasses.

    Provides `.with_overrides()` for creating new instances with partial
    field updates, and `.with_env_vars()` for applying env vars declared
    in field metadata.

    Example:
        >>> config = MusicBrainzConfig()
        >>> custom = config.with_overrides({"request_timeout": 10})
        >>> custom.request_timeout
        10
    """

    def with_overrides(self, overrides: dict[str, Any]) -> Self:
        """
        Return a new instance with specified fields overridden.

        None values are ignored, so partial dicts can be passed safely.

        Raises:
            ValueError: If overrides contains unknown field names.
        """
        if not overrides:
            return self

        valid_fields = {f.name for f in fields(self)}
        invalid_fields = set(overrides.keys()) - valid_fields

        if invalid_fields:
            raise ValueError(
                f"Unknown config fields: {invalid_fields}. "
                f"Valid fields are: {valid_fields}"
            )

        filtered = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **filtered) if filtered else self

    def with_env_vars(self) -> Self:
        """
        Return new instance with environment variables applied.

        Raises:
            ConfigEnvVarError: If an env var has an invalid value.
        """
        overrides: dict[str, Any] = {}
        for f in fields(self):
            env_var = f.metadata.get("env")
            if env_var:
                value = EnvVars.get(var_name=env_var, type_hint=f.type)
                if value is not None:
                    overrides[f.name] = value
        return self.with_overrides(overrides)


# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass(frozen=True)
class MusicBrainzConfig(OverridableConfig):
    """
    Configuration for talking to the MusicBrainz web service.

    Attributes:
        base_url: Root of the WS/2 API, including the trailing slash.
            Env var: POPG_MB_BASE_URL

        user_agent: The identifying User-Agent required by the MusicBrainz usage policy.
            Env var: POPG_MB_USER_AGENT

        request_timeout: Per-request HTTP timeout in seconds.
            Env var: POPG_MB_REQUEST_TIMEOUT

        retry_max_retries: Maximum retry attempts after the first one.
            Use 3 for 4 total attempts (1 original + 3 retries).
            Env var: POPG_MB_RETRY_MAX_RETRIES

        retry_initial_delay: Delay in seconds before the first retry.
            Subsequent retries double it: 1s, 2s, 4s...
            Env var: POPG_MB_RETRY_INITIAL_DELAY

    Example:
        >>> from popg import POPG
        >>> POPG.config.musicbrainz.request_timeout
        5.0
    """

    base_url: str = field(default="https://musicbrainz.org/ws/2/", metadata={"env": "POPG_MB_BASE_URL"})
    user_agent: str = field(default="popg/v0.1.0 ( https://github.com/maroda/popg )", metadata={"env": "POPG_MB_USER_AGENT"})
    request_timeout: float = field(default=5.0, metadata={"env": "POPG_MB_REQUEST_TIMEOUT"})
    retry_max_retries: int = field(default=3, metadata={"env": "POPG_MB_RETRY_MAX_RETRIES"})
    retry_initial_delay: float = field(default=1.0, metadata={"env": "POPG_MB_RETRY_INITIAL_DELAY"})

    def validate(self) -> Self:
        """Validate MusicBrainz configuration fields."""
        if not (self.base_url.startswith("http://") or self.base_url.startswith("https://")):
            raise ConfigValidationError(
                "base_url", self.base_url,
                "Must start with 'http://' or 'https://'.", section="musicbrainz"
            )
        if not self.user_agent.strip():
            raise ConfigValidationError(
                "user_agent", self.user_agent,
                "Must not be empty.", section="musicbrainz"
            )
        if self.request_timeout <= 0:
            raise ConfigValidationError(
                "request_timeout", self.request_timeout,
                "Must be greater than 0.", section="musicbrainz"
            )
        if self.retry_max_retries < 0:
            raise ConfigValidationError(
                "retry_max_retries", self.retry_max_retries,
                "Must be >= 0.", section="musicbrainz"
            )
        if self.retry_initial_delay <= 0:
            raise ConfigValidationError(
                "retry_initial_delay", self.retry_initial_delay,
                "Must be greater than 0.", section="musicbrainz"
            )
        return self


@dataclass(frozen=True)
class RateLimitConfig(OverridableConfig):
    """
    Configuration for the client-side rate gate.

    Attributes:
        max_requests: Bucket capacity (requests allowed per time window).
            Env var: POPG_RATE_LIMIT_MAX_REQUESTS

        time_window: Window in seconds over which max_requests refill.
            Env var: POPG_RATE_LIMIT_TIME_WINDOW

    Example:
        >>> from popg import POPG
        >>> POPG.config.rate_limit.max_requests
        1
    """

    max_requests: int = field(default=1, metadata={"env": "POPG_RATE_LIMIT_MAX_REQUESTS"})
    time_window: float = field(default=1.0, metadata={"env": "POPG_RATE_LIMIT_TIME_WINDOW"})

    def validate(self) -> Self:
        """Validate rate limit configuration fields."""
        if self.max_requests <= 0:
            raise ConfigValidationError(
                "max_requests", self.max_requests,
                "Must be greater than 0.", section="rate_limit"
            )
        if self.time_window <= 0:
            raise ConfigValidationError(
                "time_window", self.time_window,
                "Must be greater than 0.", section="rate_limit"
            )
        return self


@dataclass(frozen=True)
class ConfigEntry:
    """
    A configuration field with its resolved value and source.

    Attributes:
        name: The field name (e.g., "request_timeout").
        value: The resolved value.
        source: Where the value came from:
            - "default": Hardcoded default value
            - "env:VAR_NAME": Environment variable
            - "configure": Set via POPG.configure()
    """

    name: str
    value: Any
    source: str

    @property
    def formatted_value(self) -> str:
        """Return value formatted for display, truncating long strings."""
        if self.value is None:
            return "None"

        str_value = str(self.value)
        max_length = 50
        if len(str_value) > max_length:
            return str_value[: max_length - 3] + "..."
        return str_value


@dataclass(frozen=True)
class PopgConfig:
    """
    Global configuration for the popg package.

    Attributes:
        musicbrainz: MusicBrainz endpoint, timeout and retry settings.
        rate_limit: Client-side rate gate settings.
    """

    musicbrainz: MusicBrainzConfig = field(default_factory=MusicBrainzConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)

    def with_env_vars(self) -> PopgConfig:
        """Return a new config with POPG_* environment variables applied on top."""
        return PopgConfig(
            musicbrainz=self.musicbrainz.with_env_vars(),
            rate_limit=self.rate_limit.with_env_vars(),
        )

    def with_section_overrides(
        self,
        *,
        musicbrainz: dict[str, Any] | None = None,
        rate_limit: dict[str, Any] | None = None,
    ) -> PopgConfig:
        """Return a new config with overrides applied to nested sections."""
        return PopgConfig(
            musicbrainz=self.musicbrainz.with_overrides(musicbrainz or {}),
            rate_limit=self.rate_limit.with_overrides(rate_limit or {}),
        )

    def explain_data(self) -> dict[str, list[ConfigEntry]]:
        """
        Return config data structured for explain output.

        Sources are derived by comparing each value with its dataclass default
        and with the environment variable declared for the field.
        """
        result: dict[str, list[ConfigEntry]] = {}
        for section_name in ("musicbrainz", "rate_limit"):
            section_config = getattr(self, section_name)
            entries: list[ConfigEntry] = []
            for f in fields(section_config):
                value = getattr(section_config, f.name)
                entries.append(ConfigEntry(name=f.name, value=value, source=_source_of(f, value)))
            result[section_name] = entries
        return result


def _source_of(f: Any, value: Any) -> str:
    if f.default is not MISSING and value == f.default:
        return "default"
    env_var = f.metadata.get("env")
    if env_var and os.environ.get(env_var):
        if EnvVars.get(env_var, type_hint=f.type) == value:
            return f"env:{env_var}"
    return "configure"


# =============================================================================
# Global Configuration Singleton
# =============================================================================


class _POPG:
    """
    Singleton for package configuration.

    Use `POPG.configure()` to customize settings and `POPG.config`
    to access current configuration.

    Example:
        >>> from popg import POPG
        >>> POPG.configure(musicbrainz={"request_timeout": 10})
        >>> print(POPG.config.musicbrainz.request_timeout)
    """

    def __init__(self) -> None:
        """Initialize with defaults and environment variables."""
        self._config: PopgConfig = PopgConfig().with_env_vars()

    def configure(
        self,
        *,
        musicbrainz: dict[str, Any] | None = None,
        rate_limit: dict[str, Any] | None = None,
        allow_env_override: bool = True,
    ) -> PopgConfig:
        """
        Configure package settings.

        Args:
            musicbrainz: MusicBrainz config overrides (base_url, timeouts, retries).
            rate_limit: Rate gate config overrides (max_requests, time_window).
            allow_env_override: If True (default), env vars are used as fallback
                for fields NOT provided. If False, ignores env vars entirely.

        Returns:
            The configured PopgConfig instance.

        Raises:
            ValueError: If any dict contains unknown field names.
            ConfigValidationError: If any config value fails validation.
        """
        base = PopgConfig()
        if allow_env_override:
            base = base.with_env_vars()

        self._config = base.with_section_overrides(
            musicbrainz=musicbrainz,
            rate_limit=rate_limit,
        )
        return self.validate()

    @property
    def config(self) -> PopgConfig:
        """Access current configuration (read-only)."""
        return self._config

    def reset(self) -> PopgConfig:
        """
        Reset configuration to defaults + env vars.

        Useful for testing to ensure clean state between tests.
        """
        self._config = PopgConfig().with_env_vars()
        return self.validate()

    def validate(self) -> PopgConfig:
        """
        Validate current configuration.

        Raises:
            ConfigValidationError: If any config value is invalid.
        """
        self._config.musicbrainz.validate()
        self._config.rate_limit.validate()
        return self._config

    def explain(
        self,
        output: Callable[[str], None] = print,
    ) -> None:
        """
        Print current configuration with sources.

        Args:
            output: Callable to output each line. Defaults to print.
                    Can be used with logging: `POPG.explain(logger.info)`
        """
        name_width = 25
        value_width = 50
        total_width = 2 + name_width + 2 + (value_width + 2) + 1 + 8

        output("POPG Configuration:")
        output("=" * total_width)

        for section_name, entries in self._config.explain_data().items():
            output(f"[{section_name}]")
            for entry in entries:
                dots = "." * (name_width - len(entry.name))
                value_padded = entry.formatted_value.ljust(value_width)
                marker = "✎" if entry.source != "default" else " "
                output(f"  {entry.name} {dots} {value_padded} {marker} {entry.source}")

        output("=" * total_width)

    def __repr__(self) -> str:
        return f"POPG(config={self._config!r})"


# Global singleton instance - always reflects current configuration
POPG: _POPG = _POPG()
POPG.validate()  # Validate defaults + env vars on module load
