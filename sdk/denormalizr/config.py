"""
Configuration for denormalizr.

Two layers:
- DenormalizrSettings: process defaults read from ``DENORMALIZR_*``
  environment variables, parsed once per process by ``get_settings()``
- DenormalizeOptions: per-call options, defaulting to the settings

Invariants:
    - ``memoized`` is the only per-call option; unknown keys are rejected
    - An option left out takes its value from the settings, so ``None``
      and ``{}`` mean the same thing
    - All settings have defaults that need no environment at all
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Global settings
_settings: DenormalizrSettings | None = None
_settings_lock = threading.Lock()


class DenormalizrSettings(BaseSettings):
    """Process-wide defaults."""

    # Use the memoized denormalizer when a call does not say
    memoized: bool = Field(default=False)

    # Capacity of the default cache - unset = unbounded
    cache_max_entries: Optional[int] = Field(
        default=None, gt=0, description="Evict least recently used entities past N slots"
    )

    model_config = {"env_prefix": "DENORMALIZR_"}


def get_settings() -> DenormalizrSettings:
    """Get the process-wide settings, reading the environment on first use."""
    global _settings
    with _settings_lock:
        if _settings is None:
            _settings = DenormalizrSettings()
            logger.info(
                f"Loaded denormalizr settings (memoized={_settings.memoized}, "
                f"cache_max_entries={_settings.cache_max_entries})"
            )
        return _settings


def reset_settings() -> None:
    """Forget the process-wide settings so the next use rereads the environment."""
    global _settings
    with _settings_lock:
        _settings = None


@dataclass(frozen=True)
class DenormalizeOptions:
    """Options for a single denormalize() call.

    Attributes:
        memoized: Reuse previous results and preserve object identity for
            entities whose stored object has not changed
    """

    memoized: bool = False

    @classmethod
    def from_settings(cls, settings: Optional[DenormalizrSettings] = None) -> DenormalizeOptions:
        """Build options from settings, the process-wide ones by default."""
        settings = settings or get_settings()
        return cls(memoized=settings.memoized)

    @classmethod
    def from_mapping(
        cls,
        options: Mapping[str, Any],
        settings: Optional[DenormalizrSettings] = None,
    ) -> DenormalizeOptions:
        """Build options from a plain mapping such as ``{"memoized": True}``.

        Keys left out take their value from settings.

        Raises:
            ConfigurationError: If the mapping has unknown keys or a
                non-boolean ``memoized``
        """
        unknown = set(options) - {"memoized"}
        if unknown:
            raise ConfigurationError(
                f"Unknown option(s): {sorted(unknown)}. Recognized: ['memoized']",
                option=sorted(unknown)[0],
            )
        if "memoized" not in options:
            return cls.from_settings(settings)
        memoized = options["memoized"]
        if not isinstance(memoized, bool):
            raise ConfigurationError(
                f"Option 'memoized' must be a boolean, got {type(memoized).__name__}",
                option="memoized",
            )
        return cls(memoized=memoized)

    @classmethod
    def coerce(cls, options: Any = None) -> DenormalizeOptions:
        """Accept None, a mapping, or DenormalizeOptions."""
        if options is None:
            return cls.from_settings()
        if isinstance(options, DenormalizeOptions):
            return options
        if isinstance(options, Mapping):
            return cls.from_mapping(options)
        raise ConfigurationError(
            f"Options must be a mapping or DenormalizeOptions, got {type(options).__name__}"
        )
