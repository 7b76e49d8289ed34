"""Capture pipeline configuration."""

import logging
import os
from typing import Any, Dict, Mapping, Optional

from .emulation.codepages import DEFAULT_CODEPAGE, Codepage, parse_codepage
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "PUREESCPOS_"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


class CaptureConfig:
    """Configuration for capture, noise filtering, history and decoding."""

    def __init__(
        self,
        capture_enabled: bool = True,
        host: str = "127.0.0.1",
        port: int = 9100,
        noise_filter_enabled: bool = True,
        noise_threshold_bytes: int = 32,
        max_jobs: Optional[int] = 25,
        max_bytes: Optional[int] = None,
        max_age: Optional[float] = None,  # seconds
        default_codepage: Any = DEFAULT_CODEPAGE,
        idle_timeout: float = 5.0,
    ):
        """
        Initialize capture configuration.

        Args:
            capture_enabled: Accept connections once the service starts
            host: Listening address
            port: Listening TCP port (0 picks a free port)
            noise_filter_enabled: Drop tiny connections (status queries)
            noise_threshold_bytes: Jobs shorter than this are noise
            max_jobs: History bound on job count (None disables it)
            max_bytes: History bound on total raw bytes (None disables it)
            max_age: Drop jobs older than this many seconds (None keeps all)
            default_codepage: Code page used until ESC t selects another
            idle_timeout: Seconds a connection may stay silent

        Raises:
            ConfigurationError: If a value is out of range.
        """
        self.capture_enabled = bool(capture_enabled)
        self.host = host
        self.port = port
        self.noise_filter_enabled = bool(noise_filter_enabled)
        self.noise_threshold_bytes = noise_threshold_bytes
        self.max_jobs = max_jobs
        self.max_bytes = max_bytes
        self.max_age = max_age
        self.idle_timeout = idle_timeout
        try:
            self.default_codepage: Codepage = parse_codepage(default_codepage)
        except ValueError as e:
            raise ConfigurationError(
                str(e), context={"default_codepage": default_codepage}
            ) from e
        self.validate()

    def validate(self) -> None:
        if not self.host:
            self._fail("host must not be empty", "host", self.host)
        if not isinstance(self.port, int) or not 0 <= self.port <= 65535:
            self._fail("port must be between 0 and 65535", "port", self.port)
        if self.noise_threshold_bytes < 0:
            self._fail(
                "noise_threshold_bytes must not be negative",
                "noise_threshold_bytes",
                self.noise_threshold_bytes,
            )
        if self.max_jobs is not None and self.max_jobs < 1:
            self._fail("max_jobs must be at least 1", "max_jobs", self.max_jobs)
        if self.max_bytes is not None and self.max_bytes < 1:
            self._fail("max_bytes must be at least 1", "max_bytes", self.max_bytes)
        if self.max_age is not None and self.max_age <= 0:
            self._fail("max_age must be positive", "max_age", self.max_age)
        if self.idle_timeout <= 0:
            self._fail(
                "idle_timeout must be positive", "idle_timeout", self.idle_timeout
            )

    @staticmethod
    def _fail(message: str, key: str, value: Any) -> None:
        raise ConfigurationError(message, context={key: value})

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any
    ) -> "CaptureConfig":
        """Build a config from PUREESCPOS_* variables, e.g. PUREESCPOS_PORT=9101.

        Keyword overrides win over the environment.
        """
        env = os.environ if environ is None else environ
        kwargs: Dict[str, Any] = {}
        for name, convert in _ENV_FIELDS.items():
            raw = env.get(ENV_PREFIX + name.upper())
            if raw is None or raw.strip() == "":
                continue
            try:
                kwargs[name] = convert(raw.strip())
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for {ENV_PREFIX}{name.upper()}",
                    context={name: raw},
                    original_exception=e,
                ) from e
        kwargs.update(overrides)
        logger.debug(f"Configuration from environment: {sorted(kwargs)}")
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capture_enabled": self.capture_enabled,
            "host": self.host,
            "port": self.port,
            "noise_filter_enabled": self.noise_filter_enabled,
            "noise_threshold_bytes": self.noise_threshold_bytes,
            "max_jobs": self.max_jobs,
            "max_bytes": self.max_bytes,
            "max_age": self.max_age,
            "default_codepage": self.default_codepage.name,
            "idle_timeout": self.idle_timeout,
        }

    def __repr__(self) -> str:
        return (
            f"CaptureConfig(host='{self.host}', port={self.port}, "
            f"capture_enabled={self.capture_enabled}, "
            f"default_codepage={self.default_codepage.name})"
        )


def _parse_bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _parse_optional_int(value: str) -> Optional[int]:
    return None if value.lower() == "none" else int(value)


def _parse_optional_float(value: str) -> Optional[float]:
    return None if value.lower() == "none" else float(value)


_ENV_FIELDS = {
    "capture_enabled": _parse_bool,
    "host": str,
    "port": int,
    "noise_filter_enabled": _parse_bool,
    "noise_threshold_bytes": int,
    "max_jobs": _parse_optional_int,
    "max_bytes": _parse_optional_int,
    "max_age": _parse_optional_float,
    "default_codepage": str,
    "idle_timeout": float,
}
