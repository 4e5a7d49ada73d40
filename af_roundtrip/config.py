"""Configuration management with environment variable loading and run settings."""

import os
from dataclasses import dataclass, replace
from typing import Optional
from pathlib import Path

from af_roundtrip.exceptions import ConfigurationError


def load_env_file(env_file: Optional[Path] = None):
    """Load environment variables from .env file if it exists."""
    env_file = env_file or Path(__file__).parent.parent / ".env"
    if env_file.exists():
        with open(env_file, 'r') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    if key not in os.environ:  # Don't override existing env vars
                        os.environ[key] = value


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Get environment variable with optional default."""
    return os.environ.get(name, default)


def _float_env(name: str, default: float) -> float:
    value = get_env(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}")


# Load .env file on import
load_env_file()

# Core Configuration Constants
DEFAULT_INPUT_DIR = "/zap/wrk/configs/plans/contexts"
"""str: Directory holding the context files to round-trip."""

DEFAULT_OUTPUT_DIR = "/zap/wrk/output/"
"""str: Directory the recreated contexts are exported to."""

DEFAULT_PLAN_DIR = "/zap/wrk/plans"
"""str: Directory the generated automation plans are written to."""

DEFAULT_ZAP_API_URL = "http://localhost:8080"

DEFAULT_PLAN_TIMEOUT = 300.0
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_REQUEST_TIMEOUT = 30.0

ENV_INPUT_DIR = "AF_CONTEXTS_DIR"
ENV_OUTPUT_DIR = "AF_OUTPUT_DIR"
ENV_PLAN_DIR = "AF_PLAN_DIR"
ENV_ZAP_API_URL = "ZAP_API_URL"
ENV_ZAP_API_KEY = "ZAP_API_KEY"
ENV_PLAN_TIMEOUT = "AF_PLAN_TIMEOUT"
ENV_POLL_INTERVAL = "AF_POLL_INTERVAL"


@dataclass
class RunSettings:
    """Settings for one round-trip run: directories, ZAP endpoint and plan timing."""

    input_dir: Path = Path(DEFAULT_INPUT_DIR)
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    plan_dir: Path = Path(DEFAULT_PLAN_DIR)
    zap_url: str = DEFAULT_ZAP_API_URL
    api_key: Optional[str] = None
    plan_timeout: float = DEFAULT_PLAN_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    fail_fast: bool = True

    @classmethod
    def from_env(cls) -> "RunSettings":
        """Build settings from AF_* / ZAP_* environment variables."""
        return cls(
            input_dir=Path(get_env(ENV_INPUT_DIR, DEFAULT_INPUT_DIR)),
            output_dir=Path(get_env(ENV_OUTPUT_DIR, DEFAULT_OUTPUT_DIR)),
            plan_dir=Path(get_env(ENV_PLAN_DIR, DEFAULT_PLAN_DIR)),
            zap_url=get_env(ENV_ZAP_API_URL, DEFAULT_ZAP_API_URL),
            api_key=get_env(ENV_ZAP_API_KEY) or None,
            plan_timeout=_float_env(ENV_PLAN_TIMEOUT, DEFAULT_PLAN_TIMEOUT),
            poll_interval=_float_env(ENV_POLL_INTERVAL, DEFAULT_POLL_INTERVAL),
        )

    def override(self, **values) -> "RunSettings":
        """Return a copy with every non-None value replaced."""
        changes = {k: v for k, v in values.items() if v is not None}
        for key in ("input_dir", "output_dir", "plan_dir"):
            if key in changes:
                changes[key] = Path(changes[key])
        return replace(self, **changes)

    def validate(self) -> None:
        if self.plan_timeout <= 0:
            raise ConfigurationError("Plan timeout must be positive")
        if self.poll_interval <= 0:
            raise ConfigurationError("Poll interval must be positive")
        if not self.zap_url.startswith(("http://", "https://")):
            raise ConfigurationError(f"ZAP API URL must be http(s): {self.zap_url}")
