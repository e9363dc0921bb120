"""Runtime settings for sparktop."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from sparktop.models import TemperatureMode

PROCESS_BACKENDS = ("psutil", "ps")


def config_dir() -> Path:
    """Return the sparktop config directory, honouring ``XDG_CONFIG_HOME``."""
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "sparktop"


def default_log_file() -> Path:
    """Return the default error log path."""
    return config_dir() / "errors.log"


@dataclass(frozen=True)
class Config:
    """Settings chosen at startup; nothing here changes while running."""

    network_interval: float = 1.0
    process_interval: float = 1.0
    sensor_interval: float = 5.0
    refresh_interval: float = 0.5
    excluded_interfaces: tuple[str, ...] = ("tun0",)
    temperature_mode: TemperatureMode = TemperatureMode.CELSIUS
    temperature_threshold: int = 80  # Celsius
    history: int = 256
    grouped: bool = True
    process_backend: str = "psutil"
    log_file: Path = field(default_factory=default_log_file)
    verbose: bool = False

    def __post_init__(self) -> None:
        """Reject settings the samplers cannot run with."""
        for name in ("network_interval", "process_interval", "sensor_interval", "refresh_interval"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)!r}")
        if self.history < 1:
            raise ValueError(f"history must be at least 1, got {self.history!r}")
        if self.process_backend not in PROCESS_BACKENDS:
            raise ValueError(f"process_backend must be one of {PROCESS_BACKENDS}, got {self.process_backend!r}")
