"""
Controller configuration and logging setup.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from rich.logging import RichHandler

from .core import (
    DEFAULT_COMMAND_INTERVAL,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_SCAN_TIMEOUT,
    REFERENCE_MODEL,
)

ENV_PREFIX = "PADCTRL_"


@dataclass
class ControllerConfig:
    """Tunables for a controller session.

    Attributes:
        command_interval: Minimum seconds between two command writes
        poll_interval: Seconds between stats requests, 0 disables polling
        device_name: Advertised name to scan for
        address: Bluetooth address to connect to instead of scanning
        scan_timeout: Seconds to scan before giving up
        connect_timeout: Seconds allowed for the BLE connection
    """

    command_interval: float = DEFAULT_COMMAND_INTERVAL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    device_name: str = REFERENCE_MODEL
    address: Optional[str] = None
    scan_timeout: float = DEFAULT_SCAN_TIMEOUT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT

    def __post_init__(self) -> None:
        if self.command_interval < 0:
            raise ValueError(
                f"command_interval must not be negative, got {self.command_interval}"
            )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ControllerConfig":
        """Build a config from ``PADCTRL_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Returns:
            Config with defaults for every unset variable
        """
        env = os.environ if environ is None else environ

        def _float(name: str, default: float) -> float:
            value = env.get(ENV_PREFIX + name)
            if value is None or value == "":
                return default
            try:
                return float(value)
            except ValueError:
                raise ValueError(
                    f"{ENV_PREFIX}{name} must be a number, got {value!r}"
                ) from None

        return cls(
            command_interval=_float("COMMAND_INTERVAL", DEFAULT_COMMAND_INTERVAL),
            poll_interval=_float("POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            device_name=env.get(ENV_PREFIX + "DEVICE_NAME") or REFERENCE_MODEL,
            address=env.get(ENV_PREFIX + "ADDRESS") or None,
            scan_timeout=_float("SCAN_TIMEOUT", DEFAULT_SCAN_TIMEOUT),
            connect_timeout=_float("CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT),
        )


def configure_logging(level: int | str = logging.INFO) -> None:
    """Route log records to a Rich console handler.

    Meant for scripts and test harnesses; the library itself never
    installs handlers.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
        force=True,
    )
