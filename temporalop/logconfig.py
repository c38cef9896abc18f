"""Server log configuration and a logger adapter for the Temporal SDK."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any


@dataclass
class LogSpec:
    stdout: bool | None = None
    level: str = ""
    output_file: str = ""
    format: str = ""
    development: bool = False


@dataclass
class LogConfig:
    stdout: bool = False
    level: str = ""
    output_file: str = ""
    format: str = ""
    development: bool = False


def new_log_config(spec: LogSpec | None) -> LogConfig:
    """Build server log config; stdout defaults to on, level to info without a spec."""
    if spec is None:
        return LogConfig(stdout=True, level="info")
    return LogConfig(
        stdout=True if spec.stdout is None else spec.stdout,
        level=spec.level,
        output_file=spec.output_file,
        format=spec.format,
        development=spec.development,
    )


def _format_message(msg: str, keyvals: tuple[Any, ...]) -> str:
    keys = keyvals[0::2]
    values = list(keyvals[1::2]) + [None] * (len(keys) - len(keyvals[1::2]))
    pairs = " ".join(f"{key}={value}" for key, value in zip(keys, values))
    return f"{msg} {pairs}" if pairs else msg


class SDKLogAdapter:
    """Logger for the Temporal SDK; verbosity n logs at level INFO - n."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger if logger is not None else logging.getLogger("temporalop")

    def _log(self, verbosity: int, msg: str, keyvals: tuple[Any, ...]) -> None:
        level = logging.INFO - verbosity
        if self.logger.isEnabledFor(level):
            self.logger.log(level, _format_message(msg, keyvals))

    def debug(self, msg: str, *args: Any) -> None:
        self._log(10, msg, args)

    def info(self, msg: str, *args: Any) -> None:
        self._log(0, msg, args)

    def warn(self, msg: str, *args: Any) -> None:
        self._log(5, msg, args)

    def error(self, msg: str, *args: Any) -> None:
        self._log(0, msg, args)