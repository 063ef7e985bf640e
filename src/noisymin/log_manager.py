"""Logging for the minimizers and line searches.

A LogManager is passed explicitly to every routine that reports progress.
It filters messages by its own level (OFF / NORMAL / VERBOSE) before any
formatting happens, so a disabled manager costs a single comparison per call.
Output goes through a standard-library logger, to stdout by default or to a
file after `set_log_file`.
"""

from __future__ import annotations

import itertools
import logging
import sys
from enum import IntEnum
from typing import Optional, Sequence

import numpy as np

from noisymin.noisy_value import NoisyBracket, NoisyIOPair, NoisyValue


class LogLevel(IntEnum):
    OFF = 0
    NORMAL = 1
    VERBOSE = 2


_STDLIB_LEVELS = {
    LogLevel.NORMAL: logging.INFO,
    LogLevel.VERBOSE: logging.DEBUG,
}

_FORMAT = '%(message)s'

_manager_ids = itertools.count()


class LogManager:
    """Leveled message sink.

    Args:
        level: Initial level. Defaults to OFF.
        name: Prefix of the underlying `logging.Logger` name. Every manager
            owns its own logger and destination.
        file_path: Optional log file; stdout is used when None.

    Example:
        >>> log = LogManager()
        >>> log.set_logging_on(verbose=True)
        >>> log.log_string("starting")
    """

    def __init__(self, level: LogLevel = LogLevel.OFF, name: str = 'noisymin',
                 file_path: Optional[str] = None):
        self._level = LogLevel(level)
        self._name = name
        self._file_path = file_path
        # created on first use, so a disabled manager never touches logging
        self._logger: Optional[logging.Logger] = None
        if file_path is not None:
            self._open()

    # --- Level handling

    def set_logging_on(self, verbose: bool = False) -> None:
        self._level = LogLevel.VERBOSE if verbose else LogLevel.NORMAL

    def set_logging_off(self) -> None:
        self._level = LogLevel.OFF

    def set_log_level(self, level: LogLevel) -> None:
        self._level = LogLevel(level)

    def get_log_level(self) -> LogLevel:
        return self._level

    def is_logging_on(self) -> bool:
        return self._level > LogLevel.OFF

    def is_verbose(self) -> bool:
        return self._level >= LogLevel.VERBOSE

    def should_log(self, level: LogLevel) -> bool:
        """Should a message of this level be written?"""
        return level > LogLevel.OFF and level <= self._level

    # --- Destination

    @property
    def file_path(self) -> Optional[str]:
        return self._file_path

    def set_log_file(self, path: Optional[str]) -> None:
        """Redirect output to `path`, or back to stdout when path is None."""
        self._file_path = path
        self._open()

    def close(self) -> None:
        """Release the current destination (a log file stays closed until the next message)."""
        if self._logger is None:
            return
        for handler in self._logger.handlers[:]:
            self._logger.removeHandler(handler)
            handler.close()

    def _open(self) -> None:
        if self._logger is None:
            # one child logger per manager: destinations are never shared
            self._logger = logging.getLogger(f"{self._name}.{next(_manager_ids)}")
            self._logger.setLevel(logging.DEBUG)
            self._logger.propagate = False
        self.close()
        if self._file_path is None:
            handler = logging.StreamHandler(sys.stdout)
        else:
            handler = logging.FileHandler(self._file_path, mode='a')
        handler.setFormatter(logging.Formatter(_FORMAT))
        self._logger.addHandler(handler)

    # --- Writing

    def log_string(self, message: str, level: LogLevel = LogLevel.NORMAL) -> None:
        if not self.should_log(level):
            return
        if self._logger is None or not self._logger.handlers:
            self._open()
        self._logger.log(_STDLIB_LEVELS[LogLevel(level)], message)

    def log_noisy_value(self, value: NoisyValue, level: LogLevel = LogLevel.NORMAL,
                        name: str = '', flabel: str = 'f') -> None:
        if not self.should_log(level):
            return
        prefix = f"{name}: " if name else ''
        self.log_string(f"{prefix}{flabel} = {value}", level)

    def log_vector(self, x: Sequence[float], level: LogLevel = LogLevel.NORMAL,
                   name: str = '', xlabel: str = 'x') -> None:
        if not self.should_log(level):
            return
        prefix = f"{name}: " if name else ''
        entries = '    '.join(f"{xlabel}{i} = {xi}" for i, xi in enumerate(np.asarray(x).reshape(-1)))
        self.log_string(f"{prefix}{entries}", level)

    def log_noisy_vector(self, g: Sequence[NoisyValue], level: LogLevel = LogLevel.NORMAL,
                         print_errors: bool = True, name: str = '', glabel: str = 'g') -> None:
        if not self.should_log(level):
            return
        prefix = f"{name}: " if name else ''
        if print_errors:
            entries = '    '.join(f"{glabel}{i} = {gi}" for i, gi in enumerate(g))
        else:
            entries = '    '.join(f"{glabel}{i} = {gi.val}" for i, gi in enumerate(g))
        self.log_string(f"{prefix}{entries}", level)

    def log_noisy_iopair(self, pair: NoisyIOPair, level: LogLevel = LogLevel.NORMAL,
                         name: str = '', xlabel: str = 'x', flabel: str = 'f') -> None:
        if not self.should_log(level):
            return
        prefix = f"{name}: " if name else ''
        entries = '    '.join(f"{xlabel}{i} = {xi}" for i, xi in enumerate(pair.x))
        self.log_string(f"{prefix}{entries}    ->    {flabel} = {pair.f}", level)

    def log_bracket(self, bracket: NoisyBracket, level: LogLevel = LogLevel.VERBOSE,
                    name: str = '') -> None:
        if not self.should_log(level):
            return
        self.log_string(f"{name}:    "
                        f"{bracket.a.x} -> {bracket.a.f}    "
                        f"{bracket.b.x} -> {bracket.b.f}    "
                        f"{bracket.c.x} -> {bracket.c.f}", level)
