# best_image/services/logr.py
# Responsibility: Pluggable log sinks shared by every pipeline component.

import sys
from typing import Callable, Optional

LogSink = Callable[[str], None]


def _null_sink(message: str) -> None:
    pass


def _console_error(message: str) -> None:
    print(f"[BestImage] ERROR: {message}", file=sys.stderr)


class Logr:
    """
    Routes pipeline messages to caller supplied sinks.
    Only errors are visible by default; info, warn and debug are dropped
    until a sink is registered.
    """

    def __init__(self):
        self._set_defaults()

    def _set_defaults(self) -> None:
        self._info: LogSink = _null_sink
        self._warn: LogSink = _null_sink
        self._error: LogSink = _console_error
        self._debug: LogSink = _null_sink

    def configure(
        self,
        info: Optional[LogSink] = None,
        warn: Optional[LogSink] = None,
        error: Optional[LogSink] = None,
        debug: Optional[LogSink] = None,
    ) -> None:
        """
        Registers sinks. Omitted sinks keep their current value.

        Args:
            info, warn, error, debug: Callables taking one message string,
                e.g. the bound methods of a logging.Logger.
        """
        self._info = info or self._info
        self._warn = warn or self._warn
        self._error = error or self._error
        self._debug = debug or self._debug

    def reset(self) -> None:
        """Restores the default sinks."""
        self._set_defaults()

    def info(self, message: str) -> None:
        self._info(message)

    def warn(self, message: str) -> None:
        self._warn(message)

    def error(self, message: str) -> None:
        self._error(message)

    def debug(self, message: str) -> None:
        self._debug(message)


# -------------------------------
# Singleton
# -------------------------------
LOGR = Logr()
configure = LOGR.configure
