"""Feedback channel for the reconciliation engine.

Every engine component receives a ``Reporter`` instead of writing to a global
logger, so callers decide where feedback goes. The default implementation
forwards to the standard ``logging`` module and prefixes each message with
the plugin's presentation name.
"""

import logging
from collections import Counter

from sonargraph_bridge import PLUGIN_PRESENTATION_NAME

logger = logging.getLogger("sonargraph_bridge")

RESTART_NOTICE = "the SonarQube server needs to be restarted"


class Reporter:
    """Log engine feedback and keep a per-level tally."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger
        self.counts: Counter[str] = Counter()

    def _emit(self, level: int, kind: str, message: str) -> None:
        self.counts[kind] += 1
        self._log.log(level, "%s: %s", PLUGIN_PRESENTATION_NAME, message)

    def debug(self, message: str) -> None:
        self._log.debug("%s: %s", PLUGIN_PRESENTATION_NAME, message)

    def info(self, message: str) -> None:
        self._emit(logging.INFO, "info", message)

    def warning(self, message: str) -> None:
        self._emit(logging.WARNING, "warning", message)

    def error(self, message: str) -> None:
        self._emit(logging.ERROR, "error", message)

    def saved(self, message: str) -> None:
        """Persisted state only takes effect after a host restart."""
        self._emit(logging.WARNING, "saved", f"{message}, {RESTART_NOTICE}")
