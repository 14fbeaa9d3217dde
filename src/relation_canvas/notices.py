"""Non-fatal user notices (the canvas equivalent of a toast).

The core never raises for things the user did "wrong" in the interaction
sense (duplicate connection, undo with nothing to undo).  It tells the
``Notifier`` instead and carries on.
"""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...


class LogNotifier:
    """Default notifier: routes notices to the module logger."""

    def info(self, message: str) -> None:
        logger.info(message)

    def success(self, message: str) -> None:
        logger.info(message)

    def warning(self, message: str) -> None:
        logger.warning(message)
