"""Status indicator showing per-target capture state."""

import logging
from collections.abc import Callable
from enum import Enum

logger = logging.getLogger(__name__)


class Indicator(Enum):
    """Badge text and colour for each visible state."""

    CLEAR = ("", None)
    WORKING = ("...", "#FA9B3D")
    ACTIVE = ("ON", "#4688F1")
    ERROR = ("ERR", "#ef4444")

    @property
    def text(self) -> str:
        return self.value[0]

    @property
    def color(self) -> str | None:
        return self.value[1]


class StatusIndicator:
    """Tracks the indicator per target; None is the global indicator.

    Args:
        on_change: Called with (target_id, indicator) whenever it changes
    """

    def __init__(self, on_change: Callable[[str | None, Indicator], None] | None = None):
        self.on_change = on_change
        self._states: dict[str | None, Indicator] = {}

    def get(self, target_id: str | None = None) -> Indicator:
        return self._states.get(target_id, Indicator.CLEAR)

    def show(self, target_id: str | None, indicator: Indicator):
        if indicator is Indicator.CLEAR:
            previous = self._states.pop(target_id, Indicator.CLEAR)
        else:
            previous = self._states.get(target_id, Indicator.CLEAR)
            self._states[target_id] = indicator

        if previous is indicator:
            return

        logger.debug(f"Indicator {target_id or 'global'}: {indicator.name}")
        if self.on_change:
            self.on_change(target_id, indicator)

    def clear(self, target_id: str | None = None):
        self.show(target_id, Indicator.CLEAR)
