from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class NotificationSink(ABC):
    """Where fired alarms go to make noise.

    The engine never talks to a sink directly; the controller calls
    ``start`` on a fire and ``stop_all`` when the user asks for silence.
    """

    @abstractmethod
    def start(self, sound_id: str) -> bool:
        """Begin playing ``sound_id``; returns False if nothing will play."""

    @abstractmethod
    def stop_all(self) -> None:
        """Hard stop every voice and return to an idle-ready state."""

    @property
    @abstractmethod
    def is_active(self) -> bool:
        """True while any voice appears to be playing."""

    def close(self) -> None:
        self.stop_all()


class NullNotificationSink(NotificationSink):
    """Stand-in used when no audio output could be opened."""

    def start(self, sound_id: str) -> bool:
        logger.warning("Alarm ringing (no audio output, sound=%s)", sound_id)
        return False

    def stop_all(self) -> None:
        logger.debug("stop_all on silent sink")

    @property
    def is_active(self) -> bool:
        return False
