from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class Decision(Enum):
    WAITING = "waiting"
    FIRE = "fire"
    ALREADY_FIRED = "already_fired"


@dataclass
class TargetTime:
    hour: int = 8
    minute: int = 0

    def matches(self, hour: int, minute: int) -> bool:
        return self.hour == hour and self.minute == minute

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass
class AlarmStatus:
    target: TargetTime
    armed: bool
    firing: bool
    playing: bool


class AlarmEngine:
    """Minute-resolution alarm trigger.

    Pure state machine: the host feeds it one clock reading per loop
    iteration and reacts to the returned ``Decision``. Exactly one ``FIRE``
    is produced per matching minute no matter how often ``tick`` runs.
    """

    def __init__(self, hour: int = 8, minute: int = 0, armed: bool = False):
        self.target = TargetTime(hour, minute)
        self.armed = armed
        self.playing = False
        self.last_decision = Decision.WAITING
        self._fired = False

    @property
    def fired(self) -> bool:
        return self._fired

    def set_target(self, hour: int, minute: int) -> None:
        self.target = TargetTime(hour, minute)

    def set_armed(self, active: bool) -> None:
        self.armed = bool(active)

    def tick(self, hour: int, minute: int) -> Decision:
        if self._fired and minute != self.target.minute:
            # Minute moved on, the next matching day may fire again.
            self._fired = False
            logger.debug("Debounce reset at %02d:%02d", hour, minute)

        if not self.armed or not self.target.matches(hour, minute):
            decision = Decision.WAITING
        elif self._fired:
            decision = Decision.ALREADY_FIRED
        else:
            self._fired = True
            self.playing = True
            decision = Decision.FIRE
            logger.info("Alarm fired at %s", self.target)

        self.last_decision = decision
        return decision

    def silence(self) -> None:
        self.playing = False

    def status(self) -> AlarmStatus:
        return AlarmStatus(
            target=TargetTime(self.target.hour, self.target.minute),
            armed=self.armed,
            firing=self.last_decision in (Decision.FIRE, Decision.ALREADY_FIRED),
            playing=self.playing,
        )
