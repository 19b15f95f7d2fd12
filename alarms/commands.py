from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

HELP_TEXT = (
    "Commands: h <hour> | m <minute> | t HH:MM | a (toggle armed) | on | off | "
    "s (stop sound) | q (quit) | ? (help)"
)

ACTION_ALIASES = {
    "h": "set_hour",
    "hour": "set_hour",
    "m": "set_minute",
    "min": "set_minute",
    "minute": "set_minute",
    "t": "set_time",
    "set": "set_time",
    "time": "set_time",
    "a": "toggle",
    "arm": "toggle",
    "toggle": "toggle",
    "on": "arm",
    "off": "disarm",
    "s": "stop",
    "stop": "stop",
    "q": "quit",
    "quit": "quit",
    "exit": "quit",
    "?": "help",
    "help": "help",
}

TIME_RE = re.compile(r"^(-?\d+)\s*[:.]\s*(-?\d+)$")
INT_RE = re.compile(r"^[+-]?\d+$")


@dataclass
class UserCommand:
    action: str
    hour: Optional[int] = None
    minute: Optional[int] = None
    error: Optional[str] = None
    raw_text: str = ""


def parse_command(text: str) -> Optional[UserCommand]:
    """Parse one line of console input into a command.

    Blank input gives ``None``. Anything that is not understood comes back
    as an ``unknown`` command carrying an error message for the user.
    """

    cleaned = text.strip()
    if not cleaned:
        return None
    head, _, rest = cleaned.partition(" ")
    action = ACTION_ALIASES.get(head.lower())
    rest = rest.strip()

    # Bare "7:30" is shorthand for "t 7:30".
    if action is None and TIME_RE.match(cleaned):
        action, rest = "set_time", cleaned

    if action is None:
        return _unknown(cleaned, f"Unknown command: {head}")

    if action == "set_hour":
        if not INT_RE.match(rest):
            return _unknown(cleaned, "Hour must be an integer")
        return UserCommand(action=action, hour=int(rest), raw_text=cleaned)

    if action == "set_minute":
        if not INT_RE.match(rest):
            return _unknown(cleaned, "Minute must be an integer")
        return UserCommand(action=action, minute=int(rest), raw_text=cleaned)

    if action == "set_time":
        match = TIME_RE.match(rest)
        if not match:
            return _unknown(cleaned, "Time must look like HH:MM")
        return UserCommand(
            action=action,
            hour=int(match.group(1)),
            minute=int(match.group(2)),
            raw_text=cleaned,
        )

    if rest:
        return _unknown(cleaned, f"'{head}' takes no arguments")
    return UserCommand(action=action, raw_text=cleaned)


def _unknown(text: str, error: str) -> UserCommand:
    return UserCommand(action="unknown", error=error, raw_text=text)
