"""Alarm subsystem for DearAlarm."""

from .commands import UserCommand, parse_command
from .controller import AlarmController
from .engine import AlarmEngine, AlarmStatus, Decision, TargetTime
from .sink import NotificationSink, NullNotificationSink
