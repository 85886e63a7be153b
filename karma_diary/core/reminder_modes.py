"""
Reminder Modes
==============

Preset reminder schedules and the fixed broadcast slots.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ReminderType(str, Enum):
    PRINCIPLE = "principle"
    REFLECTION = "reflection"


class NotificationType(str, Enum):
    """How a user receives reminders."""
    DAILY = "daily"
    INTENSIVE = "intensive"
    CUSTOM = "custom"
    OFF = "off"


@dataclass(frozen=True)
class ReminderMode:
    id: str
    name: str
    description: str
    principles_per_day: int
    schedule: tuple[tuple[str, ReminderType], ...]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "principles_per_day": self.principles_per_day,
            "schedule": [
                {"time": time, "type": kind.value} for time, kind in self.schedule
            ],
        }


REMINDER_MODES: dict[str, ReminderMode] = {
    "intensive": ReminderMode(
        id="intensive",
        name="Інтенсивний",
        description="Максимальна практика з 4 принципами щодня",
        principles_per_day=4,
        schedule=(
            ("07:00", ReminderType.PRINCIPLE),
            ("11:00", ReminderType.PRINCIPLE),
            ("15:00", ReminderType.PRINCIPLE),
            ("19:00", ReminderType.PRINCIPLE),
            ("21:00", ReminderType.REFLECTION),
        ),
    ),
    "balanced": ReminderMode(
        id="balanced",
        name="Збалансований",
        description="3 принципи щодня для стабільного прогресу",
        principles_per_day=3,
        schedule=(
            ("08:00", ReminderType.PRINCIPLE),
            ("13:00", ReminderType.PRINCIPLE),
            ("18:00", ReminderType.PRINCIPLE),
            ("21:00", ReminderType.REFLECTION),
        ),
    ),
    "light": ReminderMode(
        id="light",
        name="Легкий",
        description="2 принципи щодня для початківців",
        principles_per_day=2,
        schedule=(
            ("09:00", ReminderType.PRINCIPLE),
            ("15:00", ReminderType.PRINCIPLE),
            ("20:00", ReminderType.REFLECTION),
        ),
    ),
    "custom": ReminderMode(
        id="custom",
        name="Власний",
        description="Власний розклад нагадувань",
        principles_per_day=0,
        schedule=(),
    ),
}

MIN_DAILY_PRINCIPLES = 2
MAX_DAILY_PRINCIPLES = 6

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def is_valid_time(value: str) -> bool:
    """Accept zero-padded 24h ``HH:MM`` strings only."""
    return bool(_TIME_RE.match(value))


def build_schedule(
    mode_id: str,
    custom_times: Optional[list[str]] = None,
) -> list[tuple[str, ReminderType]]:
    """
    Schedule rows for a mode.

    Custom schedules treat every time as a principle reminder except the
    latest one, which becomes the evening reflection.
    """
    if mode_id != "custom":
        mode = REMINDER_MODES[mode_id]
        return list(mode.schedule)

    times = sorted(set(custom_times or []))
    if not times:
        return []
    return [(t, ReminderType.PRINCIPLE) for t in times[:-1]] + [
        (times[-1], ReminderType.REFLECTION)
    ]


# =============================================================================
# Fixed broadcast slots
# =============================================================================

class ReminderSlot(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    MORNING_ANTIDOTE = "morning_antidote"
    AFTERNOON_ANTIDOTE = "afternoon_antidote"
    EVENING_ANTIDOTE = "evening_antidote"

    @property
    def parent(self) -> "ReminderSlot":
        """Main slot an antidote pre-reminder belongs to."""
        return ReminderSlot(self.value.replace("_antidote", ""))


# (hour, minute) in the scheduler time zone
SLOT_TIMES = {
    ReminderSlot.MORNING: (9, 0),
    ReminderSlot.AFTERNOON: (14, 0),
    ReminderSlot.EVENING: (20, 0),
    ReminderSlot.MORNING_ANTIDOTE: (8, 30),
    ReminderSlot.AFTERNOON_ANTIDOTE: (13, 30),
    ReminderSlot.EVENING_ANTIDOTE: (19, 30),
}

_SLOT_AUDIENCE = {
    ReminderSlot.MORNING: {NotificationType.DAILY, NotificationType.INTENSIVE},
    ReminderSlot.EVENING: {NotificationType.DAILY, NotificationType.INTENSIVE},
    ReminderSlot.AFTERNOON: {NotificationType.INTENSIVE},
}


def slot_allows(notification_type: Optional[str], slot: ReminderSlot) -> bool:
    """Whether a user's notification preference admits a broadcast slot."""
    try:
        kind = NotificationType(notification_type)
    except ValueError:
        return False
    return kind in _SLOT_AUDIENCE[slot.parent]
