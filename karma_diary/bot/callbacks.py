"""
Callback Data
=============

Inline button payloads have the shape ``action[_principle[_extra]]``.
Actions may contain underscores themselves (``main_menu``,
``entry_kindness``); the first purely numeric segment marks the principle.
"""

from typing import Optional

WRITE = "write"
SKIP = "skip"


def parse_callback_data(data: str) -> tuple[str, Optional[int], Optional[str]]:
    """
    Split callback data into ``(action, principle, extra)``.

    Examples:
        "main_menu"                 -> ("main_menu", None, None)
        "write_3_morning"           -> ("write", 3, "morning")
        "skip_10_evening_antidote"  -> ("skip", 10, "evening_antidote")
    """
    parts = (data or "").split("_")
    for index, part in enumerate(parts):
        if index > 0 and part.isdigit():
            action = "_".join(parts[:index])
            extra = "_".join(parts[index + 1:]) or None
            return action, int(part), extra
    return data or "", None, None


def build_callback_data(action: str, principle: Optional[int] = None, extra: Optional[str] = None) -> str:
    parts = [action]
    if principle is not None:
        parts.append(str(principle))
        if extra:
            parts.append(extra)
    return "_".join(parts)
