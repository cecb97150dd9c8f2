# src/alertd/telemetry/logger/processors.py

import logging

from structlog.typing import EventDict, WrappedLogger

LOG_EMOJIS = {
    "debug": "🐛",
    "info": "ℹ️",
    "warning": "⚠️",
    "error": "❌",
    "critical": "💥",
}

# Keys bound for routing only; they never need to reach the renderer.
_INTERNAL_KEYS = ("emoji_key",)


def add_emoji_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Prefixes the event with an emoji matching its level or an explicit emoji_key."""
    key = event_dict.get("emoji_key") or event_dict.get("level") or method_name
    emoji = LOG_EMOJIS.get(str(key).lower())
    event = event_dict.get("event")
    if emoji and isinstance(event, str):
        event_dict["event"] = f"{emoji} {event}"
    return event_dict


def remove_extra_keys_processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for key in _INTERNAL_KEYS:
        event_dict.pop(key, None)
    return event_dict


def level_number(level_name: str) -> int:
    numeric = logging.getLevelName(level_name.upper())
    return numeric if isinstance(numeric, int) else logging.INFO

# 🔼⚙️
