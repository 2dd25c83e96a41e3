# src/electrsd/telemetry/logger/processors.py

"""
Custom structlog processors used by the console renderer.
"""

import logging
from typing import Any

from structlog.typing import EventDict, WrappedLogger

LOG_EMOJIS: dict[int | str, str] = {
    logging.DEBUG: "🐛",
    logging.INFO: "ℹ️",
    logging.WARNING: "⚠️",
    logging.ERROR: "❌",
    logging.CRITICAL: "💥",
    "spawn": "🚀",
    "ready": "✅",
    "teardown": "🧹",
    "general": "➡️",
}

# Keys that are only useful to machine consumers of the JSON output.
EXTRA_KEYS = ("emoji_key",)


def add_emoji_processor(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Prefixes the event with an emoji for the log level or an explicit `emoji_key`."""
    key: Any = event_dict.get("emoji_key")
    if key is None:
        key = logging._nameToLevel.get(method_name.upper(), "general")
    emoji = LOG_EMOJIS.get(key, LOG_EMOJIS["general"])
    event = event_dict.get("event")
    if isinstance(event, str) and not event.startswith(emoji):
        event_dict["event"] = f"{emoji} {event}"
    return event_dict


def remove_extra_keys_processor(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    for key in EXTRA_KEYS:
        event_dict.pop(key, None)
    return event_dict

# 🔼⚙️
