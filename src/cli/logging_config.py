"""structlog setup for the lifelog CLI.

Sync events carry bearer tokens, sign-in emails and error bodies echoed
from the API, so every record passes through `_redact_sensitive` before it
reaches a handler.
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional

import structlog

# Event keys whose values are never logged
_SECRET_KEYS = {"token", "password", "authorization"}

_REDACT_PATTERNS = [
    (re.compile(r"(Bearer\s+)[a-zA-Z0-9_.-]{20,}"), r"\1REDACTED"),
    (re.compile(r"(token['\"]?\s*[:=]\s*['\"]?)[a-zA-Z0-9_.-]{10,}"), r"\1REDACTED"),
    (re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"), "REDACTED@email"),
]


def _redact_sensitive(_, __, event_dict: dict) -> dict:
    """Mask credentials and account emails in every string value."""
    for key, value in event_dict.items():
        if key.lower() in _SECRET_KEYS:
            event_dict[key] = "REDACTED"
        elif isinstance(value, str):
            for pattern, replacement in _REDACT_PATTERNS:
                value = pattern.sub(replacement, value)
            event_dict[key] = value
    return event_dict


def _json_formatter() -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(),
        ],
    )


def setup_logging(
    json_mode: bool = False, level: str = "INFO", log_file: Optional[Path] = None
) -> None:
    """Route structlog through stdlib logging to stderr and, optionally, a file.

    Args:
        json_mode: One JSON object per line on stderr instead of the
            colored console renderer.
        level: Root level name; unknown names fall back to INFO.
        log_file: Gets every record as JSON regardless of json_mode, so a
            sync run can be inspected after the terminal output is gone.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.CallsiteParameterAdder(
                [
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                ]
            ),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            _redact_sensitive,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    stderr = logging.StreamHandler(sys.stderr)
    if json_mode:
        stderr.setFormatter(_json_formatter())
    else:
        stderr.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.dev.ConsoleRenderer(),
                ],
            )
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(stderr)
    root.setLevel(log_level)

    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(_json_formatter())
        root.addHandler(file_handler)
