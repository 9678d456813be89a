"""Logging for hookwire.

Library components log through structlog but default to a discard
logger, so nothing is emitted unless the caller injects a logger. The
runner (``hookwire.main``) calls setup_logging() to route everything
through stdlib logging:

    console                       every hookwire event at the global level
    logs/hookwire.log             combined file
    logs/<subsystem>.log          bot, router, migrator, webhook, session

Bot and interaction tokens are scrubbed from every event before it is
rendered.
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional

import structlog

SUBSYSTEMS = ("bot", "router", "migrator", "webhook", "session")

LOGGER_PREFIX = "hookwire"

_DEFAULT_LOG_DIR = Path(__file__).parent.parent / "logs"

# ---------------------------------------------------------------------------
# Token scrubbing
# ---------------------------------------------------------------------------

_REDACTED = "***REDACTED***"

_TOKEN_PATTERNS = (
    re.compile(r"Bot\s+[A-Za-z0-9_.-]{20,}"),
    # user id (base64) . timestamp . hmac
    re.compile(r"[MNO][A-Za-z0-9_-]{23,27}\.[A-Za-z0-9_-]{6}\.[A-Za-z0-9_-]{27,}"),
)

# Interaction tokens sit right after the id in callback and webhook routes.
_ROUTE_TOKEN = re.compile(r"(/(?:interactions|webhooks)/\d+/)[A-Za-z0-9_.-]{20,}")


def _redact(text: str) -> str:
    for pattern in _TOKEN_PATTERNS:
        text = pattern.sub(_REDACTED, text)
    return _ROUTE_TOKEN.sub(rf"\g<1>{_REDACTED}", text)


def _redact_shallow(value: Any) -> Any:
    if isinstance(value, str):
        return _redact(value)
    return value


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor replacing token-shaped substrings.

    Strings are scrubbed at the top level and one level down inside
    lists, tuples and dicts.
    """
    for key, value in list(event_dict.items()):
        if isinstance(value, dict):
            event_dict[key] = {k: _redact_shallow(v) for k, v in value.items()}
        elif isinstance(value, (list, tuple)):
            event_dict[key] = type(value)(_redact_shallow(v) for v in value)
        else:
            event_dict[key] = _redact_shallow(value)
    return event_dict


# ---------------------------------------------------------------------------
# Discard sink
# ---------------------------------------------------------------------------

def _drop_event(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    raise structlog.DropEvent


def discard_logger() -> Any:
    """Return a structlog logger that drops every event.

    Every library object that takes a ``logger`` argument (Router,
    Migrator, Endpoint, SignatureVerifier, DiscordSession, Bot and
    Builder) defaults to this, so the library stays silent until a real
    logger is injected.
    """
    return structlog.wrap_logger(
        structlog.ReturnLogger(),
        processors=[_drop_event],
        wrapper_class=structlog.BoundLogger,
    )


# ---------------------------------------------------------------------------
# Runner setup
# ---------------------------------------------------------------------------

class _LogSettings(NamedTuple):
    log_dir: Path
    level: int
    subsystem_levels: Dict[str, str]
    max_bytes: int
    backup_count: int
    cache_loggers: bool


def _level(name: Optional[str], default: int) -> int:
    if not name:
        return default
    return getattr(logging, str(name).upper(), default)


def _resolve(config) -> _LogSettings:
    if config is None:
        return _LogSettings(
            log_dir=_DEFAULT_LOG_DIR,
            level=logging.INFO,
            subsystem_levels={},
            max_bytes=10 * 1024 * 1024,
            backup_count=5,
            cache_loggers=False,
        )
    return _LogSettings(
        log_dir=config.log_dir,
        level=_level(config.logging_level, logging.INFO),
        subsystem_levels=config.logging_subsystem_levels,
        max_bytes=config.logging_max_file_size_mb * 1024 * 1024,
        backup_count=config.logging_backup_count,
        cache_loggers=True,
    )


def _prepare_log_dir(log_dir: Path) -> bool:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        print(
            f"WARNING: log directory {log_dir} unavailable ({exc}); "
            "logging to console only.",
            file=sys.stderr,
        )
        return False
    return True


def _configure_logger(
    name: str,
    level: int,
    filename: Optional[Path],
    settings: _LogSettings,
    formatter: logging.Formatter,
    handler_level: Optional[int] = None,
) -> None:
    """Reset a hookwire.* logger and give it a rotating file, if any."""
    target = logging.getLogger(name)
    target.setLevel(level)
    target.handlers.clear()
    target.propagate = True
    if filename is None:
        return
    handler = logging.handlers.RotatingFileHandler(
        filename,
        maxBytes=settings.max_bytes,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level if handler_level is None else handler_level)
    handler.setFormatter(formatter)
    target.addHandler(handler)


def setup_logging(config=None) -> None:
    """Route hookwire's structlog events into console and rotating files.

    Safe to call twice: the runner calls it once with defaults before
    the configuration is loaded and again with the loaded Config, at
    which point logger caching is switched on. An unusable log
    directory degrades to console-only output.

    Args:
        config: Config instance, or None for defaults.
    """
    settings = _resolve(config)
    files = _prepare_log_dir(settings.log_dir)

    file_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    )

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(settings.level)
    console.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)
    root.addHandler(console)

    # The parent accepts everything; its handler applies the global level.
    _configure_logger(
        LOGGER_PREFIX,
        logging.DEBUG,
        settings.log_dir / "hookwire.log" if files else None,
        settings,
        file_formatter,
        handler_level=settings.level,
    )

    for subsystem in SUBSYSTEMS:
        _configure_logger(
            f"{LOGGER_PREFIX}.{subsystem}",
            _level(settings.subsystem_levels.get(subsystem), settings.level),
            settings.log_dir / f"{subsystem}.log" if files else None,
            settings,
            file_formatter,
        )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            sanitize_secrets,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=settings.cache_loggers,
    )
