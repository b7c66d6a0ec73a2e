"""Central logging configuration helpers for the traffic controller."""

from __future__ import annotations

import sys
from collections.abc import Iterable, Mapping

from loguru import logger

DEFAULT_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} - {message}"
)

PACKAGE_PREFIX = "traffic_controller."


def _scope_matches(record_name: str, scopes: tuple[str, ...]) -> bool:
    for scope in scopes:
        if record_name.startswith(scope):
            return True
        if not scope.startswith(PACKAGE_PREFIX) and record_name.startswith(
            f"{PACKAGE_PREFIX}{scope}"
        ):
            return True
    return False


def configure_logging(
    level: str,
    *,
    debug_scopes: Iterable[str] = (),
    colorize: bool = False,
) -> tuple[int, ...]:
    """Configure loguru with module-based debug filtering.

    ``debug_scopes`` enables DEBUG output for selected modules (for example
    ``controller.reconcile_loop``) without lowering the global level.
    """
    logger.remove()

    handler_ids: list[int] = [
        logger.add(
            sys.stderr,
            level=level,
            format=DEFAULT_LOG_FORMAT,
            colorize=colorize,
        )
    ]

    level_upper = level.upper()
    scopes = tuple(scope.strip() for scope in debug_scopes if scope.strip())
    if scopes and level_upper != "DEBUG":

        def _debug_filter(record: object) -> bool:
            if not isinstance(record, Mapping):
                return False
            record_level = record.get("level")
            if getattr(record_level, "name", None) != "DEBUG":
                return False
            return _scope_matches(str(record.get("name", "")), scopes)

        handler_ids.append(
            logger.add(
                sys.stderr,
                level="DEBUG",
                format=DEFAULT_LOG_FORMAT,
                colorize=colorize,
                filter=_debug_filter,
            )
        )

    return tuple(handler_ids)
