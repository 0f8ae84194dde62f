from __future__ import annotations

import logging

from app.core.config import get_settings

# Attributes present on every LogRecord; anything else arrived through ``extra=``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


class ExtraFieldsFormatter(logging.Formatter):
    """Append ``extra={...}`` context to the message as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = {key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS}
        if not extras:
            return base
        rendered = " ".join(f"{key}={value!r}" for key, value in sorted(extras.items()))
        return f"{base} {rendered}"


def configure_logging(*, level: str | int | None = None, force: bool = False) -> None:
    root = logging.getLogger()
    if root.handlers and not force:
        return

    resolved = level if level is not None else get_settings().log_level
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO

    handler = logging.StreamHandler()
    handler.setFormatter(
        ExtraFieldsFormatter(
            fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    if force:
        for existing in list(root.handlers):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(resolved)
