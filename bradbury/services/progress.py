import asyncio
from collections.abc import Callable
from dataclasses import replace
from typing import Any

ProgressCallback = Callable[[Any], None]


def is_cancelled(cancel: asyncio.Event | None) -> bool:
    return cancel is not None and cancel.is_set()


def report(on_progress: ProgressCallback | None, result: Any) -> None:
    """Hand the callback a copy so later counting doesn't change what it saw."""
    if on_progress is not None:
        on_progress(replace(result))
