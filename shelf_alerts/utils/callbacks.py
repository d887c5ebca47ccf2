from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Iterable

logger = logging.getLogger(__name__)


async def fire_callbacks(callbacks: Iterable[Callable[..., Any]], *args: Any) -> None:
    """Invoke each callback in registration order, awaiting coroutine results."""
    for callback in list(callbacks):
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Callback {getattr(callback, '__qualname__', callback)!r} failed: {e}")
