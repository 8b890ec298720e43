import inspect
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


async def emit(event_name: str, callback: Optional[Callable[..., Any]], *args, **kwargs) -> None:
    """Call a sync or async listener; listener errors are logged, never raised."""
    if callback is None:
        return

    try:
        result = callback(*args, **kwargs)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error(f"Error in event listener for {event_name}: {e}")
