"""
Utility Functions
Optional-step wrapper, address validation, and small helpers.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar
from urllib.parse import urlparse

from .models import AuthenticationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def attempt(
    step: str,
    action: Callable[[], Awaitable[T]],
    *,
    timeout_s: Optional[float] = None,
    default: Any = None,
) -> T:
    """
    Run one optional step: attempt it, and degrade to a no-op on failure.

    Every optional-step boundary (dialogs, consent banners, settle waits,
    course-entry controls, per-element clicks) goes through here so the
    failure policy stays identical everywhere.

    Args:
        step: Human-readable step name for logging
        action: Zero-argument callable returning the awaitable to run
        timeout_s: Fixed upper bound for the step (None = no extra bound)
        default: Value returned when the step times out or fails

    Returns:
        The step's result, or *default*.

    Raises:
        AuthenticationError: never swallowed; it aborts the run.
    """
    try:
        if timeout_s is None:
            return await action()
        return await asyncio.wait_for(action(), timeout=timeout_s)
    except AuthenticationError:
        raise
    except asyncio.TimeoutError:
        logger.info(f"[STEP] '{step}' timed out after {timeout_s}s — continuing without it")
        return default
    except Exception as e:
        logger.debug(f"[STEP] '{step}' failed: {e} — continuing without it")
        return default


def is_valid_url(url: str) -> bool:
    """Check if URL is valid."""
    try:
        parsed = urlparse(url)
        return all([parsed.scheme in ('http', 'https'), parsed.netloc])
    except Exception:
        return False


def ensure_scheme(url: str) -> str:
    """Prefix bare host addresses with ``https://``."""
    url = (url or "").strip()
    if url and not url.startswith(('http://', 'https://')):
        url = 'https://' + url.lstrip('/')
    return url


def short(url: str, limit: int = 80) -> str:
    """Truncate long addresses for log lines."""
    return url if len(url) <= limit else url[: limit - 3] + "..."
