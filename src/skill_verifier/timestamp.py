"""
Replay protection based on the request's declared timestamp.
"""

from __future__ import annotations

from datetime import datetime, timezone

from .errors import StaleRequestError

# Inclusive window on the whole seconds of (now - timestamp)
DEFAULT_MIN_SKEW_S = -5
DEFAULT_MAX_AGE_S = 150


def check_request_timestamp(
    timestamp: datetime,
    now: datetime | None = None,
    min_skew_s: float = DEFAULT_MIN_SKEW_S,
    max_age_s: float = DEFAULT_MAX_AGE_S,
) -> float:
    """
    Reject requests whose timestamp falls outside the acceptance window.

    A small negative elapsed time is tolerated for clock skew. The elapsed
    time is truncated to whole seconds before the comparison, so 150.9 s
    still passes a 150 s limit. Naive timestamps are taken as UTC.

    Returns:
        Elapsed seconds between the timestamp and ``now``

    Raises:
        StaleRequestError: If the elapsed time is outside ``[min_skew_s, max_age_s]``

    Examples:
        >>> from datetime import timedelta
        >>> now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> check_request_timestamp(now - timedelta(seconds=30), now=now)
        30.0
    """
    now = now or datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)

    elapsed = (now - timestamp).total_seconds()
    whole_seconds = int(elapsed)
    if whole_seconds < min_skew_s or whole_seconds > max_age_s:
        raise StaleRequestError(elapsed)
    return elapsed
