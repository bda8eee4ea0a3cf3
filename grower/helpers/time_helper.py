import time
from datetime import datetime
import pytz


class TimeHelper:
    """A static helper class for standardized time and date operations."""
    EST = pytz.timezone('US/Eastern')

    @staticmethod
    def now_ms() -> int:
        """Returns the current Unix timestamp in milliseconds."""
        return int(time.time() * 1000)

    @staticmethod
    def monotonic_ms() -> int:
        return int(time.monotonic() * 1000)

    @staticmethod
    def format_est(timestamp_ms: int) -> str:
        """Formats a millisecond timestamp as an Eastern-time clock string."""
        return datetime.fromtimestamp(timestamp_ms / 1000, tz=TimeHelper.EST).strftime('%Y-%m-%d %H:%M:%S %Z')

    @staticmethod
    def seconds_until(target_ms: int, now_ms: int) -> int:
        """Whole seconds left until `target_ms`, rounded up, never negative."""
        remaining = max(0, target_ms - now_ms)
        return -(-remaining // 1000)
