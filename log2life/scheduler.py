#!/usr/bin/env python3
"""
Playback Scheduler

Replays log records at the pace they were originally written. The delay
before a record is the gap between its timestamp and the previous record's
timestamp, divided by the speed factor. Processing and send time are not
subtracted, so slow transports drift behind the original timing.

Speed:
    1.0   realtime
    > 1   faster
    <= 0  no delay (used for live input on stdin)
"""

import logging
import time
from datetime import datetime, timedelta
from typing import Callable, Optional


NO_DELAY = timedelta(0)


def next_delay(
    previous: Optional[datetime],
    current: Optional[datetime],
    speed: float,
) -> timedelta:
    """Delay to apply before the current record."""
    if previous is None or current is None or speed <= 0:
        return NO_DELAY

    delay = (current - previous) / speed
    if delay < NO_DELAY:
        return NO_DELAY
    return delay


class PlaybackScheduler:
    """
    Holds the timestamp of the last record and blocks for the gap to the next.

    One scheduler belongs to one playback run; independent runs use
    independent schedulers.
    """

    def __init__(
        self,
        speed: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        self.speed = speed
        self.last_timestamp: Optional[datetime] = None
        self._sleep = sleep
        self.logger = logger or logging.getLogger("PlaybackScheduler")

    def delay_for(self, timestamp: Optional[datetime]) -> timedelta:
        """Delay for a record with this timestamp, without waiting."""
        return next_delay(self.last_timestamp, timestamp, self.speed)

    def wait(self, timestamp: Optional[datetime]) -> timedelta:
        """
        Block until the record with this timestamp is due, then remember it.

        Returns:
            The delay that was applied.
        """
        delay = self.delay_for(timestamp)
        if self.last_timestamp is not None and timestamp is not None:
            self.logger.debug(f"delaying {delay}")
        if delay > NO_DELAY:
            self._sleep(delay.total_seconds())
        self.last_timestamp = timestamp
        return delay

    def reset(self):
        """Forget the last timestamp."""
        self.last_timestamp = None
