from datetime import datetime
from zoneinfo import ZoneInfo

from flask import current_app

DEFAULT_TIMEZONE = "Asia/Phnom_Penh"
EXTENSION_KEY = "booking_clock"


class ReferenceClock:
    """Wall clock in the fixed reference timezone used for slot expiry."""

    def __init__(self, tz_name: str = DEFAULT_TIMEZONE):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock(ReferenceClock):
    """Clock pinned to one instant; naive instants are read as reference-zone time."""

    def __init__(self, instant: datetime, tz_name: str = DEFAULT_TIMEZONE):
        super().__init__(tz_name)
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=self.tz)
        self.instant = instant.astimezone(self.tz)

    def now(self) -> datetime:
        return self.instant


def install_clock(app, clock=None):
    app.extensions[EXTENSION_KEY] = clock or ReferenceClock(
        app.config.get("REFERENCE_TIMEZONE", DEFAULT_TIMEZONE)
    )
    return app.extensions[EXTENSION_KEY]


def get_clock():
    clock = current_app.extensions.get(EXTENSION_KEY)
    if clock is None:
        clock = install_clock(current_app._get_current_object())
    return clock
