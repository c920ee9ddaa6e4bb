# simulation_clock.py
import math
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from config import config, SECONDS_PER_DAY

UNIX_EPOCH_JD = 2440587.5 # 1970-01-01 00:00 UTC
J2000_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(days=config.SolarSystem.REFERENCE_EPOCH_JD - UNIX_EPOCH_JD)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

class SimulationClock:
    """Converts wall-clock frame deltas into elapsed simulated days.

    days = (wall_delta_ms / 1000) * DAYS_PER_WALL_SECOND * time_scale

    The clock is stateless apart from its rate; the running simulated time
    belongs to the caller (see `SimulationDate`). `time_scale` may be
    negative (reverse), zero (paused) or any magnitude.
    """
    def __init__(self, days_per_wall_second: Optional[float] = None):
        if days_per_wall_second is None:
            days_per_wall_second = config.Time.DAYS_PER_WALL_SECOND
        self.days_per_wall_second = days_per_wall_second

    def tick(self, wall_delta_ms: float, time_scale: float) -> float:
        """Returns the simulated days elapsed for one frame.

        Non-finite inputs and negative wall deltas yield 0.0 (and are logged).
        """
        if not (math.isfinite(wall_delta_ms) and math.isfinite(time_scale)):
            logging.warning(f"Clock tick with non-finite input (delta={wall_delta_ms}ms, scale={time_scale}); no time elapses.")
            return 0.0
        if wall_delta_ms < 0:
            logging.warning(f"Clock tick with negative wall delta {wall_delta_ms}ms; no time elapses.")
            return 0.0
        return (wall_delta_ms / 1000.0) * self.days_per_wall_second * time_scale


class SimulationDate:
    """Simulated calendar time, held as (fractional) days since J2000.0 (2000-01-01 12:00 UTC)."""

    def __init__(self, days_since_j2000: float = 0.0):
        self.days_since_j2000 = float(days_since_j2000)

    @classmethod
    def from_wall_clock(cls, now: Optional[datetime] = None) -> 'SimulationDate':
        """Starts the simulated date at the given instant (default: current UTC time)."""
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return cls((now - J2000_EPOCH).total_seconds() / SECONDS_PER_DAY)

    def advance(self, elapsed_days: float) -> float:
        if math.isfinite(elapsed_days):
            self.days_since_j2000 += elapsed_days
        return self.days_since_j2000

    def as_datetime(self) -> datetime:
        """UTC datetime of the simulated instant. Raises OverflowError outside years 1-9999."""
        return J2000_EPOCH + timedelta(days=self.days_since_j2000)

    def format(self) -> str:
        """'YYYY-MM-DD HH:MM:SS' in UTC."""
        try:
            return self.as_datetime().strftime(DATE_FORMAT)
        except OverflowError:
            logging.warning(f"Simulated date {self.days_since_j2000:.1f} days from J2000 is outside the calendar range.")
            return "----------- --:--:--"

    def __repr__(self):
        return f"SimulationDate(days_since_j2000={self.days_since_j2000:.5f})"


def format_time_scale(time_scale: float, realtime_speed: Optional[float] = None) -> str:
    """Human readable speed label: '1x realtime' at realtime speed, otherwise '<ratio>x'."""
    if realtime_speed is None:
        realtime_speed = config.Time.REALTIME_SPEED
    if math.isclose(time_scale, realtime_speed, rel_tol=1e-3):
        return "1x realtime"
    return f"{time_scale / realtime_speed:,.2f}x"
