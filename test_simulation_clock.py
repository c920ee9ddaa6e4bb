import unittest
from datetime import datetime, timezone
from config import config
from simulation_clock import SimulationClock, SimulationDate, format_time_scale, J2000_EPOCH

class TestSimulationClock(unittest.TestCase):

    def setUp(self):
        self.clock = SimulationClock(days_per_wall_second=1.0)

    def test_one_second_is_one_day_at_unit_scale(self):
        self.assertAlmostEqual(self.clock.tick(1000.0, 1.0), 1.0)
        self.assertAlmostEqual(self.clock.tick(16.0, 1.0), 0.016)

    def test_time_scale_multiplies(self):
        self.assertAlmostEqual(self.clock.tick(500.0, 10.0), 5.0)
        self.assertAlmostEqual(self.clock.tick(500.0, -2.0), -1.0)
        self.assertEqual(self.clock.tick(500.0, 0.0), 0.0)

    def test_days_per_wall_second_scales(self):
        fast_clock = SimulationClock(days_per_wall_second=7.0)
        self.assertAlmostEqual(fast_clock.tick(1000.0, 1.0), 7.0)

    def test_default_rate_from_config(self):
        self.assertEqual(SimulationClock().days_per_wall_second, config.Time.DAYS_PER_WALL_SECOND)

    def test_bad_inputs_yield_no_time(self):
        with self.assertLogs(level='WARNING'):
            self.assertEqual(self.clock.tick(float('nan'), 1.0), 0.0)
        with self.assertLogs(level='WARNING'):
            self.assertEqual(self.clock.tick(16.0, float('inf')), 0.0)
        with self.assertLogs(level='WARNING'):
            self.assertEqual(self.clock.tick(-16.0, 1.0), 0.0)

class TestSimulationDate(unittest.TestCase):

    def test_epoch_formats_as_j2000(self):
        self.assertEqual(SimulationDate(0.0).format(), "2000-01-01 12:00:00")

    def test_epoch_follows_configured_julian_date(self):
        self.assertEqual(J2000_EPOCH, datetime(2000, 1, 1, 12, 0, 0, tzinfo=timezone.utc))
        self.assertEqual(config.SolarSystem.REFERENCE_EPOCH_JD, 2451545.0)

    def test_advance_and_format(self):
        date = SimulationDate(0.0)
        date.advance(1.5)
        self.assertEqual(date.format(), "2000-01-03 00:00:00")
        date.advance(-2.5)
        self.assertEqual(date.format(), "1999-12-31 12:00:00")

    def test_advance_ignores_non_finite(self):
        date = SimulationDate(10.0)
        date.advance(float('nan'))
        self.assertEqual(date.days_since_j2000, 10.0)

    def test_from_wall_clock(self):
        instant = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
        date = SimulationDate.from_wall_clock(instant)
        self.assertAlmostEqual(date.days_since_j2000, (instant - J2000_EPOCH).days)
        self.assertEqual(date.format(), "2024-03-01 12:00:00")

    def test_from_wall_clock_treats_naive_as_utc(self):
        date = SimulationDate.from_wall_clock(datetime(2000, 1, 2, 12, 0, 0))
        self.assertAlmostEqual(date.days_since_j2000, 1.0)

    def test_out_of_range_date_formats_placeholder(self):
        date = SimulationDate(1e9)
        with self.assertLogs(level='WARNING'):
            text = date.format()
        self.assertTrue(text.startswith("---"))

class TestFormatTimeScale(unittest.TestCase):

    def test_realtime_label(self):
        self.assertEqual(format_time_scale(config.Time.REALTIME_SPEED), "1x realtime")

    def test_ratio_label(self):
        self.assertEqual(format_time_scale(0.5, realtime_speed=0.25), "2.00x")
        self.assertEqual(format_time_scale(-1.0, realtime_speed=0.5), "-2.00x")
        self.assertEqual(format_time_scale(1.0, realtime_speed=1.0 / 86400.0), "86,400.00x")

if __name__ == '__main__':
    unittest.main(argv=['first-arg-is-ignored'], exit=False)
