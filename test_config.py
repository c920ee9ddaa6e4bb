import unittest
from unittest import mock
from config import config, SimulationConfig, ConfigurationError

class TestConfigValidation(unittest.TestCase):

    def test_default_configuration_is_valid(self):
        config.validate() # Should not raise

    def test_transition_fraction_must_be_inside_unit_interval(self):
        for value in (0.0, 1.0, 1.5):
            with mock.patch.object(SimulationConfig.Camera, 'TRANSITION_FRACTION', value):
                with self.assertRaises(ConfigurationError):
                    config.validate()

    def test_non_positive_duration_is_rejected(self):
        with mock.patch.object(SimulationConfig.Camera, 'FLY_TO_DURATION_MS', 0):
            with self.assertRaises(ConfigurationError):
                config.validate()

    def test_follow_lerp_factor_range(self):
        with mock.patch.object(SimulationConfig.Camera, 'FOLLOW_LERP_FACTOR', 0.0):
            with self.assertRaises(ConfigurationError):
                config.validate()
        with mock.patch.object(SimulationConfig.Camera, 'FOLLOW_LERP_FACTOR', 1.0):
            config.validate()

    def test_satellite_must_follow_its_primary(self):
        data = dict(SimulationConfig.SolarSystem.BODY_DATA)
        reordered = {'Sun': data['Sun'], 'Moon': data['Moon']}
        reordered.update({name: row for name, row in data.items() if name not in reordered})
        with mock.patch.object(SimulationConfig.SolarSystem, 'BODY_DATA', reordered):
            with self.assertRaises(ConfigurationError):
                config.validate()

    def test_orbiting_body_needs_positive_period(self):
        data = dict(SimulationConfig.SolarSystem.BODY_DATA)
        data['Mars'] = dict(data['Mars'], orbital_period_days=0.0)
        with mock.patch.object(SimulationConfig.SolarSystem, 'BODY_DATA', data):
            with self.assertRaises(ConfigurationError):
                config.validate()

    def test_missing_keys_are_reported(self):
        data = dict(SimulationConfig.SolarSystem.BODY_DATA)
        data['Venus'] = {key: value for key, value in data['Venus'].items() if key != 'visual_size'}
        with mock.patch.object(SimulationConfig.SolarSystem, 'BODY_DATA', data):
            with self.assertRaisesRegex(ConfigurationError, 'visual_size'):
                config.validate()

    def test_invalid_eccentricity_only_warns(self):
        data = dict(SimulationConfig.SolarSystem.BODY_DATA)
        data['Pluto'] = dict(data['Pluto'], eccentricity=1.2)
        with mock.patch.object(SimulationConfig.SolarSystem, 'BODY_DATA', data):
            with self.assertLogs(level='WARNING'):
                config.validate()

    def test_visual_scale_range_must_be_ordered(self):
        with mock.patch.object(SimulationConfig.Visualization, 'MIN_VISUAL_SCALE', 100.0):
            with self.assertRaises(ConfigurationError):
                config.validate()

    def test_time_scale_step_must_exceed_one(self):
        with mock.patch.object(SimulationConfig.Time, 'TIME_SCALE_STEP', 1.0):
            with self.assertRaises(ConfigurationError):
                config.validate()

if __name__ == '__main__':
    unittest.main(argv=['first-arg-is-ignored'], exit=False)
