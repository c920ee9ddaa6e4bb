import math
import unittest
import numpy as np
from config import ConfigurationError
from camera_controller import (CameraMotionController, CameraPose, CameraState,
                               compute_follow_offset)

ORIGIN = np.zeros(3)

def constant_size(size):
    return lambda name: size

class CameraTestCase(unittest.TestCase):

    def make_controller(self, position=(0.0, -10.0, 0.0), look_at=(0.0, 0.0, 0.0), **kwargs):
        params = dict(reframe_multiplier=4.0, duration_ms=1000.0, transition_fraction=0.7, follow_lerp_factor=0.1)
        params.update(kwargs)
        return CameraMotionController(pose=CameraPose.looking_at(position, look_at), focus_point=look_at, **params)

class TestCameraPose(unittest.TestCase):

    def test_looking_at_builds_orthonormal_basis(self):
        pose = CameraPose.looking_at((3.0, -7.0, 2.0), (0.0, 0.0, 0.0))
        rotation = pose.rotation_matrix
        np.testing.assert_array_almost_equal(rotation.T @ rotation, np.eye(3))
        np.testing.assert_array_almost_equal(pose.forward, -rotation[:, 2])
        self.assertGreater(pose.up[2], 0.0) # World up is +Z

    def test_looking_straight_down_is_well_defined(self):
        pose = CameraPose.looking_at((0.0, 0.0, 10.0), (0.0, 0.0, 0.0))
        np.testing.assert_array_almost_equal(pose.forward, np.array([0.0, 0.0, -1.0]))
        self.assertAlmostEqual(np.linalg.norm(pose.up), 1.0)
        self.assertAlmostEqual(float(np.dot(pose.up, pose.forward)), 0.0)

class TestComputeFollowOffset(unittest.TestCase):

    def test_offset_is_direction_times_scaled_size(self):
        np.testing.assert_array_almost_equal(compute_follow_offset([0.0, 0.0, 1.0], 0.5, 4.0), np.array([0.0, 0.0, 2.0]))
        np.testing.assert_array_almost_equal(compute_follow_offset(np.array([1.0, 0.0, 0.0]), 3.0, 2.0), np.array([6.0, 0.0, 0.0]))

class TestFlyTo(CameraTestCase):

    def test_arrives_at_reframed_distance(self):
        controller = self.make_controller()
        self.assertTrue(controller.jump_to('Earth', ORIGIN, 0.5, now_ms=0.0))
        self.assertEqual(controller.state, CameraState.FLYING_TO)
        self.assertTrue(controller.is_animating())
        end_position = controller.animation.end_position.copy()

        pose = controller.update(1000.0, {'Earth': ORIGIN}, constant_size(0.5))

        np.testing.assert_array_equal(pose.position, end_position)
        self.assertAlmostEqual(np.linalg.norm(pose.position - ORIGIN), 2.0, places=12)
        self.assertEqual(controller.state, CameraState.FOLLOWING)
        self.assertEqual(controller.current_tracked_body(), 'Earth')
        self.assertIsNone(controller.animation)

    def test_progress_is_monotonic_and_clamped(self):
        controller = self.make_controller()
        controller.jump_to('Earth', ORIGIN, 0.5, now_ms=0.0)
        animation = controller.animation
        progress_values = []
        for now_ms in (0.0, 100.0, 250.0, 500.0, 400.0, 750.0, 900.0, 999.0):
            controller.update(now_ms, {'Earth': ORIGIN}, constant_size(0.5))
            progress_values.append(animation.last_progress)
        for earlier, later in zip(progress_values, progress_values[1:]):
            self.assertLessEqual(earlier, later)
        self.assertTrue(all(0.0 <= p <= 1.0 for p in progress_values))
        self.assertEqual(animation.progress(5000.0), 1.0)
        self.assertEqual(animation.progress(-5000.0), 1.0)

    def test_camera_looks_at_target_during_flight(self):
        controller = self.make_controller(position=(5.0, -10.0, 3.0))
        target = np.array([1.0, 2.0, 0.5])
        controller.jump_to('Mars', target, 0.3, now_ms=0.0)
        for now_ms in (50.0, 300.0, 600.0, 900.0):
            pose = controller.update(now_ms, {'Mars': target}, constant_size(0.3))
            to_target = (target - pose.position) / np.linalg.norm(target - pose.position)
            self.assertAlmostEqual(float(np.dot(pose.forward, to_target)), 1.0, places=9)

    def test_path_is_continuous_at_transition(self):
        controller = self.make_controller(position=(5.0, -10.0, 3.0))
        controller.jump_to('Earth', ORIGIN, 0.5, now_ms=0.0)
        animation = controller.animation
        before = animation.position_at(0.7 - 1e-9)
        at = animation.position_at(0.7)
        np.testing.assert_array_almost_equal(before, at, decimal=6)
        np.testing.assert_array_almost_equal(at, animation.transition_point)
        np.testing.assert_array_almost_equal(animation.position_at(0.0), animation.start_position)

    def test_handoff_to_follow_has_no_jump(self):
        controller = self.make_controller(position=(3.0, -8.0, 4.0))
        controller.jump_to('Earth', ORIGIN, 0.5, now_ms=0.0)
        arrived = controller.update(1000.0, {'Earth': ORIGIN}, constant_size(0.5)).position.copy()
        after = controller.update(1016.0, {'Earth': ORIGIN}, constant_size(0.5)).position
        np.testing.assert_array_almost_equal(after, arrived, decimal=12)
        track = controller.track
        np.testing.assert_array_almost_equal(
            compute_follow_offset(track.direction, 0.5, 4.0), arrived - ORIGIN
        )

    def test_cancel_mid_flight_halts_motion(self):
        controller = self.make_controller()
        controller.jump_to('Earth', ORIGIN, 0.5, now_ms=0.0)
        halted = controller.update(300.0, {'Earth': ORIGIN}, constant_size(0.5)).position.copy()
        controller.cancel()
        self.assertEqual(controller.state, CameraState.IDLE)
        self.assertIsNone(controller.animation)
        self.assertIsNone(controller.track)
        self.assertFalse(controller.is_animating())
        for now_ms in (600.0, 1000.0, 2000.0):
            pose = controller.update(now_ms, {'Earth': ORIGIN}, constant_size(0.5))
            np.testing.assert_array_equal(pose.position, halted)

    def test_new_jump_replaces_running_animation(self):
        controller = self.make_controller()
        controller.jump_to('Earth', ORIGIN, 0.5, now_ms=0.0)
        controller.update(400.0, {'Earth': ORIGIN}, constant_size(0.5))
        mars = np.array([20.0, 0.0, 0.0])
        controller.jump_to('Mars', mars, 0.3, now_ms=400.0)
        self.assertEqual(controller.animation.target_name, 'Mars')
        controller.update(1400.0, {'Mars': mars}, constant_size(0.3))
        self.assertEqual(controller.current_tracked_body(), 'Mars')
        self.assertAlmostEqual(np.linalg.norm(controller.pose.position - mars), 1.2)

class TestFlyToDegenerateCases(CameraTestCase):

    def test_camera_at_target_uses_reverse_heading(self):
        controller = self.make_controller(position=(0.0, 0.0, 0.0), look_at=(0.0, 1.0, 0.0))
        controller.jump_to('Sun', ORIGIN, 1.0, now_ms=0.0)
        np.testing.assert_array_almost_equal(controller.animation.offset_direction, np.array([0.0, -1.0, 0.0]))
        np.testing.assert_array_almost_equal(controller.animation.end_position, np.array([0.0, -4.0, 0.0]))

    def test_camera_at_target_without_heading_uses_default_direction(self):
        pose = CameraPose(position=np.zeros(3), forward=np.zeros(3), up=np.array([0.0, 0.0, 1.0]))
        controller = CameraMotionController(pose=pose, reframe_multiplier=4.0, duration_ms=1000.0,
                                            default_view_direction=(0.0, -1.0, 0.3))
        controller.jump_to('Sun', ORIGIN, 1.0, now_ms=0.0)
        expected_direction = np.array([0.0, -1.0, 0.3]) / math.sqrt(1.09)
        np.testing.assert_array_almost_equal(controller.animation.offset_direction, expected_direction)
        np.testing.assert_array_almost_equal(controller.animation.end_position, expected_direction * 4.0)
        controller.update(1000.0, {'Sun': ORIGIN}, constant_size(1.0))
        np.testing.assert_array_almost_equal(controller.pose.position, expected_direction * 4.0)

    def test_zero_length_path_skips_curve(self):
        controller = self.make_controller(position=(0.0, -4.0, 0.0))
        controller.jump_to('Sun', ORIGIN, 1.0, now_ms=0.0)
        animation = controller.animation
        np.testing.assert_array_almost_equal(animation.end_position, animation.start_position)
        np.testing.assert_array_equal(animation.control_point, animation.start_position)

    def test_heading_parallel_to_path_bends_sideways(self):
        controller = self.make_controller(position=(0.0, -10.0, 0.0))
        controller.jump_to('Sun', ORIGIN, 1.0, now_ms=0.0)
        # Path runs along +Y (the heading); side vector becomes heading x world-up = +X
        np.testing.assert_array_almost_equal(controller.animation.control_point, np.array([1.8, -7.6, 0.0]))

    def test_control_point_uses_heading_and_side(self):
        controller = self.make_controller(position=(0.0, -10.0, 0.0), look_at=(10.0, -10.0, 0.0))
        controller.jump_to('Sun', ORIGIN, 1.0, now_ms=0.0)
        animation = controller.animation
        # Heading +X, path +Y (length 6): side = X x Y = +Z
        np.testing.assert_array_almost_equal(animation.end_position, np.array([0.0, -4.0, 0.0]))
        np.testing.assert_array_almost_equal(animation.control_point, np.array([2.4, -10.0, 1.8]))

class TestInvalidRequests(CameraTestCase):

    def test_missing_target_is_noop(self):
        controller = self.make_controller()
        with self.assertLogs(level='WARNING'):
            self.assertFalse(controller.jump_to('Vulcan', None, 1.0, now_ms=0.0))
        self.assertEqual(controller.state, CameraState.IDLE)

        controller.follow('Earth', ORIGIN, 0.5)
        with self.assertLogs(level='WARNING'):
            self.assertFalse(controller.jump_to('Vulcan', None, 1.0, now_ms=0.0))
        self.assertEqual(controller.state, CameraState.FOLLOWING)
        self.assertEqual(controller.current_tracked_body(), 'Earth')

    def test_invalid_size_or_position_is_rejected(self):
        controller = self.make_controller()
        for size in (0.0, -1.0, float('nan'), float('inf'), None):
            with self.assertLogs(level='WARNING'):
                self.assertFalse(controller.jump_to('Earth', ORIGIN, size, now_ms=0.0))
        with self.assertLogs(level='WARNING'):
            self.assertFalse(controller.jump_to('Earth', np.array([np.nan, 0.0, 0.0]), 1.0, now_ms=0.0))
        with self.assertLogs(level='WARNING'):
            self.assertFalse(controller.follow('Earth', np.array([1.0, 2.0]), 1.0))
        self.assertEqual(controller.state, CameraState.IDLE)

    def test_invalid_construction_parameters(self):
        with self.assertRaises(ConfigurationError):
            CameraMotionController(duration_ms=0.0)
        with self.assertRaises(ConfigurationError):
            CameraMotionController(duration_ms=-100.0)
        with self.assertRaises(ConfigurationError):
            CameraMotionController(transition_fraction=1.0)
        with self.assertRaises(ConfigurationError):
            CameraMotionController(follow_lerp_factor=0.0)
        with self.assertRaises(ConfigurationError):
            CameraMotionController(reframe_multiplier=-4.0)

class TestFollowing(CameraTestCase):

    def test_follow_closes_gap_by_lerp_factor(self):
        controller = self.make_controller(position=(0.0, -10.0, 0.0))
        self.assertTrue(controller.follow('Earth', ORIGIN, 0.5))
        pose = controller.update(0.0, {'Earth': ORIGIN}, constant_size(0.5))
        # Desired point is (0, -2, 0); a tenth of the 8-unit gap is covered
        np.testing.assert_array_almost_equal(pose.position, np.array([0.0, -9.2, 0.0]))

    def test_follow_distance_scales_with_live_visual_size(self):
        controller = self.make_controller(position=(0.0, -10.0, 0.0))
        controller.follow('Earth', ORIGIN, 0.5)
        for _ in range(400):
            controller.update(0.0, {'Earth': ORIGIN}, constant_size(2.0))
        self.assertAlmostEqual(np.linalg.norm(controller.pose.position), 8.0, places=6)

    def test_follow_tracks_moving_body(self):
        controller = self.make_controller(position=(0.0, -10.0, 0.0))
        controller.follow('Earth', ORIGIN, 0.5)
        body = np.array([0.0, 0.0, 0.0])
        for step in range(500):
            body = np.array([0.001 * step, 0.0, 0.0])
            pose = controller.update(0.0, {'Earth': body}, constant_size(0.5))
        expected = body + np.array([0.0, -2.0, 0.0])
        np.testing.assert_allclose(pose.position, expected, atol=0.05)
        to_body = (body - pose.position) / np.linalg.norm(body - pose.position)
        self.assertAlmostEqual(float(np.dot(pose.forward, to_body)), 1.0, places=9)

    def test_missing_body_holds_pose(self):
        controller = self.make_controller()
        controller.follow('Earth', ORIGIN, 0.5)
        before = controller.pose.position.copy()
        pose = controller.update(0.0, {}, constant_size(0.5))
        np.testing.assert_array_equal(pose.position, before)
        self.assertEqual(controller.state, CameraState.FOLLOWING)

    def test_invalid_live_size_falls_back_to_reference_size(self):
        controller = self.make_controller(position=(0.0, -10.0, 0.0))
        controller.follow('Earth', ORIGIN, 0.5)
        pose = controller.update(0.0, {'Earth': ORIGIN}, lambda name: None)
        np.testing.assert_array_almost_equal(pose.position, np.array([0.0, -9.2, 0.0]))

class TestManualControl(CameraTestCase):

    def test_manual_input_cancels_flight(self):
        controller = self.make_controller()
        controller.jump_to('Earth', ORIGIN, 0.5, now_ms=0.0)
        controller.update(200.0, {'Earth': ORIGIN}, constant_size(0.5))
        controller.apply_manual_control(orbit_dx=10.0)
        self.assertEqual(controller.state, CameraState.IDLE)
        self.assertIsNone(controller.current_tracked_body())
        held = controller.pose.position.copy()
        controller.update(1000.0, {'Earth': ORIGIN}, constant_size(0.5))
        np.testing.assert_array_equal(controller.pose.position, held)

    def test_orbit_keeps_distance_and_zoom_scales_it(self):
        controller = self.make_controller(position=(0.0, -10.0, 0.0))
        controller.apply_manual_control(orbit_dx=120.0, orbit_dy=-40.0)
        self.assertAlmostEqual(np.linalg.norm(controller.pose.position), 10.0, places=9)
        controller.apply_manual_control(zoom_steps=1.0)
        self.assertAlmostEqual(np.linalg.norm(controller.pose.position), 10.0 / 1.1, places=9)
        to_focus = -controller.pose.position / np.linalg.norm(controller.pose.position)
        np.testing.assert_array_almost_equal(controller.pose.forward, to_focus)

    def test_independent_instances(self):
        first = self.make_controller()
        second = self.make_controller()
        first.jump_to('Earth', ORIGIN, 0.5, now_ms=0.0)
        self.assertTrue(first.is_animating())
        self.assertFalse(second.is_animating())
        self.assertEqual(second.state, CameraState.IDLE)

if __name__ == '__main__':
    unittest.main(argv=['first-arg-is-ignored'], exit=False)
