"""
Unit tests for the GameController session state machine.
"""
import random
import unittest
from unittest.mock import Mock

from quiz_runner.session_controller import GameController, QuestionBankError
from quiz_runner.models import GameEvent, GamePhase, GameSettings, QuizItem, SpawnMode
from quiz_runner.data_manager import DataManager
from quiz_runner.config_manager import ConfigManager
from tests.test_fixtures import TestFixtures, SessionDriver


class TestGameControllerInitialization(unittest.TestCase):
    """Test cases for controller construction and bank selection."""

    def test_initial_state_is_idle(self):
        """A new controller sits in Idle with nothing on the field."""
        controller = TestFixtures.create_controller()

        self.assertEqual(controller.phase, GamePhase.IDLE)
        self.assertEqual(controller.score, 0)
        self.assertEqual(controller.question_index, 0)
        self.assertEqual(controller.obstacle_positions, {})
        self.assertIsNone(controller.active_item)
        self.assertIsNone(controller.final_score)
        self.assertEqual(controller.character_position, (50.0, 300.0))

    def test_uses_first_available_bank(self):
        """Without a configured bank name the first loaded bank is used."""
        data_manager, config_manager = TestFixtures.create_mock_managers()
        data_manager.get_available_banks.return_value = ["first", "second"]

        controller = GameController(data_manager, config_manager)

        data_manager.get_bank_items.assert_called_once_with("first")
        self.assertEqual(controller.question_bank.length(), 5)

    def test_configured_bank_is_used(self):
        settings = TestFixtures.create_sample_settings(question_bank="second")
        data_manager, config_manager = TestFixtures.create_mock_managers(settings=settings)
        data_manager.get_available_banks.return_value = ["first", "second"]

        GameController(data_manager, config_manager)

        data_manager.get_bank_items.assert_called_once_with("second")

    def test_missing_configured_bank_raises(self):
        settings = TestFixtures.create_sample_settings(question_bank="missing")
        data_manager, config_manager = TestFixtures.create_mock_managers(settings=settings)

        with self.assertRaises(QuestionBankError):
            GameController(data_manager, config_manager)

    def test_empty_bank_raises(self):
        data_manager, config_manager = TestFixtures.create_mock_managers(items=[])

        with self.assertRaises(QuestionBankError):
            GameController(data_manager, config_manager)

    def test_loads_bank_files_when_nothing_loaded(self):
        """The controller asks the data manager to load files if no bank is available yet."""
        data_manager, config_manager = TestFixtures.create_mock_managers()
        data_manager.get_available_banks.side_effect = [[], ["loaded_bank"]]

        GameController(data_manager, config_manager)

        data_manager.load_bank_files.assert_called_once()
        data_manager.get_bank_items.assert_called_once_with("loaded_bank")

    def test_no_banks_at_all_raises(self):
        data_manager = Mock(spec=DataManager)
        data_manager.get_available_banks.return_value = []
        config_manager = Mock(spec=ConfigManager)
        config_manager.get_game_settings.return_value = GameSettings()

        with self.assertRaises(QuestionBankError):
            GameController(data_manager, config_manager)


class TestStart(unittest.TestCase):
    """Test cases for start() and restart."""

    def setUp(self):
        self.controller = TestFixtures.create_controller()

    def test_start_from_idle(self):
        result = self.controller.start()

        self.assertTrue(result)
        self.assertEqual(self.controller.phase, GamePhase.RUNNING)
        self.assertEqual(self.controller.score, 0)
        self.assertEqual(self.controller.question_index, 0)
        self.assertEqual(self.controller.character_position, (50.0, 300.0))
        self.assertEqual(self.controller.obstacle_positions, {})
        self.assertIsNone(self.controller.pending_obstacle_id)

    def test_start_sets_character_velocity(self):
        self.controller.start()

        self.assertEqual(self.controller._session.character.velocity, 120.0)
        self.assertIsNotNone(self.controller._session.start_time)

    def test_start_while_running_is_ignored(self):
        self.controller.start()
        for _ in range(10):
            self.controller.tick()
        position = self.controller.character_position

        with self.assertLogs('quiz_runner.session_controller', level='WARNING'):
            result = self.controller.start()

        self.assertFalse(result)
        self.assertEqual(self.controller.phase, GamePhase.RUNNING)
        self.assertEqual(self.controller.character_position, position)
        self.assertEqual(self.controller._session.tick_count, 10)

    def test_start_during_quiz_is_ignored(self):
        SessionDriver.force_collision(self.controller)
        pending = self.controller.pending_obstacle_id

        result = self.controller.start()

        self.assertFalse(result)
        self.assertEqual(self.controller.phase, GamePhase.QUIZ)
        self.assertEqual(self.controller.pending_obstacle_id, pending)

    def test_restart_from_game_over_resets_score(self):
        """Restart via start() zeroes the score whatever the previous run earned."""
        for _ in range(3):
            SessionDriver.force_collision(self.controller)
            self.controller.answer(self.controller.active_item.correct_index)
        self.assertEqual(self.controller.score, 30)

        SessionDriver.force_collision(self.controller)
        wrong = (self.controller.active_item.correct_index + 1) % len(self.controller.active_item.options)
        self.controller.answer(wrong)
        self.assertEqual(self.controller.phase, GamePhase.GAME_OVER)

        result = self.controller.start()

        self.assertTrue(result)
        self.assertEqual(self.controller.phase, GamePhase.RUNNING)
        self.assertEqual(self.controller.score, 0)
        self.assertEqual(self.controller.question_index, 0)
        self.assertEqual(self.controller.character_position, (50.0, 300.0))
        self.assertEqual(self.controller.obstacle_positions, {})
        self.assertIsNone(self.controller.final_score)


class TestTick(unittest.TestCase):
    """Test cases for the per-tick motion, spawn, cleanup and collision cycle."""

    def setUp(self):
        self.controller = TestFixtures.create_controller()

    def test_tick_outside_running_does_nothing(self):
        self.assertIsNone(self.controller.tick())
        self.assertEqual(self.controller.character_position, (50.0, 300.0))
        self.assertEqual(self.controller.obstacle_positions, {})

    def test_tick_moves_character_forward(self):
        self.controller.start()

        self.controller.tick()

        x, y = self.controller.character_position
        self.assertAlmostEqual(x, 52.0)
        self.assertEqual(y, 300.0)

    def test_character_y_never_changes(self):
        self.controller.start()
        for _ in range(50):
            self.controller.tick()
            self.assertEqual(self.controller.character_position[1], 300.0)

    def test_single_slot_spawns_ahead_in_lane(self):
        self.controller.start()

        result = self.controller.tick()

        self.assertEqual(len(result.spawned), 1)
        x, y = self.controller.obstacle_positions[result.spawned[0]]
        self.assertAlmostEqual(x, 252.0)
        self.assertEqual(y, 300.0)

    def test_single_slot_keeps_one_obstacle(self):
        self.controller.start()
        for _ in range(20):
            self.controller.tick()

        self.assertEqual(len(self.controller.obstacle_positions), 1)

    def test_collision_enters_quiz(self):
        """The single-slot obstacle is reached after the gap closes below the collision radius."""
        self.controller.start()

        ticks = SessionDriver.run_until_quiz(self.controller)

        self.assertEqual(ticks, 84)
        self.assertEqual(self.controller.phase, GamePhase.QUIZ)
        self.assertIsNotNone(self.controller.pending_obstacle_id)
        self.assertIn(self.controller.pending_obstacle_id, self.controller.obstacle_positions)
        self.assertEqual(self.controller.active_item, self.controller.question_bank.item_at(0))

    def test_tick_result_reports_collision(self):
        self.controller.start()
        obstacle = SessionDriver.place_obstacle_on_character(self.controller)

        result = self.controller.tick()

        self.assertIsNotNone(result.collision)
        self.assertEqual(result.collision.obstacle_id, obstacle.obstacle_id)
        self.assertLess(result.collision.distance, 35.0)

    def test_quiz_suspends_ticking(self):
        SessionDriver.force_collision(self.controller)
        position = self.controller.character_position
        obstacles = self.controller.obstacle_positions

        for _ in range(10):
            self.assertIsNone(self.controller.tick())

        self.assertEqual(self.controller.character_position, position)
        self.assertEqual(self.controller.obstacle_positions, obstacles)
        self.assertEqual(self.controller.phase, GamePhase.QUIZ)

    def test_first_overlapping_obstacle_wins(self):
        """When two obstacles overlap in one tick only the first inserted one is pending."""
        self.controller.start()
        first = SessionDriver.place_obstacle_on_character(self.controller, offset=5.0)
        SessionDriver.place_obstacle_on_character(self.controller, offset=-5.0)

        self.controller.tick()

        self.assertEqual(self.controller.phase, GamePhase.QUIZ)
        self.assertEqual(self.controller.pending_obstacle_id, first.obstacle_id)
        self.assertEqual(len(self.controller.obstacle_positions), 2)

    def test_obstacle_behind_is_cleaned_up(self):
        self.controller.start()
        behind = SessionDriver.place_obstacle_on_character(self.controller, offset=-100.0)

        result = self.controller.tick()

        self.assertIn(behind.obstacle_id, result.removed)
        self.assertNotIn(behind.obstacle_id, self.controller.obstacle_positions)

    def test_obstacle_within_margin_is_kept(self):
        settings = TestFixtures.create_sample_settings(character_size=4.0, obstacle_size=4.0)
        controller = TestFixtures.create_controller(settings=settings)
        controller.start()
        near = SessionDriver.place_obstacle_on_character(controller, offset=-20.0)

        result = controller.tick()

        self.assertNotIn(near.obstacle_id, result.removed)
        self.assertIn(near.obstacle_id, controller.obstacle_positions)

    def test_pending_obstacle_survives_cleanup(self):
        """The obstacle under quiz resolution is never removed by the cleanup rule."""
        obstacle = SessionDriver.force_collision(self.controller)
        session = self.controller._session
        session.obstacles[obstacle.obstacle_id].x = session.character.x - 10000.0

        removed = self.controller.spawner.cleanup(session)

        self.assertEqual(removed, [])
        self.assertIn(obstacle.obstacle_id, self.controller.obstacle_positions)

    def test_probabilistic_spawning_stays_in_band(self):
        settings = TestFixtures.create_sample_settings(
            spawn_mode=SpawnMode.PROBABILISTIC,
            spawn_probability=1.0,
            spawn_band_height=100.0,
            max_obstacles=5,
            character_size=1.0,
            obstacle_size=1.0
        )
        controller = TestFixtures.create_controller(settings=settings)
        controller.start()

        for _ in range(10):
            controller.tick()

        positions = controller.obstacle_positions
        self.assertEqual(len(positions), 5)
        for _, y in positions.values():
            self.assertGreaterEqual(y, 250.0)
            self.assertLessEqual(y, 350.0)


class TestAnswer(unittest.TestCase):
    """Test cases for answer() resolution."""

    def setUp(self):
        self.controller = TestFixtures.create_controller()

    def test_correct_answer_resumes_running(self):
        obstacle = SessionDriver.force_collision(self.controller)

        result = self.controller.answer(self.controller.active_item.correct_index)

        self.assertTrue(result)
        self.assertEqual(self.controller.phase, GamePhase.RUNNING)
        self.assertEqual(self.controller.score, 10)
        self.assertEqual(self.controller.question_index, 1)
        self.assertIsNone(self.controller.pending_obstacle_id)
        self.assertNotIn(obstacle.obstacle_id, self.controller.obstacle_positions)

    def test_ticking_resumes_after_correct_answer(self):
        SessionDriver.force_collision(self.controller)
        self.controller.answer(self.controller.active_item.correct_index)
        x_before = self.controller.character_position[0]

        self.assertIsNotNone(self.controller.tick())
        self.assertGreater(self.controller.character_position[0], x_before)

    def test_incorrect_answer_ends_game(self):
        SessionDriver.force_collision(self.controller)
        self.controller.answer(self.controller.active_item.correct_index)
        SessionDriver.force_collision(self.controller)
        item = self.controller.active_item
        wrong = (item.correct_index + 1) % len(item.options)

        result = self.controller.answer(wrong)

        self.assertTrue(result)
        self.assertEqual(self.controller.phase, GamePhase.GAME_OVER)
        self.assertEqual(self.controller.score, 10)
        self.assertEqual(self.controller.final_score, 10)
        self.assertEqual(self.controller.obstacle_positions, {})
        self.assertIsNone(self.controller.pending_obstacle_id)
        self.assertIsNone(self.controller.tick())

    def test_incorrect_answer_keeps_question_index(self):
        SessionDriver.force_collision(self.controller)
        self.controller.answer(self.controller.active_item.correct_index)
        SessionDriver.force_collision(self.controller)
        item = self.controller.active_item

        self.controller.answer((item.correct_index + 1) % len(item.options))

        self.assertEqual(self.controller.question_index, 1)

    def test_answer_outside_quiz_is_ignored(self):
        """answer() in Idle, Running and GameOver changes nothing."""
        with self.assertLogs('quiz_runner.session_controller', level='WARNING'):
            self.assertFalse(self.controller.answer(0))
        self.assertEqual(self.controller.phase, GamePhase.IDLE)

        self.controller.start()
        self.assertFalse(self.controller.answer(1))
        self.assertEqual(self.controller.phase, GamePhase.RUNNING)
        self.assertEqual(self.controller.score, 0)

        SessionDriver.force_collision(self.controller)
        item = self.controller.active_item
        self.controller.answer((item.correct_index + 1) % len(item.options))
        self.assertFalse(self.controller.answer(item.correct_index))
        self.assertEqual(self.controller.phase, GamePhase.GAME_OVER)
        self.assertEqual(self.controller.score, 0)

    def test_out_of_range_answer_is_ignored(self):
        SessionDriver.force_collision(self.controller)
        pending = self.controller.pending_obstacle_id

        self.assertFalse(self.controller.answer(4))
        self.assertFalse(self.controller.answer(-1))
        self.assertFalse(self.controller.answer("1"))
        self.assertFalse(self.controller.answer(True))

        self.assertEqual(self.controller.phase, GamePhase.QUIZ)
        self.assertEqual(self.controller.pending_obstacle_id, pending)
        self.assertEqual(self.controller.score, 0)

    def test_two_correct_answers_advance_index(self):
        """Two correct answers against a five-item bank give indexes 1 then 2."""
        indexes = []
        for _ in range(2):
            SessionDriver.force_collision(self.controller)
            self.controller.answer(self.controller.active_item.correct_index)
            indexes.append(self.controller.question_index)

        self.assertEqual(indexes, [1, 2])

    def test_question_index_wraps_after_bank_length(self):
        items = TestFixtures.create_sample_items()
        for n in range(1, 13):
            SessionDriver.force_collision(self.controller)
            self.assertEqual(self.controller.active_item, items[(n - 1) % len(items)])
            self.controller.answer(self.controller.active_item.correct_index)
            self.assertEqual(self.controller.question_index, n % len(items))
            self.assertEqual(self.controller.score, 10 * n)

    def test_single_item_bank_scenario(self):
        """bank = [2+2? (3, 4), correct 1]: correct keeps index 0, wrong ends the run."""
        controller = TestFixtures.create_controller(items=TestFixtures.create_single_item_bank())

        self.assertTrue(controller.start())
        self.assertEqual(controller.phase, GamePhase.RUNNING)

        SessionDriver.force_collision(controller)
        self.assertEqual(controller.phase, GamePhase.QUIZ)
        self.assertEqual(controller.active_item, QuizItem("2+2?", ("3", "4"), 1))

        controller.answer(1)
        self.assertEqual(controller.phase, GamePhase.RUNNING)
        self.assertEqual(controller.score, 10)
        self.assertEqual(controller.question_index, 0)

        SessionDriver.force_collision(controller)
        controller.answer(0)
        self.assertEqual(controller.phase, GamePhase.GAME_OVER)
        self.assertEqual(controller.score, 10)
        self.assertEqual(controller.final_score, 10)

    def test_score_stays_multiple_of_ten(self):
        """Random play never produces an invalid session."""
        rng = random.Random(7)
        for _ in range(200):
            phase = self.controller.phase
            if phase in (GamePhase.IDLE, GamePhase.GAME_OVER):
                self.controller.start()
            elif phase is GamePhase.RUNNING:
                if rng.random() < 0.3:
                    SessionDriver.force_collision(self.controller)
                else:
                    self.controller.tick()
            else:
                self.controller.answer(rng.randrange(4))

            self.assertGreaterEqual(self.controller.score, 0)
            self.assertEqual(self.controller.score % 10, 0)
            validation = self.controller.validate_session_state()
            self.assertTrue(validation['valid'], validation['issues'])


class TestReset(unittest.TestCase):
    """Test cases for reset() from every phase."""

    def setUp(self):
        self.controller = TestFixtures.create_controller()

    def assertIdle(self):
        self.assertEqual(self.controller.phase, GamePhase.IDLE)
        self.assertEqual(self.controller.score, 0)
        self.assertEqual(self.controller.question_index, 0)
        self.assertEqual(self.controller.obstacle_positions, {})
        self.assertIsNone(self.controller.pending_obstacle_id)
        self.assertEqual(self.controller.character_position, (50.0, 300.0))

    def test_reset_from_idle(self):
        self.assertTrue(self.controller.reset())
        self.assertIdle()

    def test_reset_from_running(self):
        self.controller.start()
        for _ in range(30):
            self.controller.tick()

        self.assertTrue(self.controller.reset())
        self.assertIdle()

    def test_reset_from_quiz(self):
        SessionDriver.force_collision(self.controller)
        self.controller.answer(self.controller.active_item.correct_index)
        SessionDriver.force_collision(self.controller)

        self.assertTrue(self.controller.reset())
        self.assertIdle()
        self.assertIsNone(self.controller.active_item)

    def test_reset_from_game_over(self):
        SessionDriver.force_collision(self.controller)
        item = self.controller.active_item
        self.controller.answer((item.correct_index + 1) % len(item.options))

        self.assertTrue(self.controller.reset())
        self.assertIdle()
        self.assertIsNone(self.controller.final_score)


class TestUpdateLoop(unittest.TestCase):
    """Test cases for the fixed-rate update() driver."""

    def setUp(self):
        self.controller = TestFixtures.create_controller()
        self.interval = self.controller.settings.tick_interval

    def test_update_in_idle_runs_nothing(self):
        self.assertEqual(self.controller.update(1.0), 0)
        self.assertEqual(self.controller._session.tick_count, 0)

    def test_update_runs_whole_ticks(self):
        self.controller.start()

        self.assertEqual(self.controller.update(self.interval), 1)
        self.assertEqual(self.controller.update(self.interval / 2), 0)
        self.assertEqual(self.controller.update(self.interval / 2), 1)

    def test_update_clamps_long_frames(self):
        self.controller.start()

        ticks = self.controller.update(10.0)

        self.assertEqual(ticks, GameController.MAX_TICKS_PER_UPDATE)

    def test_update_stops_at_collision(self):
        self.controller.start()
        SessionDriver.place_obstacle_on_character(self.controller)

        ticks = self.controller.update(self.interval * 4)

        self.assertEqual(ticks, 1)
        self.assertEqual(self.controller.phase, GamePhase.QUIZ)
        self.assertEqual(self.controller.update(1.0), 0)

    def test_left_over_time_is_dropped_after_quiz(self):
        self.controller.start()
        SessionDriver.place_obstacle_on_character(self.controller)
        self.controller.update(self.interval * 4.5)

        self.controller.answer(self.controller.active_item.correct_index)

        self.assertEqual(self.controller.update(0.0), 0)

    def test_negative_elapsed_is_ignored(self):
        self.controller.start()
        self.assertEqual(self.controller.update(-1.0), 0)
        self.assertEqual(self.controller.update(self.interval), 1)


class TestDispatch(unittest.TestCase):
    """Test cases for event routing."""

    def setUp(self):
        self.controller = TestFixtures.create_controller(items=TestFixtures.create_single_item_bank())

    def test_dispatch_routes_events(self):
        self.assertTrue(self.controller.dispatch(GameEvent.start()))
        self.assertEqual(self.controller.phase, GamePhase.RUNNING)

        SessionDriver.force_collision(self.controller)
        self.assertTrue(self.controller.dispatch(GameEvent.answer(1)))
        self.assertEqual(self.controller.score, 10)

        self.assertTrue(self.controller.dispatch(GameEvent.reset()))
        self.assertEqual(self.controller.phase, GamePhase.IDLE)

    def test_dispatch_applies_phase_policy(self):
        self.assertFalse(self.controller.dispatch(GameEvent.answer(0)))
        self.controller.dispatch(GameEvent.start())
        self.assertFalse(self.controller.dispatch(GameEvent.start()))


class TestSnapshotAndDiagnostics(unittest.TestCase):
    """Test cases for read-only observers and state validation."""

    def setUp(self):
        self.controller = TestFixtures.create_controller()

    def test_snapshot_reflects_state(self):
        SessionDriver.force_collision(self.controller)

        snapshot = self.controller.snapshot()

        self.assertEqual(snapshot.phase, GamePhase.QUIZ)
        self.assertEqual(snapshot.score, 0)
        self.assertEqual(snapshot.active_item, self.controller.question_bank.item_at(0))
        self.assertEqual(snapshot.pending_obstacle_id, self.controller.pending_obstacle_id)
        self.assertEqual(snapshot.character_position, self.controller.character_position)
        self.assertEqual(len(snapshot.obstacle_positions), len(self.controller.obstacle_positions))
        self.assertIsNone(snapshot.final_score)

    def test_snapshot_positions_match_controller_view(self):
        """Both views key obstacle positions by obstacle id."""
        self.controller.start()
        for _ in range(3):
            self.controller.tick()
        SessionDriver.place_obstacle_on_character(self.controller, offset=80.0)

        snapshot = self.controller.snapshot()

        self.assertEqual(snapshot.obstacle_positions, self.controller.obstacle_positions)
        self.assertEqual(sorted(snapshot.obstacle_positions), [1, 2])

    def test_snapshot_is_detached(self):
        """Changing a snapshot never changes the session."""
        self.controller.start()
        self.controller.tick()
        snapshot = self.controller.snapshot()
        original = dict(self.controller.obstacle_positions)

        snapshot.obstacles[0].x = -999.0

        self.assertEqual(self.controller.obstacle_positions, original)

    def test_final_score_only_in_game_over(self):
        SessionDriver.force_collision(self.controller)
        self.controller.answer(self.controller.active_item.correct_index)
        self.assertIsNone(self.controller.final_score)

        SessionDriver.force_collision(self.controller)
        item = self.controller.active_item
        self.controller.answer((item.correct_index + 1) % len(item.options))

        self.assertEqual(self.controller.snapshot().final_score, 10)

    def test_validate_session_state_in_each_phase(self):
        self.assertTrue(self.controller.validate_session_state()['valid'])
        self.controller.start()
        self.controller.tick()
        self.assertTrue(self.controller.validate_session_state()['valid'])
        SessionDriver.force_collision(self.controller)
        self.assertTrue(self.controller.validate_session_state()['valid'])
        self.controller.answer(0)
        validation = self.controller.validate_session_state()
        self.assertTrue(validation['valid'])
        self.assertEqual(validation['phase'], 'game_over')

    def test_validate_session_state_detects_corruption(self):
        self.controller.start()
        self.controller._session.score = 15
        self.controller._session.pending_obstacle_id = 99

        validation = self.controller.validate_session_state()

        self.assertFalse(validation['valid'])
        self.assertEqual(len(validation['issues']), 2)

    def test_session_progress(self):
        self.controller.start()
        for _ in range(60):
            self.controller.tick()

        progress = self.controller.get_session_progress()

        self.assertEqual(progress['phase'], 'running')
        self.assertEqual(progress['bank_length'], 5)
        self.assertEqual(progress['tick_count'], 60)
        self.assertAlmostEqual(progress['play_time'], 1.0)
        self.assertEqual(progress['obstacle_count'], 1)


if __name__ == '__main__':
    unittest.main()
