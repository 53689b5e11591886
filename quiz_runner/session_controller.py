"""
Session controller for the Quiz Runner game.
Owns the play session and drives the Idle / Running / Quiz / GameOver state machine.
"""
import logging
import random
import time
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .models import (
    Character, Collision, GameEvent, GameEventType, GamePhase, GameSession,
    GameSnapshot, ObstacleId, QuizItem, TickResult
)
from .collision import detect_collision
from .physics import motion_step
from .question_bank import QuestionBank
from .spawner import Spawner
from .data_manager import DataManager
from .config_manager import ConfigManager

logger = logging.getLogger(__name__)


class GameControllerError(Exception):
    """Base exception for game controller errors."""
    pass


class InvalidPhaseError(GameControllerError):
    """Raised when the session is in the wrong phase for the requested operation."""
    pass


class InvalidAnswerError(GameControllerError):
    """Raised when an answer index does not name one of the active options."""
    pass


class QuestionBankError(GameControllerError):
    """Raised when no usable question bank can be built."""
    pass


class SessionLifecycleLogger:
    """Structured logging for session lifecycle events."""

    @staticmethod
    def log_transition(from_phase: GamePhase, to_phase: GamePhase, reason: str, score: int) -> None:
        logger.info(
            f"Session lifecycle: TRANSITION - {from_phase.value} -> {to_phase.value} ({reason}), score {score}",
            extra={
                'event_type': 'session_transition',
                'from_phase': from_phase.value,
                'to_phase': to_phase.value,
                'reason': reason,
                'score': score,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_collision(collision: Collision, tick: int, question_index: int) -> None:
        logger.info(
            f"Session lifecycle: COLLISION - Obstacle {collision.obstacle_id} at tick {tick}, "
            f"distance {collision.distance:.1f}, question {question_index}",
            extra={
                'event_type': 'session_collision',
                'obstacle_id': collision.obstacle_id,
                'distance': collision.distance,
                'tick': tick,
                'question_index': question_index,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_answer(selected: int, correct_index: int, question_index: int) -> None:
        correct = selected == correct_index
        logger.info(
            f"Session lifecycle: ANSWER - Question {question_index}, selected {selected}, "
            f"{'correct' if correct else 'incorrect'}",
            extra={
                'event_type': 'session_answer',
                'selected': selected,
                'correct_index': correct_index,
                'correct': correct,
                'question_index': question_index,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_rejected_event(event: str, phase: GamePhase, reason: str) -> None:
        logger.warning(
            f"Session lifecycle: REJECTED - {event} in phase {phase.value}: {reason}",
            extra={
                'event_type': 'session_event_rejected',
                'event': event,
                'phase': phase.value,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_obstacles_changed(tick: int, spawned: List[ObstacleId], removed: List[ObstacleId]) -> None:
        # Per-tick churn, debug only
        if not spawned and not removed:
            return
        logger.debug(
            f"Session lifecycle: OBSTACLES - Tick {tick}, spawned {spawned}, removed {removed}",
            extra={
                'event_type': 'session_obstacles_changed',
                'tick': tick,
                'spawned': spawned,
                'removed': removed,
                'timestamp': time.time()
            }
        )


class GameController:
    """
    Orchestrates a single play session.

    The controller exclusively owns the GameSession. Presentation code drives it
    through start(), answer(), reset() (or dispatch() with a GameEvent) and
    update() once per frame, and reads state through the read-only accessors or
    snapshot(). Calls made in the wrong phase are ignored: they change nothing,
    log a warning and return False.
    """

    POINTS_PER_CORRECT_ANSWER = 10
    MAX_TICKS_PER_UPDATE = 5
    TICK_EPSILON = 1e-9

    def __init__(
        self,
        data_manager: DataManager,
        config_manager: ConfigManager,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the game controller.

        Args:
            data_manager: Instance for loading question banks
            config_manager: Instance providing game settings
            rng: Random source for spawning and question ordering

        Raises:
            QuestionBankError: If no question bank can be built
        """
        self.logger = logging.getLogger(__name__)
        self.data_manager = data_manager
        self.config_manager = config_manager
        self.settings = config_manager.get_game_settings()
        self._rng = rng or random.Random()

        self.question_bank = self._build_question_bank()
        self.spawner = Spawner(self.settings, self._rng)

        self._session = self._new_session()
        self._accumulator = 0.0

        self.logger.info(
            f"GameController initialized: bank of {self.question_bank.length()} items, "
            f"spawn mode {self.settings.spawn_mode.value}, {self.settings.tick_rate} ticks/s"
        )

    def _build_question_bank(self) -> QuestionBank:
        available_banks = self.data_manager.get_available_banks()
        if not available_banks:
            self.data_manager.load_bank_files()
            available_banks = self.data_manager.get_available_banks()

        bank_name = self.settings.question_bank
        if bank_name is None:
            if not available_banks:
                raise QuestionBankError("No question banks available")
            bank_name = available_banks[0]
        elif bank_name not in available_banks:
            raise QuestionBankError(
                f"Question bank '{bank_name}' not found. Available banks: {', '.join(available_banks)}"
            )

        items = self.data_manager.get_bank_items(bank_name)
        try:
            bank = QuestionBank.from_settings(items or [], self.settings, self._rng)
        except ValueError as e:
            raise QuestionBankError(f"Cannot build question bank '{bank_name}': {e}") from e

        self.logger.info(f"Using question bank '{bank_name}'")
        return bank

    def _new_session(self) -> GameSession:
        character = Character(
            x=self.settings.character_start_x,
            y=self.settings.lane_y,
            size=self.settings.character_size
        )
        return GameSession(character=character)

    def _require_phase(self, operation: str, *phases: GamePhase) -> None:
        if self._session.phase not in phases:
            allowed = ", ".join(phase.value for phase in phases)
            raise InvalidPhaseError(
                f"{operation} requires phase {allowed}, session is {self._session.phase.value}"
            )

    def _set_phase(self, phase: GamePhase, reason: str) -> None:
        previous = self._session.phase
        self._session.phase = phase
        if phase is not GamePhase.RUNNING:
            self._accumulator = 0.0
        SessionLifecycleLogger.log_transition(previous, phase, reason, self._session.score)

    def start(self) -> bool:
        """
        Begin a session from Idle, or restart one from GameOver.

        Resets score and question index, clears obstacles, puts the character
        back at its start position and enables ticking.

        Returns:
            True if the session started, False if the call was ignored
        """
        try:
            self._require_phase("start", GamePhase.IDLE, GamePhase.GAME_OVER)
        except InvalidPhaseError as e:
            SessionLifecycleLogger.log_rejected_event("start", self._session.phase, str(e))
            return False

        reason = "restart" if self._session.phase is GamePhase.GAME_OVER else "start"
        previous_phase = self._session.phase
        self._session = self._new_session()
        self._session.phase = previous_phase
        self._session.character.velocity = self.settings.speed
        self._session.start_time = datetime.now()
        self._accumulator = 0.0
        self._set_phase(GamePhase.RUNNING, reason)
        return True

    def answer(self, selected: int) -> bool:
        """
        Resolve the active quiz item.

        A correct answer scores points, advances the question index, removes the
        pending obstacle and resumes running. Any other option ends the run and
        clears every obstacle.

        Args:
            selected: Index into the active item's options

        Returns:
            True if the answer was applied, False if the call was ignored
        """
        try:
            self._require_phase("answer", GamePhase.QUIZ)
            item = self.active_item
            if isinstance(selected, bool) or not isinstance(selected, int):
                raise InvalidAnswerError(f"answer index must be an integer, got {type(selected).__name__}")
            if not 0 <= selected < len(item.options):
                raise InvalidAnswerError(
                    f"answer index {selected} outside options range 0..{len(item.options) - 1}"
                )
        except GameControllerError as e:
            SessionLifecycleLogger.log_rejected_event("answer", self._session.phase, str(e))
            return False

        session = self._session
        SessionLifecycleLogger.log_answer(selected, item.correct_index, session.question_index)

        if item.is_correct(selected):
            session.score += self.POINTS_PER_CORRECT_ANSWER
            session.question_index = self.question_bank.next_index(session.question_index)
            session.obstacles.pop(session.pending_obstacle_id, None)
            session.pending_obstacle_id = None
            self._set_phase(GamePhase.RUNNING, "correct answer")
        else:
            session.obstacles.clear()
            session.pending_obstacle_id = None
            session.character.velocity = 0.0
            session.final_score = session.score
            self._set_phase(GamePhase.GAME_OVER, "incorrect answer")
        return True

    def reset(self) -> bool:
        """
        Return to Idle, discarding score, obstacles and question progress.

        Legal in every phase.
        """
        previous_phase = self._session.phase
        self._session = self._new_session()
        self._session.phase = previous_phase
        self._set_phase(GamePhase.IDLE, "reset")
        return True

    def dispatch(self, event: GameEvent) -> bool:
        """
        Route an external event to the matching operation.

        Front-ends pass every user action through here between update() calls so
        only one transition is processed at a time.
        """
        if event.event_type is GameEventType.START:
            return self.start()
        if event.event_type is GameEventType.ANSWER:
            return self.answer(event.option_index)
        if event.event_type is GameEventType.RESET:
            return self.reset()
        SessionLifecycleLogger.log_rejected_event(str(event.event_type), self._session.phase, "unknown event")
        return False

    def tick(self) -> Optional[TickResult]:
        """
        Run one fixed simulation step: motion, cleanup, spawn, collision.

        Returns:
            TickResult for the step, or None if the session is not running
        """
        session = self._session
        if session.phase is not GamePhase.RUNNING:
            return None

        session.tick_count += 1
        motion_step(session.character, session.obstacles.values(), self.settings, self.settings.tick_interval)
        removed = self.spawner.cleanup(session)
        spawned = self.spawner.spawn(session)
        SessionLifecycleLogger.log_obstacles_changed(session.tick_count, spawned, removed)

        collision = detect_collision(session.character, session.obstacles.values())
        if collision is not None:
            self._enter_quiz(collision)

        return TickResult(
            tick=session.tick_count,
            spawned=tuple(spawned),
            removed=tuple(removed),
            collision=collision
        )

    def _enter_quiz(self, collision: Collision) -> None:
        session = self._session
        session.pending_obstacle_id = collision.obstacle_id
        SessionLifecycleLogger.log_collision(collision, session.tick_count, session.question_index)
        self._set_phase(GamePhase.QUIZ, f"collision with obstacle {collision.obstacle_id}")

    def update(self, elapsed: float) -> int:
        """
        Advance the fixed-rate tick loop by elapsed wall-clock seconds.

        Time is consumed in whole ticks of 1 / tick_rate. At most
        MAX_TICKS_PER_UPDATE ticks run per call. The loop stops as soon as the
        phase leaves Running and any left-over time is dropped.

        Args:
            elapsed: Seconds since the previous call

        Returns:
            Number of ticks run
        """
        if self._session.phase is not GamePhase.RUNNING:
            self._accumulator = 0.0
            return 0

        interval = self.settings.tick_interval
        self._accumulator = min(
            self._accumulator + max(0.0, elapsed),
            interval * self.MAX_TICKS_PER_UPDATE
        )

        ticks = 0
        while (self._accumulator + self.TICK_EPSILON >= interval
               and self._session.phase is GamePhase.RUNNING):
            self._accumulator -= interval
            self.tick()
            ticks += 1

        if self._session.phase is not GamePhase.RUNNING:
            self._accumulator = 0.0
        return ticks

    # Read-only observers

    @property
    def phase(self) -> GamePhase:
        return self._session.phase

    @property
    def score(self) -> int:
        return self._session.score

    @property
    def question_index(self) -> int:
        return self._session.question_index

    @property
    def pending_obstacle_id(self) -> Optional[ObstacleId]:
        return self._session.pending_obstacle_id

    @property
    def character_position(self) -> Tuple[float, float]:
        return self._session.character.x, self._session.character.y

    @property
    def obstacle_positions(self) -> Dict[ObstacleId, Tuple[float, float]]:
        return {
            obstacle_id: (obstacle.x, obstacle.y)
            for obstacle_id, obstacle in self._session.obstacles.items()
        }

    @property
    def active_item(self) -> Optional[QuizItem]:
        """The quiz item on display, only while in Quiz phase."""
        if self._session.phase is not GamePhase.QUIZ:
            return None
        return self.question_bank.item_at(self._session.question_index)

    @property
    def final_score(self) -> Optional[int]:
        """The score the run ended with, only while in GameOver phase."""
        if self._session.phase is not GamePhase.GAME_OVER:
            return None
        return self._session.final_score

    def snapshot(self) -> GameSnapshot:
        """
        Copy the current session into an immutable view for rendering.
        """
        session = self._session
        return GameSnapshot(
            phase=session.phase,
            score=session.score,
            question_index=session.question_index,
            character_position=(session.character.x, session.character.y),
            character_size=session.character.size,
            obstacles=tuple(replace(obstacle) for obstacle in session.obstacles.values()),
            active_item=self.active_item,
            final_score=self.final_score,
            pending_obstacle_id=session.pending_obstacle_id,
            tick_count=session.tick_count
        )

    def get_session_progress(self) -> Dict[str, Any]:
        """
        Get progress information for the current session.
        """
        session = self._session
        return {
            'phase': session.phase.value,
            'score': session.score,
            'question_index': session.question_index,
            'bank_length': self.question_bank.length(),
            'obstacle_count': len(session.obstacles),
            'pending_obstacle_id': session.pending_obstacle_id,
            'tick_count': session.tick_count,
            'play_time': session.tick_count * self.settings.tick_interval,
            'start_time': session.start_time
        }

    def validate_session_state(self) -> Dict[str, Any]:
        """
        Check session invariants and return diagnostic information.

        Returns:
            Dictionary with validation results and session state info
        """
        session = self._session
        issues = []

        if session.score < 0:
            issues.append("Score is negative")
        if session.score % self.POINTS_PER_CORRECT_ANSWER != 0:
            issues.append(f"Score {session.score} is not a multiple of {self.POINTS_PER_CORRECT_ANSWER}")

        if not 0 <= session.question_index < self.question_bank.length():
            issues.append("Question index outside question bank")

        if session.phase is GamePhase.QUIZ:
            if session.pending_obstacle_id is None:
                issues.append("Quiz phase without a pending obstacle")
            elif session.pending_obstacle_id not in session.obstacles:
                issues.append("Pending obstacle is not live")
        elif session.pending_obstacle_id is not None:
            issues.append("Pending obstacle set outside quiz phase")

        if session.phase is GamePhase.GAME_OVER and session.obstacles:
            issues.append("Obstacles remain after game over")

        if session.phase is GamePhase.IDLE and (session.score or session.obstacles):
            issues.append("Idle session carries score or obstacles")

        return {
            'valid': len(issues) == 0,
            'phase': session.phase.value,
            'issues': issues,
            'session_info': self.get_session_progress()
        }
