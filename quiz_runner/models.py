"""
Core data models for the Quiz Runner game.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
from datetime import datetime
from enum import Enum


ObstacleId = int


class GamePhase(Enum):
    """Enumeration of the phases a play session moves through."""
    IDLE = "idle"
    RUNNING = "running"
    QUIZ = "quiz"
    GAME_OVER = "game_over"


class SpawnMode(Enum):
    """Obstacle spawn policies."""
    SINGLE_SLOT = "single_slot"
    PROBABILISTIC = "probabilistic"


class GameEventType(Enum):
    """External inputs the session controller accepts."""
    START = "start"
    ANSWER = "answer"
    RESET = "reset"


@dataclass(frozen=True)
class GameEvent:
    """A discrete user action, consumed between ticks."""
    event_type: GameEventType
    option_index: Optional[int] = None

    @classmethod
    def start(cls) -> "GameEvent":
        return cls(GameEventType.START)

    @classmethod
    def answer(cls, option_index: int) -> "GameEvent":
        return cls(GameEventType.ANSWER, option_index)

    @classmethod
    def reset(cls) -> "GameEvent":
        return cls(GameEventType.RESET)


@dataclass(frozen=True)
class QuizItem:
    """Represents a single multiple-choice question."""
    text: str
    options: Tuple[str, ...]
    correct_index: int

    def is_correct(self, selected: int) -> bool:
        return selected == self.correct_index


@dataclass
class Character:
    """The auto-moving player character. Position is the center point."""
    x: float
    y: float
    size: float
    velocity: float = 0.0


@dataclass
class Obstacle:
    """An enemy the character can collide with. Position is the center point."""
    obstacle_id: ObstacleId
    x: float
    y: float
    size: float


@dataclass(frozen=True)
class Collision:
    """Result of a tick in which the character touched an obstacle."""
    obstacle_id: ObstacleId
    distance: float


@dataclass(frozen=True)
class TickResult:
    """Summary of one simulation step."""
    tick: int
    spawned: Tuple[ObstacleId, ...] = ()
    removed: Tuple[ObstacleId, ...] = ()
    collision: Optional[Collision] = None


@dataclass
class GameSettings:
    """Configuration settings for the game field, physics and questions."""
    field_width: int = 800
    field_height: int = 600
    tick_rate: int = 60
    speed: float = 120.0
    obstacle_speed: float = 0.0
    character_size: float = 40.0
    obstacle_size: float = 30.0
    character_start_x: float = 50.0
    spawn_mode: SpawnMode = SpawnMode.SINGLE_SLOT
    spawn_probability: float = 0.02
    spawn_distance: float = 200.0
    spawn_band_height: float = 120.0
    max_obstacles: int = 8
    cleanup_margin: float = 30.0
    question_directory: str = "./questions/"
    question_bank: Optional[str] = None
    random_order: bool = False
    question_count: Optional[int] = None

    @property
    def tick_interval(self) -> float:
        return 1.0 / self.tick_rate

    @property
    def lane_y(self) -> float:
        return self.field_height / 2


@dataclass
class GameSession:
    """Mutable state of one play session, owned by the GameController."""
    character: Character
    phase: GamePhase = GamePhase.IDLE
    score: int = 0
    question_index: int = 0
    pending_obstacle_id: Optional[ObstacleId] = None
    obstacles: Dict[ObstacleId, Obstacle] = field(default_factory=dict)
    next_obstacle_id: ObstacleId = 1
    tick_count: int = 0
    final_score: Optional[int] = None
    start_time: Optional[datetime] = None


@dataclass(frozen=True)
class GameSnapshot:
    """Read-only view of a session handed to rendering collaborators."""
    phase: GamePhase
    score: int
    question_index: int
    character_position: Tuple[float, float]
    character_size: float
    obstacles: Tuple[Obstacle, ...]
    active_item: Optional[QuizItem]
    final_score: Optional[int]
    pending_obstacle_id: Optional[ObstacleId]
    tick_count: int

    @property
    def obstacle_positions(self) -> Dict[ObstacleId, Tuple[float, float]]:
        return {obstacle.obstacle_id: (obstacle.x, obstacle.y) for obstacle in self.obstacles}
