"""
Obstacle spawning and off-screen cleanup for the Quiz Runner game.
"""
import logging
import random
from typing import List, Optional, Tuple

from .models import GameSession, GameSettings, Obstacle, ObstacleId, SpawnMode


class Spawner:
    """
    Introduces obstacles ahead of the character and removes the ones left behind.

    Two policies are supported:
      - SINGLE_SLOT keeps exactly one obstacle in the character's lane, recreating
        it on the first tick after the previous one is destroyed.
      - PROBABILISTIC creates a new obstacle with a fixed probability each tick, at
        a random height inside the vertical band around the lane, up to
        ``max_obstacles`` live at once.
    """

    def __init__(self, settings: GameSettings, rng: Optional[random.Random] = None):
        """
        Initialize the spawner.

        Args:
            settings: Game settings providing spawn policy and geometry
            rng: Random source for the probabilistic policy
        """
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.rng = rng or random.Random()

    def spawn(self, session: GameSession) -> List[ObstacleId]:
        """
        Apply the spawn policy for one tick.

        Returns:
            Identifiers of obstacles created this tick
        """
        if self.settings.spawn_mode is SpawnMode.SINGLE_SLOT:
            if session.obstacles:
                return []
            obstacle = self.create_obstacle(session, session.character.y)
            return [obstacle.obstacle_id]

        if len(session.obstacles) >= self.settings.max_obstacles:
            return []
        if self.rng.random() >= self.settings.spawn_probability:
            return []

        top, bottom = self.spawn_band()
        obstacle = self.create_obstacle(session, self.rng.uniform(top, bottom))
        return [obstacle.obstacle_id]

    def create_obstacle(self, session: GameSession, y: float) -> Obstacle:
        """Create an obstacle spawn_distance ahead of the character and register it."""
        obstacle = Obstacle(
            obstacle_id=session.next_obstacle_id,
            x=session.character.x + self.settings.spawn_distance,
            y=y,
            size=self.settings.obstacle_size
        )
        session.next_obstacle_id += 1
        session.obstacles[obstacle.obstacle_id] = obstacle
        return obstacle

    def spawn_band(self) -> Tuple[float, float]:
        """
        Vertical band obstacles may appear in, centered on the lane and clamped so
        an obstacle never leaves the field.
        """
        half_size = self.settings.obstacle_size / 2
        lane_y = self.settings.lane_y
        half_band = self.settings.spawn_band_height / 2
        top = max(half_size, lane_y - half_band)
        bottom = min(self.settings.field_height - half_size, lane_y + half_band)
        if top > bottom:
            return lane_y, lane_y
        return top, bottom

    def is_behind(self, session: GameSession, obstacle: Obstacle) -> bool:
        return obstacle.x < session.character.x - self.settings.cleanup_margin

    def cleanup(self, session: GameSession) -> List[ObstacleId]:
        """
        Remove obstacles that fell behind the character by more than the cleanup
        margin. The pending obstacle is never removed here.

        Returns:
            Identifiers of removed obstacles
        """
        removed = [
            obstacle_id
            for obstacle_id, obstacle in session.obstacles.items()
            if obstacle_id != session.pending_obstacle_id and self.is_behind(session, obstacle)
        ]
        for obstacle_id in removed:
            del session.obstacles[obstacle_id]
        return removed
