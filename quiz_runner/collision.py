"""
Collision detection between the character and live obstacles.
"""
import math
from typing import Iterable, Optional

from .models import Character, Collision, Obstacle


def center_distance(character: Character, obstacle: Obstacle) -> float:
    return math.hypot(character.x - obstacle.x, character.y - obstacle.y)


def collision_threshold(character: Character, obstacle: Obstacle) -> float:
    return (character.size + obstacle.size) / 2


def detect_collision(character: Character, obstacles: Iterable[Obstacle]) -> Optional[Collision]:
    """
    Check the character against every obstacle in iteration order.

    Stops at the first obstacle whose center lies closer than the mean of the two
    sizes, so at most one collision is reported per tick.

    Args:
        character: The player character
        obstacles: Live obstacles in insertion order

    Returns:
        Collision naming the first overlapping obstacle, or None
    """
    for obstacle in obstacles:
        distance = center_distance(character, obstacle)
        if distance < collision_threshold(character, obstacle):
            return Collision(obstacle_id=obstacle.obstacle_id, distance=distance)
    return None
