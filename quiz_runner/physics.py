"""
Motion step for the Quiz Runner game.

Positions live in world coordinates. The character advances along its lane at a
constant horizontal velocity; obstacles drift toward it at ``obstacle_speed``
(zero by default, so they hold still while the field scrolls past). There is no
gravity, no restitution and no obstacle-to-obstacle interaction.
"""
from typing import Iterable

from .models import Character, Obstacle, GameSettings


def advance_character(character: Character, dt: float) -> None:
    """Move the character forward by velocity * dt. The y coordinate never changes."""
    character.x += character.velocity * dt


def advance_obstacles(obstacles: Iterable[Obstacle], obstacle_speed: float, dt: float) -> None:
    """Move every live obstacle toward the character."""
    if obstacle_speed == 0:
        return
    for obstacle in obstacles:
        obstacle.x -= obstacle_speed * dt


def relative_closing_speed(settings: GameSettings) -> float:
    """Rate at which the gap between the character and an obstacle ahead shrinks."""
    return settings.speed + settings.obstacle_speed


def motion_step(character: Character, obstacles: Iterable[Obstacle], settings: GameSettings, dt: float) -> None:
    """
    Advance character and obstacle positions by one tick.

    Args:
        character: The player character, mutated in place
        obstacles: Live obstacles, mutated in place
        settings: Game settings providing the obstacle drift speed
        dt: Tick length in seconds
    """
    advance_character(character, dt)
    advance_obstacles(obstacles, settings.obstacle_speed, dt)
