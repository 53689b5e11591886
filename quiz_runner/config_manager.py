"""
Configuration manager for Quiz Runner game settings and parameters.
"""
import logging
from dataclasses import replace
from typing import Optional, Dict, Any, List, Union
from pathlib import Path
import os

from .models import GameSettings, SpawnMode
from .physics import relative_closing_speed


class ConfigManager:
    """Manages game configuration: field geometry, physics, spawning and questions."""

    # Default configuration values
    DEFAULT_QUESTION_DIRECTORY = "./questions/"
    DEFAULT_SPAWN_MODE = SpawnMode.SINGLE_SLOT

    # Validation limits
    MIN_FIELD_DIMENSION = 200
    MAX_FIELD_DIMENSION = 4000
    MIN_TICK_RATE = 10
    MAX_TICK_RATE = 240
    MIN_SPEED = 1.0
    MAX_SPEED = 2000.0
    MIN_ENTITY_SIZE = 1.0
    MAX_ENTITY_SIZE = 500.0
    MAX_DISTANCE = 4000.0
    MIN_MAX_OBSTACLES = 1
    MAX_MAX_OBSTACLES = 100
    MIN_QUESTION_COUNT = 1
    MAX_QUESTION_COUNT = 100

    # Keys accepted in the "game" section of config.json
    GAME_CONFIG_KEYS = (
        'field_width', 'field_height', 'tick_rate', 'speed', 'obstacle_speed',
        'character_size', 'obstacle_size', 'character_start_x', 'spawn_mode',
        'spawn_probability', 'spawn_distance', 'spawn_band_height', 'max_obstacles',
        'cleanup_margin'
    )
    QUESTION_CONFIG_KEYS = ('question_directory', 'question_bank', 'random_order', 'question_count')

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = GameSettings()

    def get_game_settings(self) -> GameSettings:
        """
        Get current game settings.

        Returns:
            Copy of the GameSettings with current configuration
        """
        return replace(self._settings)

    def _success(self, message: str, user_message: str) -> Dict[str, Any]:
        self.logger.info(message)
        return {
            'success': True,
            'message': message,
            'user_message': user_message
        }

    def _failure(self, error_msg: str, user_message: str) -> Dict[str, Any]:
        self.logger.error(error_msg)
        return {
            'success': False,
            'error': error_msg,
            'user_message': user_message
        }

    def _set_number(
        self,
        attribute: str,
        label: str,
        value: Any,
        minimum: float,
        maximum: float,
        integer: bool = False
    ) -> Dict[str, Any]:
        """
        Validate and store a numeric setting.

        Args:
            attribute: GameSettings field name
            label: Human-readable name for messages
            value: Proposed value
            minimum: Smallest accepted value (inclusive)
            maximum: Largest accepted value (inclusive)
            integer: Whether only integers are accepted

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        accepted_types = (int,) if integer else (int, float)
        if isinstance(value, bool) or not isinstance(value, accepted_types):
            expected = "an integer" if integer else "a number"
            return self._failure(
                f"{label} must be {expected}, got {type(value).__name__}",
                f"❌ Invalid input: Expected {expected}, got {type(value).__name__}"
            )

        if value < minimum:
            return self._failure(
                f"{label} must be at least {minimum}",
                f"❌ {label} too small: Minimum is {minimum}"
            )

        if value > maximum:
            return self._failure(
                f"{label} cannot exceed {maximum}",
                f"❌ {label} too large: Maximum is {maximum}"
            )

        setattr(self._settings, attribute, value if integer else float(value))
        return self._success(f"{label} set to {value}", f"✅ {label} set to {value}")

    def set_field_size(self, width: int, height: int) -> Dict[str, Any]:
        """
        Set the playable field dimensions.

        Both dimensions are validated before either is stored.
        """
        previous = (self._settings.field_width, self._settings.field_height)
        result = self._set_number('field_width', "Field width", width,
                                  self.MIN_FIELD_DIMENSION, self.MAX_FIELD_DIMENSION, integer=True)
        if not result['success']:
            return result
        result = self._set_number('field_height', "Field height", height,
                                  self.MIN_FIELD_DIMENSION, self.MAX_FIELD_DIMENSION, integer=True)
        if not result['success']:
            self._settings.field_width, self._settings.field_height = previous
            return result
        if self._settings.spawn_band_height > height:
            self._settings.spawn_band_height = float(height)
        return self._success(f"Field size set to {width}x{height}", f"✅ Field size set to {width}x{height}")

    def set_tick_rate(self, tick_rate: int) -> Dict[str, Any]:
        """Set the number of simulation ticks per second."""
        return self._set_number('tick_rate', "Tick rate", tick_rate,
                                self.MIN_TICK_RATE, self.MAX_TICK_RATE, integer=True)

    def set_speed(self, speed: float) -> Dict[str, Any]:
        """Set the character's horizontal speed in units per second."""
        return self._set_number('speed', "Speed", speed, self.MIN_SPEED, self.MAX_SPEED)

    def set_obstacle_speed(self, speed: float) -> Dict[str, Any]:
        """Set how fast obstacles drift toward the character in units per second."""
        return self._set_number('obstacle_speed', "Obstacle speed", speed, 0.0, self.MAX_SPEED)

    def set_character_size(self, size: float) -> Dict[str, Any]:
        return self._set_number('character_size', "Character size", size,
                                self.MIN_ENTITY_SIZE, self.MAX_ENTITY_SIZE)

    def set_obstacle_size(self, size: float) -> Dict[str, Any]:
        return self._set_number('obstacle_size', "Obstacle size", size,
                                self.MIN_ENTITY_SIZE, self.MAX_ENTITY_SIZE)

    def set_character_start_x(self, x: float) -> Dict[str, Any]:
        return self._set_number('character_start_x', "Character start x", x, 0.0, self.MAX_DISTANCE)

    def set_spawn_probability(self, probability: float) -> Dict[str, Any]:
        """Set the per-tick spawn chance used by the probabilistic policy."""
        return self._set_number('spawn_probability', "Spawn probability", probability, 0.0, 1.0)

    def set_spawn_distance(self, distance: float) -> Dict[str, Any]:
        """Set how far ahead of the character new obstacles appear."""
        return self._set_number('spawn_distance', "Spawn distance", distance, 0.0, self.MAX_DISTANCE)

    def set_spawn_band_height(self, height: float) -> Dict[str, Any]:
        return self._set_number('spawn_band_height', "Spawn band height", height,
                                0.0, float(self._settings.field_height))

    def set_max_obstacles(self, count: int) -> Dict[str, Any]:
        return self._set_number('max_obstacles', "Max obstacles", count,
                                self.MIN_MAX_OBSTACLES, self.MAX_MAX_OBSTACLES, integer=True)

    def set_cleanup_margin(self, margin: float) -> Dict[str, Any]:
        """Set how far behind the character an obstacle may fall before removal."""
        return self._set_number('cleanup_margin', "Cleanup margin", margin, 0.0, self.MAX_DISTANCE)

    def set_spawn_mode(self, mode: Union[str, SpawnMode]) -> Dict[str, Any]:
        """
        Set the obstacle spawn policy.

        Args:
            mode: "single_slot", "probabilistic" or a SpawnMode member

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(mode, SpawnMode):
            self._settings.spawn_mode = mode
            return self._success(f"Spawn mode set to {mode.value}", f"✅ Spawn mode set to {mode.value}")

        if not isinstance(mode, str):
            return self._failure(
                f"Spawn mode must be a string, got {type(mode).__name__}",
                f"❌ Invalid input: Expected a spawn mode name, got {type(mode).__name__}"
            )

        try:
            spawn_mode = SpawnMode(mode.strip().lower())
        except ValueError:
            valid_modes = ", ".join(m.value for m in SpawnMode)
            return self._failure(
                f"Unknown spawn mode: {mode}",
                f"❌ Unknown spawn mode '{mode}'. Choose one of: {valid_modes}"
            )

        self._settings.spawn_mode = spawn_mode
        return self._success(f"Spawn mode set to {spawn_mode.value}", f"✅ Spawn mode set to {spawn_mode.value}")

    def get_spawn_mode(self) -> SpawnMode:
        return self._settings.spawn_mode

    def set_question_count(self, count: Optional[int]) -> Dict[str, Any]:
        """
        Set the number of questions drawn into the bank.

        Args:
            count: Number of questions, or None to use all questions
        """
        if count is None:
            self._settings.question_count = None
            return self._success(
                "Question count set to use all available questions",
                "✅ Will use all available questions from the bank"
            )
        return self._set_number('question_count', "Question count", count,
                                self.MIN_QUESTION_COUNT, self.MAX_QUESTION_COUNT, integer=True)

    def get_question_count(self) -> Optional[int]:
        return self._settings.question_count

    def set_random_order(self, random_order: bool) -> Dict[str, Any]:
        """
        Set whether the bank is shuffled when it is built.

        Args:
            random_order: True for random order, False for sequential
        """
        if not isinstance(random_order, bool):
            return self._failure(
                f"Random order must be a boolean, got {type(random_order).__name__}",
                f"❌ Invalid input: Expected true/false, got {type(random_order).__name__}"
            )

        self._settings.random_order = random_order
        order_type = "random" if random_order else "sequential"
        return self._success(
            f"Question order set to {order_type}",
            f"✅ Questions will be presented in {order_type} order"
        )

    def get_random_order(self) -> bool:
        return self._settings.random_order

    def set_question_bank(self, bank_name: Optional[str]) -> Dict[str, Any]:
        """
        Select the question bank by name, or None for the first bank found.
        """
        if bank_name is None:
            self._settings.question_bank = None
            return self._success(
                "Question bank set to first available",
                "✅ The first available question bank will be used"
            )

        if not isinstance(bank_name, str) or not bank_name.strip():
            return self._failure(
                f"Question bank must be a non-empty string, got {bank_name!r}",
                "❌ Question bank name cannot be empty"
            )

        self._settings.question_bank = bank_name.strip()
        return self._success(
            f"Question bank set to {self._settings.question_bank}",
            f"✅ Question bank set to {self._settings.question_bank}"
        )

    def set_question_directory(self, directory: str) -> Dict[str, Any]:
        """
        Set the directory path for question bank files with validation.

        Args:
            directory: Path to question files directory
        """
        if not isinstance(directory, str):
            return self._failure(
                f"Question directory must be a string, got {type(directory).__name__}",
                f"❌ Invalid input: Expected a path string, got {type(directory).__name__}"
            )

        if not directory.strip():
            return self._failure("Question directory cannot be empty", "❌ Directory path cannot be empty")

        try:
            normalized_path = str(Path(directory).resolve())
        except (OSError, ValueError) as e:
            return self._failure(
                f"Invalid directory path format: {e}",
                f"❌ Invalid path format: {directory}"
            )

        # Refuse system directories
        system_dirs = ['/bin', '/usr', '/etc', '/sys', '/proc', 'C:\\Windows', 'C:\\Program Files']
        if any(normalized_path.startswith(sys_dir) for sys_dir in system_dirs):
            return self._failure(
                f"Cannot use system directory: {normalized_path}",
                f"❌ Cannot use system directory: {directory}"
            )

        self._settings.question_directory = normalized_path
        return self._success(
            f"Question directory set to {normalized_path}",
            f"✅ Question directory set to {normalized_path}"
        )

    def get_question_directory(self) -> str:
        return self._settings.question_directory

    def apply_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply the "game" and "questions" sections of a loaded config.json.

        Invalid or unknown keys are reported and skipped; the remaining keys are
        still applied.

        Args:
            config: Parsed configuration dictionary

        Returns:
            Dictionary with success flag, applied keys and error messages
        """
        applied: List[str] = []
        errors: List[str] = []

        if not isinstance(config, dict):
            errors.append(f"Configuration must be an object, got {type(config).__name__}")
            self.logger.error(errors[0])
            return {'success': False, 'applied': applied, 'errors': errors}

        sections = {}
        for section_name in ('game', 'questions'):
            section = config.get(section_name)
            if section is None:
                section = {}
            elif not isinstance(section, dict):
                errors.append(f"{section_name} section must be an object, got {type(section).__name__}")
                self.logger.error(errors[-1])
                section = {}
            sections[section_name] = section
        game_config = sections['game']
        question_config = sections['questions']

        setters = {
            'tick_rate': self.set_tick_rate,
            'speed': self.set_speed,
            'obstacle_speed': self.set_obstacle_speed,
            'character_size': self.set_character_size,
            'obstacle_size': self.set_obstacle_size,
            'character_start_x': self.set_character_start_x,
            'spawn_mode': self.set_spawn_mode,
            'spawn_probability': self.set_spawn_probability,
            'spawn_distance': self.set_spawn_distance,
            'spawn_band_height': self.set_spawn_band_height,
            'max_obstacles': self.set_max_obstacles,
            'cleanup_margin': self.set_cleanup_margin,
            'question_directory': self.set_question_directory,
            'question_bank': self.set_question_bank,
            'random_order': self.set_random_order,
            'question_count': self.set_question_count,
        }

        # Field size first so the band height check sees the configured field
        if 'field_width' in game_config or 'field_height' in game_config:
            result = self.set_field_size(
                game_config.get('field_width', self._settings.field_width),
                game_config.get('field_height', self._settings.field_height)
            )
            if result['success']:
                applied.extend(key for key in ('field_width', 'field_height') if key in game_config)
            else:
                errors.append(result['error'])

        for section_name, section, allowed in (
            ('game', game_config, self.GAME_CONFIG_KEYS),
            ('questions', question_config, self.QUESTION_CONFIG_KEYS),
        ):
            for key, value in section.items():
                if section_name == 'game' and key in ('field_width', 'field_height'):
                    continue
                if key not in allowed:
                    errors.append(f"Unknown {section_name} setting: {key}")
                    self.logger.warning(f"Ignoring unknown {section_name} setting: {key}")
                    continue
                result = setters[key](value)
                if result['success']:
                    applied.append(key)
                else:
                    errors.append(result['error'])

        self.logger.info(f"Applied {len(applied)} configuration settings with {len(errors)} errors")
        return {'success': not errors, 'applied': applied, 'errors': errors}

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = GameSettings()
        self.logger.info("All settings reset to default values")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }
        settings = self._settings

        def check(condition: bool, issue: str) -> None:
            if not condition:
                validation_result["valid"] = False
                validation_result["issues"].append(issue)

        check(self.MIN_FIELD_DIMENSION <= settings.field_width <= self.MAX_FIELD_DIMENSION,
              f"Invalid field width: {settings.field_width}")
        check(self.MIN_FIELD_DIMENSION <= settings.field_height <= self.MAX_FIELD_DIMENSION,
              f"Invalid field height: {settings.field_height}")
        check(isinstance(settings.tick_rate, int) and
              self.MIN_TICK_RATE <= settings.tick_rate <= self.MAX_TICK_RATE,
              f"Invalid tick rate: {settings.tick_rate}")
        check(self.MIN_SPEED <= settings.speed <= self.MAX_SPEED,
              f"Invalid speed: {settings.speed}")
        check(0.0 <= settings.spawn_probability <= 1.0,
              f"Invalid spawn probability: {settings.spawn_probability}")
        check(isinstance(settings.spawn_mode, SpawnMode),
              f"Invalid spawn mode: {settings.spawn_mode}")
        check(settings.question_count is None or
              self.MIN_QUESTION_COUNT <= settings.question_count <= self.MAX_QUESTION_COUNT,
              f"Invalid question count: {settings.question_count}")
        check(isinstance(settings.random_order, bool),
              f"Invalid random order setting: {settings.random_order}")
        check(isinstance(settings.question_directory, str) and bool(settings.question_directory.strip()),
              f"Invalid question directory: {settings.question_directory}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        settings = self._settings
        question_count_str = (
            str(settings.question_count)
            if settings.question_count is not None
            else "all available"
        )
        order_str = "random" if settings.random_order else "sequential"
        bank_str = settings.question_bank or "first available"

        return (
            f"Game Settings:\n"
            f"• Field: {settings.field_width}x{settings.field_height} at {settings.tick_rate} ticks/s\n"
            f"• Speed: {settings.speed} units/s\n"
            f"• Spawning: {settings.spawn_mode.value} "
            f"(probability {settings.spawn_probability}, distance {settings.spawn_distance})\n"
            f"• Questions: {question_count_str}, {order_str} order, bank {bank_str}\n"
            f"• Question Directory: {settings.question_directory}"
        )

    def get_user_friendly_validation_errors(self) -> List[str]:
        """
        Get user-friendly validation error messages for current settings.

        Returns:
            List of user-friendly error messages
        """
        user_friendly_errors = []

        for issue in self.validate_settings().get("issues", []):
            if "question count" in issue.lower():
                user_friendly_errors.append(
                    f"❌ Question Count Issue: {issue}. "
                    f"Please set a value between {self.MIN_QUESTION_COUNT} and {self.MAX_QUESTION_COUNT}."
                )
            elif "tick rate" in issue.lower():
                user_friendly_errors.append(
                    f"❌ Tick Rate Issue: {issue}. "
                    f"Please set a value between {self.MIN_TICK_RATE} and {self.MAX_TICK_RATE}."
                )
            elif "question directory" in issue.lower():
                user_friendly_errors.append(
                    f"❌ Question Directory Issue: {issue}. "
                    "Please check the directory path and permissions."
                )
            else:
                user_friendly_errors.append(f"❌ Configuration Issue: {issue}")

        return user_friendly_errors

    def get_configuration_health_check(self) -> Dict[str, Any]:
        """
        Perform a health check of the configuration.

        Returns:
            Dictionary with health status, warnings, errors and recommendations
        """
        health_check = {
            'healthy': True,
            'warnings': [],
            'errors': [],
            'recommendations': []
        }
        settings = self._settings

        if not self.validate_settings()['valid']:
            health_check['healthy'] = False
            health_check['errors'].extend(self.get_user_friendly_validation_errors())

        question_dir = Path(settings.question_directory)
        if not question_dir.exists():
            health_check['warnings'].append(
                f"⚠️ Question directory does not exist: {settings.question_directory}"
            )
            health_check['recommendations'].append(
                "The question directory will be created automatically when loading question banks."
            )
        elif not os.access(question_dir, os.R_OK):
            health_check['healthy'] = False
            health_check['errors'].append(
                f"❌ Cannot read question directory: {settings.question_directory}"
            )

        collision_radius = (settings.character_size + settings.obstacle_size) / 2
        if settings.spawn_distance <= collision_radius:
            health_check['warnings'].append(
                f"⚠️ Spawn distance ({settings.spawn_distance}) is inside the collision radius "
                f"({collision_radius}); new obstacles will collide immediately"
            )
            health_check['recommendations'].append(
                "Use a spawn distance larger than the character and obstacle sizes combined."
            )

        step = relative_closing_speed(settings) / settings.tick_rate if settings.tick_rate > 0 else 0.0
        if step >= 2 * collision_radius:
            health_check['warnings'].append(
                f"⚠️ The gap to an obstacle shrinks by {step:.1f} per tick, more than the collision "
                f"diameter ({2 * collision_radius}); collisions can be skipped"
            )
            health_check['recommendations'].append(
                "Raise the tick rate or lower the speeds so each tick moves less than the entity sizes."
            )

        if settings.cleanup_margin < settings.obstacle_size:
            health_check['warnings'].append(
                f"⚠️ Cleanup margin ({settings.cleanup_margin}) is smaller than the obstacle size; "
                "obstacles may vanish while still visible"
            )

        return health_check
