"""
Pygame front-end for the Quiz Runner game.

The app only reads GameSnapshot values and turns mouse and keyboard input into
GameEvent objects for the controller; it never touches session state directly.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pygame

from .config_manager import ConfigManager
from .data_manager import DataManager
from .models import GameEvent, GamePhase, GameSettings, GameSnapshot
from .session_controller import GameController, GameControllerError

FPS = 60
FONT_NAME = None  # pygame default font

# Colors
BG_COLOR = (44, 62, 80)
FIELD_COLOR = (135, 206, 235)
GROUND_COLOR = (110, 180, 210)
TEXT_COLOR = (255, 255, 255)
DARK_TEXT_COLOR = (30, 30, 30)
CHARACTER_COLOR = (231, 76, 60)
CHARACTER_BORDER = (192, 57, 43)
OBSTACLE_COLOR = (255, 255, 255)
OBSTACLE_BORDER = (34, 34, 34)
PENDING_BORDER = (241, 196, 15)
BUTTON_COLOR = (231, 76, 60)
OPTION_COLOR = (52, 152, 219)
MODAL_COLOR = (40, 40, 50)
MODAL_BORDER = (100, 100, 110)
GAME_OVER_COLOR = (255, 70, 70)


def setup_logging(level: int = logging.INFO, log_directory: str = "logs") -> logging.Logger:
    """Set up console and file logging for the game."""
    logs_dir = Path(log_directory)
    logs_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(logs_dir / "game.log", encoding='utf-8'),
        ]
    )

    error_handler = logging.FileHandler(logs_dir / "errors.log", encoding='utf-8')
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    logging.getLogger().addHandler(error_handler)

    return logging.getLogger(__name__)


logger = logging.getLogger(__name__)


class Button:
    """A clickable rectangle that produces a GameEvent."""

    def __init__(self, rect, text: str, event: GameEvent, color=BUTTON_COLOR):
        self.rect = pygame.Rect(rect)
        self.text = text
        self.event = event
        self.color = color

    def draw(self, surf: pygame.Surface, font: pygame.font.Font) -> None:
        pygame.draw.rect(surf, self.color, self.rect, border_radius=8)
        txt = font.render(self.text, True, TEXT_COLOR)
        surf.blit(txt, txt.get_rect(center=self.rect.center))

    def hit(self, pos: Tuple[int, int]) -> bool:
        return self.rect.collidepoint(pos)


def wrap_text(text: str, max_width: int, font: pygame.font.Font) -> List[str]:
    words = text.split(' ')
    lines = []
    cur = ''
    for w in words:
        test = cur + (' ' if cur else '') + w
        if font.size(test)[0] <= max_width:
            cur = test
        else:
            if cur:
                lines.append(cur)
            cur = w
    if cur:
        lines.append(cur)
    return lines


class GameApp:
    """Window, input translation and rendering around a GameController."""

    def __init__(self, controller: GameController, surface: Optional[pygame.Surface] = None):
        """
        Initialize pygame and the display.

        Args:
            controller: The session controller to drive
            surface: Target surface; a window is opened if None
        """
        pygame.init()
        self.controller = controller
        self.settings: GameSettings = controller.settings
        self.width = self.settings.field_width
        self.height = self.settings.field_height

        if surface is None:
            surface = pygame.display.set_mode((self.width, self.height))
            pygame.display.set_caption('Quiz Runner')
        self.screen = surface
        self.clock = pygame.time.Clock()
        self.font = pygame.font.Font(FONT_NAME, 24)
        self.large_font = pygame.font.Font(FONT_NAME, 44)
        self.running = False

    # ------------------------
    # Layout & input
    # ------------------------
    def camera_offset(self, snapshot: GameSnapshot) -> float:
        """World x shown at the left edge; keeps the character at its start x on screen."""
        return snapshot.character_position[0] - self.settings.character_start_x

    def world_to_screen(self, x: float, y: float, snapshot: GameSnapshot) -> Tuple[int, int]:
        return int(x - self.camera_offset(snapshot)), int(y)

    def modal_rect(self) -> pygame.Rect:
        box_w = min(620, self.width - 40)
        box_h = min(380, self.height - 40)
        return pygame.Rect((self.width - box_w) // 2, (self.height - box_h) // 2, box_w, box_h)

    def layout_buttons(self, snapshot: GameSnapshot) -> List[Button]:
        """Buttons available in the current phase."""
        center_x = self.width // 2

        if snapshot.phase is GamePhase.IDLE:
            return [Button((center_x - 100, self.height // 2 + 40, 200, 50), "Start Game", GameEvent.start())]

        if snapshot.phase is GamePhase.QUIZ and snapshot.active_item is not None:
            r = self.modal_rect()
            question_lines = wrap_text(snapshot.active_item.text, r.w - 40, self.font)
            y = r.y + 80 + len(question_lines) * (self.font.get_linesize() + 6)
            return [
                Button((r.x + 20, y + i * 52, r.w - 40, 44), f"{i + 1}. {option}",
                       GameEvent.answer(i), color=OPTION_COLOR)
                for i, option in enumerate(snapshot.active_item.options)
            ]

        if snapshot.phase is GamePhase.GAME_OVER:
            r = self.modal_rect()
            return [
                Button((center_x - 110, r.bottom - 130, 220, 50), "Play Again", GameEvent.start()),
                Button((center_x - 110, r.bottom - 70, 220, 50), "Menu", GameEvent.reset(),
                       color=MODAL_BORDER),
            ]

        return []

    def translate_event(self, event: pygame.event.Event, snapshot: GameSnapshot) -> Optional[GameEvent]:
        """
        Map a pygame event to a GameEvent for the current phase, or None.
        """
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            for button in self.layout_buttons(snapshot):
                if button.hit(event.pos):
                    return button.event
            return None

        if event.type != pygame.KEYDOWN:
            return None

        if event.key == pygame.K_ESCAPE:
            return GameEvent.reset()

        if snapshot.phase in (GamePhase.IDLE, GamePhase.GAME_OVER):
            if event.key in (pygame.K_SPACE, pygame.K_RETURN):
                return GameEvent.start()

        if snapshot.phase is GamePhase.QUIZ and snapshot.active_item is not None:
            if pygame.K_1 <= event.key <= pygame.K_9:
                index = event.key - pygame.K_1
                if index < len(snapshot.active_item.options):
                    return GameEvent.answer(index)

        return None

    def process_events(self) -> bool:
        """
        Drain the pygame event queue, dispatching one GameEvent at a time.

        Returns:
            False when the window was closed
        """
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False
            game_event = self.translate_event(event, self.controller.snapshot())
            if game_event is not None:
                self.controller.dispatch(game_event)
        return True

    # ------------------------
    # Drawing
    # ------------------------
    def draw(self, snapshot: GameSnapshot) -> None:
        self.screen.fill(BG_COLOR)

        if snapshot.phase is GamePhase.IDLE:
            self.draw_menu()
        else:
            self.draw_field(snapshot)
            if snapshot.phase is GamePhase.QUIZ:
                self.draw_quiz(snapshot)
            elif snapshot.phase is GamePhase.GAME_OVER:
                self.draw_game_over(snapshot)

        self.draw_hud(snapshot)
        for button in self.layout_buttons(snapshot):
            button.draw(self.screen, self.font)

    def draw_menu(self) -> None:
        title = self.large_font.render('Quiz Runner', True, TEXT_COLOR)
        self.screen.blit(title, title.get_rect(center=(self.width // 2, self.height // 2 - 60)))
        sub = self.font.render('Hit an enemy, answer a question to keep running', True, TEXT_COLOR)
        self.screen.blit(sub, sub.get_rect(center=(self.width // 2, self.height // 2 - 15)))

    def draw_field(self, snapshot: GameSnapshot) -> None:
        self.screen.fill(FIELD_COLOR)
        lane_y = int(self.settings.lane_y)
        half = int(snapshot.character_size // 2)
        pygame.draw.rect(self.screen, GROUND_COLOR, (0, lane_y + half, self.width, self.height - lane_y - half))

        for obstacle in snapshot.obstacles:
            sx, sy = self.world_to_screen(obstacle.x, obstacle.y, snapshot)
            radius = int(obstacle.size // 2)
            if sx + radius < 0 or sx - radius > self.width:
                continue
            border = PENDING_BORDER if obstacle.obstacle_id == snapshot.pending_obstacle_id else OBSTACLE_BORDER
            pygame.draw.circle(self.screen, OBSTACLE_COLOR, (sx, sy), radius)
            pygame.draw.circle(self.screen, border, (sx, sy), radius, width=3)

        cx, cy = self.world_to_screen(*snapshot.character_position, snapshot)
        pygame.draw.circle(self.screen, CHARACTER_COLOR, (cx, cy), half)
        pygame.draw.circle(self.screen, CHARACTER_BORDER, (cx, cy), half, width=2)

    def draw_hud(self, snapshot: GameSnapshot) -> None:
        hud = self.font.render(f'Score: {snapshot.score}', True, TEXT_COLOR)
        self.screen.blit(hud, (18, 16))

    def draw_overlay(self) -> pygame.Rect:
        overlay = pygame.Surface((self.width, self.height), pygame.SRCALPHA)
        overlay.fill((10, 10, 10, 180))
        self.screen.blit(overlay, (0, 0))
        r = self.modal_rect()
        pygame.draw.rect(self.screen, MODAL_COLOR, r, border_radius=10)
        pygame.draw.rect(self.screen, MODAL_BORDER, r, width=2, border_radius=10)
        return r

    def draw_quiz(self, snapshot: GameSnapshot) -> None:
        r = self.draw_overlay()
        title = self.large_font.render('Quiz Time!', True, TEXT_COLOR)
        self.screen.blit(title, title.get_rect(center=(r.centerx, r.y + 40)))

        y = r.y + 80
        for line in wrap_text(snapshot.active_item.text, r.w - 40, self.font):
            txt = self.font.render(line, True, TEXT_COLOR)
            self.screen.blit(txt, (r.x + 20, y))
            y += self.font.get_linesize() + 6

    def draw_game_over(self, snapshot: GameSnapshot) -> None:
        r = self.draw_overlay()
        title = self.large_font.render('Game Over!', True, GAME_OVER_COLOR)
        self.screen.blit(title, title.get_rect(center=(r.centerx, r.y + 50)))
        final = self.font.render(f'Final Score: {snapshot.final_score}', True, TEXT_COLOR)
        self.screen.blit(final, final.get_rect(center=(r.centerx, r.y + 110)))

    # ------------------------
    # Main loop
    # ------------------------
    def step(self, elapsed: float) -> bool:
        """Process input, advance the simulation and draw one frame."""
        if not self.process_events():
            return False
        self.controller.update(elapsed)
        self.draw(self.controller.snapshot())
        return True

    def run(self) -> None:
        self.running = True
        logger.info("Game loop started")
        try:
            while self.running:
                dt = self.clock.tick(FPS) / 1000.0
                self.running = self.step(dt)
                pygame.display.flip()
        finally:
            logger.info("Game loop stopped")
            pygame.quit()


def build_controller(config: Optional[Dict[str, Any]] = None) -> GameController:
    """
    Create managers from configuration, load question banks and build the controller.
    """
    config_manager = ConfigManager()
    if config:
        result = config_manager.apply_config(config)
        for error in result['errors']:
            logger.warning(f"Configuration problem: {error}")

    health = config_manager.get_configuration_health_check()
    for message in health['errors'] + health['warnings']:
        logger.warning(f"Configuration health: {message}")

    data_manager = DataManager(config_manager.get_question_directory())
    data_manager.load_bank_files()
    for error in data_manager.get_load_errors():
        logger.warning(f"Question loading problem: {error}")

    return GameController(data_manager, config_manager)


def run_game(config: Optional[Dict[str, Any]] = None) -> None:
    """Run the game with proper error handling."""
    try:
        controller = build_controller(config)
    except GameControllerError as e:
        logger.error(f"Cannot start game: {e}")
        raise

    logger.info("Starting Quiz Runner...")
    GameApp(controller).run()
