"""
Question bank for the Quiz Runner game.
Handles item selection, ordering and index-normalized lookup.
"""
import logging
import random
from typing import List, Optional, Sequence, Tuple

from .models import QuizItem, GameSettings

logger = logging.getLogger(__name__)


def shuffle_items(items: List[QuizItem], rng: Optional[random.Random] = None) -> List[QuizItem]:
    """
    Shuffle quiz items randomly.

    Args:
        items: List of items to shuffle
        rng: Random source, module-level random if None

    Returns:
        New list with items in random order
    """
    shuffled = items.copy()
    (rng or random).shuffle(shuffled)
    return shuffled


def limit_item_count(items: List[QuizItem], count: int) -> List[QuizItem]:
    """
    Limit the number of items to the specified count.

    Note:
        If count is greater than available items, returns all items.
        If count is less than 1, returns empty list.
    """
    if count < 1:
        return []
    return items[:count]


def select_items(
    items: Sequence[QuizItem],
    settings: GameSettings,
    rng: Optional[random.Random] = None
) -> List[QuizItem]:
    """
    Select and order quiz items based on game settings.

    Args:
        items: Available quiz items
        settings: Game configuration settings
        rng: Random source used when random_order is enabled

    Returns:
        List of selected and ordered items

    Raises:
        ValueError: If items is empty
    """
    if not items:
        raise ValueError("Cannot select quiz items from empty list")

    selected_items = list(items)

    if settings.random_order:
        selected_items = shuffle_items(selected_items, rng)

    if settings.question_count is not None:
        selected_items = limit_item_count(selected_items, settings.question_count)

    return selected_items


class QuestionBank:
    """Fixed ordered sequence of quiz items. Lookups wrap modulo the bank length."""

    def __init__(self, items: Sequence[QuizItem]):
        if not items:
            raise ValueError("Question bank requires at least one item")
        self._items: Tuple[QuizItem, ...] = tuple(items)

    @classmethod
    def from_settings(
        cls,
        items: Sequence[QuizItem],
        settings: GameSettings,
        rng: Optional[random.Random] = None
    ) -> "QuestionBank":
        """Build a bank from loaded items, applying ordering and count settings."""
        bank = cls(select_items(items, settings, rng))
        logger.info(
            f"Question bank built with {bank.length()} items "
            f"({'random' if settings.random_order else 'sequential'} order)"
        )
        return bank

    def item_at(self, index: int) -> QuizItem:
        """Return the item at index, normalized modulo the bank length."""
        return self._items[index % len(self._items)]

    def length(self) -> int:
        return len(self._items)

    def next_index(self, index: int) -> int:
        return (index + 1) % len(self._items)

    @property
    def items(self) -> Tuple[QuizItem, ...]:
        return self._items

    def __len__(self) -> int:
        return len(self._items)
