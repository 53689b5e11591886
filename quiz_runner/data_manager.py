"""
Data manager for JSON question bank files and quiz item validation.
"""
import json
import os
import logging
from typing import Any, Dict, List, Optional
from pathlib import Path

from .models import QuizItem


# Question set shipped with the game; used for the sample file and the in-memory fallback
DEFAULT_QUIZ_DATA = {
    "quiz": [
        {
            "question": "What is 2 + 2?",
            "options": ["3", "4", "5", "6"],
            "correct": 1
        },
        {
            "question": "What color do you get when you mix red and blue?",
            "options": ["Green", "Purple", "Orange", "Yellow"],
            "correct": 1
        },
        {
            "question": "How many days are in a week?",
            "options": ["5", "6", "7", "8"],
            "correct": 2
        },
        {
            "question": "What is the capital of France?",
            "options": ["London", "Berlin", "Paris", "Madrid"],
            "correct": 2
        },
        {
            "question": "What animal says 'meow'?",
            "options": ["Dog", "Cat", "Bird", "Fish"],
            "correct": 1
        }
    ]
}


class DataManager:
    """Manages loading and validation of JSON question bank files."""

    MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
    SAMPLE_BANK_NAME = "sample_bank"
    FALLBACK_BANK_NAME = "fallback_bank"

    def __init__(self, question_directory: str = "./questions/"):
        """
        Initialize DataManager with question directory path.

        Args:
            question_directory: Path to directory containing JSON bank files
        """
        self.question_directory = Path(question_directory)
        self.loaded_banks: Dict[str, List[QuizItem]] = {}
        self.logger = logging.getLogger(__name__)
        self.load_errors: List[str] = []
        self.fallback_bank_created = False

    def load_bank_files(self) -> Dict[str, List[QuizItem]]:
        """
        Load all JSON files from the question directory.

        Returns:
            Dictionary mapping bank names to lists of QuizItem objects
        """
        self.loaded_banks.clear()
        self.load_errors.clear()
        self.fallback_bank_created = False

        directory_result = self._ensure_question_directory()
        if not directory_result['success']:
            self.load_errors.append(directory_result['error'])
            return self._create_fallback_bank()

        try:
            json_files = sorted(self.question_directory.glob("*.json"))
        except OSError as e:
            self.load_errors.append(f"System error scanning {self.question_directory}: {e}")
            return self._create_fallback_bank()

        if not json_files:
            self.logger.warning(f"No JSON files found in {self.question_directory}")
            self.load_errors.append(f"No question files found in {self.question_directory}")
            return self._create_sample_bank()

        successful_loads = 0
        for json_file in json_files:
            load_result = self._load_bank_file_safely(json_file)
            if load_result['success']:
                successful_loads += 1
            else:
                self.load_errors.append(f"{json_file.name}: {load_result['error']}")

        if successful_loads == 0:
            self.logger.error("No question files could be loaded successfully")
            self.load_errors.append("All question files failed to load")
            return self._create_fallback_bank()

        self.logger.info(f"Successfully loaded {successful_loads} question banks")
        if self.load_errors:
            self.logger.warning(f"Encountered {len(self.load_errors)} loading errors")

        return self.loaded_banks

    def _load_single_file(self, file_path: Path) -> Optional[dict]:
        """
        Load and parse a single JSON file.

        Returns:
            Parsed JSON data or None if loading or validation failed
        """
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in {file_path}: {e}")
            return None
        except FileNotFoundError:
            self.logger.error(f"Question file not found: {file_path}")
            return None
        except OSError as e:
            self.logger.error(f"Failed to read question file {file_path}: {e}")
            return None

        if not self.validate_bank_structure(data):
            self.logger.error(f"Invalid question bank structure in {file_path}")
            return None
        return data

    def validate_bank_structure(self, data: Any) -> bool:
        """
        Validate that JSON data has the correct question bank structure.

        Expected structure:
        {
            "quiz": [
                {
                    "question": str,
                    "options": [str, str, ...],   # at least two
                    "correct": int                # index into options
                }
            ]
        }

        Args:
            data: Parsed JSON data to validate

        Returns:
            True if structure is valid, False otherwise
        """
        if not isinstance(data, dict):
            self.logger.error("Question bank data must be a JSON object")
            return False

        if "quiz" not in data:
            self.logger.error("Question bank data must contain a 'quiz' key")
            return False

        quiz_array = data["quiz"]
        if not isinstance(quiz_array, list):
            self.logger.error("'quiz' value must be an array")
            return False

        if not quiz_array:
            self.logger.error("Quiz array cannot be empty")
            return False

        for i, item_data in enumerate(quiz_array):
            if not isinstance(item_data, dict):
                self.logger.error(f"Question {i} must be an object")
                return False

            for required in ("question", "options", "correct"):
                if required not in item_data:
                    self.logger.error(f"Question {i} missing '{required}' field")
                    return False

            if not isinstance(item_data["question"], str) or not item_data["question"].strip():
                self.logger.error(f"Question {i} 'question' field must be a non-empty string")
                return False

            options = item_data["options"]
            if not isinstance(options, list) or len(options) < 2:
                self.logger.error(f"Question {i} 'options' field must be an array of at least two entries")
                return False

            if not all(isinstance(option, str) for option in options):
                self.logger.error(f"Question {i} options must all be strings")
                return False

            correct = item_data["correct"]
            if isinstance(correct, bool) or not isinstance(correct, int):
                self.logger.error(f"Question {i} 'correct' field must be an integer")
                return False

            if not 0 <= correct < len(options):
                self.logger.error(f"Question {i} 'correct' index {correct} is out of range")
                return False

        return True

    def _parse_items(self, bank_data: dict) -> List[QuizItem]:
        """
        Parse validated bank data into QuizItem objects.
        """
        return [
            QuizItem(
                text=item_data["question"],
                options=tuple(item_data["options"]),
                correct_index=item_data["correct"]
            )
            for item_data in bank_data["quiz"]
        ]

    def get_available_banks(self) -> List[str]:
        """
        Get list of available bank names (file stems), in load order.
        """
        return list(self.loaded_banks.keys())

    def get_bank_items(self, bank_name: str) -> Optional[List[QuizItem]]:
        """
        Retrieve the items of a specific bank.

        Args:
            bank_name: Name of the bank (without file extension)

        Returns:
            List of QuizItem objects, or None if bank not found
        """
        return self.loaded_banks.get(bank_name)

    def bank_exists(self, bank_name: str) -> bool:
        return bank_name in self.loaded_banks

    def get_bank_count(self) -> int:
        return len(self.loaded_banks)

    def get_item_count(self, bank_name: str) -> int:
        """
        Get the number of items in a specific bank, or 0 if bank not found.
        """
        items = self.get_bank_items(bank_name)
        return len(items) if items else 0

    def _ensure_question_directory(self) -> Dict[str, Any]:
        """
        Ensure the question directory exists and is readable.

        Returns:
            Dictionary with success status and error message if applicable
        """
        try:
            if not self.question_directory.exists():
                self.question_directory.mkdir(parents=True, exist_ok=True)
                self.logger.info(f"Created question directory: {self.question_directory}")

            if not self.question_directory.is_dir():
                return {
                    'success': False,
                    'error': f"Not a directory: {self.question_directory}"
                }

            if not os.access(self.question_directory, os.R_OK):
                return {
                    'success': False,
                    'error': f"Permission denied: Cannot read from {self.question_directory}"
                }

            return {'success': True}

        except PermissionError:
            return {
                'success': False,
                'error': f"Permission denied: Cannot access {self.question_directory}"
            }
        except OSError as e:
            return {
                'success': False,
                'error': f"System error accessing {self.question_directory}: {e}"
            }

    def _load_bank_file_safely(self, json_file: Path) -> Dict[str, Any]:
        """
        Load a single bank file, checking size and access first.

        Returns:
            Dictionary with success status and error message if applicable
        """
        try:
            if not os.access(json_file, os.R_OK):
                return {
                    'success': False,
                    'error': "Permission denied: Cannot read file"
                }

            file_size = json_file.stat().st_size
            if file_size > self.MAX_FILE_SIZE:
                return {
                    'success': False,
                    'error': f"File too large ({file_size / 1024 / 1024:.1f}MB). "
                             f"Maximum size is {self.MAX_FILE_SIZE / 1024 / 1024}MB"
                }

            bank_data = self._load_single_file(json_file)
            if bank_data is None:
                return {
                    'success': False,
                    'error': "Invalid JSON structure or validation failed"
                }

            items = self._parse_items(bank_data)
            bank_name = json_file.stem
            self.loaded_banks[bank_name] = items
            self.logger.info(f"Loaded question bank '{bank_name}' with {len(items)} items")

            return {'success': True}

        except OSError as e:
            return {
                'success': False,
                'error': f"System error: {e}"
            }

    def _create_sample_bank(self) -> Dict[str, List[QuizItem]]:
        """
        Write and load a sample bank file when the directory holds no bank files.
        """
        sample_file_path = self.question_directory / f"{self.SAMPLE_BANK_NAME}.json"
        try:
            if not sample_file_path.exists():
                with open(sample_file_path, 'w', encoding='utf-8') as f:
                    json.dump(DEFAULT_QUIZ_DATA, f, indent=2, ensure_ascii=False)
                self.logger.info(f"Created sample question bank file: {sample_file_path}")
        except OSError as e:
            self.logger.error(f"Failed to create sample question bank: {e}")
            self.load_errors.append(f"Failed to create sample question bank: {e}")
            return self._create_fallback_bank()

        items = self._parse_items(DEFAULT_QUIZ_DATA)
        self.loaded_banks[self.SAMPLE_BANK_NAME] = items
        self.logger.info(f"Loaded sample question bank with {len(items)} items")
        return self.loaded_banks

    def _create_fallback_bank(self) -> Dict[str, List[QuizItem]]:
        """
        Create the default bank in memory when file operations fail.
        """
        self.loaded_banks[self.FALLBACK_BANK_NAME] = self._parse_items(DEFAULT_QUIZ_DATA)
        self.fallback_bank_created = True
        self.logger.warning("Created fallback question bank due to file loading failures")
        return self.loaded_banks

    def get_load_errors(self) -> List[str]:
        return self.load_errors.copy()

    def has_load_errors(self) -> bool:
        return len(self.load_errors) > 0

    def is_fallback_bank_active(self) -> bool:
        """
        Check if the fallback bank was created due to loading failures.
        """
        return self.fallback_bank_created

    def get_loading_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the last loading operation.

        Returns:
            Dictionary with loading statistics and status
        """
        return {
            'total_banks': len(self.loaded_banks),
            'has_errors': self.has_load_errors(),
            'error_count': len(self.load_errors),
            'errors': self.get_load_errors(),
            'fallback_active': self.is_fallback_bank_active(),
            'question_directory': str(self.question_directory),
            'available_banks': list(self.loaded_banks.keys())
        }
