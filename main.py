#!/usr/bin/env python3
"""
Quiz Runner - Main Entry Point

Runs the game window. Settings are read from config.json.

Usage:
    python main.py

Configuration:
    1. Edit config.json to change field size, speed and spawning
    2. Put question banks (JSON) in the configured question directory
    3. Set QUIZ_RUNNER_CONFIG to use a different configuration file
"""

import sys
import os
import json
import logging
from pathlib import Path


def load_config():
    """Load configuration from config.json file."""
    config_path = Path(os.getenv('QUIZ_RUNNER_CONFIG', 'config.json'))

    if not config_path.exists():
        print(f"❌ Error: {config_path} not found!")
        print("Please create a config.json file next to main.py.")
        sys.exit(1)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
        return config
    except json.JSONDecodeError as e:
        print(f"❌ Error: Invalid JSON in {config_path}: {e}")
        sys.exit(1)
    except OSError as e:
        print(f"❌ Error loading {config_path}: {e}")
        sys.exit(1)


def setup_logging_from_config(config):
    """Set up logging based on configuration."""
    from quiz_runner.app import setup_logging

    log_config = config.get('logging', {})
    log_level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)
    setup_logging(log_level, log_config.get('log_directory', './logs/'))


def main():
    config = load_config()
    setup_logging_from_config(config)

    from quiz_runner.app import run_game
    run_game(config)


if __name__ == "__main__":
    try:
        print("🏃 Starting Quiz Runner...")
        main()
    except KeyboardInterrupt:
        print("\n👋 Game stopped by user")
    except Exception as e:
        print(f"❌ Failed to start game: {e}")
        sys.exit(1)
