"""Reading and writing stats JSON and badge files."""

import json
from pathlib import Path
from typing import Optional

from loguru import logger

from .exceptions import DecodeError
from .models import Stats


class OutputHandler:
    """Handler for writing stats and badges."""

    @staticmethod
    def stats_to_json(stats: Stats) -> str:
        return json.dumps(stats.to_dict(), indent=2, ensure_ascii=False)

    @staticmethod
    def save_stats(stats: Stats, output_path: str) -> bool:
        """Save stats to a JSON file."""
        try:
            path = Path(output_path)
            path.parent.mkdir(parents=True, exist_ok=True)

            with open(path, 'w', encoding='utf-8') as f:
                f.write(OutputHandler.stats_to_json(stats) + '\n')

            logger.info(f"Saved stats for {stats.username} to {output_path}")
            return True

        except OSError as e:
            logger.error(f"Error saving stats to {output_path}: {e}")
            return False

    @staticmethod
    def save_badge(svg: str, output_path: str) -> bool:
        """Save a rendered SVG badge."""
        try:
            path = Path(output_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(svg, encoding='utf-8')

            logger.info(f"Saved badge to {output_path}")
            return True

        except OSError as e:
            logger.error(f"Error saving badge to {output_path}: {e}")
            return False


class InputHandler:
    """Handler for reading previously saved stats."""

    @staticmethod
    def load_stats(file_path: str) -> Optional[Stats]:
        """Load stats from a JSON file written by OutputHandler."""
        path = Path(file_path)
        if not path.exists():
            logger.error(f"Stats file does not exist: {file_path}")
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return Stats.from_dict(data)

        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in file {file_path}: {e}")
            return None
        except (KeyError, TypeError, ValueError, DecodeError) as e:
            logger.error(f"Unexpected stats format in {file_path}: {e}")
            return None
