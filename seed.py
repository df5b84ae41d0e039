"""Seed the movies table from a JSON fixture.

Deletes existing movies and creates one row per fixture entry.

Usage:
    python seed.py                  # loads data/movies.json
    python seed.py --file other.json
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from app import create_app

logger = logging.getLogger(__name__)

BASEDIR = Path(__file__).parent.resolve()
DEFAULT_FIXTURE = BASEDIR / "data" / "movies.json"


def parse_movies_file(path: Path = DEFAULT_FIXTURE) -> List[Dict[str, Any]]:
    """Read the fixture file and return its list of movie entries.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not valid JSON or not a JSON array.
    """
    with open(path, encoding="utf-8") as fh:
        movies = json.load(fh)
    if not isinstance(movies, list):
        raise ValueError(f"{path} must contain a JSON array of movies.")
    return movies


def to_record(entry: Dict[str, Any]) -> Dict[str, Any]:
    """Map a fixture entry onto Movie fields; only the first genre is kept."""
    if not isinstance(entry, dict):
        raise ValueError(f"Movie entries must be JSON objects: {entry!r}.")
    genres = entry.get("genres") or []
    if not isinstance(genres, list):
        raise ValueError(f"Movie genres must be a list: {genres!r}.")
    return {
        "title": entry.get("title"),
        "year": entry.get("year"),
        "genre": genres[0] if genres else None,
        "extract": entry.get("extract"),
        "thumbnail": entry.get("thumbnail"),
    }


def seed(data_manager, movies: List[Dict[str, Any]]) -> int:
    """Replace the database contents with ``movies``.

    Args:
        data_manager: The app's DataManager.
        movies: Raw fixture entries.

    Returns:
        int: Number of movies created.
    """
    created = data_manager.replace_movies(to_record(entry) for entry in movies)
    logger.info("Database has been seeded. 🌱 (%d movies)", created)
    return created


def main(
    argv: Optional[List[str]] = None, config: Optional[Dict[str, Any]] = None
) -> int:
    parser = argparse.ArgumentParser(description="Seed the movies database.")
    parser.add_argument(
        "--file",
        type=Path,
        default=DEFAULT_FIXTURE,
        help="JSON fixture to load (default: data/movies.json)",
    )
    args = parser.parse_args(argv)

    try:
        movies = parse_movies_file(args.file)
        app = create_app(config)
        with app.app_context():
            seed(app.data_manager, movies)
    except (OSError, ValueError, SQLAlchemyError) as exc:
        logger.error("Seeding failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
