"""DataManager
--------------
Provides a thin abstraction around SQLAlchemy ORM for reading and seeding
Movies. Centralizing DB access here keeps route functions simple.

Searching uses PostgreSQL full-text search when the database is Postgres and
falls back to case-insensitive substring matching on other engines (the
SQLite development database).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy import Text, and_, func, or_
from sqlalchemy.exc import SQLAlchemyError

from models.models import Movie
from movie_search.fulltext import SearchResult, build_search_query, tokenize

logger = logging.getLogger(__name__)

MovieRow = Union[Movie, SearchResult]


def _optional_text(record: Dict[str, Any], key: str) -> Optional[str]:
    value = record.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"Movie {key} must be a string: {value!r}.")
    return value


class DataManager:
    """High-level read and seed convenience methods for Movies."""

    def __init__(self, database):
        """Create a new DataManager.

        Args:
            database: The SQLAlchemy `db` object.
        """
        self.db = database

    @property
    def dialect(self) -> str:
        return self.db.engine.dialect.name

    # ------------------------- Reads -------------------------
    def get_movies(self, limit: Optional[int] = None) -> List[Movie]:
        """Return all movies ordered by title ascending."""
        query = Movie.query.order_by(Movie.title.asc(), Movie.id.asc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def get_movie(self, movie_id: int) -> Optional[Movie]:
        """Return a single movie by primary key."""
        return self.db.session.get(Movie, movie_id)

    def count_movies(self) -> int:
        return Movie.query.count()

    def search_movies(
        self, query: Optional[str], limit: Optional[int] = None
    ) -> List[MovieRow]:
        """Search movies by title and extract.

        Args:
            query: Raw text typed in the search box.
            limit: Optional maximum number of results.

        Returns:
            list: Every movie when the query has no words, otherwise the
            matching movies. On PostgreSQL the results are SearchResult rows
            ranked by relevance. Empty when nothing matches or when the
            database query fails.
        """
        tokens = tokenize(query)
        try:
            if not tokens:
                return self.get_movies(limit)
            if self.dialect == "postgresql":
                statement = build_search_query(query, limit=limit)
                rows = self.db.session.execute(statement).all()
                results = [SearchResult.from_row(row) for row in rows]
            else:
                results = self._search_like(tokens, limit)
        except SQLAlchemyError:
            self.db.session.rollback()
            logger.exception("Search %r failed; returning no movies", query)
            return []

        logger.debug(
            "Search %r (%s) returned %d movie(s)", query, self.dialect, len(results)
        )
        return results

    def _search_like(self, tokens: List[str], limit: Optional[int]) -> List[Movie]:
        if self.dialect == "sqlite":
            # SQLite's lower() only folds ASCII; casefold() is registered by init_db.
            title = func.casefold(Movie.title, type_=Text)
            extract = func.casefold(Movie.extract, type_=Text)
            conditions = [
                or_(
                    title.contains(token.casefold(), autoescape=True),
                    extract.contains(token.casefold(), autoescape=True),
                )
                for token in tokens
            ]
        else:
            conditions = [
                or_(
                    Movie.title.icontains(token, autoescape=True),
                    Movie.extract.icontains(token, autoescape=True),
                )
                for token in tokens
            ]
        query = Movie.query.filter(and_(*conditions)).order_by(
            Movie.title.asc(), Movie.id.asc()
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    # ------------------------- Seeding -----------------------
    @staticmethod
    def _validate(record: Dict[str, Any]) -> Dict[str, Any]:
        title = record.get("title")
        if title is not None and not isinstance(title, str):
            raise ValueError(f"Movie title must be a string: {title!r}.")
        title = (title or "").strip()
        if not title:
            raise ValueError("Movie title cannot be empty.")

        year = record.get("year")
        if isinstance(year, bool) or not isinstance(year, int):
            raise ValueError(f"Movie “{title}” has an invalid year: {year!r}.")

        return {
            "title": title,
            "year": year,
            "genre": _optional_text(record, "genre") or None,
            "extract": _optional_text(record, "extract") or "",
            "thumbnail": _optional_text(record, "thumbnail") or None,
        }

    def replace_movies(self, records: Iterable[Dict[str, Any]]) -> int:
        """Delete every movie and create one per record in one transaction.

        Args:
            records: Dicts with title, year, genre, extract, thumbnail.

        Returns:
            int: Number of movies created.

        Raises:
            ValueError: If a record has no string title, a non-integer year or a
                non-string genre, extract or thumbnail. The
                existing movies are left untouched.
        """
        movies = [Movie(**self._validate(record)) for record in records]

        try:
            deleted = Movie.query.delete()
            self.db.session.add_all(movies)
            self.db.session.commit()
        except SQLAlchemyError:
            self.db.session.rollback()
            logger.exception("Replacing movies failed; rolled back")
            raise

        logger.info("Deleted %d movie(s), created %d", deleted, len(movies))
        return len(movies)
