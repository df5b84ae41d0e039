"""Database models for Movies.

Defines the SQLAlchemy ORM model for Movie and a helper to initialize the
database within a Flask application. On PostgreSQL the ``movies`` table also
carries a generated ``search`` tsvector column (title + extract) with a GIN
index; the application never writes to it.
"""
from __future__ import annotations

import logging

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import DDL, event

from movie_search.fulltext import SEARCH_CONFIG

logger = logging.getLogger(__name__)

db = SQLAlchemy()


class Movie(db.Model):
    """Movie model storing a single seeded movie."""

    __tablename__ = "movies"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.Text, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    genre = db.Column(db.Text)
    extract = db.Column(db.Text, nullable=False, default="")
    thumbnail = db.Column(db.Text)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "year": self.year,
            "genre": self.genre,
            "extract": self.extract,
            "thumbnail": self.thumbnail,
        }

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"<Movie id={self.id} title={self.title!r} year={self.year}>"


SEARCH_VECTOR_DDL = f"""
ALTER TABLE movies
    ADD COLUMN IF NOT EXISTS search tsvector
        GENERATED ALWAYS AS (
            to_tsvector('{SEARCH_CONFIG}', coalesce(title, '') || ' ' || coalesce(extract, ''))
        ) STORED;
CREATE INDEX IF NOT EXISTS movies_search_idx ON movies USING GIN (search);
"""

search_vector_ddl = DDL(SEARCH_VECTOR_DDL).execute_if(dialect="postgresql")
event.listen(Movie.__table__, "after_create", search_vector_ddl)


def register_sqlite_functions(dbapi_connection, connection_record) -> None:
    """Add a Unicode-aware casefold() to SQLite, whose lower() only folds ASCII."""
    dbapi_connection.create_function(
        "casefold", 1, lambda value: value.casefold() if value else value,
        deterministic=True,
    )


def init_db(app: Flask) -> None:
    """Bind the SQLAlchemy db to the app and create tables if needed.

    Args:
        app: The Flask application to bind to.
    """
    db.init_app(app)
    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            event.listen(db.engine, "connect", register_sqlite_functions)
        db.create_all()
        logger.debug("Database ready (%s)", db.engine.dialect.name)
