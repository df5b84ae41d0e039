"""Movies
----------------
A Flask web application that lists movies in an HTML table and lets
visitors search them by title and extract.

Features:
    - List all seeded movies, ordered by title
    - Free-text search with prefix matching (PostgreSQL full-text search,
      substring matching on SQLite)
    - Minimal JSON API for the same listing and search
    - Jinja2 templates and custom error pages

Run locally:
    1) Create and activate a virtualenv
    2) pip install -e .
    3) Copy .env.example to .env and set DATABASE_URL (optional; defaults
       to a SQLite file under ./data)
    4) python seed.py
    5) python app.py
    6) Visit http://127.0.0.1:5000
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from flask import Flask, render_template, request

from data_manager.data_manager import DataManager
from models.models import db, init_db

# ---------------------------------------------------------------------------
# Flask app configuration
# ---------------------------------------------------------------------------

load_dotenv()  # Load environment variables from .env if present

BASEDIR = Path(__file__).parent.resolve()
DATA_DIR = BASEDIR / "data"

logger = logging.getLogger(__name__)


def database_url() -> str:
    """Return the configured database URL.

    Heroku-style ``postgres://`` URLs are rewritten to ``postgresql://``,
    which is the scheme SQLAlchemy understands.
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        DATA_DIR.mkdir(exist_ok=True)
        return f"sqlite:///{DATA_DIR / 'movies.sqlite3'}"
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def parse_limit(raw: Optional[str], maximum: int) -> int:
    """Parse the ``limit`` query parameter, capped at ``maximum``.

    Raises:
        ValueError: If ``raw`` is not a positive integer.
    """
    if raw is None or raw == "":
        return maximum
    try:
        limit = int(raw)
    except ValueError:
        raise ValueError("limit must be a positive integer.") from None
    if limit < 1:
        raise ValueError("limit must be a positive integer.")
    return min(limit, maximum)


def register_error_handlers(app: Flask) -> None:
    """Register error handlers for common HTTP errors.

    Args:
        app: The Flask application.
    """

    @app.errorhandler(404)
    def page_not_found(error):  # type: ignore[override]
        """Render a custom 404 page (JSON for API routes)."""
        if request.path.startswith("/api/"):
            return {"error": "not found"}, 404
        return render_template("404.html"), 404

    @app.errorhandler(500)
    def internal_error(error):  # type: ignore[override]
        """Render a custom 500 page."""
        original = getattr(error, "original_exception", None) or error
        logger.error(
            "Unhandled error on %s: %s", request.path, original, exc_info=original
        )
        return render_template("500.html"), 500


def register_routes(app: Flask) -> None:
    """Attach route functions to the app.

    Args:
        app: The Flask application.
    """

    @app.route("/", methods=["GET"])
    def index():
        """Home page: the search form and the table of movies.

        Query Parameters:
            q (str): Optional search text.

        Returns:
            Response: Rendered index template with the matching movies.
        """
        query = (request.args.get("q") or "").strip()
        movies = app.data_manager.search_movies(
            query, limit=app.config["SEARCH_RESULTS_LIMIT"]
        )
        return render_template("index.html", movies=movies, query=query)

    # --------------------------- Minimal JSON API ---------------------------
    @app.route("/api/movies", methods=["GET"])
    def api_movies():
        """Return movies matching ?q= (all movies when absent) as JSON."""
        query = (request.args.get("q") or "").strip()
        try:
            limit = parse_limit(
                request.args.get("limit"), app.config["SEARCH_RESULTS_LIMIT"]
            )
        except ValueError as exc:
            return {"error": str(exc)}, 400

        movies = app.data_manager.search_movies(query, limit=limit)
        return {"query": query, "movies": [m.to_dict() for m in movies]}, 200

    @app.route("/api/movies/<int:movie_id>", methods=["GET"])
    def api_movie(movie_id: int):
        """Return a single movie by id."""
        movie = app.data_manager.get_movie(movie_id)
        if not movie:
            return {"error": "movie not found"}, 404
        return movie.to_dict(), 200


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    """Application factory to create and configure the Flask app.

    Args:
        config: Optional overrides applied on top of the environment.

    Returns:
        Flask: The configured Flask application instance.
    """
    app = Flask(__name__, static_folder="static", template_folder="templates")

    # Configuration
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-secret-change-me")
    app.config["SEARCH_RESULTS_LIMIT"] = int(os.getenv("SEARCH_RESULTS_LIMIT", "100"))
    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    if config:
        app.config.update(config)
    if "SQLALCHEMY_DATABASE_URI" not in app.config:
        app.config["SQLALCHEMY_DATABASE_URI"] = database_url()

    configure_logging(app.config["LOG_LEVEL"])

    # Initialize DB and DataManager
    init_db(app)
    app.data_manager = DataManager(db)  # type: ignore[attr-defined]

    # Register error handlers
    register_error_handlers(app)

    # Register routes
    register_routes(app)

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
