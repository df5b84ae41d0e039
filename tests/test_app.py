import logging

import pytest
from sqlalchemy import text

from app import create_app, database_url, parse_limit
from models.models import db


def test_index_lists_movies(client):
    response = client.get("/")
    body = response.get_data(as_text=True)

    assert response.status_code == 200
    assert "<title>Movies</title>" in body
    assert "<table>" in body
    assert "Casablanca" in body
    assert "Vertigo" in body


def test_index_search(client):
    body = client.get("/?q=matrix").get_data(as_text=True)

    assert "The Matrix" in body
    assert "Casablanca" not in body
    assert 'value="matrix"' in body


def test_index_search_without_results_escapes_query(client):
    body = client.get("/?q=<script>").get_data(as_text=True)

    assert "No movies found for “&lt;script&gt;”" in body
    assert "<script>" not in body


def test_index_on_empty_database(app):
    body = app.test_client().get("/").get_data(as_text=True)

    assert "No movies found." in body


def test_api_movies_search(client):
    response = client.get("/api/movies?q=space+horror")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["query"] == "space horror"
    assert [m["title"] for m in payload["movies"]] == ["Alien"]
    assert payload["movies"][0]["year"] == 1979


def test_api_movies_limit(client):
    payload = client.get("/api/movies?limit=3").get_json()

    assert len(payload["movies"]) == 3


@pytest.mark.parametrize("limit", ["abc", "0", "-2"])
def test_api_movies_invalid_limit(client, limit):
    response = client.get(f"/api/movies?limit={limit}")

    assert response.status_code == 400
    assert "limit" in response.get_json()["error"]


def test_api_movie(client, data_manager):
    movie = data_manager.get_movies()[0]

    payload = client.get(f"/api/movies/{movie.id}").get_json()

    assert payload["title"] == movie.title
    assert client.get("/api/movies/99999").status_code == 404


def test_not_found_pages(client):
    response = client.get("/nope")
    assert response.status_code == 404
    assert "Page not found" in response.get_data(as_text=True)

    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.get_json() == {"error": "not found"}


def test_database_errors_show_empty_results(client):
    db.session.execute(text("DROP TABLE movies"))
    db.session.commit()

    response = client.get("/?q=alien")
    assert response.status_code == 200
    assert "No movies found for “alien”" in response.get_data(as_text=True)

    response = client.get("/api/movies?q=alien")
    assert response.status_code == 200
    assert response.get_json()["movies"] == []


def test_unexpected_errors_render_500_and_log_cause(client, seeded, monkeypatch, caplog):
    def broken(*args, **kwargs):
        raise RuntimeError("template store is gone")

    seeded.config["PROPAGATE_EXCEPTIONS"] = False
    monkeypatch.setattr(seeded.data_manager, "search_movies", broken)

    with caplog.at_level(logging.ERROR, logger="app"):
        response = client.get("/?q=alien")

    assert response.status_code == 500
    assert "Something went wrong" in response.get_data(as_text=True)
    record = next(r for r in caplog.records if r.name == "app")
    assert "template store is gone" in record.getMessage()
    assert isinstance(record.exc_info[1], RuntimeError)


def test_parse_limit():
    assert parse_limit(None, 100) == 100
    assert parse_limit("", 100) == 100
    assert parse_limit("7", 100) == 7
    assert parse_limit("500", 100) == 100
    with pytest.raises(ValueError):
        parse_limit("seven", 100)


def test_database_url_normalises_postgres_scheme(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db:5432/movies")

    assert database_url() == "postgresql://u:p@db:5432/movies"


def test_database_url_defaults_to_sqlite(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)

    assert database_url().startswith("sqlite:///")
    assert database_url().endswith("movies.sqlite3")


def test_create_app_config_overrides():
    app = create_app({"SQLALCHEMY_DATABASE_URI": "sqlite://", "SEARCH_RESULTS_LIMIT": 5})

    assert app.config["SEARCH_RESULTS_LIMIT"] == 5
    with app.app_context():
        assert db.engine.dialect.name == "sqlite"
