"""Full-text search query builder.

Turns a raw search string from the search box into a PostgreSQL prefix-match
tsquery (``star:* & war:*``) and the ranked statement that matches it
against the generated ``movies.search`` column.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, List, Optional

from sqlalchemy import text
from sqlalchemy.sql.elements import TextClause

SEARCH_CONFIG = "english"

TOKEN_RE = re.compile(r"\w+", re.UNICODE)

SEARCH_SQL = """
SELECT m.id, m.title, m.year, m.genre, m.extract, m.thumbnail,
       ts_rank(m.search, q.query) AS rank
FROM movies AS m
CROSS JOIN to_tsquery(CAST(:config AS regconfig), :query) AS q(query)
WHERE m.search @@ q.query
ORDER BY rank DESC, m.title ASC, m.id ASC
"""


@dataclass(frozen=True)
class SearchResult:
    """One ranked row returned by a search."""

    id: int
    title: str
    year: int
    genre: Optional[str]
    extract: str
    thumbnail: Optional[str]
    rank: Optional[float] = None

    @classmethod
    def from_row(cls, row: Any) -> "SearchResult":
        m = row._mapping
        rank = m.get("rank")
        return cls(
            id=m["id"],
            title=m["title"],
            year=m["year"],
            genre=m["genre"],
            extract=m["extract"],
            thumbnail=m["thumbnail"],
            rank=float(rank) if rank is not None else None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "year": self.year,
            "genre": self.genre,
            "extract": self.extract,
            "thumbnail": self.thumbnail,
            "rank": self.rank,
        }


def tokenize(raw: Optional[str]) -> List[str]:
    """Split a raw query into lowercase word tokens.

    Tokens keep the order of their first appearance and duplicates are
    dropped. Anything that is not a word character (including the tsquery
    operators ``& | ! : * ( )``) acts as a separator.
    """
    if not raw:
        return []
    seen = set()
    tokens = []
    for match in TOKEN_RE.finditer(raw.lower()):
        token = match.group(0)
        if token not in seen:
            seen.add(token)
            tokens.append(token)
    return tokens


def to_prefix_tsquery(raw: Optional[str]) -> str:
    """Return a tsquery string where every token is an AND-ed prefix match."""
    return " & ".join(f"{token}:*" for token in tokenize(raw))


def build_search_query(
    raw: Optional[str],
    limit: Optional[int] = None,
    config: str = SEARCH_CONFIG,
) -> Optional[TextClause]:
    """Build the ranked full-text search statement for ``raw``.

    Args:
        raw: The user's search string.
        limit: Optional maximum number of rows.
        config: PostgreSQL text search configuration name.

    Returns:
        TextClause | None: The statement with its parameters bound, or None
        when ``raw`` contains no searchable tokens.
    """
    tsquery = to_prefix_tsquery(raw)
    if not tsquery:
        return None

    sql = SEARCH_SQL
    params = {"config": config, "query": tsquery}
    if limit is not None:
        if limit < 1:
            raise ValueError("limit must be a positive integer.")
        sql += "LIMIT :limit\n"
        params["limit"] = limit

    return text(sql).bindparams(**params)
