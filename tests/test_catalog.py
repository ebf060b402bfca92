from __future__ import annotations

import random
from typing import Any, Dict, List, Optional

import pytest
import requests

from catalog import CatalogClient, CatalogQuery, build_book, cover_url, describe_doc
from shelf import WANT_TO_READ


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, json_error: bool = False):
        self.payload = payload
        self.status_code = status_code
        self.json_error = json_error

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        if self.json_error:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeSession:
    def __init__(self, response: Optional[FakeResponse] = None, error: Optional[Exception] = None):
        self.response = response or FakeResponse({"docs": []})
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, params: Dict[str, str], timeout: float) -> FakeResponse:
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


FULL_DOC = {
    "key": "/works/OL45804W",
    "title": "Fantastic Mr Fox",
    "author_name": ["Roald Dahl", "Quentin Blake"],
    "cover_i": 6498519,
    "first_publish_year": 1970,
    "subject": ["Animals", "Foxes"],
    "ratings_average": 4.1,
    "number_of_pages_median": 96,
}


def _client(session: FakeSession) -> CatalogClient:
    return CatalogClient(session=session, rng=random.Random(7))


def test_blank_query_is_not_searched() -> None:
    session = FakeSession()
    client = _client(session)
    assert client.search("") is None
    assert client.search("   ") is None
    assert session.calls == []


def test_search_sends_query_and_limit() -> None:
    session = FakeSession(FakeResponse({"docs": [FULL_DOC]}))
    books = _client(session).search("mr fox")

    assert len(books) == 1
    call = session.calls[0]
    assert call["url"] == "https://openlibrary.org/search.json"
    assert call["params"] == {"q": "mr fox", "limit": "20"}
    assert call["timeout"] > 0


def test_full_doc_mapping() -> None:
    book = build_book(FULL_DOC)

    assert book.id == "/works/OL45804W"
    assert book.title == "Fantastic Mr Fox"
    assert book.author == "Roald Dahl"
    assert book.cover == "https://covers.openlibrary.org/b/id/6498519-M.jpg"
    assert book.rating == pytest.approx(4.1)
    assert book.pages == 96
    assert not book.pages_estimated
    assert book.published_year == 1970
    assert book.genre == "Animals"
    assert book.status == WANT_TO_READ
    assert book.progress is None


def test_sparse_doc_defaults_and_estimated_pages() -> None:
    book = build_book({"key": "/works/OL1W", "title": "Sparse"}, rng=random.Random(1))

    assert book.author == "Unknown Author"
    assert book.cover is None
    assert book.rating == 0
    assert book.published_year == 2020
    assert book.genre == "Fiction"
    assert book.pages_estimated
    assert 100 <= book.pages <= 499


def test_rating_is_clamped() -> None:
    assert build_book({"key": "k", "ratings_average": 7.2}).rating == 5.0
    assert build_book({"key": "k", "ratings_average": -1}).rating == 0.0


def test_docs_without_key_are_skipped() -> None:
    session = FakeSession(FakeResponse({"docs": [{"title": "No key"}, FULL_DOC]}))
    books = _client(session).search("fox")
    assert [book.id for book in books] == ["/works/OL45804W"]


def test_results_are_capped_at_limit() -> None:
    docs = [dict(FULL_DOC, key=f"/works/OL{i}W") for i in range(30)]
    session = FakeSession(FakeResponse({"docs": docs}))
    assert len(_client(session).search("fox")) == 20


def test_no_matches_returns_empty_list() -> None:
    session = FakeSession(FakeResponse({"numFound": 0, "docs": []}))
    assert _client(session).search("asdkasdjasd") == []


def test_missing_docs_field_is_empty() -> None:
    session = FakeSession(FakeResponse({"numFound": 0}))
    assert _client(session).search("anything") == []


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(error=requests.ConnectionError("offline")),
        FakeSession(error=requests.Timeout("slow")),
        FakeSession(FakeResponse(status_code=503)),
        FakeSession(FakeResponse(json_error=True)),
        FakeSession(FakeResponse(["not", "an", "object"])),
        FakeSession(FakeResponse({"docs": "broken"})),
    ],
)
def test_failures_degrade_to_empty_results(session: FakeSession) -> None:
    assert _client(session).search("fox") == []


def test_cover_url_sizes() -> None:
    assert cover_url(42, "S") == "https://covers.openlibrary.org/b/id/42-S.jpg"
    assert cover_url(42) == "https://covers.openlibrary.org/b/id/42-M.jpg"
    assert cover_url(None) is None
    assert cover_url(0) is None
    assert cover_url("42") is None


def test_describe_doc_uses_thumbnail() -> None:
    result = describe_doc(FULL_DOC)
    assert result.thumbnail_url == "https://covers.openlibrary.org/b/id/6498519-S.jpg"
    assert result.author == "Roald Dahl"
    assert result.year == 1970
    assert result.subject == "Animals"

    bare = describe_doc({"key": "/works/OL2W", "title": "Bare"})
    assert bare.thumbnail_url is None
    assert bare.author == "Unknown Author"


def test_query_params() -> None:
    assert CatalogQuery(text="dune", limit=5).to_params() == {"q": "dune", "limit": "5"}


@pytest.mark.parametrize("value", [10**400, -(10**400), float("inf"), float("-inf"), float("nan")])
def test_out_of_range_numbers_fall_back_to_defaults(value: Any) -> None:
    doc = {
        "key": "/works/OL3W",
        "title": "Huge",
        "first_publish_year": value,
        "ratings_average": value,
        "number_of_pages_median": value,
    }
    book = build_book(doc, rng=random.Random(3))

    assert book.published_year == 2020
    assert book.rating == 0.0
    assert book.pages_estimated
    assert 100 <= book.pages <= 499
    assert book.cover is None
    assert describe_doc(doc).year is None


def test_oversized_number_in_response_still_maps() -> None:
    docs = [dict(FULL_DOC, first_publish_year=10**400), {"key": "/works/OL5W", "title": 42}]
    session = FakeSession(FakeResponse({"docs": docs}))
    books = _client(session).search("fox")

    assert [book.published_year for book in books] == [2020, 2020]
    assert books[1].title == ""


def test_lookup_rows_carry_thumbnail_and_book() -> None:
    session = FakeSession(FakeResponse({"docs": [{"title": "No key"}, FULL_DOC]}))
    rows = _client(session).lookup("fox")

    assert len(rows) == 1
    row = rows[0]
    assert row.key == "/works/OL45804W"
    assert row.thumbnail_url == "https://covers.openlibrary.org/b/id/6498519-S.jpg"
    assert row.book.cover == "https://covers.openlibrary.org/b/id/6498519-M.jpg"
    assert row.book.pages == 96
    assert _client(FakeSession()).lookup("  ") is None
