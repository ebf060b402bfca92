from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from catalog import CatalogClient, build_book
from config import config
from notifications import NotificationFeed
from search import SearchSession, SearchSnapshot
from shelf import STATUSES, Book, ShelfStore, seed_books
from shelf_view import SORT_KEYS, VIEW_MODES, ShelfView, shelf_summary

logger = logging.getLogger(__name__)

STATUS_PATTERN = "^(" + "|".join(STATUSES) + ")$"
SORT_PATTERN = "^(" + "|".join(SORT_KEYS) + ")$"
VIEW_MODE_PATTERN = "^(" + "|".join(VIEW_MODES) + ")$"


# -----------------------------------------------------------------------------
# Application setup
# -----------------------------------------------------------------------------

app = FastAPI(title="Personal Bookshelf", version="0.1.0")

if config.CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@dataclass
class BookshelfSession:
    """Everything one reader's bookshelf needs, kept in memory."""

    feed: NotificationFeed = field(default_factory=NotificationFeed)
    store: ShelfStore = field(init=False)
    view: ShelfView = field(default_factory=ShelfView)
    search: SearchSession = field(init=False)
    client: Optional[CatalogClient] = None

    def __post_init__(self) -> None:
        self.store = ShelfStore(seed_books(), notifier=self.feed)
        self.search = SearchSession(self.client or CatalogClient())

    def close(self) -> None:
        self.search.cancel()


def get_session() -> BookshelfSession:
    if not hasattr(get_session, "_instance"):
        get_session._instance = BookshelfSession()
    return get_session._instance  # type: ignore[attr-defined]


def get_static_dir() -> Path:
    return config.STATIC_DIR


@app.on_event("shutdown")
def _shutdown() -> None:
    session = getattr(get_session, "_instance", None)
    if isinstance(session, BookshelfSession):
        session.close()


# -----------------------------------------------------------------------------
# Pydantic models
# -----------------------------------------------------------------------------


class BookCreate(BaseModel):
    """Either the key of a row in the current search results or a raw catalog doc."""

    book_id: Optional[str] = Field(default=None, min_length=1)
    document: Optional[Dict[str, Any]] = None


class StatusPayload(BaseModel):
    book_id: str = Field(..., min_length=1)
    status: str = Field(..., pattern=STATUS_PATTERN)


class FavoritePayload(BaseModel):
    book_id: str = Field(..., min_length=1)


class ShelfPayload(BaseModel):
    active_shelf: Optional[str] = Field(default=None, pattern=STATUS_PATTERN)
    sort_key: Optional[str] = Field(default=None, pattern=SORT_PATTERN)
    view_mode: Optional[str] = Field(default=None, pattern=VIEW_MODE_PATTERN)


class SearchPayload(BaseModel):
    query: str = ""


class StatsResponse(BaseModel):
    reading: int
    finished: int
    want_to_read: int
    total_pages: int


class SearchResponse(BaseModel):
    status: str
    query: str
    results: List[Dict[str, Any]]


class NotificationOut(BaseModel):
    title: str
    description: str


# -----------------------------------------------------------------------------
# Helper utilities
# -----------------------------------------------------------------------------


def _serialize_book(book: Book, favorites: Optional[set] = None) -> Dict[str, Any]:
    record = asdict(book)
    record["favorite"] = book.id in (favorites or set())
    return record


def _search_response(snapshot: SearchSnapshot) -> SearchResponse:
    return SearchResponse(
        status=snapshot.status,
        query=snapshot.query,
        results=[asdict(row) for row in snapshot.results],
    )


def _book_to_add(payload: BookCreate, session: BookshelfSession) -> Book:
    if payload.book_id:
        row = session.search.snapshot().find(payload.book_id)
        if row is None or row.book is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not in the current search results")
        return row.book
    document = payload.document
    if not document:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Provide book_id or document")
    if not document.get("key"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Catalog document has no key")
    return build_book(document)


def _shelf_state(session: BookshelfSession) -> Dict[str, Any]:
    books = session.store.books()
    favorites = session.store.favorites()
    view = session.view
    info = view.shelf_info
    cards = view.cards(books, favorites)
    return {
        "active_shelf": view.active_shelf,
        "sort_key": view.sort_key,
        "view_mode": view.view_mode,
        "label": info.label,
        "description": info.description,
        "empty_message": info.empty_message if not cards else None,
        "shelves": shelf_summary(books),
        "books": cards,
    }


def _resolve_static(root: Path, relative: str) -> Optional[Path]:
    if not relative:
        return None
    base = root.resolve()
    candidate = (base / relative).resolve()
    if candidate != base and base not in candidate.parents:
        return None
    if not candidate.is_file():
        return None
    return candidate


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------


@app.get("/api/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/books")
def list_books(session: BookshelfSession = Depends(get_session)) -> List[Dict[str, Any]]:
    favorites = session.store.favorites()
    return [_serialize_book(book, favorites) for book in session.store.books()]


@app.post("/api/books", status_code=status.HTTP_201_CREATED)
def create_book(
    payload: BookCreate,
    response: Response,
    session: BookshelfSession = Depends(get_session),
) -> Dict[str, Any]:
    try:
        book, created = session.store.add_book(_book_to_add(payload, session))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if not created:
        response.status_code = status.HTTP_200_OK
    return {
        "book": _serialize_book(book, session.store.favorites()),
        "created": created,
    }


@app.post("/api/books/status")
def change_status(
    payload: StatusPayload,
    session: BookshelfSession = Depends(get_session),
) -> Dict[str, Any]:
    try:
        book = session.store.change_status(payload.book_id, payload.status)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if book is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
    return _serialize_book(book, session.store.favorites())


@app.get("/api/favorites")
def list_favorites(session: BookshelfSession = Depends(get_session)) -> List[str]:
    return sorted(session.store.favorites())


@app.post("/api/favorites/toggle")
def toggle_favorite(
    payload: FavoritePayload,
    session: BookshelfSession = Depends(get_session),
) -> Dict[str, Any]:
    favorite = session.store.toggle_favorite(payload.book_id)
    return {"book_id": payload.book_id, "favorite": favorite}


@app.get("/api/stats", response_model=StatsResponse)
def get_stats(session: BookshelfSession = Depends(get_session)) -> StatsResponse:
    return StatsResponse(**asdict(session.store.stats()))


@app.get("/api/shelf")
def get_shelf(session: BookshelfSession = Depends(get_session)) -> Dict[str, Any]:
    return _shelf_state(session)


@app.put("/api/shelf")
def update_shelf(
    payload: ShelfPayload,
    session: BookshelfSession = Depends(get_session),
) -> Dict[str, Any]:
    view = session.view
    try:
        if payload.active_shelf:
            view.set_active_shelf(payload.active_shelf)
        if payload.sort_key:
            view.set_sort_key(payload.sort_key)
        if payload.view_mode:
            view.set_view_mode(payload.view_mode)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return _shelf_state(session)


@app.get("/api/search", response_model=SearchResponse)
def get_search(session: BookshelfSession = Depends(get_session)) -> SearchResponse:
    return _search_response(session.search.snapshot())


@app.put("/api/search", response_model=SearchResponse)
def submit_search(
    payload: SearchPayload,
    session: BookshelfSession = Depends(get_session),
) -> SearchResponse:
    return _search_response(session.search.submit(payload.query))


@app.get("/api/notifications", response_model=List[NotificationOut])
def drain_notifications(session: BookshelfSession = Depends(get_session)) -> List[NotificationOut]:
    return [
        NotificationOut(title=item.title, description=item.description)
        for item in session.feed.drain()
    ]


@app.get("/", include_in_schema=False)
@app.get("/{full_path:path}", include_in_schema=False)
def serve_frontend(full_path: str = "", static_dir: Path = Depends(get_static_dir)) -> FileResponse:
    target = _resolve_static(static_dir, full_path)
    if target is not None:
        return FileResponse(target)
    index = static_dir / "index.html"
    if not index.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Front-end build not found")
    return FileResponse(index)


def main() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Server running on port %s", config.PORT)
    uvicorn.run(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
