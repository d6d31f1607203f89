"""FastAPI server for the legal-text portal core.

Opens the corpus DuckDB database through ``CorpusStore`` and exposes the
facade operations as JSON endpoints for the portal frontend.

Usage:
    LEXCORPUS_DB=corpus_index/lexcorpus.duckdb uvicorn portal.api.server:app --port 8000
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, Field

from lexcorpus.config import MAX_GRAPH_DEPTH, MAX_SUGGEST_LIMIT, Settings
from lexcorpus.errors import CorpusError
from lexcorpus.facade import MAX_PAGE_SIZE, CorpusFacade
from lexcorpus.models import MAX_ARTICLE_REF_LEN
from lexcorpus.store import CorpusStore

log = logging.getLogger("lexcorpus.api")

# ---------------------------------------------------------------------------
# Globals
#
# IMPORTANT: DuckDB connections are NOT thread-safe. This server MUST run with
# a single uvicorn worker (the default) and all endpoints MUST remain async def
# so they execute on the single event loop thread.
# ---------------------------------------------------------------------------
_settings = Settings.from_env()
_facade: CorpusFacade | None = None

_STATUS_BY_CODE = {
    "not_found": 404,
    "bad_input": 400,
    "conflict": 409,
}


def _get_facade() -> CorpusFacade:
    """Get the corpus facade, raising 503 if the store is not open."""
    if _facade is None:
        raise HTTPException(status_code=503, detail="Corpus store not available")
    return _facade


def _http_error(exc: CorpusError) -> HTTPException:
    """Translate a core error into its external condition; internals stay hidden."""
    status = _STATUS_BY_CODE.get(exc.code, 500)
    if status == 500:
        log.error("internal corpus error: %s", exc)
        return HTTPException(status_code=500, detail="Internal error")
    return HTTPException(status_code=status, detail=exc.public_message)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ARG001
    global _facade  # noqa: PLW0603
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    store = CorpusStore(_settings.db_path, create_if_missing=True)
    _facade = CorpusFacade(store, delete_policy=_settings.delete_policy)
    log.info(
        "corpus store opened at %s (%d documents, delete policy %s)",
        _settings.db_path,
        store.count_documents(),
        _settings.delete_policy,
    )
    yield
    _facade = None
    store.close()


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Legal Corpus API",
    version="0.1.0",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(_settings.cors_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------
class RelationCreate(BaseModel):
    source_id: str = Field(min_length=1)
    target_id: str = Field(min_length=1)
    type: str
    note: str | None = Field(default=None, max_length=5000)
    article_source_num: str | None = Field(default=None, max_length=MAX_ARTICLE_REF_LEN)
    article_target_num: str | None = Field(default=None, max_length=MAX_ARTICLE_REF_LEN)
    date_effet: str | None = None


class RelationUpdate(BaseModel):
    type: str | None = None
    note: str | None = Field(default=None, max_length=5000)
    article_source_num: str | None = Field(default=None, max_length=MAX_ARTICLE_REF_LEN)
    article_target_num: str | None = Field(default=None, max_length=MAX_ARTICLE_REF_LEN)
    date_effet: str | None = None


# ---------------------------------------------------------------------------
# Routes: Health
# ---------------------------------------------------------------------------
@app.get("/api/health")
async def health():
    return {
        "status": "ok",
        "store_open": _facade is not None,
        "doc_count": _facade.store.count_documents() if _facade else 0,
    }


# ---------------------------------------------------------------------------
# Routes: Documents
# ---------------------------------------------------------------------------
@app.get("/api/documents")
async def list_documents(
    nature: str | None = Query(None),
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
):
    """Paginated document summaries, newest first."""
    facade = _get_facade()
    try:
        return facade.list_documents(nature=nature, status=status, page=page, limit=limit)
    except CorpusError as exc:
        raise _http_error(exc) from None


@app.post("/api/documents", status_code=201)
async def ingest_document(payload: dict[str, Any] = Body(...)):
    """Ingest one document with its sections and articles (all-or-nothing)."""
    facade = _get_facade()
    try:
        return facade.ingest(payload)
    except CorpusError as exc:
        raise _http_error(exc) from None


@app.delete("/api/documents/{doc_id}")
async def delete_document(doc_id: str):
    facade = _get_facade()
    try:
        return facade.delete_document(doc_id)
    except CorpusError as exc:
        raise _http_error(exc) from None


@app.get("/api/documents/{doc_id}/structure")
async def document_structure(doc_id: str):
    """Ordered section tree, unsectioned articles and quarantined duplicates."""
    facade = _get_facade()
    try:
        return facade.get_structure(doc_id)
    except CorpusError as exc:
        raise _http_error(exc) from None


@app.get("/api/documents/{doc_id}/relations")
async def document_relations(doc_id: str):
    facade = _get_facade()
    try:
        return facade.get_relations(doc_id)
    except CorpusError as exc:
        raise _http_error(exc) from None


@app.get("/api/documents/{doc_id}/relation-graph")
async def document_relation_graph(
    doc_id: str,
    max_depth: int | None = Query(None, ge=1, le=MAX_GRAPH_DEPTH),
):
    facade = _get_facade()
    try:
        return facade.relation_graph(doc_id, max_depth or _settings.graph_max_depth)
    except CorpusError as exc:
        raise _http_error(exc) from None


@app.post("/api/documents/{doc_id}/detect-relations")
async def document_detect_relations(doc_id: str):
    """Relation mentions found in the document text; nothing is written."""
    facade = _get_facade()
    try:
        return facade.detect_relations(doc_id)
    except CorpusError as exc:
        raise _http_error(exc) from None


# ---------------------------------------------------------------------------
# Routes: Relations
# ---------------------------------------------------------------------------
@app.post("/api/relations", status_code=201)
async def create_relation(body: RelationCreate):
    facade = _get_facade()
    try:
        return facade.add_relation(
            body.source_id,
            body.target_id,
            body.type,
            body.note,
            article_source_num=body.article_source_num,
            article_target_num=body.article_target_num,
            date_effet=body.date_effet,
        )
    except CorpusError as exc:
        raise _http_error(exc) from None


@app.patch("/api/relations/{relation_id}")
async def update_relation(relation_id: str, body: RelationUpdate):
    facade = _get_facade()
    updates = body.model_dump(exclude_unset=True)
    if "type" in updates:
        updates["relation_type"] = updates.pop("type")
    try:
        return facade.update_relation(relation_id, **updates)
    except CorpusError as exc:
        raise _http_error(exc) from None


@app.delete("/api/relations/{relation_id}")
async def delete_relation(relation_id: str):
    facade = _get_facade()
    try:
        return facade.remove_relation(relation_id)
    except CorpusError as exc:
        raise _http_error(exc) from None


# ---------------------------------------------------------------------------
# Routes: Search
# ---------------------------------------------------------------------------
@app.get("/api/suggest")
async def suggest(
    q: str = Query(..., min_length=1, max_length=500),
    limit: int | None = Query(None, ge=1, le=MAX_SUGGEST_LIMIT),
):
    """Article hits first, then document-title hits, each tagged with its type."""
    facade = _get_facade()
    try:
        hits = facade.suggest(q, limit or _settings.suggest_limit)
    except CorpusError as exc:
        raise _http_error(exc) from None
    return {"query": q, "total": len(hits), "hits": hits}


@app.get("/api/search")
async def search(
    q: str = Query(..., min_length=1, max_length=500),
    nature: str | None = Query(None),
    status: str | None = Query(None),
    date_from: str | None = Query(None),
    date_to: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
):
    """Paged text search, newest publication first, with filters."""
    facade = _get_facade()
    try:
        return facade.search(
            q,
            nature=nature,
            status=status,
            date_from=date_from,
            date_to=date_to,
            page=page,
            limit=limit,
        )
    except CorpusError as exc:
        raise _http_error(exc) from None
