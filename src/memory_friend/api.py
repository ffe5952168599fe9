"""HTTP API for Memory Friend.

Routes mirror the operations of MemoryManager. Errors are mapped to status
codes by the exception handlers registered in create_app.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .errors import MemoryFriendError
from .memory import MemoryManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _manager(request: Request) -> MemoryManager:
    return request.app.state.manager


@router.post("/questions/answer")
async def answer_question(
    request: Request, body: dict[str, Any] = Body(...)
) -> dict[str, Any]:
    """Answer a question using the elder's memories."""
    result = await _manager(request).ask_question(
        body.get("elderId"), body.get("question")
    )
    return result.to_response()


@router.get("/questions")
def list_questions(request: Request, elderId: str = "", limit: int = 5) -> list[dict[str, Any]]:
    """Latest questions asked by an elder."""
    questions = _manager(request).list_questions(elderId, limit)
    return [q.to_dict() for q in questions]


@router.post("/memories", status_code=201)
def create_memory(request: Request, body: dict[str, Any] = Body(...)) -> dict[str, Any]:
    """Create a new memory."""
    memory = _manager(request).create_memory(
        body.get("elderId"),
        body.get("type"),
        body.get("text"),
        image_url=body.get("imageUrl"),
        tags=body.get("tags"),
        emotional_tone=body.get("emotionalTone"),
    )
    return memory.to_dict()


@router.get("/memories")
def list_memories(
    request: Request,
    elderId: str = "",
    type: str | None = None,
    tag: str | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> dict[str, Any]:
    """Fetch memories with optional filters and pagination."""
    page = _manager(request).list_memories(
        elderId, type=type, tag=tag, search=search, limit=limit, offset=offset
    )
    return page.to_response()


@router.post("/memories/extract")
async def extract_memory(
    request: Request, body: dict[str, Any] = Body(...)
) -> dict[str, Any]:
    """Classify memory text into type, tags and structured data."""
    metadata = await _manager(request).extract_metadata(body.get("rawText"))
    return metadata.to_dict()


@router.post("/memories/{memory_id}/enrich")
async def enrich_memory(request: Request, memory_id: int) -> dict[str, Any]:
    """Run extraction on a stored memory and save the results."""
    memory = await _manager(request).enrich_memory(memory_id)
    return memory.to_dict()


@router.post("/summaries/daily")
async def generate_daily_summary(
    request: Request, body: dict[str, Any] = Body(...)
) -> dict[str, Any]:
    """Generate and store the summary of one day."""
    result = await _manager(request).generate_daily_summary(
        body.get("elderId"), body.get("date")
    )
    return result.to_response()


@router.get("/summaries")
def list_summaries(
    request: Request, elderId: str = "", date: str | None = None, limit: int = 7
) -> list[dict[str, Any]]:
    """Latest daily summaries, or the one for a given date."""
    summaries = _manager(request).list_summaries(elderId, day=date, limit=limit)
    return [s.to_dict() for s in summaries]


@router.get("/health")
def health(request: Request) -> dict[str, Any]:
    """Report storage and completion status."""
    report = _manager(request).health()
    report["timestamp"] = datetime.now(timezone.utc).isoformat()
    return report


async def _handle_memory_friend_error(request: Request, exc: MemoryFriendError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Error in %s %s: %s (%s)",
            request.method, request.url.path, exc.message, exc.detail,
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_errors(exc)},
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error in %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Location and message of each validation error."""
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": str(err.get("msg", ""))}
        for err in exc.errors()
    ]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close the completion client on shutdown."""
    yield
    await app.state.manager.aclose()


def create_app(manager: MemoryManager) -> FastAPI:
    """Build the FastAPI application around a configured manager."""
    app = FastAPI(title="Memory Friend", version="0.1.0", lifespan=lifespan)
    app.state.manager = manager
    app.include_router(router)
    app.add_exception_handler(MemoryFriendError, _handle_memory_friend_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
    app.add_exception_handler(Exception, _handle_unexpected)
    return app
