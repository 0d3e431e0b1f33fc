from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from typing import Optional
import itertools

from app.logging_config import LOG_FILE

router = APIRouter()


@router.get("/_debug/sessions")
def debug_sessions(request: Request):
    store = request.app.state.sessions
    store.prune()
    return JSONResponse({"count": len(store), "sessions": store.snapshot()})


@router.get("/_debug/logs")
def debug_logs(n: Optional[int] = Query(50, ge=1, le=500)):
    if not LOG_FILE.exists():
        return PlainTextResponse("No logs yet.", status_code=200)
    lines = LOG_FILE.read_text(encoding="utf-8", errors="ignore").splitlines()
    tail = list(itertools.islice(lines, max(0, len(lines) - (n or 50)), None))
    return PlainTextResponse("\n".join(tail), status_code=200)
