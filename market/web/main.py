from __future__ import annotations

import logging
import re
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles

from market.config import settings
from market.db.sqlite import init_db
from market.web import actions, admin
from market.web.context import ClientContext, get_context
from market.web.pages import respond
from market.web.routing import select_router

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
STATIC_DIR = BASE_DIR / "static"

_VISITOR_ID = re.compile(r"^[0-9a-f]{32}$")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Workpaper Market", lifespan=lifespan)

if STATIC_DIR.exists():
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")


@app.middleware("http")
async def visitor_cookie(request: Request, call_next):
    visitor_id = request.cookies.get(settings.visitor_cookie) or ""
    is_new = not _VISITOR_ID.match(visitor_id)
    if is_new:
        visitor_id = uuid.uuid4().hex
    request.state.visitor_id = visitor_id

    response = await call_next(request)
    if is_new:
        response.set_cookie(
            settings.visitor_cookie,
            visitor_id,
            max_age=60 * 60 * 24 * 365,
            httponly=True,
            samesite="lax",
        )
    return response


app.include_router(actions.router)
app.include_router(admin.router)


# ---------------- pages ----------------
# должен быть последним: ловит все GET-пути

@app.get("/{path:path}", response_class=HTMLResponse)
def navigate(request: Request, path: str, ctx: ClientContext = Depends(get_context)):
    location = "/" + path
    decision = select_router(ctx.auth, location)
    logger.debug("%s -> %s", location, type(decision).__name__)
    return respond(request, ctx, decision)
