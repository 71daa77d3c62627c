import logging
import sys
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from webnotes.config import settings
from webnotes.dependencies import get_store
from webnotes.middleware.rate_limit import limiter
from webnotes.routers import batch_notes, notes, tags
from webnotes.services.backend import open_store
from webnotes.services.store import NoteStore

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    stream=sys.stderr,
    force=True,
)
logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid request"
    error = errors[0]
    if error.get("loc", ())[:1] == ("path",):
        return "invalid id"
    cause = (error.get("ctx") or {}).get("error")
    if cause is not None:
        return str(cause)
    return error.get("msg", "invalid request")


def create_app(store: NoteStore | None = None) -> FastAPI:
    """Build the API. A passed-in store must already be initialised and is not closed on shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if store is not None:
            app.state.store = store
            yield
            return
        app.state.store = await open_store(settings)
        yield
        await app.state.store.close()

    app = FastAPI(title="Webnotes API", lifespan=lifespan)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    @app.exception_handler(RequestValidationError)
    async def reject_invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": _validation_message(exc)})

    @app.exception_handler(Exception)
    async def log_unhandled_exceptions(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception", extra={"path": request.url.path, "method": request.method})
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(batch_notes.router)
    app.include_router(notes.router)
    app.include_router(tags.router)

    @app.get("/health")
    async def health(note_store: NoteStore = Depends(get_store)):
        status = await note_store.health_check()
        if status.get("status") != "ok":
            return JSONResponse(status_code=503, content=status)
        return status

    return app


app = create_app()
