import asyncio
import uuid

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text

from lms_forum.config import API_PREFIX, CORS_ORIGINS, DB_SCHEMA, LOG_JSON, LOG_LEVEL
from lms_forum.database import Base, engine
from lms_forum.errors import ForumError, UnauthorizedError
from lms_forum.limiter import limiter
from lms_forum.logging_config import bind_request_context, clear_request_context, get_logger, setup_logging
from lms_forum.models.forum_model import Thread, ThreadLike
from lms_forum.routes import thread_routes, unit_routes

setup_logging(LOG_LEVEL, json_logs=LOG_JSON)
logger = get_logger(__name__)

app = FastAPI(title="LMS Discussion API")

# Rate limiting
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": "Too many requests. Please slow down."}
    )


@app.exception_handler(ForumError)
async def forum_error_handler(request: Request, exc: ForumError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(
        status_code=400,
        content={"detail": message, "errors": jsonable_encoder(errors)},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path, method=request.method)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.middleware("http")
async def request_context(request: Request, call_next):
    clear_request_context()
    bind_request_context(
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        method=request.method,
        path=request.url.path,
    )
    try:
        return await call_next(request)
    finally:
        clear_request_context()


# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(thread_routes.router, prefix=API_PREFIX)
app.include_router(thread_routes.replies_router, prefix=API_PREFIX)
app.include_router(unit_routes.router, prefix=API_PREFIX)


@app.get("/health")
async def health():
    return {"status": "ok"}


# Forum tables only; users, classrooms and units belong to the core LMS schema.
@app.on_event("startup")
async def on_startup():
    # Tiny retry so a momentary DB disconnect doesn't crash the app.
    for attempt in range(2):
        try:
            async with engine.begin() as conn:
                await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{DB_SCHEMA}";'))
                await conn.run_sync(
                    Base.metadata.create_all,
                    tables=[Thread.__table__, ThreadLike.__table__],
                )
            logger.info("db_init_done", schema=DB_SCHEMA)
            break
        except Exception as e:
            if attempt == 0:
                logger.warning("db_init_failed_retrying", error=repr(e))
                await asyncio.sleep(0.5)
            else:
                # Tables should already exist from previous runs.
                logger.error("db_init_skipped", error=repr(e))
