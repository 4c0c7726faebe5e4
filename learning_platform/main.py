"""FastAPI entrypoint for the Sri Lankan Learning Platform API."""

import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from learning_platform import config
from learning_platform.database import create_db_and_tables
from learning_platform.errors import AppError
from learning_platform.firebase import initialize_firebase
from learning_platform.models import utcnow
from learning_platform.ratelimit import install_rate_limiting, limiter
from learning_platform.routers import analytics as analytics_router_module
from learning_platform.routers import auth as auth_router_module
from learning_platform.routers import books as books_router_module
from learning_platform.routers import comments as comments_router_module
from learning_platform.routers import content as content_router_module
from learning_platform.routers import discussions as discussions_router_module
from learning_platform.routers import exercises as exercises_router_module
from learning_platform.routers import news as news_router_module
from learning_platform.routers import users as users_router_module
from learning_platform.routers import videos as videos_router_module

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=config.SERVICE_NAME)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render framework HTTP errors in the same ``{"error": ...}`` shape."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = "Route not found"
    else:
        message = exc.detail
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())[1:]) or None,
            "message": error.get("msg", "Invalid input"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request body", "details": details},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    message = str(exc) if config.is_development() else "Something went wrong"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "message": message},
    )


# Middleware: the last one added runs first
install_rate_limiting(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    client = request.client.host if request.client else "-"
    logger.info(
        f"{request.method} {request.url.path} {response.status_code} {duration_ms:.1f}ms {client}"
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_URL, *config.CORS_EXTRA_ORIGINS],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(auth_router_module.router, prefix="/api/auth", tags=["auth"])
app.include_router(users_router_module.router, prefix="/api/users", tags=["users"])
app.include_router(content_router_module.router, prefix="/api/content", tags=["content"])
app.include_router(exercises_router_module.router, prefix="/api/exercises", tags=["exercises"])
app.include_router(discussions_router_module.router, prefix="/api/discussions", tags=["discussions"])
app.include_router(comments_router_module.router, prefix="/api/comments", tags=["comments"])
app.include_router(news_router_module.router, prefix="/api/news", tags=["news"])
app.include_router(books_router_module.router, prefix="/api/books", tags=["books"])
app.include_router(videos_router_module.router, prefix="/api/videos", tags=["videos"])
app.include_router(analytics_router_module.router, prefix="/api/analytics", tags=["analytics"])


@app.get("/health")
@limiter.exempt
def health():
    return {"status": "OK", "timestamp": utcnow().isoformat(), "service": config.SERVICE_NAME}


@app.on_event("startup")
def on_startup():
    """Create tables and bring up the Firebase Admin SDK."""
    create_db_and_tables()
    if not initialize_firebase():
        logger.warning("Starting without Firebase; authenticated routes will reject every token")
    logger.info(f"{config.SERVICE_NAME} started in {config.ENVIRONMENT} mode")
