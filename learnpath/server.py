import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from learnpath.config import settings
from learnpath.db.database import init_db, close_db
from learnpath.errors import AppError, InternalError
from learnpath.middleware.auth import AuthMiddleware
from learnpath.services.ai_client import AIClient

logger = logging.getLogger(__name__)

# CORS: use CORS_ORIGINS (comma-separated) or sensible dev defaults.
if settings.cors_origins:
    _allowed_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
else:
    _allowed_origins = [
        "http://localhost:8000",
        "http://127.0.0.1:8000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    app.state.ai_client = AIClient.from_settings(settings)
    yield
    await close_db()


app = FastAPI(title="LearnPath", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)
app.add_middleware(AuthMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "bad_request", "detail": "Malformed request body"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": InternalError.code, "detail": InternalError.default_message()},
    )


# Import and register routes
from learnpath.routes.assessments import router as assessments_router
from learnpath.routes.lessons import router as lessons_router
from learnpath.routes.user_profile import router as user_profile_router
from learnpath.routes.generate import router as generate_router

app.include_router(assessments_router)
app.include_router(lessons_router)
app.include_router(user_profile_router)
app.include_router(generate_router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
