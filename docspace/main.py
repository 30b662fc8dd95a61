import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docspace.api.http.workspace import router as workspace_router
from docspace.api.http.contributions import router as contributions_router
from docspace.core.config import settings
from docspace.core.db import create_tables
from docspace.core.exceptions import InvalidStateError, NotFoundError, UnauthorizedError, WorkspaceError

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.db_auto_create:
        await create_tables()
        logger.info("Database tables are ready")
    yield


app = FastAPI(
    title="DocSpace",
    description="Рабочие документы пользователей, проектов и команд",
    version="1.0.0",
    lifespan=lifespan
)

# Настройка CORS для работы с frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # В продакшене указать конкретные домены
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, exc: WorkspaceError) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return _error_response(status.HTTP_404_NOT_FOUND, exc)


@app.exception_handler(UnauthorizedError)
async def unauthorized_handler(request: Request, exc: UnauthorizedError):
    return _error_response(status.HTTP_403_FORBIDDEN, exc)


@app.exception_handler(InvalidStateError)
async def invalid_state_handler(request: Request, exc: InvalidStateError):
    # MergeAnchorNotFoundError тоже попадает сюда
    return _error_response(status.HTTP_409_CONFLICT, exc)


# Подключаем роутеры
app.include_router(workspace_router)
app.include_router(contributions_router)


@app.get("/")
async def root():
    """Корневой эндпоинт"""
    return {
        "message": "DocSpace API",
        "version": "1.0.0",
        "docs": "/docs"
    }
