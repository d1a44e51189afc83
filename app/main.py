import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.cache.clients import MemoryCacheClient, RedisCacheClient
from app.cache.layer import CacheLayer
from app.core.config import Settings, get_settings
from app.core.errors import register_error_handlers
from app.core.logging import configure_logging
from app.database import create_db_and_tables, create_engine, create_session_factory
from app.models import Task, User
from app.routers import auth, tasks
from app.services.auth_service import AuthService, SessionStore
from app.services.task_service import TaskService
from app.store import DocumentStore

logger = logging.getLogger(__name__)


def build_cache_client(settings: Settings):
    if settings.cache_backend == "memory":
        return MemoryCacheClient(maxsize=settings.memory_cache_maxsize)
    return RedisCacheClient.from_settings(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)

    engine = create_engine(settings.database_url)
    if settings.create_tables:
        await create_db_and_tables(engine)
    session_factory = create_session_factory(engine)

    cache_client = build_cache_client(settings)
    if await cache_client.ping():
        logger.info(f"Cache backend '{settings.cache_backend}' ready")

    app.state.store = DocumentStore(session_factory, Task, order_by=Task.created_at)
    app.state.cache = CacheLayer(
        cache_client, ttl=settings.cache_ttl_seconds, namespace=settings.cache_namespace
    )
    app.state.task_service = TaskService(app.state.store, app.state.cache)
    app.state.auth_service = AuthService(
        DocumentStore(session_factory, User),
        SessionStore(cache_client, ttl=settings.session_ttl_seconds),
    )
    logger.info("Task service initialized")

    yield

    await cache_client.close()
    await engine.dispose()
    logger.info("Server exiting")


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Task Management API",
        description="Task CRUD with a cache-aside Redis layer",
        swagger_ui_parameters={"displayRequestDuration": True},
        version="1.0.0",
        lifespan=lifespan,
    )

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Authorization", "Origin", "Content-Type", "Accept"],
            allow_credentials=True,
        )

    register_error_handlers(app)

    # Include routers
    app.include_router(auth.router)
    app.include_router(tasks.router)

    @app.get("/")
    async def root():
        return {
            "message": "Welcome to Task Management API",
            "docs": "/docs",
            "version": "1.0.0",
        }

    @app.get("/health")
    async def health_check():
        store_ok = await app.state.store.ping()
        cache_ok = await app.state.cache.client.ping()
        return {
            "status": "healthy" if store_ok and cache_ok else "degraded",
            "store": "ok" if store_ok else "unavailable",
            "cache": "ok" if cache_ok else "unavailable",
            "cache_stats": app.state.cache.get_stats(),
        }

    return app


app = create_app()
