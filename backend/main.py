import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.config import get_settings
from backend.dependencies import get_adapter_registry
from backend.routers import health, chat, conversations
from backend.services.providers.registry import close_adapters

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    registry = get_adapter_registry()
    logger.info("Chat gateway started with providers: %s", ", ".join(sorted(registry)))

    yield

    logger.info("Chat gateway shutting down")
    await close_adapters(registry)
    get_adapter_registry.cache_clear()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Chat Gateway API",
        description="One chat contract for MaxKB, Dify, RAGFlow and SQLBot assistants",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Routers
    app.include_router(health.router)
    app.include_router(chat.router)
    app.include_router(conversations.router)

    # CORS: defaults plus ALLOWED_ORIGINS
    origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    origins.extend(get_settings().cors_origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


app = create_app()


@app.get("/")
async def read_root():
    return {
        "status": "ok",
        "message": "Chat gateway is running",
        "docs": "/docs",
    }
