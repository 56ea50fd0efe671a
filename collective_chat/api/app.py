"""
Main FastAPI application for the Neighborhood Collective chat assistant

This module creates and configures the FastAPI application with:
- CORS middleware for the browser client
- API routes (chat streaming, conversation history)
- JSON error bodies for pipeline errors
- Health check endpoint
"""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from collective_chat import __version__
from collective_chat.api.models import HealthResponse
from collective_chat.api.routes import chat, conversations
from collective_chat.auth.gate import AuthGate, StaticTokenAuthGate, SupabaseAuthGate
from collective_chat.config.settings import settings
from collective_chat.infra.database import get_database
from collective_chat.llm.client import CompletionClient
from collective_chat.utils.errors import ChatError
from collective_chat.utils.logger import setup_logger


def build_auth_gate(http_client: httpx.AsyncClient) -> AuthGate:
    """Auth gate for the configured identity provider."""
    if settings.auth_provider == "static":
        logger.warning("⚠️  Using static dev tokens for authentication - do not use in production")
        return StaticTokenAuthGate(settings.static_tokens_map)
    return SupabaseAuthGate(
        http_client,
        supabase_url=settings.supabase_url,
        anon_key=settings.supabase_anon_key,
        timeout=settings.auth_timeout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan events

    - Startup: open the database, create tables, create the shared HTTP client
    - Shutdown: close the HTTP client
    """
    logger.info("🚀 FastAPI application starting...")
    logger.info("🔄 Streaming endpoint at POST /api/chat/completion")

    database = get_database()
    database.create_tables()

    http_client = httpx.AsyncClient()

    app.state.database = database
    app.state.http_client = http_client
    app.state.auth_gate = build_auth_gate(http_client)
    app.state.completion_client = CompletionClient(http_client)

    yield

    logger.info("🛑 FastAPI application shutting down...")
    await http_client.aclose()
    logger.info("✅ HTTP client closed")


async def chat_error_handler(request: Request, exc: ChatError):
    """Pipeline errors raised before a stream opens become JSON error bodies."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
    return JSONResponse(
        status_code=400,
        content={"error": f"Missing or invalid fields: {', '.join(fields)}"},
    )


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    setup_logger()

    app = FastAPI(
        title="Neighborhood Collective Chat API",
        description="""
    Streaming chat API for the Neighborhood Collective assistant.

    ## Features

    * **Real-time streaming** replies using Server-Sent Events (SSE)
    * **Mode detection**: service assistant for homeowners, sales assistant for business owners
    * **Durable history**: user turns are stored before the model is called

    ## Example

    ```bash
    curl -N -X POST http://localhost:8000/api/chat/completion \\
         -H "Authorization: Bearer $TOKEN" \\
         -H "Content-Type: application/json" \\
         -d '{"message": "Need a plumber", "conversationType": "service_assistant"}'
    ```
    """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ChatError, chat_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(chat.router)
    app.include_router(conversations.router)

    @app.get("/", tags=["root"])
    async def root():
        """
        Root endpoint - API information
        """
        return {
            "service": "Neighborhood Collective Chat API",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
            "endpoints": {
                "health": "/health",
                "chat_completion": "/api/chat/completion",
                "conversations": "/api/chat/conversations",
            },
        }

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health_check(request: Request):
        """
        Health check endpoint

        Returns service status, name, version and store reachability.
        """
        database = getattr(request.app.state, "database", None)
        database_ok = database.ping() if database is not None else False
        return HealthResponse(
            status="healthy" if database_ok else "degraded",
            service="collective-chat-api",
            version=__version__,
            database=database_ok,
        )

    return app


app = create_app()
