"""FastAPI application setup."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from src.api.response import error_response
from src.api.routes import formatting, health
from src.db.mongo import close_database
from src.services.errors import DuplicateRuleError, TemplateNotFoundError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    yield
    await close_database()


app = FastAPI(
    title="DocFormat API",
    description="Formatting rule engine: detect document formatting problems and apply fixes",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS for the add-in task pane dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "https://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Exception handlers
@app.exception_handler(TemplateNotFoundError)
async def template_not_found_handler(request: Request, exc: TemplateNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content=error_response("TEMPLATE_NOT_FOUND", str(exc)),
    )


@app.exception_handler(DuplicateRuleError)
async def duplicate_rule_handler(request: Request, exc: DuplicateRuleError) -> JSONResponse:
    """Rule set misconfiguration; a server bug, not a client error."""
    logger.error(f"Rule registry misconfigured: {exc}")
    return JSONResponse(
        status_code=500,
        content=error_response("RULE_CONFIGURATION_ERROR", str(exc)),
    )


@app.exception_handler(ServerSelectionTimeoutError)
async def mongo_timeout_handler(request: Request, exc: ServerSelectionTimeoutError) -> JSONResponse:
    """Handle MongoDB connection timeout."""
    return JSONResponse(
        status_code=503,
        content=error_response("DATABASE_UNAVAILABLE", "Database is not available. Please try again later."),
    )


@app.exception_handler(ConnectionFailure)
async def mongo_connection_handler(request: Request, exc: ConnectionFailure) -> JSONResponse:
    """Handle MongoDB connection failure."""
    return JSONResponse(
        status_code=503,
        content=error_response("DATABASE_UNAVAILABLE", "Database connection failed. Please try again later."),
    )


# Register routes
app.include_router(health.router)
app.include_router(formatting.router)
