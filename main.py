#!/usr/bin/env python3

"""
Main application entry point for the timeline events service.

Architecture: FastAPI application with LLM providers.
Key Features: Lifecycle management of LLM clients, structured error responses, CORS configuration.
"""

import asyncio
import sys

# Add this block to switch asyncio event loop policy on Windows
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.http import router as http_router
from app.config import settings
from app.schemas import ErrorResponse
from app.services.event_generator import EventGenerationError
from app.services.llm_service import close_all_llm_clients, initialize_all_llm_clients
from app.utils.logger import setup_logger

logger = setup_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Initialize LLM clients on startup and close them on shutdown.
    """
    logger.info("Application startup...")
    initialize_all_llm_clients()
    logger.info("Timeline Events API startup successful.")

    yield

    logger.info("Timeline Events API shutdown...")
    await close_all_llm_clients()
    logger.info("Shutdown complete.")


def create_app():
    app = FastAPI(title="Timeline Events API", lifespan=lifespan)

    @app.exception_handler(EventGenerationError)
    async def event_generation_exception_handler(
        request: Request, exc: EventGenerationError
    ):
        logger.error(
            f"Event generation failed for {request.url.path}: {exc.message} "
            f"(suggested_max_events={exc.suggested_max_events})"
        )
        body = ErrorResponse(
            error=exc.message,
            diagnostic=exc.diagnostic,
            suggested_max_events=exc.suggested_max_events,
        )
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=body.model_dump(),
        )

    app.include_router(http_router)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    return app


app = create_app()


def main():
    """
    Start FastAPI application
    """
    port = int(settings.server_port)
    host = settings.server_host

    logger.info(f"Starting Timeline Events API server on {host}:{port}")

    try:
        uvicorn.run(app, host=host, port=port, workers=settings.server_workers)
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
