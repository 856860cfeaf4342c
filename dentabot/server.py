"""HTTP entry point for the Contoso Dentistry virtual assistant.

The channel posts activities to ``/api/messages``; web clients can use the
simpler ``/api/chat``.  One :class:`~dentabot.dispatcher.Dispatcher` is
built per process and shared by all requests, since turns carry no state.

Run with:
    uv run uvicorn dentabot.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from dentabot.api.routes import router
from dentabot.config import CORS_ORIGINS, SERVER_HOST, SERVER_PORT, load_settings
from dentabot.dispatcher import create_dispatcher

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Wire the backend clients from settings; close them on shutdown.

    Routes answer 503 until ``app.state.dispatcher`` is set.
    """
    dispatcher = create_dispatcher(load_settings())
    application.state.dispatcher = dispatcher
    logger.info("Dispatcher ready; accepting turns.")
    try:
        yield
    finally:
        application.state.dispatcher = None
        dispatcher.close()
        logger.info("Backend clients closed.")


app = FastAPI(
    title="Contoso Dentistry Virtual Assistant",
    description=(
        "Answers clinic questions from the knowledge base, reports open "
        "appointment slots and books appointments."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def tag_request(request: Request, call_next) -> Response:
    """Tag each request with an ID so one turn's log lines can be grouped.

    A caller-supplied ``X-Request-ID`` is reused; otherwise a UUID is minted.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Contoso Dentistry Virtual Assistant",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }


if __name__ == "__main__":
    logger.info("Starting Contoso Dentistry API server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "dentabot.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
