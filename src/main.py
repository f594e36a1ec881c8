"""Entry point for the Twilio to realtime speech AI call relay."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.routes import router as api_router
from config.settings import get_settings
from relay.session_store import SessionStore

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.sessions = SessionStore()
    yield
    if len(app.state.sessions):
        LOGGER.info("Shutting down with %d active call sessions", len(app.state.sessions))


# Fails fast when required credentials are missing.
settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="Call Relay",
    description="Relays Twilio Media Streams audio to a realtime speech AI service.",
    lifespan=lifespan,
)
app.include_router(api_router)


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
