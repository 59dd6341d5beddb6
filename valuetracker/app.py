"""Standalone host: a FastAPI app that mounts the plugin like a host would."""

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI

from valuetracker import config, plugin


def create_app(prefix: str | None = None) -> FastAPI:
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=config.LOG_LEVEL,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )

    router = APIRouter()
    plugin.init(router)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        plugin.exit()

    app = FastAPI(title="Value Tracker", lifespan=lifespan)
    app.include_router(router, prefix=config.API_PREFIX if prefix is None else prefix)
    return app
