# main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import api_router, ws_router
from core.config import Settings, settings as default_settings
from core.hub import BroadcastHub
from core.persistence import StateWriter
from core.state_store import StateStore
from core.ws_manager import ConnectionManager

logging.basicConfig(
    level=default_settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("main")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # one writer thread, store and hub per serving session
        writer = StateWriter(settings.DATA_FILE)
        store = StateStore.from_file(settings.DATA_FILE, writer)
        app.state.hub = BroadcastHub(store, ConnectionManager(send_timeout=settings.WS_SEND_TIMEOUT))
        logger.info("🚀 ProScan server ready, data file: %s", settings.DATA_FILE)
        try:
            yield
        finally:
            app.state.hub = None
            writer.close()   # drain pending writes before exit

    app = FastAPI(title="ProScan Line Backend", lifespan=lifespan)
    app.state.settings = settings
    app.state.hub = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    # WebSocket route mounted directly
    app.include_router(ws_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logger.info("📡 Connect stations to: ws://[YOUR_PC_IP]:%d/ws/scan", default_settings.PORT)
    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT)
