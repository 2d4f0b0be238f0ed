import logging
import os

from fastapi import FastAPI

from branchtale.api.routes import router
from branchtale.assets.startup import init_assets_for_app


def get_log_level() -> str:
    return os.environ.get("BRANCHTALE_LOG_LEVEL", "INFO").upper()


app = FastAPI(title="branchtale", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=get_log_level())
logger = logging.getLogger(__name__)


@app.on_event("startup")
async def _startup() -> None:
    init_assets_for_app()
    logger.info("branchtale started")


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "branchtale", "version": "0.1.0"}
