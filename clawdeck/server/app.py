import logging
import os

from fastapi import FastAPI

from clawdeck.client.factory import get_client
from .api_gateway import router as gateway_router

LOG_LEVEL_ENV = "CLAWDECK_LOG_LEVEL"
VERSION = "0.1.0"

# Configure logging
logging.basicConfig(
    level=os.getenv(LOG_LEVEL_ENV, "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(),
    ]
)
logger = logging.getLogger("clawdeck.server")

app = FastAPI(title="clawdeck")
app.include_router(gateway_router)


@app.on_event("startup")
async def startup_event():
    client = get_client()
    logger.info("Panel API started with controller transport=%s", client.transport_mode.value)


@app.get("/health")
async def health_check():
    return {"status": "ok", "version": VERSION}
