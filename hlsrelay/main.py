from loguru import logger
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from hlsrelay._version import __version__
from hlsrelay.utils.logger import config as configure_logger
from hlsrelay.config import CORS_ALLOW_CREDENTIALS, CORS_ORIGINS, STATIC_DIR
from hlsrelay.core.lifespan import lifespan
from hlsrelay.cors import apply_cors_middleware
from hlsrelay.api.relay import router as relay_router

load_dotenv()
configure_logger()

app = FastAPI(title="HLS Relay", version=__version__, lifespan=lifespan)
apply_cors_middleware(
    app, origins=CORS_ORIGINS, allow_credentials=CORS_ALLOW_CREDENTIALS
)
app.include_router(relay_router)  # register / stream / variant / segment


# Healthcheck endpoint for CI/CD and monitoring
@app.get("/health")
async def healthcheck():
    return {"status": "ok", "version": __version__}


# The player page is plain static content; mounted last so API routes win.
if STATIC_DIR.is_dir():
    logger.info(f"Serving static files from {STATIC_DIR.resolve()}")
    app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="static")
else:
    logger.debug(f"STATIC_DIR {STATIC_DIR} not found; no landing page mounted")


if __name__ == "__main__":
    from hlsrelay.cli import run_server

    logger.info("Starting HLS relay server...")
    run_server(app)
