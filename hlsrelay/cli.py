from __future__ import annotations

import os
import sys
from loguru import logger

from hlsrelay.config import HLSRELAY_HOST, HLSRELAY_PORT, HLSRELAY_RELOAD


def run_server(app_obj):
    """Run the Uvicorn server with sensible defaults.

    - Reload is off unless HLSRELAY_RELOAD is set
    - Reload is never used for frozen (packaged) runs
    """
    import uvicorn

    is_frozen = getattr(sys, "frozen", False) or hasattr(sys, "_MEIPASS")
    reload_env = os.environ.get("HLSRELAY_RELOAD")
    if reload_env is not None:
        reload_flag = reload_env == "1" or reload_env.lower() == "true"
    else:
        reload_flag = HLSRELAY_RELOAD
    reload_flag = reload_flag and not is_frozen

    logger.info(f"Listening on http://{HLSRELAY_HOST}:{HLSRELAY_PORT}")
    if reload_flag:
        logger.info("Uvicorn reload enabled (development mode).")
        uvicorn.run(
            "hlsrelay.main:app",
            host=HLSRELAY_HOST,
            port=HLSRELAY_PORT,
            reload=True,
        )
    else:
        uvicorn.run(
            app_obj,
            host=HLSRELAY_HOST,
            port=HLSRELAY_PORT,
            reload=False,
        )


def main() -> None:
    from hlsrelay.main import app

    run_server(app)
