"""
Production entrypoint for the Condy access API.

Binds to 0.0.0.0:$PORT.
"""

import logging
import os

import uvicorn

from utils.config import Config


if __name__ == "__main__":
    config = Config.load()
    config.configure_logging()

    port = int(os.getenv("PORT", "8000"))
    logging.getLogger(__name__).info("Starting Condy access API on port %d", port)

    # Import app here to ensure clean module loading
    from web.app import app

    uvicorn.run(app, host="0.0.0.0", port=port)
