"""Server entry point: ``python -m driveledger.main``."""

import logging
import os

import uvicorn

from .api import app

__all__ = ["app", "main"]


def main():
    logging.basicConfig(
        level=os.getenv("DL_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        app,
        host=os.getenv("DL_HOST", "127.0.0.1"),
        port=int(os.getenv("DL_PORT", "8000")),
        log_level="info",
    )


if __name__ == "__main__":
    main()
