#!/usr/bin/env python3
"""
Backend startup wrapper: ensure tables exist, then serve the API with uvicorn.
"""
import logging
import os

import uvicorn

from devboard.core.config import settings
from devboard.core.database import create_all_tables
from devboard.core.logging import configure_logging


def main() -> None:
    configure_logging(settings.ENV)
    create_all_tables()
    logging.getLogger("devboard").info("[Backend] tables ready, starting DevBoard API")
    uvicorn.run(
        "devboard.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()
