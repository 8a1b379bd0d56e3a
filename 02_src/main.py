"""Serve the coordination core's HTTP API."""

import os

import uvicorn
from dotenv import load_dotenv

from autonomy import Application
from autonomy.api import create_fastapi_app
from autonomy.config import PROJECT_ROOT
from autonomy.logging_config import get_logger, setup_logging


def main():
    load_dotenv(PROJECT_ROOT / ".env")
    setup_logging()
    logger = get_logger("autonomy.main")

    host = os.getenv("API_HOST", "localhost")
    port = int(os.getenv("API_PORT", "8000"))

    application = Application()
    logger.info(
        "Serving autonomy API on %s:%s (timezone %s, scheduler autostart %s)",
        host,
        port,
        application.timezone,
        application.autostart,
    )

    # log_config=None keeps uvicorn on the JSON handlers configured above.
    uvicorn.run(create_fastapi_app(application), host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
