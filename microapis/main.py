"""Application entry point for the Micro APIs server."""

import os

import uvicorn

from microapis.api.app import create_app
from microapis.utils.config import load_config
from microapis.utils.logger import setup_logging


def main() -> None:
    """Start the FastAPI application server."""
    config = load_config()
    setup_logging(config.log_level)
    port = int(os.environ.get("PORT", "5000"))
    uvicorn.run(create_app(config), host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
