"""Run the CDP gateway: ``python -m cdp_gateway``."""

from __future__ import annotations

import logging

import uvicorn

from .api import create_app
from .config import Settings

logger = logging.getLogger("cdp_gateway")


def main() -> None:
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    app = create_app(settings=settings)
    logger.info("CDP backend running on :%s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
