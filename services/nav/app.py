from __future__ import annotations

import asyncio
import sys

import uvicorn

from .config import Settings
from .main import create_app
from .util import logger


async def main_async() -> int:
    settings = Settings()
    app = create_app(settings)
    logger.info(
        {
            "msg": "server_start",
            "host": settings.host,
            "port": settings.port,
            "symbols": [s for s, _ in settings.weights],
            "api_key_configured": bool(settings.finnhub_api_key),
        }
    )
    server = uvicorn.Server(uvicorn.Config(app, host=settings.host, port=settings.port, log_level="warning"))
    try:
        await server.serve()
    except SystemExit as e:
        # uvicorn exits with 1 when it cannot bind the listener
        logger.error({"msg": "server_bind_failed", "port": settings.port})
        return int(e.code or 1)
    return 0


def main() -> None:
    try:
        rc = asyncio.run(main_async())
    except KeyboardInterrupt:
        rc = 130
    sys.exit(rc)


if __name__ == "__main__":
    main()
