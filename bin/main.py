import asyncio
import logging

import uvicorn

from oceantracker.application.container import ApplicationContainer
from oceantracker.infrastructure.db_schema import metadata
from oceantracker.presentation.app import build_api

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def create_schema(container: ApplicationContainer) -> None:
    engine = container.infrastructure_container.async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


async def main():
    container = ApplicationContainer()
    container.config.from_yaml("oceantracker/config.yaml", required=True)

    await create_schema(container)
    app = build_api(container, cors_origins=container.config.server.cors_origins())

    logger.info("Starting OceanTracker API...")
    await uvicorn.Server(
        uvicorn.Config(
            app,
            host=container.config.server.host(),
            port=int(container.config.server.port()),
            log_level="info",
        )
    ).serve()


if __name__ == "__main__":
    asyncio.run(main())
