from typing import Callable

from dependency_injector import containers, providers
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from oceantracker.infrastructure.tokens import TokenDecoder
from oceantracker.infrastructure.unit_of_work import UnitOfWork


def create_engine(
    dsn: str, pool_size: int | None = None, pool_recycle: int | None = None
) -> AsyncEngine:
    options = {"future": True}
    if pool_size:
        options["pool_size"] = pool_size
    if pool_recycle:
        options["pool_recycle"] = pool_recycle
    return create_async_engine(dsn, **options)


class InfrastructureContainer(containers.DeclarativeContainer):
    config = providers.Configuration()
    async_engine = providers.Singleton[AsyncEngine](
        create_engine,
        config.db.dsn,
        pool_size=config.db.pool_size,
        pool_recycle=config.db.pool_recycle,
    )
    session_factory: Callable[..., AsyncSession] = providers.Factory(
        async_sessionmaker, async_engine, expire_on_commit=False, class_=AsyncSession
    )
    unit_of_work = providers.Singleton[UnitOfWork](
        UnitOfWork, session_factory=session_factory
    )
    token_decoder = providers.Singleton[TokenDecoder](
        TokenDecoder,
        secret_key=config.auth.jwt_secret,
        algorithm=config.auth.algorithm,
    )
