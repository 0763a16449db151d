from dependency_injector.wiring import Provide, inject
from fastapi import Depends, Header

from oceantracker.application.container import ApplicationContainer
from oceantracker.application.errors import Unauthorized
from oceantracker.core.models import Actor
from oceantracker.infrastructure.tokens import InvalidToken, TokenDecoder


@inject
async def get_actor(
    x_auth_token: str | None = Header(None, alias="x-auth-token"),
    token_decoder: TokenDecoder = Depends(
        Provide[ApplicationContainer.infrastructure_container.token_decoder]
    ),
) -> Actor:
    if not x_auth_token:
        raise Unauthorized("No token, authorization denied")

    try:
        return token_decoder.decode(x_auth_token)
    except InvalidToken as e:
        raise Unauthorized(str(e)) from e
