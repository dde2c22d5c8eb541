from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.platform.config.di import Container
from src.service.booking.driven_adapter.identity.context_identity_provider import (
    ContextIdentityProvider,
)
from src.service.booking.driving_adapter.http_controller.auth.jwt_auth import JwtAuth


bearer_scheme = HTTPBearer(auto_error=False)


@inject
async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    jwt_auth: JwtAuth = Depends(Provide[Container.jwt_auth]),
    identity_provider: ContextIdentityProvider = Depends(Provide[Container.identity_provider]),
) -> str:
    """Authenticate the request and bind the user id for the coordinator's identity provider"""
    user_id = jwt_auth.get_user_id_from_jwt(credentials.credentials if credentials else None)
    identity_provider.bind(user_id)
    return user_id
