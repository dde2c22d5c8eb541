from collections.abc import Generator
from typing import Any, Callable

from fastapi.testclient import TestClient
import pytest

from src.platform.config.di import container
from src.service.booking.driving_adapter.http_controller.auth.jwt_auth import JwtAuth


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    from test.test_main import app

    container.reset_singletons()
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, Any]]:
    def _headers(user_id: str) -> dict[str, Any]:
        token = JwtAuth().create_jwt_token(user_id=user_id, email=f'{user_id}@example.com')
        return {'Authorization': f'Bearer {token}'}

    return _headers
