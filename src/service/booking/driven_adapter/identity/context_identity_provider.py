"""
Request-scoped identity

The HTTP auth dependency binds the authenticated user id to a ContextVar;
each request runs in its own task context, so bindings never leak between
requests.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Optional

from src.service.booking.app.interface.i_identity_provider import IIdentityProvider


current_user_id_var: ContextVar[Optional[str]] = ContextVar('current_user_id', default=None)


class ContextIdentityProvider(IIdentityProvider):
    def current_user_id(self) -> Optional[str]:
        return current_user_id_var.get()

    def bind(self, user_id: Optional[str]) -> None:
        current_user_id_var.set(user_id)

    @contextmanager
    def bound(self, user_id: Optional[str]) -> Iterator[None]:
        """Bind for the duration of a block (workers, scripts)"""
        token = current_user_id_var.set(user_id)
        try:
            yield
        finally:
            current_user_id_var.reset(token)
