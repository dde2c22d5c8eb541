from abc import ABC, abstractmethod
from typing import Optional


class IIdentityProvider(ABC):
    """Current authenticated identity, readable synchronously"""

    @abstractmethod
    def current_user_id(self) -> Optional[str]:
        pass
