from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel, Field


class RegisteredClient(BaseModel):
    """Relying application allowed to request challenges"""

    client_id: str
    name: str = ""
    redirect_url: str
    allowed_origins: List[str] = Field(default_factory=list)
    client_secret_hash: Optional[str] = None

    @property
    def is_confidential(self) -> bool:
        return self.client_secret_hash is not None


class IClientRegistry(ABC):
    """Client registry interface - application layer"""

    @abstractmethod
    async def resolve_client(self, client_id: str) -> Optional[RegisteredClient]:
        """Look up a registered client, None if unknown"""
        pass

    @abstractmethod
    def verify_client_secret(self, client: RegisteredClient, client_secret: Optional[str]) -> bool:
        """Constant-time secret check. Public clients (no secret) always pass."""
        pass
