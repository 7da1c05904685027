"""
Config-backed client registry.

Clients are declared in ApplicationConfig.CLIENTS. A client entry may carry a
plaintext client_secret (hashed with bcrypt at load time) or a ready-made
client_secret_hash; entries with neither are public clients.
"""

import logging
from typing import Any, Dict, Iterable, Optional

import bcrypt

from src.app.services.client_registry import IClientRegistry, RegisteredClient
from src.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ConfigClientRegistry(IClientRegistry):
    """Client registry loaded once from configuration"""

    def __init__(self, clients: Iterable[Dict[str, Any]]):
        self._clients: Dict[str, RegisteredClient] = {}
        for entry in clients:
            client = self._load(entry)
            if client.client_id in self._clients:
                raise ConfigurationError(f"Duplicate client_id '{client.client_id}'")
            self._clients[client.client_id] = client
        logger.info(f"Loaded {len(self._clients)} registered client(s)")

    @staticmethod
    def _load(entry: Dict[str, Any]) -> RegisteredClient:
        if not entry.get("client_id") or not entry.get("redirect_url"):
            raise ConfigurationError("Every client needs a client_id and redirect_url")

        secret_hash = entry.get("client_secret_hash")
        plain_secret = entry.get("client_secret")
        if plain_secret and not secret_hash:
            secret_hash = bcrypt.hashpw(plain_secret.encode(), bcrypt.gensalt(12)).decode()

        return RegisteredClient(
            client_id=entry["client_id"],
            name=entry.get("name", entry["client_id"]),
            redirect_url=entry["redirect_url"],
            allowed_origins=entry.get("allowed_origins", []),
            client_secret_hash=secret_hash,
        )

    async def resolve_client(self, client_id: str) -> Optional[RegisteredClient]:
        return self._clients.get(client_id)

    def verify_client_secret(self, client: RegisteredClient, client_secret: Optional[str]) -> bool:
        if not client.is_confidential:
            return True
        if not client_secret:
            return False
        try:
            return bcrypt.checkpw(client_secret.encode(), client.client_secret_hash.encode())
        except ValueError:
            logger.error(f"Stored secret hash for client '{client.client_id}' is malformed")
            return False
