"""HashiCorp Vault client wrapper used for issuing and revoking leases."""
import logging
from typing import Any, Dict, Optional

import hvac
import requests
from hvac.exceptions import VaultError

from .models import IssuedSecret

logger = logging.getLogger(__name__)


class VaultClientError(Exception):
    """Raised when a Vault read or revoke call fails."""
    pass


class VaultSecretClient:
    """Wrapper around hvac.Client exposing only read and revoke."""

    def __init__(
        self,
        address: Optional[str] = None,
        token: Optional[str] = None,
        namespace: Optional[str] = None,
        verify: bool = True,
    ):
        self.address = address
        self.namespace = namespace
        self.verify = verify
        self._token = token
        self._client = None

    @classmethod
    def from_config(cls, config: Dict[str, Any], token: str) -> "VaultSecretClient":
        """Build a client from a loaded config and a resolved token."""
        vault = config["vault"]
        return cls(
            address=vault["address"],
            token=token,
            namespace=vault.get("namespace"),
            verify=vault.get("verify", True),
        )

    @property
    def client(self) -> hvac.Client:
        """Lazy-initialize client."""
        if self._client is None:
            self._client = hvac.Client(
                url=self.address,
                token=self._token,
                namespace=self.namespace,
                verify=self.verify,
            )
        return self._client

    def read(self, path: str) -> IssuedSecret:
        """
        Read a secret (generating new credentials for creds/ paths).

        Args:
            path: Logical Vault path, e.g. "database/creds/readonly"

        Returns:
            IssuedSecret with lease id, data, renewable flag and duration

        Raises:
            VaultClientError: If the call fails or nothing exists at path
        """
        try:
            response = self.client.read(path)
        except (VaultError, requests.exceptions.RequestException) as e:
            raise VaultClientError(f"read {path!r} failed: {e}") from e

        if not response:
            raise VaultClientError(f"no secret returned at {path!r}")

        if not response.get("lease_id"):
            raise VaultClientError(f"secret at {path!r} has no lease id")

        return IssuedSecret(
            lease_id=response["lease_id"],
            data=response.get("data") or {},
            renewable=bool(response.get("renewable", False)),
            lease_duration=int(response.get("lease_duration") or 0),
        )

    def revoke(self, lease_id: str) -> None:
        """
        Revoke a lease by id.

        Raises:
            VaultClientError: If Vault rejects the revocation or is unreachable
        """
        try:
            self.client.sys.revoke_lease(lease_id=lease_id)
        except (VaultError, requests.exceptions.RequestException) as e:
            raise VaultClientError(f"revoke {lease_id!r} failed: {e}") from e
