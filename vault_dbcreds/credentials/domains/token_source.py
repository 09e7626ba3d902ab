"""Vault token resolution with GCP Secret Manager fallback."""
import os
import logging
from typing import Any, Dict, Optional
from google.cloud import secretmanager

logger = logging.getLogger(__name__)

# Module-level cache: {project_id:secret_name -> token}, per process only
_token_cache: dict[str, str] = {}


class TokenResolutionError(Exception):
    """Raised when no Vault token can be found."""
    pass


class GCPTokenClient:
    """Wrapper around GCP Secret Manager client."""

    def __init__(self):
        self._client = None

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize client."""
        if self._client is None:
            self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def fetch_secret(self, secret_name: str, project_id: str) -> Optional[str]:
        """
        Fetch latest secret version from GCP Secret Manager.

        Returns:
            Secret value or None if fetch fails
        """
        try:
            name = f"projects/{project_id}/secrets/{secret_name}/versions/latest"
            response = self.client.access_secret_version(request={"name": name})
            return response.payload.data.decode("UTF-8").strip()
        except Exception as e:
            logger.warning(f"GCP fetch failed for {secret_name}: {e}")
            return None


def resolve_vault_token(config: Dict[str, Any], gcp_client: Optional[GCPTokenClient] = None) -> str:
    """
    Find the Vault token to authenticate with.

    Priority order:
    1. VAULT_TOKEN environment variable
    2. GCP Secret Manager secret named by authentication.token_secret

    Raises:
        TokenResolutionError: If neither source yields a token
    """
    env_token = os.getenv("VAULT_TOKEN")
    if env_token:
        logger.debug("Using Vault token from VAULT_TOKEN")
        return env_token

    secret_name = config.get('authentication', {}).get('token_secret')
    if not secret_name:
        raise TokenResolutionError(
            "No Vault token found. Set VAULT_TOKEN or configure "
            "'authentication.token_secret' to read it from GCP Secret Manager."
        )

    gcp = config.get('gcp') or {}
    project_id = os.getenv("GCP_PROJECT") or gcp.get('project_id')

    cache_key = f"{project_id}:{secret_name}"
    if cache_key in _token_cache:
        return _token_cache[cache_key]

    service_account_path = gcp.get('service_account_path')
    if service_account_path:
        os.environ['GOOGLE_APPLICATION_CREDENTIALS'] = service_account_path
        logger.info(f"Set GOOGLE_APPLICATION_CREDENTIALS from config: {service_account_path}")

    client = gcp_client or GCPTokenClient()
    token = client.fetch_secret(secret_name, project_id)
    if not token:
        raise TokenResolutionError(
            f"Vault token secret '{secret_name}' not found in GCP project '{project_id}'"
        )

    _token_cache[cache_key] = token
    return token
