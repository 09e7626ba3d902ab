"""Configuration loader for vault-dbcreds."""
import os
import logging
from pathlib import Path
from typing import Dict, Any
import yaml

logger = logging.getLogger(__name__)

RENEWAL_WINDOWS = ("literal", "symmetric")
DEFAULT_RENEWAL_BUFFER_SECONDS = 300


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def default_config_path() -> Path:
    return Path.home() / ".config" / "vault-dbcreds" / "config.yml"


def _get_config_path() -> str:
    """
    Get config file path.

    Priority order:
    1. DBCREDS_CONFIG environment variable
    2. Default location: ~/.config/vault-dbcreds/config.yml

    Returns:
        Absolute path to config file

    Raises:
        FileNotFoundError: If config file doesn't exist in any location
    """
    env_path = os.getenv("DBCREDS_CONFIG")
    if env_path:
        config_path = Path(env_path)
        if config_path.exists():
            logger.info(f"Using config from DBCREDS_CONFIG: {config_path}")
            return str(config_path)
        else:
            logger.warning(f"Config path from DBCREDS_CONFIG doesn't exist: {config_path}")

    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config)

    raise FileNotFoundError(
        "Configuration file not found. Please set up your config file using one of these methods:\n\n"
        "1. Use the default location:\n"
        f"   mkdir -p {default_config.parent}\n"
        f"   cp /path/to/your/config.yml {default_config}\n\n"
        "2. Point to an existing config file:\n"
        "   export DBCREDS_CONFIG=/path/to/your/config.yml\n"
    )


def _validate_leases(config: Dict[str, Any]) -> None:
    leases = config.get('leases') or {}
    config['leases'] = leases

    window = leases.setdefault('renewal_window', 'literal')
    if window not in RENEWAL_WINDOWS:
        raise ConfigError(
            f"Unsupported leases.renewal_window: {window}\n"
            f"Expected one of: {', '.join(RENEWAL_WINDOWS)}"
        )

    buffer_seconds = leases.setdefault('renewal_buffer_seconds', DEFAULT_RENEWAL_BUFFER_SECONDS)
    if isinstance(buffer_seconds, bool) or not isinstance(buffer_seconds, int) or buffer_seconds <= 0:
        raise ConfigError(
            f"leases.renewal_buffer_seconds must be a positive integer, got: {buffer_seconds!r}"
        )


def load_config() -> Dict[str, Any]:
    """
    Load and validate configuration from YAML file.

    Returns:
        Dict containing configuration with keys:
        - vault: dict with address, namespace, verify
        - authentication: dict with type and optional token_secret
        - gcp: dict with project_id and optional service_account_path (may be empty)
        - leases: dict with renewal_window and renewal_buffer_seconds

    Raises:
        ConfigError: If config file is invalid or a referenced file doesn't exist
        FileNotFoundError: If no config file can be located
    """
    # Resolved on every call so DBCREDS_CONFIG changes apply immediately
    config_path = _get_config_path()

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if not config:
        raise ConfigError(f"Config file at {config_path} is empty")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {config_path} must contain a mapping")

    # Validate vault section
    vault = config.get('vault')
    if not vault:
        raise ConfigError(
            f"Missing 'vault' section in config at {config_path}\n"
            f"Required format:\n"
            f"vault:\n"
            f"  address: https://vault.example.com:8200"
        )

    vault_addr_env = os.getenv("VAULT_ADDR")
    if vault_addr_env:
        logger.debug(f"Using VAULT_ADDR from environment: {vault_addr_env}")
        vault['address'] = vault_addr_env

    if 'address' not in vault:
        raise ConfigError("Missing 'vault.address' in config (or set VAULT_ADDR)")

    vault.setdefault('namespace', None)
    vault.setdefault('verify', True)

    # Validate authentication section
    if 'authentication' not in config:
        raise ConfigError(
            f"Missing 'authentication' section in config at {config_path}\n"
            f"Required format:\n"
            f"authentication:\n"
            f"  type: token\n"
            f"  token_secret: VAULT_TOKEN  # optional, GCP Secret Manager secret name"
        )

    auth = config['authentication']

    if 'type' not in auth:
        raise ConfigError("Missing 'authentication.type' in config")

    if auth['type'] != 'token':
        raise ConfigError(
            f"Unsupported authentication type: {auth['type']}\n"
            f"Only 'token' is supported."
        )

    # GCP section is only needed to fetch the Vault token from Secret Manager
    gcp = config.get('gcp') or {}
    config['gcp'] = gcp

    if auth.get('token_secret') and 'project_id' not in gcp and not os.getenv("GCP_PROJECT"):
        raise ConfigError(
            "Missing 'gcp.project_id' in config\n"
            "It is required when 'authentication.token_secret' is set."
        )

    service_account_path = gcp.get('service_account_path')
    if service_account_path:
        if not os.path.exists(service_account_path):
            raise ConfigError(
                f"Service account file not found at: {service_account_path}\n"
                f"Please ensure the file exists or update the path in {config_path}"
            )
        if not os.path.isfile(service_account_path):
            raise ConfigError(
                f"Service account path is not a file: {service_account_path}"
            )

    _validate_leases(config)

    logger.info(f"Configuration loaded successfully from {config_path}")
    logger.debug(f"Using Vault address: {vault['address']}")
    logger.debug(f"Using renewal window: {config['leases']['renewal_window']}")

    return config
