"""Local store for caller-facing lease records.

Records live in ~/.config/vault-dbcreds/leases.json (or DBCREDS_STATE_FILE),
keyed by lease id. The file holds generated passwords and is written 0600.
"""
import json
import os
from pathlib import Path
from typing import Dict, Any, List
import logging

from .models import Lease

logger = logging.getLogger(__name__)


class LeaseStoreError(Exception):
    """Raised when a lease record cannot be found or read."""
    pass


def _state_file() -> Path:
    env_path = os.getenv("DBCREDS_STATE_FILE")
    if env_path:
        return Path(env_path)
    return Path.home() / ".config" / "vault-dbcreds" / "leases.json"


def _to_lease(lease_id: str, record: Dict[str, Any]) -> Lease:
    try:
        return Lease.from_record(lease_id, record)
    except KeyError as e:
        raise LeaseStoreError(f"Stored lease '{lease_id}' is missing field {e}")
    except (TypeError, ValueError) as e:
        raise LeaseStoreError(f"Stored lease '{lease_id}' is invalid: {e}")


def _load_records() -> Dict[str, Dict[str, Any]]:
    state_file = _state_file()
    if not state_file.exists():
        return {}

    try:
        with open(state_file, 'r') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise LeaseStoreError(f"Failed to parse lease store {state_file}: {e}")


def _save_records(records: Dict[str, Dict[str, Any]]) -> None:
    state_file = _state_file()
    state_file.parent.mkdir(parents=True, exist_ok=True)

    fd = os.open(state_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, 'w') as f:
        json.dump(records, f, indent=2)


def save_lease(lease: Lease) -> None:
    """Insert or replace the record for a lease."""
    records = _load_records()
    records[lease.id] = lease.to_record()
    _save_records(records)
    logger.debug(f"Stored lease {lease.id!r} for role {lease.name!r}")


def load_lease(lease_id: str) -> Lease:
    """
    Load a stored lease by id.

    Raises:
        LeaseStoreError: If no record exists for the id or it is incomplete
    """
    records = _load_records()
    if lease_id not in records:
        raise LeaseStoreError(f"No stored lease with id '{lease_id}'")
    return _to_lease(lease_id, records[lease_id])


def remove_lease(lease_id: str) -> None:
    records = _load_records()
    if lease_id in records:
        del records[lease_id]
        _save_records(records)
        logger.debug(f"Removed lease {lease_id!r}")
    else:
        logger.debug(f"Lease {lease_id!r} not stored, nothing to remove")


def list_leases() -> List[Lease]:
    return [_to_lease(lease_id, record) for lease_id, record in _load_records().items()]
