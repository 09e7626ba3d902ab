"""Workflow for issuing, evaluating and revoking database credential leases."""
import logging
from datetime import datetime, timedelta
from typing import Optional
from ..domains.models import Lease, LeaseDecision
from ..domains.renewal import (
    RENEWAL_BUFFER,
    RenewalWindow,
    format_timestamp,
    is_due_for_reissue,
    utcnow,
)
from ..domains.vault_client import VaultClientError, VaultSecretClient

logger = logging.getLogger(__name__)


class LeaseIssueError(Exception):
    """Raised when Vault fails to issue credentials for a role.

    revoked_lease_id is set when a reissue failed after the previous lease
    was already revoked.
    """

    def __init__(self, message: str, revoked_lease_id: Optional[str] = None):
        super().__init__(message)
        self.revoked_lease_id = revoked_lease_id


class LeaseRevokeError(Exception):
    """Raised when Vault fails to revoke a lease."""
    pass


def credentials_path(backend: str, name: str) -> str:
    """Build the creds path, stripping '/' from both ends of each segment."""
    return backend.strip("/") + "/creds/" + name.strip("/")


def issue_credentials(client: VaultSecretClient, backend: str, name: str) -> Lease:
    """
    Request brand-new credentials for a role.

    Every call creates a new lease, even if an unexpired one already exists
    for the same role.

    Args:
        client: Vault gateway
        backend: Mount path of the database secrets engine
        name: Role name

    Returns:
        Fully populated Lease stamped with the local issuance time

    Raises:
        LeaseIssueError: If the Vault read fails or returns no username or password
    """
    path = credentials_path(backend, name)

    logger.debug(f"Reading credentials for role {name!r} from database backend {backend!r}")
    try:
        secret = client.read(path)
    except VaultClientError as e:
        raise LeaseIssueError(
            f"issuing credentials for role {name!r} on backend {backend!r}: {e}"
        ) from e
    missing = [key for key in ("username", "password") if not secret.data.get(key)]
    if missing:
        raise LeaseIssueError(
            f"issuing credentials for role {name!r} on backend {backend!r}: "
            f"response has no {', '.join(missing)}"
        )
    logger.debug(f"Issued credentials for role {name!r} on database backend {backend!r}")

    return Lease(
        id=secret.lease_id,
        backend=backend,
        name=name,
        username=secret.data["username"],
        password=secret.data["password"],
        renewable=secret.renewable,
        duration=secret.lease_duration,
        lease_started=format_timestamp(utcnow()),
    )


def evaluate_lease(
    lease: Lease,
    now: Optional[datetime] = None,
    window: RenewalWindow = RenewalWindow.LITERAL,
    buffer: timedelta = RENEWAL_BUFFER,
) -> LeaseDecision:
    """Decide whether a lease is left alone or replaced."""
    if is_due_for_reissue(lease, now=now, window=window, buffer=buffer):
        return LeaseDecision.REISSUE
    return LeaseDecision.UNCHANGED


def reconcile_lease(
    client: VaultSecretClient,
    lease: Lease,
    now: Optional[datetime] = None,
    window: RenewalWindow = RenewalWindow.LITERAL,
    buffer: timedelta = RENEWAL_BUFFER,
    revoke_previous: bool = False,
) -> Lease:
    """
    Evaluate a lease and reissue it when it is inside the renewal window.

    Returns:
        The same lease object if unchanged, otherwise a newly issued Lease.
        The old lease is abandoned unless revoke_previous is set.

    Raises:
        LeaseIssueError: If reissuing fails; revoked_lease_id is set when the
            old lease had already been revoked
        LeaseRevokeError: If revoke_previous is set and revocation fails
    """
    if evaluate_lease(lease, now=now, window=window, buffer=buffer) is LeaseDecision.UNCHANGED:
        return lease

    logger.debug("Credentials expiring soon, obtaining new credentials.")
    if not revoke_previous:
        return issue_credentials(client, lease.backend, lease.name)

    revoke_credentials(client, lease.id)
    try:
        return issue_credentials(client, lease.backend, lease.name)
    except LeaseIssueError as e:
        raise LeaseIssueError(str(e), revoked_lease_id=lease.id) from e


def revoke_credentials(client: VaultSecretClient, lease_id: str) -> None:
    """
    Revoke a lease. A single failed attempt is surfaced immediately.

    Raises:
        LeaseRevokeError: If the Vault revoke call fails
    """
    logger.debug(f"Revoking credentials {lease_id!r}")
    try:
        client.revoke(lease_id)
    except VaultClientError as e:
        raise LeaseRevokeError(f"revoking credentials {lease_id!r}: {e}") from e
