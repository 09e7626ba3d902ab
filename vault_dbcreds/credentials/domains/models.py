"""Domain models for database credential leases."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


@dataclass
class IssuedSecret:
    """Response of a Vault read against a credentials path."""
    lease_id: str
    data: Dict[str, Any]
    renewable: bool
    lease_duration: int


@dataclass
class Lease:
    """Dynamically generated database credentials and their lease metadata.

    lease_started is an RFC 3339 string stamped locally at issuance. It is
    the only field that may change after creation (cleared when unparsable).
    """
    id: str
    backend: str
    name: str
    username: str
    password: str = field(repr=False)
    renewable: bool
    duration: int
    lease_started: str

    def to_record(self) -> Dict[str, Any]:
        """Return the caller-facing record (everything except the lease id)."""
        return {
            "name": self.name,
            "backend": self.backend,
            "username": self.username,
            "password": self.password,
            "lease_renewable": self.renewable,
            "lease_duration": self.duration,
            "lease_started": self.lease_started,
        }

    @classmethod
    def from_record(cls, lease_id: str, record: Dict[str, Any]) -> "Lease":
        """Rebuild a Lease; raises KeyError for a missing field and ValueError for a bad duration."""
        return cls(
            id=lease_id,
            backend=record["backend"],
            name=record["name"],
            username=record["username"],
            password=record["password"],
            renewable=bool(record["lease_renewable"]),
            duration=int(record["lease_duration"]),
            lease_started=record["lease_started"],
        )


class LeaseDecision(Enum):
    """Outcome of evaluating a lease."""
    UNCHANGED = "unchanged"
    REISSUE = "reissue"
