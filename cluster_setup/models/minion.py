"""Data models for discovered cluster nodes."""

import re
from enum import Enum

from pydantic import BaseModel, field_validator


class MinionRole(str, Enum):
    """Role a minion plays in the cluster."""

    unassigned = "unassigned"
    master = "master"
    worker = "worker"


class Minion(BaseModel):
    """A discovered node that can be assigned a cluster role."""

    minion_id: str
    fqdn: str
    role: MinionRole = MinionRole.unassigned

    @field_validator("minion_id")
    @classmethod
    def validate_minion_id(cls, v: str) -> str:
        """Validate minion_id is not empty."""
        if not v or not v.strip():
            raise ValueError("minion_id cannot be empty")
        return v

    @field_validator("fqdn")
    @classmethod
    def validate_fqdn(cls, v: str) -> str:
        """Validate fqdn follows DNS naming conventions."""
        if not v:
            raise ValueError("fqdn cannot be empty")
        if len(v) > 253:
            raise ValueError("fqdn cannot exceed 253 characters")
        # RFC 1123 hostname validation
        hostname_pattern = re.compile(
            r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$", re.IGNORECASE
        )
        if not hostname_pattern.match(v):
            raise ValueError(
                f"fqdn '{v}' must contain only alphanumeric characters, "
                "hyphens, and dots, and cannot start or end with a hyphen"
            )
        return v

    @property
    def assigned(self) -> bool:
        return self.role != MinionRole.unassigned

    def to_state_dict(self) -> dict:
        """Convert to the minion state file format."""
        return {"fqdn": self.fqdn, "role": self.role.value}

    @classmethod
    def from_state_dict(cls, minion_id: str, data: dict) -> "Minion":
        """Parse from the minion state file format."""
        return cls(
            minion_id=minion_id,
            fqdn=data["fqdn"],
            role=data.get("role", MinionRole.unassigned.value),
        )

    def to_inventory_dict(self) -> dict:
        """Convert to an Ansible inventory host entry."""
        return {"ansible_host": self.fqdn, "cluster_role": self.role.value}
