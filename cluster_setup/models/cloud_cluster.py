"""Data models for cloud cluster provisioning requests."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from cluster_setup.models.pillar import PillarKey


class CloudFramework(str, Enum):
    """Cloud provider backends a cluster can be provisioned on."""

    ec2 = "ec2"
    azure = "azure"


def _required_text(value: str, name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{name} cannot be empty")
    return value.strip()


class InstanceType(BaseModel):
    """Instance size offered on the worker bootstrap step."""

    key: str
    category: str
    vcpu_count: int
    ram_bytes: int
    details: str = ""

    @property
    def ram_gib(self) -> float:
        return round(self.ram_bytes / 1024**3, 1)

    def __str__(self) -> str:
        return f"{self.key} ({self.vcpu_count} vCPU, {self.ram_gib} GiB)"


class CloudCluster(BaseModel):
    """Provider-neutral part of a provisioning request."""

    cloud_framework: CloudFramework
    instance_type: str
    instance_count: int = Field(gt=0)

    @field_validator("instance_type")
    @classmethod
    def validate_instance_type(cls, v: str) -> str:
        """Validate instance_type is not empty."""
        return _required_text(v, "instance_type")

    def pillar_values(self) -> dict[PillarKey, str]:
        """Pillars written when the request is saved."""
        return {PillarKey.cloud_worker_type: self.instance_type}

    def save(self, store) -> None:
        """Persist the provider settings into the pillar store.

        Raises:
            PersistenceError: If any pillar cannot be written
        """
        for key, value in self.pillar_values().items():
            store.set(key, value)

    def confirmation(self) -> dict:
        """Fields shown to the administrator after provisioning starts."""
        return self.model_dump(mode="json")


class Ec2Cluster(CloudCluster):
    """Worker cluster request on Amazon EC2."""

    cloud_framework: Literal[CloudFramework.ec2] = CloudFramework.ec2
    subnet_id: str
    security_group_id: str

    @field_validator("subnet_id", "security_group_id")
    @classmethod
    def validate_ids(cls, v: str, info: ValidationInfo) -> str:
        return _required_text(v, info.field_name)

    def pillar_values(self) -> dict[PillarKey, str]:
        return {
            **super().pillar_values(),
            PillarKey.cloud_worker_subnet: self.subnet_id,
            PillarKey.cloud_worker_security_group: self.security_group_id,
        }


class AzureCluster(CloudCluster):
    """Worker cluster request on Microsoft Azure."""

    cloud_framework: Literal[CloudFramework.azure] = CloudFramework.azure
    subscription_id: str
    tenant_id: str
    client_id: str
    secret: str
    resource_group: str
    storage_account: str
    network_id: str
    subnet_id: str

    @field_validator(
        "subscription_id",
        "tenant_id",
        "client_id",
        "secret",
        "resource_group",
        "storage_account",
        "network_id",
        "subnet_id",
    )
    @classmethod
    def validate_credentials(cls, v: str, info: ValidationInfo) -> str:
        """Validate Azure settings are not empty."""
        return _required_text(v, info.field_name)

    def pillar_values(self) -> dict[PillarKey, str]:
        return {
            **super().pillar_values(),
            PillarKey.azure_subscription_id: self.subscription_id,
            PillarKey.azure_tenant_id: self.tenant_id,
            PillarKey.azure_client_id: self.client_id,
            PillarKey.azure_secret: self.secret,
            PillarKey.azure_resource_group: self.resource_group,
            PillarKey.azure_storage_account: self.storage_account,
            PillarKey.azure_network_id: self.network_id,
            PillarKey.cloud_worker_subnet: self.subnet_id,
        }

    def confirmation(self) -> dict:
        # Service principal secret never leaves the store
        return self.model_dump(mode="json", exclude={"secret"})
