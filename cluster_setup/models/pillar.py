"""Data models for pillar configuration entries."""

from enum import Enum

from pydantic import BaseModel


class PillarKey(str, Enum):
    """Recognized pillar names mapped to their pillar paths."""

    dashboard = "dashboard"
    apiserver = "api:server:external_fqdn"
    http_proxy = "proxy:http"
    https_proxy = "proxy:https"
    no_proxy = "proxy:no_proxy"
    proxy_systemwide = "proxy:systemwide"
    suse_registry_mirror_url = "suse_registry_mirror:url"
    suse_registry_mirror_cert = "suse_registry_mirror:cert"
    cloud_framework = "cloud:framework"
    cloud_worker_type = "cloud:profiles:cluster_node:size"
    cloud_worker_subnet = "cloud:profiles:cluster_node:subnet"
    cloud_worker_security_group = "cloud:profiles:cluster_node:security_group"
    azure_subscription_id = "cloud:providers:azure:subscription_id"
    azure_tenant_id = "cloud:providers:azure:tenant"
    azure_client_id = "cloud:providers:azure:client_id"
    azure_secret = "cloud:providers:azure:secret"
    azure_resource_group = "cloud:profiles:cluster_node:resource_group"
    azure_storage_account = "cloud:profiles:cluster_node:storage_account"
    azure_network_id = "cloud:profiles:cluster_node:network"

    @classmethod
    def from_name(cls, name: "str | PillarKey") -> "PillarKey":
        """Look up a key by its logical name (e.g. 'http_proxy').

        Raises:
            ValueError: If the name is not a recognized pillar
        """
        if isinstance(name, cls):
            return name
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"'{name}' is not a recognized pillar")

    @classmethod
    def from_path(cls, path: str) -> "PillarKey":
        """Look up a key by its pillar path (e.g. 'proxy:http')."""
        return cls(path)


class Pillar(BaseModel):
    """A single stored pillar."""

    key: PillarKey
    value: str

    def __str__(self) -> str:
        return f"{self.key.name} ({self.key.value}) = {self.value}"
