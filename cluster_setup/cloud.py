"""Cloud worker cluster requests for EC2 and Azure.

The cloud framework is a cluster-wide fact held in the ``cloud_framework``
pillar. Requests never choose it: a request that names a framework is
rejected outright.
"""

from functools import lru_cache
from pathlib import Path

import pydantic
import yaml

from cluster_setup.exceptions import ConfigurationError, PersistenceError, ValidationError
from cluster_setup.logging_config import get_logger
from cluster_setup.models.cloud_cluster import (
    AzureCluster,
    CloudCluster,
    CloudFramework,
    Ec2Cluster,
    InstanceType,
)
from cluster_setup.models.pillar import PillarKey

logger = get_logger(__name__)

INSTANCE_TYPES_FILE = Path(__file__).parent / "data" / "instance_types.yml"

CLUSTER_MODELS: dict[CloudFramework, type[CloudCluster]] = {
    CloudFramework.ec2: Ec2Cluster,
    CloudFramework.azure: AzureCluster,
}


@lru_cache(maxsize=None)
def _catalogue() -> dict:
    with open(INSTANCE_TYPES_FILE) as f:
        return yaml.safe_load(f) or {}


def load_instance_types(framework: CloudFramework) -> list[InstanceType]:
    """Instance sizes offered for a framework."""
    return [InstanceType(**entry) for entry in _catalogue().get(framework.value, [])]


class CloudClusterFactory:
    """Builds and provisions worker clusters on the configured cloud."""

    def __init__(self, store, agent):
        self.store = store
        self.agent = agent

    def framework(self) -> CloudFramework:
        """The framework recorded in the pillar store.

        Raises:
            ConfigurationError: If no usable framework is recorded
        """
        value = self.store.get(PillarKey.cloud_framework)
        if not value:
            raise ConfigurationError(
                "No cloud framework is configured",
                f"Set the '{PillarKey.cloud_framework.value}' pillar to one of: "
                f"{', '.join(f.value for f in CloudFramework)}",
            )
        try:
            return CloudFramework(value)
        except ValueError:
            raise ConfigurationError(f"Unsupported cloud framework '{value}'")

    def instance_types(self) -> list[InstanceType]:
        return load_instance_types(self.framework())

    def build(self, form: dict) -> CloudCluster:
        """Construct the request for the configured framework.

        Raises:
            ValidationError: If the form names a framework or fails validation
            ConfigurationError: If no framework is configured
        """
        if "cloud_framework" in form:
            raise ValidationError(
                "The cloud framework cannot be chosen per request",
                "It is part of the cluster configuration and is read from the pillar store.",
            )

        framework = self.framework()
        model = CLUSTER_MODELS[framework]
        fields = {name: form[name] for name in model.model_fields if name in form}

        ignored = sorted(set(form) - set(fields))
        if ignored:
            logger.debug(f"Ignoring fields not used by {framework.value}: {', '.join(ignored)}")

        try:
            return model(**fields, cloud_framework=framework)
        except pydantic.ValidationError as e:
            problems = [
                f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
            ]
            raise ValidationError(
                f"Invalid {framework.value} cluster request", "; ".join(problems)
            )

    def provision(self, form: dict) -> CloudCluster:
        """Save the request and start provisioning.

        The provisioning call is made exactly once, and only after the
        request was saved.

        Raises:
            PersistenceError: If saving fails; nothing is provisioned
            RemoteAssignmentError: If the provisioning call fails
        """
        cluster = self.build(form)

        try:
            cluster.save(self.store)
        except PersistenceError:
            raise
        except Exception as e:
            logger.error(f"Failed to save cloud cluster request: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save cloud cluster request: {e}")

        logger.info(
            f"Provisioning {cluster.instance_count} {cluster.instance_type} "
            f"instance(s) on {cluster.cloud_framework.value}"
        )
        self.agent.provision_cluster(cluster.instance_count)
        return cluster
