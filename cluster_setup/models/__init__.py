"""Data models for cluster setup state and requests."""

from cluster_setup.models.cloud_cluster import (
    AzureCluster,
    CloudCluster,
    CloudFramework,
    Ec2Cluster,
    InstanceType,
)
from cluster_setup.models.config import SetupConfig
from cluster_setup.models.minion import Minion, MinionRole
from cluster_setup.models.outcome import OutcomeStatus, StepOutcome, WizardStep
from cluster_setup.models.pillar import Pillar, PillarKey

__all__ = [
    "AzureCluster",
    "CloudCluster",
    "CloudFramework",
    "Ec2Cluster",
    "InstanceType",
    "Minion",
    "MinionRole",
    "OutcomeStatus",
    "Pillar",
    "PillarKey",
    "SetupConfig",
    "StepOutcome",
    "WizardStep",
]
