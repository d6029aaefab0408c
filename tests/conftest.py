"""Pytest configuration and shared fixtures."""

from unittest.mock import Mock

import pytest
from hypothesis import Verbosity, settings

from cluster_setup.models.minion import Minion
from cluster_setup.pillar_store import PillarStore
from cluster_setup.registry import NodeRegistry

# Configure Hypothesis for property-based testing
# Properties write real state files, so per-example deadlines are off
settings.register_profile("default", max_examples=100, deadline=None, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, deadline=None, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, deadline=None, verbosity=Verbosity.verbose)

settings.load_profile("default")


@pytest.fixture
def store(tmp_path):
    """Empty pillar store backed by a temporary file."""
    return PillarStore(tmp_path / "pillars.yml")


@pytest.fixture
def agent():
    """Remote agent that accepts every call."""
    mock = Mock()
    mock.assign_role.return_value = True
    mock.trigger_orchestration.return_value = None
    mock.provision_cluster.return_value = None
    return mock


@pytest.fixture
def registry(tmp_path, agent):
    """Registry with an unassigned master candidate and worker candidate."""
    registry = NodeRegistry(tmp_path / "minions.yml", agent)
    registry.register(
        [
            Minion(minion_id="m1", fqdn="master.example.com"),
            Minion(minion_id="w1", fqdn="worker0.example.com"),
        ]
    )
    return registry


@pytest.fixture
def settings_params():
    """Minimal valid configure-step submission."""
    return {"dashboard": "dashboard.example.com", "enable_proxy": "disable"}
