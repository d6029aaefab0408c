"""Tests for the bootstrap sequence."""

from unittest.mock import patch

import pytest

from cluster_setup.bootstrap import BootstrapOrchestrator
from cluster_setup.exceptions import PersistenceError, RemoteAssignmentError, ValidationError
from cluster_setup.models.minion import MinionRole
from cluster_setup.models.pillar import PillarKey


@pytest.fixture
def orchestrator(store, registry, agent):
    return BootstrapOrchestrator(store, registry, agent)


@pytest.fixture
def roles_recorded(registry, agent):
    registry.assign_roles({"master": ["m1"], "worker": ["w1"]})
    agent.assign_role.reset_mock()
    return registry


@pytest.fixture
def settings_params():
    return {"apiserver": "apiserver.example.com"}


def test_pillar_failure_stops_everything(
    orchestrator, store, agent, roles_recorded, settings_params
):
    with patch.object(store, "apply_all", return_value=["apiserver could not be saved"]):
        with pytest.raises(PersistenceError) as exc_info:
            orchestrator.bootstrap(settings_params)

    assert exc_info.value.errors == ["apiserver could not be saved"]
    agent.assign_role.assert_not_called()
    agent.trigger_orchestration.assert_not_called()


def test_empty_apiserver_is_rejected(orchestrator, store, agent, roles_recorded):
    with pytest.raises(PersistenceError, match="could not be saved"):
        orchestrator.bootstrap({"apiserver": ""})

    agent.trigger_orchestration.assert_not_called()


@pytest.mark.parametrize("apiserver", ["   ", "\t\n"])
def test_blank_apiserver_is_rejected(orchestrator, store, agent, roles_recorded, apiserver):
    with pytest.raises(PersistenceError, match="could not be saved") as exc_info:
        orchestrator.bootstrap({"apiserver": apiserver})

    assert exc_info.value.errors == ["'apiserver' cannot be empty"]
    assert store.get(PillarKey.apiserver) is None
    agent.assign_role.assert_not_called()
    agent.trigger_orchestration.assert_not_called()


def test_apiserver_is_stored_stripped(orchestrator, store, roles_recorded):
    orchestrator.bootstrap({"apiserver": "  apiserver.example.com\n"})

    assert store.get(PillarKey.apiserver) == "apiserver.example.com"


def test_remote_role_failure_skips_orchestration(
    orchestrator, agent, roles_recorded, settings_params
):
    agent.assign_role.return_value = False

    with pytest.raises(RemoteAssignmentError, match="Role assignment failed"):
        orchestrator.bootstrap(settings_params)

    agent.trigger_orchestration.assert_not_called()


def test_master_failure_is_fatal(orchestrator, agent, roles_recorded, settings_params):
    agent.assign_role.side_effect = lambda minion_id, role: role != MinionRole.master

    with pytest.raises(RemoteAssignmentError):
        orchestrator.bootstrap(settings_params)

    agent.assign_role.assert_called_once_with("m1", MinionRole.master)
    agent.trigger_orchestration.assert_not_called()


def test_worker_failure_skips_orchestration(orchestrator, agent, roles_recorded, settings_params):
    agent.assign_role.side_effect = lambda minion_id, role: role != MinionRole.worker

    with pytest.raises(RemoteAssignmentError) as exc_info:
        orchestrator.bootstrap(settings_params)

    assert "w1 (worker)" in exc_info.value.details
    agent.trigger_orchestration.assert_not_called()


def test_settings_stay_applied_after_role_failure(
    orchestrator, store, agent, roles_recorded, settings_params
):
    agent.assign_role.return_value = False

    with pytest.raises(RemoteAssignmentError) as exc_info:
        orchestrator.bootstrap(settings_params)

    assert store.get(PillarKey.apiserver) == "apiserver.example.com"
    assert "remain in effect" in exc_info.value.details


def test_no_master_recorded(orchestrator, agent, settings_params):
    with pytest.raises(ValidationError, match="No master"):
        orchestrator.bootstrap(settings_params)

    agent.assign_role.assert_not_called()
    agent.trigger_orchestration.assert_not_called()


def test_success_orchestrates_once(orchestrator, store, agent, roles_recorded, settings_params):
    report = orchestrator.bootstrap(settings_params)

    agent.trigger_orchestration.assert_called_once_with()
    assert report.orchestrated
    assert report.applied_settings == ["apiserver"]
    assert [o.minion_id for o in report.assignments.committed] == ["m1", "w1"]
    assert store.get(PillarKey.apiserver) == "apiserver.example.com"


def test_orchestration_failure_propagates(orchestrator, agent, roles_recorded, settings_params):
    agent.trigger_orchestration.side_effect = RemoteAssignmentError("Orchestration failed to start")

    with pytest.raises(RemoteAssignmentError, match="Orchestration failed"):
        orchestrator.bootstrap(settings_params)

    agent.trigger_orchestration.assert_called_once_with()
