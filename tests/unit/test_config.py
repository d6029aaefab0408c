"""Tests for the setup configuration file."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from cluster_setup.models.config import SetupConfig


def test_defaults_work_without_a_file():
    config = SetupConfig()

    assert config.pillar_file == Path("state") / "pillars.yml"
    assert config.minion_file == Path("state") / "minions.yml"
    assert config.assign_role_playbook == "assign_role.yml"


def test_save_and_load(tmp_path):
    path = tmp_path / "setup.yml"
    SetupConfig(state_dir="/var/lib/cluster-setup", tailscale_timeout=30).save(str(path))

    loaded = SetupConfig.load(str(path))

    assert loaded.state_dir == "/var/lib/cluster-setup"
    assert loaded.tailscale_timeout == 30


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "setup.yml"
    path.write_text("")

    assert SetupConfig.load(str(path)) == SetupConfig()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        SetupConfig.load(str(tmp_path / "missing.yml"))


@pytest.mark.parametrize(
    "field,value", [("state_dir", ""), ("ansible_dir", ""), ("tailscale_timeout", 0)]
)
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        SetupConfig(**{field: value})
