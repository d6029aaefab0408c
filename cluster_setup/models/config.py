"""Setup tool configuration."""

from pathlib import Path

from pydantic import BaseModel, field_validator


class SetupConfig(BaseModel):
    """Where state lives and how the remote agent is driven."""

    state_dir: str = "state"
    ansible_dir: str = "ansible"
    assign_role_playbook: str = "assign_role.yml"
    orchestrate_playbook: str = "orchestrate.yml"
    provision_playbook: str = "cloud_provision.yml"
    tailscale_timeout: int = 10

    @field_validator("state_dir", "ansible_dir")
    @classmethod
    def validate_dir(cls, v: str) -> str:
        """Validate directories are not empty."""
        if not v:
            raise ValueError("directory cannot be empty")
        return v

    @field_validator("tailscale_timeout")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("tailscale_timeout must be positive")
        return v

    @property
    def pillar_file(self) -> Path:
        return Path(self.state_dir) / "pillars.yml"

    @property
    def minion_file(self) -> Path:
        return Path(self.state_dir) / "minions.yml"

    def save(self, path: str) -> None:
        """Save configuration to YAML file."""
        import yaml

        with open(path, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)

    @classmethod
    def load(cls, path: str) -> "SetupConfig":
        """Load configuration from YAML file."""
        import yaml

        with open(path) as f:
            data = yaml.safe_load(f)
        return cls(**(data or {}))
