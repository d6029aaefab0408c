"""Remote configuration agent driven through ansible-runner.

Each remote procedure is an Ansible playbook run against an inventory built
from the minion registry. Calls block until the playbook finishes.
"""

from pathlib import Path

import ansible_runner

from cluster_setup.exceptions import RemoteAssignmentError
from cluster_setup.logging_config import get_logger
from cluster_setup.models.config import SetupConfig
from cluster_setup.models.minion import MinionRole

logger = get_logger(__name__)


class AnsibleAgent:
    """Runs the setup playbooks on the cluster nodes."""

    def __init__(self, config: SetupConfig, minions=None):
        """Initialize the agent.

        Args:
            config: Setup configuration (playbook names, private data dir)
            minions: Callable returning the current minions for the inventory
        """
        self.config = config
        self.minions = minions or (lambda: [])

    def inventory(self) -> dict:
        """Ansible inventory for the known minions, grouped by role."""
        groups = {role.value: {"hosts": {}} for role in MinionRole}
        for minion in self.minions():
            groups[minion.role.value]["hosts"][minion.minion_id] = minion.to_inventory_dict()
        return {"all": {"children": groups}}

    def _run(self, playbook: str, limit: str | None = None, extravars: dict | None = None):
        playbook_path = Path(self.config.ansible_dir) / "playbooks" / playbook
        if not playbook_path.exists():
            logger.error(f"Playbook not found: {playbook_path}")
            raise RemoteAssignmentError(
                f"Playbook not found: {playbook_path}",
                f"Check 'ansible_dir' in the configuration ({self.config.ansible_dir})",
            )

        runner_params = {
            "private_data_dir": self.config.ansible_dir,
            "playbook": f"playbooks/{playbook}",
            "inventory": self.inventory(),
            "quiet": True,
        }
        if limit:
            runner_params["limit"] = limit
        if extravars:
            runner_params["extravars"] = extravars

        logger.info(f"Running playbook {playbook}" + (f" on {limit}" if limit else ""))
        try:
            runner = ansible_runner.run(**runner_params)
        except Exception as e:
            logger.error(f"ansible-runner failed to start {playbook}: {e}", exc_info=True)
            raise RemoteAssignmentError(f"Failed to run playbook {playbook}: {e}")

        logger.debug(f"Playbook {playbook} finished: status={runner.status} rc={runner.rc}")
        return runner

    def assign_role(self, minion_id: str, role: MinionRole) -> bool:
        """Apply a role on one node.

        Returns:
            True if the node accepted the role
        """
        runner = self._run(
            self.config.assign_role_playbook,
            limit=minion_id,
            extravars={"cluster_role": MinionRole(role).value},
        )
        return runner.rc == 0

    def trigger_orchestration(self) -> None:
        """Start cluster-wide convergence.

        Raises:
            RemoteAssignmentError: If the orchestration playbook fails
        """
        runner = self._run(self.config.orchestrate_playbook)
        if runner.rc != 0:
            raise RemoteAssignmentError(
                "Orchestration failed to start",
                f"Playbook {self.config.orchestrate_playbook} ended with "
                f"status '{runner.status}' (rc={runner.rc})",
            )

    def provision_cluster(self, instance_count: int) -> None:
        """Create worker instances on the configured cloud framework.

        Raises:
            RemoteAssignmentError: If the provisioning playbook fails
        """
        runner = self._run(
            self.config.provision_playbook, extravars={"instance_count": instance_count}
        )
        if runner.rc != 0:
            raise RemoteAssignmentError(
                f"Provisioning of {instance_count} instance(s) failed",
                f"Playbook {self.config.provision_playbook} ended with "
                f"status '{runner.status}' (rc={runner.rc})",
            )

