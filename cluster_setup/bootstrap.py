"""Final setup step: settings, remote roles, then orchestration.

The sequence is fail-fast but not transactional. Settings applied in the
first phase stay in effect if role assignment fails afterwards; the error
raised says so. Orchestration is only triggered once settings and every
role assignment were confirmed.
"""

from dataclasses import dataclass, field

from cluster_setup.exceptions import PersistenceError, RemoteAssignmentError
from cluster_setup.logging_config import get_logger
from cluster_setup.models.pillar import PillarKey
from cluster_setup.registry import RoleAssignmentResult

logger = get_logger(__name__)

BOOTSTRAP_REQUIRED_KEYS = (PillarKey.apiserver,)


@dataclass
class BootstrapReport:
    """What a successful bootstrap did."""

    applied_settings: list[str] = field(default_factory=list)
    assignments: RoleAssignmentResult = field(default_factory=RoleAssignmentResult)
    orchestrated: bool = False


class BootstrapOrchestrator:
    """Turns recorded roles into a running cluster."""

    def __init__(self, store, registry, agent):
        self.store = store
        self.registry = registry
        self.agent = agent

    def bootstrap(self, settings: dict) -> BootstrapReport:
        """Apply bootstrap settings, assign roles remotely, trigger orchestration.

        Args:
            settings: Bootstrap-time pillars, e.g. {"apiserver": "api.example.com"}

        Raises:
            PersistenceError: If any setting was not saved; nothing remote happens
            ValidationError: If no master has been recorded
            RemoteAssignmentError: If a role assignment or the orchestration
                trigger failed; orchestration is never started after a
                failed assignment
        """
        report = BootstrapReport()

        logger.info("Bootstrap: applying settings")
        errors = self.store.apply_all(settings, required_keys=list(BOOTSTRAP_REQUIRED_KEYS))
        if errors:
            logger.error(f"Bootstrap aborted, settings not saved: {errors}")
            raise PersistenceError(
                "Bootstrap settings could not be saved",
                "Role assignment and orchestration were not started. "
                "Settings not listed here were saved. " + "; ".join(errors),
                errors=errors,
            )
        report.applied_settings = sorted(PillarKey.from_name(k).name for k in settings)

        logger.info("Bootstrap: assigning roles on the remote agent")
        report.assignments = self.registry.reassign_recorded_roles()
        if not report.assignments.succeeded:
            rejections = report.assignments.describe_rejections()
            logger.error(f"Bootstrap aborted, role assignment failed: {rejections}")
            raise RemoteAssignmentError(
                "Role assignment failed on the remote end",
                "Orchestration was not started. The bootstrap settings were saved "
                "and remain in effect. Rejected: " + "; ".join(rejections),
            )

        logger.info("Bootstrap: triggering orchestration")
        self.agent.trigger_orchestration()
        report.orchestrated = True
        logger.info("Bootstrap complete")
        return report
