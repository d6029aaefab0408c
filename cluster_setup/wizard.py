"""Setup wizard step sequencer.

Drives configure → worker bootstrap → discovery / role assignment →
bootstrap. Every step returns a StepOutcome naming the stage to show next;
errors raised by the components are converted here and never escape as
exceptions of this package.
"""

from cluster_setup.agent import AnsibleAgent
from cluster_setup.bootstrap import BootstrapOrchestrator
from cluster_setup.cloud import CloudClusterFactory
from cluster_setup.discovery import TailscaleFeed
from cluster_setup.exceptions import ClusterSetupError, PrecedenceWarning, ValidationError
from cluster_setup.logging_config import get_logger
from cluster_setup.models.config import SetupConfig
from cluster_setup.models.outcome import StepOutcome, WizardStep
from cluster_setup.models.pillar import PillarKey
from cluster_setup.pillar_store import PillarStore
from cluster_setup.registry import NodeRegistry, RoleSelection
from cluster_setup.settings import SettingsMerger, current_settings

logger = get_logger(__name__)


def failure(error: ClusterSetupError, next_step: WizardStep) -> StepOutcome:
    """Outcome for a component error.

    Input problems the administrator has to fix become warnings; anything
    that failed while saving or on the remote end is an error.
    """
    if isinstance(error, (ValidationError, PrecedenceWarning)):
        return StepOutcome.warning(error.message, next_step, details=error.details)
    return StepOutcome.error(
        error.message, next_step, details=error.details, errors=getattr(error, "errors", [])
    )


class SetupWizard:
    """Runs the setup steps against the store, registry and agent."""

    def __init__(self, store: PillarStore, registry: NodeRegistry, agent, feed=None):
        self.store = store
        self.registry = registry
        self.agent = agent
        self.feed = feed
        self.merger = SettingsMerger(store)
        self.clouds = CloudClusterFactory(store, agent)
        self.orchestrator = BootstrapOrchestrator(store, registry, agent)

    @classmethod
    def from_config(cls, config: SetupConfig) -> "SetupWizard":
        """Wire the file-backed stores, the Ansible agent and Tailscale discovery."""
        agent = AnsibleAgent(config)
        registry = NodeRegistry(config.minion_file, agent)
        agent.minions = registry.all
        return cls(
            store=PillarStore(config.pillar_file),
            registry=registry,
            agent=agent,
            feed=TailscaleFeed(timeout=config.tailscale_timeout),
        )

    def welcome(self) -> StepOutcome:
        """Stored settings to pre-fill the configure step."""
        try:
            view = current_settings(self.store)
        except ClusterSetupError as e:
            return failure(e, WizardStep.welcome)
        return StepOutcome.success("Current settings", WizardStep.welcome, **view.model_dump())

    def configure(self, form: dict) -> StepOutcome:
        try:
            changes = self.merger.merge(form)
        except ClusterSetupError as e:
            logger.warning(f"Configure step failed: {e.message}")
            return failure(e, WizardStep.welcome)

        return StepOutcome.success(
            "Settings saved",
            WizardStep.worker_bootstrap,
            written=sorted(k.name for k in changes.writes),
            erased=sorted(k.name for k in changes.deletes),
        )

    def worker_bootstrap(self) -> StepOutcome:
        """Controller address and, on a cloud, the instance sizes on offer."""
        try:
            controller_node = self.store.get(PillarKey.dashboard)
            framework = None
            # No framework pillar means bare metal workers
            if self.store.get(PillarKey.cloud_framework):
                framework = self.clouds.framework()
            instance_types = self.clouds.instance_types() if framework else []
        except ClusterSetupError as e:
            return failure(e, WizardStep.worker_bootstrap)

        return StepOutcome.success(
            "Bootstrap your worker nodes",
            WizardStep.worker_bootstrap,
            controller_node=controller_node,
            cloud_framework=framework.value if framework else None,
            instance_types=[t.model_dump() for t in instance_types],
        )

    def build_cloud_cluster(self, form: dict) -> StepOutcome:
        try:
            cluster = self.clouds.provision(form)
        except ClusterSetupError as e:
            logger.error(f"Cloud cluster request failed: {e.message}")
            return failure(e, WizardStep.worker_bootstrap)

        return StepOutcome.success(
            f"Starting {cluster.instance_count} {cluster.cloud_framework.value} worker(s). "
            "They will appear on the discovery step once they boot.",
            WizardStep.discovery,
            cloud_cluster=cluster.confirmation(),
        )

    def discover(self, refresh: bool = True) -> StepOutcome:
        """List known minions, first pulling new ones from the discovery feed."""
        try:
            added = []
            if refresh and self.feed:
                added = self.registry.register(self.feed.discover())
            minions = self.registry.all()
        except ClusterSetupError as e:
            return failure(e, WizardStep.discovery)

        return StepOutcome.success(
            f"{len(minions)} node(s) known, {len(added)} new",
            WizardStep.discovery,
            minions=[m.model_dump(mode="json") for m in minions],
            added=[m.minion_id for m in added],
        )

    def set_roles(self, selection: RoleSelection | dict) -> StepOutcome:
        try:
            result = self.registry.assign_roles(selection)
        except ClusterSetupError as e:
            return failure(e, WizardStep.discovery)

        committed = [o.minion_id for o in result.committed]
        if result.fatal:
            return StepOutcome.error(
                "Failed to assign the master role",
                WizardStep.discovery,
                details="No roles were changed.",
                errors=result.describe_rejections(),
            )
        if result.rejected:
            return StepOutcome.error(
                f"Failed to assign roles to {len(result.rejected)} node(s)",
                WizardStep.discovery,
                details="Nodes not listed here were assigned and keep their roles.",
                errors=result.describe_rejections(),
                committed=committed,
            )
        return StepOutcome.success("Roles assigned", WizardStep.bootstrap, committed=committed)

    def bootstrap(self, settings: dict) -> StepOutcome:
        try:
            report = self.orchestrator.bootstrap(settings)
        except ValidationError as e:
            # No master recorded: roles have to be chosen again
            return failure(e, WizardStep.discovery)
        except ClusterSetupError as e:
            return failure(e, WizardStep.bootstrap)

        return StepOutcome.success(
            "Cluster bootstrap started",
            WizardStep.done,
            applied_settings=report.applied_settings,
            assigned=[o.minion_id for o in report.assignments.committed],
        )
