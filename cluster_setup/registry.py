"""Discovered minions and their cluster roles.

Roles are assigned on the remote agent first and recorded locally only once
the agent confirmed them. Every attempt yields a tagged per-node outcome,
``Committed`` or ``Rejected``, and the outcomes of one call are aggregated
into a ``RoleAssignmentResult``.
"""

from dataclasses import dataclass, field
from pathlib import Path

import pydantic
from pydantic import BaseModel, Field, field_validator

from cluster_setup.exceptions import PrecedenceWarning, RemoteAssignmentError, ValidationError
from cluster_setup.logging_config import get_logger
from cluster_setup.models.minion import Minion, MinionRole
from cluster_setup.storage import StateFile

logger = get_logger(__name__)


@dataclass(frozen=True)
class Committed:
    """The agent accepted the role and it was recorded."""

    minion_id: str
    role: MinionRole


@dataclass(frozen=True)
class Rejected:
    """The agent refused or failed to apply the role. Nothing was recorded."""

    minion_id: str
    role: MinionRole
    reason: str


AssignmentOutcome = Committed | Rejected


@dataclass
class RoleAssignmentResult:
    """Outcomes of one role assignment call."""

    outcomes: list[AssignmentOutcome] = field(default_factory=list)
    # Set when the master was rejected and the call stopped there
    fatal: bool = False

    @property
    def committed(self) -> list[Committed]:
        return [o for o in self.outcomes if isinstance(o, Committed)]

    @property
    def rejected(self) -> list[Rejected]:
        return [o for o in self.outcomes if isinstance(o, Rejected)]

    @property
    def succeeded(self) -> bool:
        return not self.fatal and not self.rejected

    def describe_rejections(self) -> list[str]:
        return [f"{o.minion_id} ({o.role.value}): {o.reason}" for o in self.rejected]


class RoleSelection(BaseModel):
    """Requested roles, as minion ids per role."""

    master: list[str] = Field(default_factory=list)
    worker: list[str] = Field(default_factory=list)

    @field_validator("master", "worker", mode="before")
    @classmethod
    def coerce_ids(cls, v):
        """Accept a single id, None, or ids of any scalar type."""
        if v is None:
            return []
        if isinstance(v, (str, int)):
            v = [v]
        if not isinstance(v, (list, tuple, set)):
            raise ValueError(f"expected a node id or a list of node ids, got {v!r}")
        return [str(i) for i in v if str(i).strip()]

    @property
    def empty(self) -> bool:
        return not self.master and not self.worker


class NodeRegistry:
    """Minions persisted in a YAML file, with remote role assignment."""

    def __init__(self, path: str | Path, agent):
        """Initialize the registry.

        Args:
            path: Path to the minion state file
            agent: Remote agent used to apply roles on the nodes
        """
        self.file = StateFile(path, "minions")
        self.agent = agent

    def all(self) -> list[Minion]:
        """All known minions, sorted by fqdn."""
        minions = [
            Minion.from_state_dict(str(minion_id), data)
            for minion_id, data in self.file.read().items()
        ]
        return sorted(minions, key=lambda m: (m.fqdn, m.minion_id))

    def get(self, minion_id: str) -> Minion | None:
        data = self.file.read().get(minion_id)
        return None if data is None else Minion.from_state_dict(minion_id, data)

    def master(self) -> Minion | None:
        return next((m for m in self.all() if m.role == MinionRole.master), None)

    def register(self, minions: list[Minion]) -> list[Minion]:
        """Add newly discovered minions. Known ids keep their fqdn and role.

        Returns:
            The minions that were not known before
        """
        added = []
        with self.file.lock:
            entries = self.file.read()
            for minion in minions:
                if minion.minion_id in entries:
                    continue
                entries[minion.minion_id] = Minion(
                    minion_id=minion.minion_id, fqdn=minion.fqdn
                ).to_state_dict()
                added.append(minion)
            if added:
                self.file.write(entries)

        logger.info(f"Registered {len(added)} new minion(s)")
        return added

    def _record(self, minion_id: str, role: MinionRole) -> None:
        with self.file.lock:
            entries = self.file.read()
            entries[minion_id]["role"] = role.value
            self.file.write(entries)

    def _attempt(self, minion: Minion, role: MinionRole) -> AssignmentOutcome:
        logger.debug(f"Assigning role {role.value} to {minion.minion_id} ({minion.fqdn})")
        try:
            accepted = self.agent.assign_role(minion.minion_id, role)
        except RemoteAssignmentError as e:
            logger.error(f"Role assignment for {minion.minion_id} failed: {e.message}")
            return Rejected(minion.minion_id, role, e.message)

        if not accepted:
            logger.error(f"Remote agent rejected role {role.value} for {minion.minion_id}")
            return Rejected(minion.minion_id, role, "the remote agent rejected the assignment")
        return Committed(minion.minion_id, role)

    def _validate(self, selection: RoleSelection) -> tuple[Minion, list[Minion]]:
        if selection.empty:
            raise PrecedenceWarning(
                "No nodes were selected",
                "Select one master and any number of workers before continuing.",
            )
        if not selection.master:
            raise PrecedenceWarning(
                "No master was selected",
                "Exactly one node has to be chosen as the master.",
            )
        if len(set(selection.master)) > 1:
            raise ValidationError(
                "Only one master can be selected",
                f"Selected masters: {', '.join(selection.master)}",
            )

        master_id = selection.master[0]
        worker_ids = list(dict.fromkeys(selection.worker))
        if master_id in worker_ids:
            raise ValidationError(f"Node '{master_id}' cannot be both master and worker")

        known = {m.minion_id: m for m in self.all()}
        unknown = [i for i in [master_id, *worker_ids] if i not in known]
        if unknown:
            raise ValidationError(
                f"Unknown node(s) selected: {', '.join(unknown)}",
                "Run discovery again to refresh the list of nodes.",
            )
        return known[master_id], [known[i] for i in worker_ids]

    def assign_roles(self, selection: RoleSelection | dict) -> RoleAssignmentResult:
        """Assign the selected roles remotely and record the confirmed ones.

        The master goes first; if the agent rejects it nothing else is
        attempted. Rejected workers are reported without undoing the
        assignments already committed in this call.

        Raises:
            PrecedenceWarning: If no master was selected; no remote call is made
            ValidationError: If the selection is malformed or inconsistent; no remote call is made
        """
        if not isinstance(selection, RoleSelection):
            try:
                selection = RoleSelection(**(selection or {}))
            except pydantic.ValidationError as e:
                problems = [
                    f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
                ]
                raise ValidationError("Invalid role selection", "; ".join(problems))

        master, workers = self._validate(selection)
        result = RoleAssignmentResult()

        outcome = self._attempt(master, MinionRole.master)
        result.outcomes.append(outcome)
        if isinstance(outcome, Rejected):
            result.fatal = True
            return result

        # Single master: demote whoever held the role before
        previous = self.master()
        if previous and previous.minion_id != master.minion_id:
            logger.info(f"Demoting previous master {previous.minion_id}")
            self._record(previous.minion_id, MinionRole.unassigned)
        self._record(master.minion_id, MinionRole.master)

        for worker in workers:
            outcome = self._attempt(worker, MinionRole.worker)
            result.outcomes.append(outcome)
            if isinstance(outcome, Committed):
                self._record(worker.minion_id, MinionRole.worker)

        logger.info(
            f"Role assignment finished: {len(result.committed)} committed, "
            f"{len(result.rejected)} rejected"
        )
        return result

    def reassign_recorded_roles(self) -> RoleAssignmentResult:
        """Apply every recorded role on the remote agent again, master first.

        Recorded roles are not changed. A rejected master stops the call.

        Raises:
            ValidationError: If no master has been recorded
        """
        minions = [m for m in self.all() if m.assigned]
        master = next((m for m in minions if m.role == MinionRole.master), None)
        if master is None:
            raise ValidationError(
                "No master has been assigned",
                "Assign roles on the discovery step before bootstrapping.",
            )

        result = RoleAssignmentResult()
        outcome = self._attempt(master, MinionRole.master)
        result.outcomes.append(outcome)
        if isinstance(outcome, Rejected):
            result.fatal = True
            return result

        for worker in (m for m in minions if m.role == MinionRole.worker):
            result.outcomes.append(self._attempt(worker, MinionRole.worker))
        return result
