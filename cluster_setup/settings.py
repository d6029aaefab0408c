"""Translation of submitted cluster settings into pillar writes and deletes.

Settings are merged in two phases. Toggles are resolved first; only then is
each dependent field gated on the effective state of every group it belongs
to. A group switched to ``disable`` erases its fields even when the form
still carries values the administrator typed before flipping the toggle.
"""

from dataclasses import dataclass, field
from enum import Enum

import pydantic
from pydantic import BaseModel, ConfigDict, field_validator

from cluster_setup.exceptions import PersistenceError, ValidationError
from cluster_setup.logging_config import get_logger
from cluster_setup.models.pillar import PillarKey

logger = get_logger(__name__)


class Toggle(str, Enum):
    """State of an enable/disable switch on the settings form."""

    enable = "enable"
    disable = "disable"
    unspecified = "unspecified"


class SettingsForm(BaseModel):
    """Settings as submitted on the configure step."""

    model_config = ConfigDict(extra="forbid")

    dashboard: str | None = None
    apiserver: str | None = None
    enable_proxy: Toggle = Toggle.unspecified
    http_proxy: str | None = None
    https_proxy: str | None = None
    no_proxy: str | None = None
    proxy_systemwide: str | None = None
    suse_registry_mirror_enabled: Toggle = Toggle.unspecified
    suse_registry_mirror_url: str | None = None
    suse_registry_mirror_cert_enabled: Toggle = Toggle.unspecified
    suse_registry_mirror_cert: str | None = None

    @field_validator(
        "enable_proxy",
        "suse_registry_mirror_enabled",
        "suse_registry_mirror_cert_enabled",
        mode="before",
    )
    @classmethod
    def parse_toggle(cls, v):
        """Accept enable/disable as well as checkbox-style booleans."""
        if v is None or v == "":
            return Toggle.unspecified
        if isinstance(v, bool):
            return Toggle.enable if v else Toggle.disable
        normalized = str(v).strip().lower()
        if normalized in ("true", "on", "1"):
            return Toggle.enable
        if normalized in ("false", "off", "0"):
            return Toggle.disable
        return normalized

    def value_of(self, key: PillarKey) -> str:
        """Submitted value for a pillar field, '' when absent."""
        value = getattr(self, key.name)
        return "" if value is None else str(value).strip()


@dataclass(frozen=True)
class ToggleGroup:
    """Fields whose persistence is controlled by one toggle."""

    toggle: str
    fields: tuple[PillarKey, ...]
    parent: str | None = None
    # Written instead of deleted when the group is disabled
    disabled_values: dict[PillarKey, str] = field(default_factory=dict)


TOGGLE_GROUPS = (
    ToggleGroup(
        toggle="enable_proxy",
        fields=(
            PillarKey.http_proxy,
            PillarKey.https_proxy,
            PillarKey.no_proxy,
            PillarKey.proxy_systemwide,
        ),
        disabled_values={PillarKey.proxy_systemwide: "false"},
    ),
    ToggleGroup(
        toggle="suse_registry_mirror_enabled",
        fields=(PillarKey.suse_registry_mirror_url, PillarKey.suse_registry_mirror_cert),
    ),
    ToggleGroup(
        toggle="suse_registry_mirror_cert_enabled",
        fields=(PillarKey.suse_registry_mirror_cert,),
        parent="suse_registry_mirror_enabled",
    ),
)

UNGATED_KEYS = (PillarKey.dashboard, PillarKey.apiserver)
REQUIRED_KEYS = (PillarKey.dashboard,)


@dataclass
class PillarChangeSet:
    """Exact pillar mutations a settings merge performs."""

    writes: dict[PillarKey, str] = field(default_factory=dict)
    deletes: set[PillarKey] = field(default_factory=set)

    @property
    def empty(self) -> bool:
        return not self.writes and not self.deletes


def resolve_toggles(form: SettingsForm) -> dict[str, bool]:
    """Map each toggle to whether its group is effectively disabled.

    A group is disabled by its own toggle or by any disabled parent.
    """
    by_toggle = {group.toggle: group for group in TOGGLE_GROUPS}
    disabled = {}

    def is_disabled(toggle: str) -> bool:
        if toggle not in disabled:
            group = by_toggle[toggle]
            own = getattr(form, toggle) == Toggle.disable
            disabled[toggle] = own or (group.parent is not None and is_disabled(group.parent))
        return disabled[toggle]

    for group in TOGGLE_GROUPS:
        is_disabled(group.toggle)
    return disabled


def plan_changes(form: SettingsForm) -> PillarChangeSet:
    """Compute the pillar writes and deletes for a form.

    Raises:
        ValidationError: If a required field is missing or empty
    """
    missing = [key.name for key in REQUIRED_KEYS if not form.value_of(key)]
    if missing:
        raise ValidationError(
            f"Required settings cannot be empty: {', '.join(missing)}",
            "Nothing was saved. Fill in the required fields and submit again.",
        )

    disabled = resolve_toggles(form)
    changes = PillarChangeSet()

    gated = {}
    for group in TOGGLE_GROUPS:
        for key in group.fields:
            gated.setdefault(key, []).append(group)

    for key, groups in gated.items():
        disabling = [g for g in groups if disabled[g.toggle]]
        if disabling:
            replacement = next(
                (g.disabled_values[key] for g in disabling if key in g.disabled_values), None
            )
            if replacement is None:
                changes.deletes.add(key)
            else:
                changes.writes[key] = replacement
            continue

        # Enabled or untouched groups: empty means keep what is stored
        value = form.value_of(key)
        if value:
            changes.writes[key] = value

    for key in UNGATED_KEYS:
        value = form.value_of(key)
        if value:
            changes.writes[key] = value

    return changes


class SettingsMerger:
    """Merges configure-step submissions into the pillar store."""

    def __init__(self, store):
        self.store = store

    def parse(self, form: dict | SettingsForm) -> SettingsForm:
        """Validate the raw form.

        Raises:
            ValidationError: If the form has unknown fields or bad toggles
        """
        if isinstance(form, SettingsForm):
            return form
        try:
            return SettingsForm(**form)
        except pydantic.ValidationError as e:
            problems = [
                f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
            ]
            raise ValidationError("Invalid settings submitted", "; ".join(problems))

    def plan(self, form: dict | SettingsForm) -> PillarChangeSet:
        """Compute the change set without touching the store."""
        return plan_changes(self.parse(form))

    def merge(self, form: dict | SettingsForm) -> PillarChangeSet:
        """Validate the form and apply it to the store.

        Returns:
            The change set that was applied

        Raises:
            ValidationError: If validation fails; no pillar is mutated
            PersistenceError: If some pillars were not saved; the others stand
        """
        changes = self.plan(form)
        logger.info(
            f"Merging settings: {len(changes.writes)} write(s), {len(changes.deletes)} delete(s)"
        )

        errors = self.store.apply_all(
            {key.name: value for key, value in changes.writes.items()},
            required_keys=list(REQUIRED_KEYS),
        )

        for key in sorted(changes.deletes, key=lambda k: k.name):
            try:
                self.store.delete(key)
            except PersistenceError as e:
                logger.error(f"Failed to erase pillar {key.value}: {e.message}")
                errors.append(f"'{key.name}' could not be erased: {e.message}")

        if errors:
            raise PersistenceError(
                "Settings were only partially saved",
                "Settings not listed here were saved. " + "; ".join(errors),
                errors=errors,
            )
        return changes


class SettingsView(BaseModel):
    """Stored settings as shown when the configure step is opened."""

    dashboard: str | None = None
    apiserver: str | None = None
    enable_proxy: bool = False
    http_proxy: str | None = None
    https_proxy: str | None = None
    no_proxy: str | None = None
    proxy_systemwide: str | None = None
    registry_mirror_enabled: bool = False
    registry_mirror_url: str | None = None
    registry_mirror_cert_enabled: bool = False
    registry_mirror_cert: str | None = None


def current_settings(store) -> SettingsView:
    """Read the configure-step settings back from the store."""
    values = {pillar.key: pillar.value for pillar in store.all()}
    proxy_keys = (PillarKey.http_proxy, PillarKey.https_proxy, PillarKey.no_proxy)

    return SettingsView(
        dashboard=values.get(PillarKey.dashboard),
        apiserver=values.get(PillarKey.apiserver),
        enable_proxy=any(values.get(key) for key in proxy_keys),
        http_proxy=values.get(PillarKey.http_proxy),
        https_proxy=values.get(PillarKey.https_proxy),
        no_proxy=values.get(PillarKey.no_proxy),
        proxy_systemwide=values.get(PillarKey.proxy_systemwide),
        registry_mirror_enabled=bool(values.get(PillarKey.suse_registry_mirror_url)),
        registry_mirror_url=values.get(PillarKey.suse_registry_mirror_url),
        registry_mirror_cert_enabled=bool(values.get(PillarKey.suse_registry_mirror_cert)),
        registry_mirror_cert=values.get(PillarKey.suse_registry_mirror_cert),
    )
