"""Durable key/value store for cluster configuration pillars."""

from pathlib import Path

from cluster_setup.exceptions import PersistenceError
from cluster_setup.logging_config import get_logger
from cluster_setup.models.pillar import Pillar, PillarKey
from cluster_setup.storage import StateFile

logger = get_logger(__name__)


class PillarStore:
    """Pillars persisted in a YAML file, keyed by pillar path.

    Every write goes to disk before the call returns. Each ``set`` and
    ``delete`` is atomic for its key; nothing spans several keys.
    """

    def __init__(self, path: str | Path):
        self.file = StateFile(path, "pillars")

    def get(self, key: PillarKey | str) -> str | None:
        """Return the stored value, or None when the pillar is unset."""
        key = PillarKey.from_name(key)
        value = self.file.read().get(key.value)
        return None if value is None else str(value)

    def set(self, key: PillarKey | str, value: str) -> None:
        """Store a value, replacing any previous one.

        Raises:
            PersistenceError: If the pillar cannot be written
        """
        key = PillarKey.from_name(key)
        if value is None:
            raise PersistenceError(f"Pillar '{key.name}' cannot be set to None")

        with self.file.lock:
            entries = self.file.read()
            entries[key.value] = str(value)
            self.file.write(entries)
        logger.debug(f"Set pillar {key.value}")

    def delete(self, key: PillarKey | str) -> None:
        """Remove a pillar. Deleting an unset pillar is a no-op."""
        key = PillarKey.from_name(key)

        with self.file.lock:
            entries = self.file.read()
            if key.value not in entries:
                return
            del entries[key.value]
            self.file.write(entries)
        logger.debug(f"Deleted pillar {key.value}")

    def apply_all(
        self, values: dict, required_keys: list[PillarKey | str] | tuple = ()
    ) -> list[str]:
        """Apply several pillars, one key at a time.

        Values are stripped. Empty ones are an error for required keys and
        leave optional keys untouched. Keys that were written stay written even when others fail.

        Args:
            values: Mapping of pillar name to value
            required_keys: Pillars that must receive a non-empty value

        Returns:
            One message per key that did not take effect; empty on success
        """
        required = {PillarKey.from_name(k) for k in required_keys}
        submitted = set()
        errors = []

        for name, value in values.items():
            try:
                key = PillarKey.from_name(name)
            except ValueError as e:
                errors.append(str(e))
                continue
            submitted.add(key)

            value = "" if value is None else str(value).strip()
            if not value:
                if key in required:
                    errors.append(f"'{key.name}' cannot be empty")
                continue

            try:
                self.set(key, value)
            except PersistenceError as e:
                logger.error(f"Failed to save pillar {key.value}: {e.message}")
                errors.append(f"'{key.name}' could not be saved: {e.message}")

        # Required keys missing from the submission are errors too
        for key in sorted(required - submitted, key=lambda k: k.name):
            errors.append(f"'{key.name}' cannot be empty")

        if errors:
            logger.warning(f"Applied pillars with {len(errors)} error(s)")
        else:
            logger.info(f"Applied {len(values)} pillar(s)")
        return errors

    def all(self) -> list[Pillar]:
        """Every stored pillar, skipping paths this version does not know."""
        pillars = []
        for path, value in self.file.read().items():
            try:
                pillars.append(Pillar(key=PillarKey.from_path(path), value=str(value)))
            except ValueError:
                logger.debug(f"Ignoring unknown pillar path: {path}")
        return pillars
