"""YAML-backed state files.

Pillars and minions are kept in small YAML documents managed with ruamel.yaml
so that hand edits and comments survive rewrites.
"""

import shutil
import threading
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from cluster_setup.exceptions import PersistenceError
from cluster_setup.logging_config import get_logger

logger = get_logger(__name__)


class StateFile:
    """A YAML state document holding one top-level section."""

    # One lock per file path, shared by every StateFile in the process
    _locks: dict[Path, threading.RLock] = {}
    _locks_guard = threading.Lock()

    def __init__(self, path: str | Path, section: str):
        """Initialize the state file.

        Args:
            path: Path to the YAML document
            section: Top-level key holding this file's entries
        """
        self.path = Path(path)
        self.section = section
        self.yaml = YAML()
        self.yaml.preserve_quotes = True
        self.yaml.default_flow_style = False
        self.yaml.indent(mapping=2, sequence=2, offset=0)

        with self._locks_guard:
            self.lock = self._locks.setdefault(self.path.absolute(), threading.RLock())

    def read(self) -> CommentedMap:
        """Read the section, returning an empty mapping for a missing file.

        Raises:
            PersistenceError: If the file exists but cannot be parsed
        """
        if not self.path.exists():
            logger.debug(f"State file not found, starting empty: {self.path}")
            return CommentedMap()

        try:
            with open(self.path) as f:
                data = self.yaml.load(f)
        except Exception as e:
            logger.error(f"Failed to read state file {self.path}: {e}", exc_info=True)
            raise PersistenceError(
                f"Failed to read state file: {self.path}",
                f"The file may be corrupted or have invalid YAML syntax: {e}",
            )

        if data is None:
            return CommentedMap()
        if not isinstance(data, dict) or not isinstance(data.get(self.section, {}), dict):
            raise PersistenceError(
                f"State file {self.path} is malformed",
                f"Expected a '{self.section}' mapping at the top level",
            )

        section = data.get(self.section)
        return section if section is not None else CommentedMap()

    def write(self, entries: dict) -> None:
        """Write the section back, keeping a backup of the previous file.

        Raises:
            PersistenceError: If the file cannot be written
        """
        logger.debug(f"Writing state file: {self.path}")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)

            if self.path.exists():
                backup_path = self.path.with_suffix(".yml.backup")
                shutil.copy2(self.path, backup_path)

            document = CommentedMap()
            document[self.section] = entries

            # Write aside and swap so readers never see a half-written file
            tmp_path = self.path.with_suffix(".yml.tmp")
            with open(tmp_path, "w") as f:
                self.yaml.dump(document, f)
            tmp_path.replace(self.path)

        except PermissionError as e:
            logger.error(f"Permission denied writing state file: {e}")
            raise PersistenceError(
                f"Permission denied writing state file: {self.path}",
                "Check file permissions or try running with appropriate privileges",
            )
        except OSError as e:
            logger.error(f"OS error writing state file: {e}")
            raise PersistenceError(
                f"Failed to write state file: {e}",
                "Check disk space and file system permissions",
            )
