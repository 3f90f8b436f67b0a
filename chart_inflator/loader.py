"""File loader that reads files relative to a trusted root directory.

Paths given to the loader are resolved against its root. When root
restrictions are enabled, any path that resolves outside of the root is
rejected so that configuration can't be used to read arbitrary files.
"""

from enum import Enum
import logging
from pathlib import Path

import aiofiles

from .exceptions import FileException

__all__ = [
    "FileLoader",
    "LoadRestrictions",
]

_LOGGER = logging.getLogger(__name__)


class LoadRestrictions(str, Enum):
    """Restrictions on which files a loader may read."""

    ROOT_ONLY = "LoadRestrictionsRootOnly"
    """Files must resolve to a location under the loader root."""

    NONE = "LoadRestrictionsNone"
    """Any file may be read, including absolute paths."""

    def __str__(self) -> str:
        return self.value


class FileLoader:
    """Loads file contents relative to a root directory."""

    def __init__(
        self,
        root: Path,
        restrictions: LoadRestrictions = LoadRestrictions.ROOT_ONLY,
    ) -> None:
        """Initialize FileLoader."""
        self._root = Path(root).expanduser().resolve()
        self._restrictions = restrictions

    @property
    def root(self) -> Path:
        """The absolute root directory of the loader."""
        return self._root

    @property
    def restrictions(self) -> LoadRestrictions:
        """The restrictions applied when loading files."""
        return self._restrictions

    def resolve(self, path: str | Path) -> Path:
        """Return the absolute path of a file, enforcing root restrictions."""
        resolved = (self._root / path).resolve()
        if (
            self._restrictions == LoadRestrictions.ROOT_ONLY
            and not resolved.is_relative_to(self._root)
        ):
            raise FileException(
                f"security; file '{resolved}' is not in or below '{self._root}'"
            )
        return resolved

    async def load(self, path: str | Path) -> bytes:
        """Return the contents of the file at the specified path."""
        resolved = self.resolve(path)
        _LOGGER.debug("Loading file %s", resolved)
        try:
            async with aiofiles.open(resolved, mode="rb") as file:
                return await file.read()
        except OSError as err:
            raise FileException(f"Unable to read file '{path}': {err}") from err
