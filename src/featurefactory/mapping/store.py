"""
Persistence of dynamic category -> number mappings.

Each categorical feature evaluated numerically without declared values
gets a plain-text file of ``category<TAB>number`` lines. The file is read
once when the mapping is first needed, then held open and appended to
as new categories appear.

Mapping files are not locked. Two processes growing the mapping of the
same feature at the same time will write conflicting numbers; give them
separate directories or identities.
"""

import os
import re
import tempfile
from pathlib import Path
from types import TracebackType
from typing import TextIO

from featurefactory.config.settings import MappingStoreConfig
from featurefactory.errors import MappingStoreError
from featurefactory.utils.logging import get_logger

log = get_logger(__name__)

MAPPING_FILE_PREFIX = ".featurefactory."

PACKAGE_DIR = Path(__file__).resolve().parent.parent


def mapping_file_name(identity: str, feature_name: str) -> str:
    """
    Deterministic file name for a feature's mapping.

    Non-word characters are replaced so that e.g. ``my.pkg.Words`` and
    ``first letter`` give ``.featurefactory.my_pkg_Words__first_letter``.
    """
    basename = re.sub(r"\W", "_", f"{identity}__{feature_name}")
    return MAPPING_FILE_PREFIX + basename


def candidate_directories(config: MappingStoreConfig) -> list[Path]:
    """Directories to try, in order of preference."""
    if config.directory is not None:
        return [Path(config.directory)]

    directories = [PACKAGE_DIR]
    try:
        directories.append(Path.home())
    except RuntimeError:
        log.debug("No home directory available for mapping files")
    directories.append(Path(tempfile.gettempdir()))
    return directories


def find_mapping_file(
    identity: str, feature_name: str, config: MappingStoreConfig
) -> Path | None:
    """Return the first existing read-writable mapping file, if any."""
    name = mapping_file_name(identity, feature_name)
    for directory in candidate_directories(config):
        path = directory / name
        if path.is_file() and os.access(path, os.R_OK | os.W_OK):
            return path
    return None


def parse_mapping_lines(text: str, path: Path) -> dict[str, int]:
    """
    Parse ``category<TAB>number`` lines.

    Raises:
        MappingStoreError: If a line has no tab or a non-integer number.
    """
    entries: dict[str, int] = {}
    for lineno, line in enumerate(text.split("\n"), start=1):
        if not line:
            continue
        category, sep, number = line.rpartition("\t")
        try:
            if not sep:
                raise ValueError("missing tab separator")
            entries[category] = int(number)
        except ValueError as e:
            msg = f"Malformed line {lineno} in mapping file {path}: {line!r} ({e})"
            raise MappingStoreError(msg) from e
    return entries


class MappingFile:
    """
    An open mapping file with the entries it held when opened.

    Use as a context manager, or call close(), to release the handle.
    """

    def __init__(
        self,
        path: Path,
        handle: TextIO,
        entries: dict[str, int],
        *,
        unterminated: bool = False,
    ) -> None:
        self.path = path
        self.entries = entries
        self._handle = handle
        # Last recovered line has no newline yet
        self._unterminated = unterminated

    @classmethod
    def open(
        cls,
        identity: str,
        feature_name: str,
        config: MappingStoreConfig,
    ) -> "MappingFile":
        """
        Recover an existing mapping file or start a new one.

        Every candidate directory is first tried for an existing file that
        can be read and written. Failing that, a new file is created in the
        first candidate directory that allows it.

        Raises:
            MappingStoreError: If no candidate location is usable.
        """
        name = mapping_file_name(identity, feature_name)
        directories = candidate_directories(config)

        for directory in directories:
            path = directory / name
            try:
                handle = path.open("r+", encoding="utf-8", newline="\n")
            except OSError:
                continue
            try:
                text = handle.read()
                entries = parse_mapping_lines(text, path)
                handle.seek(0, os.SEEK_END)
            except (OSError, UnicodeDecodeError) as e:
                handle.close()
                msg = f"Couldn't read mapping file {path} for feature '{feature_name}': {e}"
                raise MappingStoreError(msg) from e
            except MappingStoreError:
                handle.close()
                raise
            log.info(
                "Recovered category mapping",
                feature=feature_name,
                path=str(path),
                entries=len(entries),
            )
            unterminated = bool(text) and not text.endswith("\n")
            return cls(path, handle, entries, unterminated=unterminated)

        if config.directory is not None:
            try:
                Path(config.directory).mkdir(parents=True, exist_ok=True)
            except OSError as e:
                msg = f"Couldn't create mapping directory {config.directory}: {e}"
                raise MappingStoreError(msg) from e

        for directory in directories:
            path = directory / name
            try:
                handle = path.open("w", encoding="utf-8", newline="\n")
            except OSError:
                continue
            log.info("Saving category mapping", feature=feature_name, path=str(path))
            return cls(path, handle, {})

        tried = ", ".join(str(d) for d in directories)
        msg = (
            f"Couldn't open a file for saving the mapping of the categories of "
            f"feature '{feature_name}' to numbers (tried: {tried}). "
            "Please specify the values for the feature to avoid this"
        )
        raise MappingStoreError(msg)

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def append(self, category: str, number: int) -> None:
        """
        Persist one new assignment and flush it to disk.

        Raises:
            MappingStoreError: If the category can't be stored or the write fails.
        """
        if "\t" in category or "\n" in category or "\r" in category:
            msg = (
                f"Category {category!r} contains a tab or line break and can't be "
                f"saved to mapping file {self.path}"
            )
            raise MappingStoreError(msg)
        try:
            record = f"{category}\t{number}\n"
            if self._unterminated:
                record = "\n" + record
            self._handle.write(record)
            self._handle.flush()
        except (OSError, ValueError) as e:
            msg = (
                f"Couldn't save the mapping of categorical value '{category}' to "
                f"numeric value {number} in {self.path} ({e}). "
                "Please provide a list of values for the feature to avoid this"
            )
            raise MappingStoreError(msg) from e
        self._unterminated = False
        self.entries[category] = number

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()

    def __enter__(self) -> "MappingFile":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
