"""
Drop-folder scanner for bulk ingestion.

Lists the immediate entries of a directory whose names end with one of the
configured extensions. Subdirectories are not descended into.
"""

import logging
import stat
from pathlib import Path
from typing import Generator, Iterable, Tuple, Union

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS = (".json",)


class FolderScanner:
    """
    Discovers input files in a flat drop folder.

    Entries are yielded sorted by name so repeated runs over the same folder
    process files in the same order.
    """

    def __init__(self, extensions: Iterable[str] = DEFAULT_EXTENSIONS):
        """
        Initialize folder scanner.

        Args:
            extensions: Filename suffixes to accept (matched case-insensitively)
        """
        self.extensions: Tuple[str, ...] = tuple(ext.lower() for ext in extensions)

    def matches(self, path: Path) -> bool:
        """True if the file name ends with one of the accepted extensions."""
        return path.name.lower().endswith(self.extensions)

    def scan_folder(self, folder_path: Union[str, Path]) -> Generator[dict, None, None]:
        """
        Scan a folder (non-recursively) and yield file metadata.

        Args:
            folder_path: Path to folder to scan

        Yields:
            Dictionary containing:
            - path: Absolute file path
            - name: File name
            - size_bytes: File size in bytes

        Raises:
            ValueError: If folder doesn't exist or is not a directory
            OSError: If a matching entry cannot be stat'ed
        """
        root = Path(folder_path).resolve()

        if not root.exists():
            raise ValueError(f"Folder not found: {folder_path}")

        if not root.is_dir():
            raise ValueError(f"Not a directory: {folder_path}")

        file_count = 0
        skipped_count = 0

        for entry in sorted(root.iterdir(), key=lambda p: p.name):
            if not self.matches(entry):
                logger.debug(f"Skipping {entry.name}: extension not in {self.extensions}")
                skipped_count += 1
                continue

            info = entry.stat()
            if not stat.S_ISREG(info.st_mode):
                skipped_count += 1
                continue

            file_count += 1
            yield {
                "path": str(entry),
                "name": entry.name,
                "size_bytes": info.st_size,
            }

        logger.info(
            f"Scan complete: {file_count} files found, {skipped_count} entries skipped"
        )

