# codewatch/processing/scanner.py

"""
One-shot directory enumeration for the initial upload
"""
import os
import logging
from pathlib import Path
from typing import List, Optional, Union

from codewatch.errors import ScanError
from codewatch.utils.config import WatchConfig
from codewatch.utils.file_utils import get_extension, read_file_content
from codewatch.watchdog.patterns import PatternFilter, iter_directories, sorted_entries
from .changes import FileRecord

logger = logging.getLogger(__name__)


class DirectoryScanner:
    """
    Recursive walk producing the initial set of file records

    A read failure on any single file aborts the whole scan: the initial
    upload is either complete or not sent at all.
    """

    def __init__(self, pattern_filter: PatternFilter, watch_config: Optional[WatchConfig] = None):
        self.pattern_filter = pattern_filter
        self.watch_config = watch_config or pattern_filter.watch_config

        self.stats = {
            'directories': 0,
            'files_seen': 0,
            'files_ignored': 0,
            'files_unsupported': 0,
            'files_skipped': 0,
            'files_read': 0,
        }

    def scan(self, root: Union[str, Path, None] = None) -> List[FileRecord]:
        """
        Walk root and read every eligible file

        Args:
            root: Directory to scan (defaults to the filter's root)

        Returns:
            File records in walk order

        Raises:
            ScanError: if a directory cannot be walked or a file cannot be read
        """
        root = Path(root).resolve() if root is not None else self.pattern_filter.root
        if not root.is_dir():
            raise ScanError(f"Not a directory: {root}")

        records = []
        try:
            for directory in iter_directories(root, self.pattern_filter):
                self.stats['directories'] += 1
                for entry in sorted_entries(directory):
                    if entry.is_dir(follow_symlinks=False):
                        continue
                    file_record = self._scan_entry(entry)
                    if file_record is not None:
                        records.append(file_record)
        except OSError as e:
            raise ScanError(f"Error walking directory {root}: {e}") from e

        logger.info(f"Scanned {root}: {len(records)} files in {self.stats['directories']} directories")
        return records

    def _scan_entry(self, entry: os.DirEntry) -> Optional[FileRecord]:
        self.stats['files_seen'] += 1
        path = Path(entry.path)

        if self.pattern_filter.should_ignore(path):
            self.stats['files_ignored'] += 1
            return None

        extension = get_extension(path)
        if not self.watch_config.is_supported(path):
            self.stats['files_unsupported'] += 1
            return None

        # Symlinks, devices, sockets and FIFOs
        if not entry.is_file(follow_symlinks=False):
            self.stats['files_skipped'] += 1
            return None

        content = read_file_content(
            path,
            max_file_size=self.watch_config.max_file_size,
            skip_binary=self.watch_config.skip_binary,
        )
        if content is None:
            self.stats['files_skipped'] += 1
            return None

        self.stats['files_read'] += 1
        return FileRecord(path=str(path), extension=extension, content=content)


def scan(root: Union[str, Path], watch_config: Optional[WatchConfig] = None) -> List[FileRecord]:
    """Load ignore rules for root and scan it"""
    pattern_filter = PatternFilter.load(root, watch_config)
    return DirectoryScanner(pattern_filter).scan(root)
