# codewatch/processing/changes.py

"""
File records and the pending change set
"""
import logging
from dataclasses import dataclass
from typing import Dict, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileRecord:
    """One file's full content at observation time"""
    path: str
    extension: str
    content: str

    def to_payload(self) -> Dict[str, str]:
        """Wire form expected by the indexing service"""
        return {
            'file_path': self.path,
            'file_extension': self.extension,
            'data_chunks': self.content,
        }


class ChangeAggregator:
    """
    Deduplicated set of changed files accumulated between flushes

    Keyed by path; a later record for the same path replaces the earlier
    one. Not thread-safe: the watch loop is the only writer and flushes run
    on the same loop.
    """

    def __init__(self):
        self._pending: Dict[str, FileRecord] = {}

        self.stats = {
            'recorded': 0,
            'replaced': 0,
            'drained_batches': 0,
        }

    def record(self, path: str, content: str, extension: str) -> FileRecord:
        """Insert or replace the record for path"""
        path = str(path)
        if path in self._pending:
            self.stats['replaced'] += 1

        file_record = FileRecord(path=path, extension=extension, content=content)
        self._pending[path] = file_record
        self.stats['recorded'] += 1
        return file_record

    def drain(self) -> List[FileRecord]:
        """Return all pending records and reset to empty"""
        batch = list(self._pending.values())
        self._pending = {}
        if batch:
            self.stats['drained_batches'] += 1
            logger.debug(f"Drained {len(batch)} pending changes")
        return batch

    def __len__(self):
        return len(self._pending)

    def __contains__(self, path) -> bool:
        return str(path) in self._pending
