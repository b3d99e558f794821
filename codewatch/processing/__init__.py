"""
codewatch Processing Modules
Change aggregation and the initial directory scan
"""
from .changes import FileRecord, ChangeAggregator
from .scanner import DirectoryScanner, scan

__all__ = [
    'FileRecord',
    'ChangeAggregator',
    'DirectoryScanner',
    'scan',
]
