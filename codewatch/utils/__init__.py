# codewatch/utils/__init__.py

"""
codewatch Utilities
"""
from .config import Config, WatchConfig, ApiConfig, load_config
from .logger import setup_logging, log_exception, log_stats, PerformanceLogger
from .file_utils import get_extension, is_regular_file, looks_binary, read_file_content

__all__ = [
    'Config', 'WatchConfig', 'ApiConfig', 'load_config',
    'setup_logging', 'log_exception', 'log_stats', 'PerformanceLogger',
    'get_extension', 'is_regular_file', 'looks_binary', 'read_file_content',
]
