# codewatch/errors.py

"""
Exception hierarchy for codewatch
"""


class CodewatchError(Exception):
    """Base class for all codewatch errors"""


class ConfigError(CodewatchError):
    """Configuration file exists but could not be read or parsed"""


class IgnoreFileError(CodewatchError, OSError):
    """Project ignore file exists but could not be opened or read"""


class ScanError(CodewatchError, OSError):
    """Initial directory walk failed"""


class WatchSessionError(CodewatchError):
    """Watch session could not start or was terminated by the event source"""


class UploadError(CodewatchError):
    """Remote indexing service rejected or failed an upload"""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(CodewatchError):
    """No usable credential for the remote indexing service"""
