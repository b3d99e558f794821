"""
File utilities for codewatch
"""
from pathlib import Path
from typing import Optional, Union
import logging

logger = logging.getLogger(__name__)


# Bytes inspected when sniffing for binary content
BINARY_SNIFF_SIZE = 8192


def get_extension(file_path: Union[str, Path]) -> str:
    """Return the final suffix including the dot, or '' if there is none"""
    return Path(file_path).suffix


def is_regular_file(file_path: Union[str, Path]) -> bool:
    """True for regular files only; symlinks, devices, sockets and FIFOs are not"""
    path = Path(file_path)
    try:
        return not path.is_symlink() and path.is_file()
    except OSError:
        return False


def looks_binary(data: bytes) -> bool:
    """Heuristic: a NUL byte in the first block means binary"""
    return b'\x00' in data[:BINARY_SNIFF_SIZE]


def read_file_content(file_path: Union[str, Path],
                      max_file_size: Optional[int] = None,
                      skip_binary: bool = False) -> Optional[str]:
    """
    Read a file's full content as text

    Args:
        file_path: Path to file
        max_file_size: Files larger than this (bytes) are skipped
        skip_binary: Skip files that look binary

    Returns:
        File content, or None when a configured guard skipped the file

    Raises:
        OSError: if the file cannot be read
    """
    path = Path(file_path)

    if max_file_size is not None:
        size = path.stat().st_size
        if size > max_file_size:
            logger.debug(f"Skipping {path}: {size} bytes exceeds limit of {max_file_size}")
            return None

    data = path.read_bytes()

    if skip_binary and looks_binary(data):
        logger.debug(f"Skipping binary file: {path}")
        return None

    # Invalid sequences are replaced rather than failing the read
    return data.decode('utf-8', errors='replace')
