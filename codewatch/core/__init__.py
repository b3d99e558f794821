"""
Remote indexing service access
"""
from .auth import EnvTokenProvider, StaticTokenProvider, get_token_provider
from .upload_client import UploadClient, get_repo_name, extract_repo_name_from_url

__all__ = [
    'EnvTokenProvider',
    'StaticTokenProvider',
    'get_token_provider',
    'UploadClient',
    'get_repo_name',
    'extract_repo_name_from_url',
]
