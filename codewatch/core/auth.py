# codewatch/core/auth.py

"""
Bearer credential providers for the upload client
"""
import os
from typing import Optional

from codewatch.errors import AuthenticationError

TOKEN_ENV_VAR = "CODEWATCH_TOKEN"


class StaticTokenProvider:
    """Returns a token fixed at construction"""

    def __init__(self, token: Optional[str]):
        self._token = token

    def get_token(self) -> str:
        if not self._token:
            raise AuthenticationError("No token configured")
        return self._token


class EnvTokenProvider:
    """Reads the token from the environment on every call"""

    def __init__(self, env_var: str = TOKEN_ENV_VAR):
        self.env_var = env_var

    def get_token(self) -> str:
        token = os.environ.get(self.env_var)
        if not token:
            raise AuthenticationError(f"Environment variable {self.env_var} is not set")
        return token


def get_token_provider(configured_token: Optional[str] = None):
    """Configured token if present, otherwise the environment"""
    if configured_token:
        return StaticTokenProvider(configured_token)
    return EnvTokenProvider()
