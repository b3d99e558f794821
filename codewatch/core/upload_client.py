# codewatch/core/upload_client.py

"""
Client for the remote indexing service
"""
import subprocess
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx
from pydantic import BaseModel, Field, ValidationError

from codewatch.errors import UploadError
from codewatch.processing.changes import FileRecord
from codewatch.utils.config import ApiConfig
from codewatch.utils.logger import PerformanceLogger

logger = logging.getLogger(__name__)


class UploadRequest(BaseModel):
    """Body of a /cli/chunk request"""
    files: List[Dict[str, str]]
    token: str
    context_id: Optional[str] = Field(default=None, serialization_alias="contextId")
    context_name: str = Field(default="", serialization_alias="contextName")
    workspace_id: Optional[str] = Field(default=None, serialization_alias="spaceId")
    update: bool = False


class UploadResponse(BaseModel):
    context_id: str = Field(default="", alias="contextId")


class Workspace(BaseModel):
    workspace_id: str = Field(alias="spaceId")
    workspace_name: str = Field(alias="spaceName")


class Repository(BaseModel):
    context_id: str = Field(alias="contextId")
    context_name: str = Field(alias="contextName")


def extract_repo_name_from_url(url: str) -> str:
    """
    Repository name from a git remote URL

    >>> extract_repo_name_from_url("https://github.com/org/project.git")
    'project'
    """
    url = url.strip()
    if url.endswith(".git"):
        url = url[:-len(".git")]
    return url.split("/")[-1]


def get_repo_name(root: Union[str, Path]) -> str:
    """Name of the repository at root, from its origin remote or its directory name"""
    root = Path(root).resolve()
    try:
        result = subprocess.run(
            ["git", "config", "--get", "remote.origin.url"],
            cwd=root,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.debug(f"git not available: {e}")
    else:
        if result.returncode == 0 and result.stdout.strip():
            return extract_repo_name_from_url(result.stdout)

    return root.name


def find_linked_repository(name: str, repositories: Sequence[Repository]) -> Optional[Repository]:
    """Previously linked repository with this name, if any"""
    for repo in repositories:
        if repo.context_name == name:
            return repo
    return None


class UploadClient:
    """
    Upload sink backed by the indexing service HTTP API

    The first successful upload's context id is reused for later
    incremental updates when none was configured.
    """

    def __init__(self, config: ApiConfig, token_provider: Any,
                 client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.token_provider = token_provider
        self.client = client or httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout
        )

        self.context_id = config.context_id
        self.context_name = config.context_name or ""
        self.workspace_id = config.workspace_id

    def _headers(self, token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    async def _post(self, endpoint: str, payload: Dict[str, Any], token: str) -> Any:
        try:
            response = await self.client.post(endpoint, json=payload, headers=self._headers(token))
        except httpx.HTTPError as e:
            raise UploadError(f"Error sending request to {endpoint}: {e}") from e

        if response.status_code != 200:
            raise UploadError(
                f"Request to {endpoint} failed with status: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UploadError(f"Error decoding response from {endpoint}: {e}") from e

    async def upload(self, files: Sequence[FileRecord], is_incremental_update: bool) -> str:
        """
        Send file records to the indexing service

        Args:
            files: Records to upload
            is_incremental_update: False for the initial full scan

        Returns:
            Context id assigned by the service

        Raises:
            UploadError: on transport failure, non-200 status or bad response
        """
        token = self.token_provider.get_token()
        request = UploadRequest(
            files=[f.to_payload() for f in files],
            token=token,
            context_id=self.context_id or None,
            context_name=self.context_name,
            workspace_id=self.workspace_id or None,
            update=is_incremental_update,
        )
        payload = request.model_dump(by_alias=True, exclude_none=True)

        kind = "incremental" if is_incremental_update else "full"
        with PerformanceLogger(f"{kind} upload", logger, {'files': len(files)}):
            data = await self._post("/cli/chunk", payload, token)

        try:
            result = UploadResponse.model_validate(data)
        except ValidationError as e:
            raise UploadError(f"Error parsing upload response: {e}") from e

        if result.context_id:
            self.context_id = result.context_id

        logger.info(f"Uploaded {len(files)} files ({kind})")
        return result.context_id

    async def list_workspaces(self) -> List[Workspace]:
        """Workspaces available to the current token"""
        token = self.token_provider.get_token()
        data = await self._post("/cli/spaces", {"token": token}, token)
        try:
            return [Workspace.model_validate(item) for item in data or []]
        except (ValidationError, TypeError) as e:
            raise UploadError(f"Error parsing workspaces: {e}") from e

    async def list_repositories(self, workspace_id: str) -> List[Repository]:
        """Repositories already linked to a workspace"""
        token = self.token_provider.get_token()
        data = await self._post(
            "/cli/space-repositories",
            {"token": token, "spaceId": workspace_id},
            token,
        )
        try:
            return [Repository.model_validate(item) for item in data or []]
        except (ValidationError, TypeError) as e:
            raise UploadError(f"Error parsing repositories: {e}") from e

    async def link_repository(self, workspace_id: str, repo_name: str) -> Optional[str]:
        """
        Bind uploads to a workspace and repository name

        Returns:
            Context id of a previously linked repository with the same name,
            or None for a new one
        """
        repositories = await self.list_repositories(workspace_id)
        linked = find_linked_repository(repo_name, repositories)

        self.workspace_id = workspace_id
        self.context_name = repo_name
        self.context_id = linked.context_id if linked else None

        if linked:
            logger.info(f"Repository {repo_name} already linked ({linked.context_id})")
        return self.context_id

    async def close(self):
        """Close HTTP client"""
        await self.client.aclose()
