import json
from types import SimpleNamespace

import httpx
import pytest

import codewatch.core.upload_client as upload_module
from codewatch.core.auth import StaticTokenProvider
from codewatch.core.upload_client import (
    Repository,
    UploadClient,
    extract_repo_name_from_url,
    find_linked_repository,
    get_repo_name,
)
from codewatch.errors import UploadError
from codewatch.processing.changes import FileRecord
from codewatch.utils.config import ApiConfig

BASE_URL = "https://index.example.test"


def make_client(handler, **api):
    transport = httpx.MockTransport(handler)
    config = ApiConfig(base_url=BASE_URL, **api)
    http_client = httpx.AsyncClient(base_url=BASE_URL, transport=transport)
    return UploadClient(config, StaticTokenProvider("tok-123"), client=http_client)


FILES = [FileRecord(path="/repo/a.go", extension=".go", content="package a")]


@pytest.mark.asyncio
async def test_full_upload_payload():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"contextId": "ctx-9"})

    client = make_client(handler, context_name="repo")
    context_id = await client.upload(FILES, False)
    await client.close()

    assert context_id == "ctx-9"
    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/cli/chunk"
    assert request.headers["Authorization"] == "Bearer tok-123"
    assert json.loads(request.content) == {
        "files": [{"file_path": "/repo/a.go", "file_extension": ".go", "data_chunks": "package a"}],
        "token": "tok-123",
        "contextName": "repo",
        "update": False,
    }


@pytest.mark.asyncio
async def test_incremental_upload_reuses_context_id():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"contextId": "ctx-1"})

    client = make_client(handler, context_name="repo", workspace_id="space-7")
    await client.upload(FILES, False)
    await client.upload(FILES, True)
    await client.close()

    assert "contextId" not in bodies[0]
    assert bodies[1]["contextId"] == "ctx-1"
    assert bodies[1]["spaceId"] == "space-7"
    assert bodies[1]["update"] is True


@pytest.mark.asyncio
async def test_non_200_raises_upload_error():
    client = make_client(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(UploadError) as exc_info:
        await client.upload(FILES, True)
    await client.close()

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_transport_error_raises_upload_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    with pytest.raises(UploadError):
        await client.upload(FILES, True)
    await client.close()


@pytest.mark.asyncio
async def test_undecodable_response_raises_upload_error():
    client = make_client(lambda request: httpx.Response(200, text="not json"))
    with pytest.raises(UploadError):
        await client.upload(FILES, True)
    await client.close()


@pytest.mark.asyncio
async def test_list_workspaces_and_link_repository():
    def handler(request):
        if request.url.path == "/cli/spaces":
            return httpx.Response(200, json=[{"spaceId": "s1", "spaceName": "Team"}])
        if request.url.path == "/cli/space-repositories":
            assert json.loads(request.content)["spaceId"] == "s1"
            return httpx.Response(200, json=[
                {"contextId": "c1", "contextName": "other"},
                {"contextId": "c2", "contextName": "repo"},
            ])
        return httpx.Response(404)

    client = make_client(handler)
    workspaces = await client.list_workspaces()
    linked = await client.link_repository("s1", "repo")
    await client.close()

    assert [(w.workspace_id, w.workspace_name) for w in workspaces] == [("s1", "Team")]
    assert linked == "c2"
    assert client.workspace_id == "s1"
    assert client.context_name == "repo"


def test_find_linked_repository():
    repos = [Repository(contextId="c1", contextName="a")]
    assert find_linked_repository("a", repos).context_id == "c1"
    assert find_linked_repository("b", repos) is None


@pytest.mark.parametrize("url, expected", [
    ("https://github.com/org/project.git", "project"),
    ("https://github.com/org/project", "project"),
    ("git@github.com:org/project.git\n", "project"),
])
def test_extract_repo_name_from_url(url, expected):
    assert extract_repo_name_from_url(url) == expected


def test_get_repo_name_from_remote(root, monkeypatch):
    monkeypatch.setattr(
        upload_module.subprocess, "run",
        lambda *a, **k: SimpleNamespace(returncode=0, stdout="https://host/org/remote-name.git\n"),
    )
    assert get_repo_name(root) == "remote-name"


def test_get_repo_name_falls_back_to_directory(root, monkeypatch):
    monkeypatch.setattr(
        upload_module.subprocess, "run",
        lambda *a, **k: SimpleNamespace(returncode=1, stdout=""),
    )
    assert get_repo_name(root) == root.name
