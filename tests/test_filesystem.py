"""FilesystemAPI over a mocked HTTP transport."""

import httpx
import pytest

from jisi_code.errors import JisiCodeError
from jisi_code.filesystem import FilesystemAPI
from jisi_code.models.filesystem import SearchOptions
from jisi_code.transport.http import HttpClient

ENTRY = {
    "name": "src",
    "path": "/repo/src",
    "is_dir": True,
    "is_file": False,
    "is_symlink": False,
    "size": None,
    "modified": 1700000000,
    "is_hidden": False,
}


class Recorder:
    def __init__(self, status=200, body=None, content=None):
        self.requests: list[httpx.Request] = []
        self._status = status
        self._body = body
        self._content = content

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self._content is not None:
            return httpx.Response(self._status, content=self._content,
                                  headers={"content-type": "application/json"})
        return httpx.Response(self._status, json=self._body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def make_api(recorder) -> tuple[HttpClient, FilesystemAPI]:
    http = HttpClient("http://orchestrator:3001/", transport=httpx.MockTransport(recorder))
    return http, FilesystemAPI(http)


@pytest.mark.asyncio
async def test_list_directory():
    recorder = Recorder(body={
        "path": "/repo",
        "name": "repo",
        "parent": "/",
        "directories": [ENTRY],
        "files": [{"name": "README.md", "path": "/repo/README.md", "is_file": True, "size": 120}],
        "accessible": True,
    })
    http, api = make_api(recorder)
    info = await api.list("/repo")
    await http.close()

    assert recorder.last.url.path == "/api/fs/list"
    assert recorder.last.url.params["path"] == "/repo"
    assert info.directories[0].is_dir
    assert info.files[0].size == 120
    assert info.parent == "/"


@pytest.mark.asyncio
async def test_path_segments_are_encoded():
    recorder = Recorder(body={"exists": True, "is_dir": True, "is_file": False})
    http, api = make_api(recorder)
    result = await api.exists("/tmp/my dir")
    await api.directory("/tmp/my dir")
    await http.close()

    assert result.exists and result.is_dir
    assert recorder.requests[0].url.raw_path == b"/api/fs/exists/%2Ftmp%2Fmy%20dir"
    assert recorder.requests[1].url.raw_path == b"/api/fs/dir/%2Ftmp%2Fmy%20dir"


@pytest.mark.asyncio
async def test_common_and_cwd():
    http, api = make_api(Recorder(body=[ENTRY]))
    entries = await api.common_directories()
    await http.close()
    assert [e.name for e in entries] == ["src"]

    http, api = make_api(Recorder(body={"path": "/srv/orchestrator"}))
    assert await api.current_directory() == "/srv/orchestrator"
    await http.close()


@pytest.mark.asyncio
async def test_home_may_be_unknown():
    http, api = make_api(Recorder(content=b"null"))
    assert await api.home_directory() is None
    await http.close()

    http, api = make_api(Recorder(body="/home/dev"))
    assert await api.home_directory() == "/home/dev"
    await http.close()


@pytest.mark.asyncio
async def test_search_params():
    recorder = Recorder(body={"files": [ENTRY], "total": 1, "truncated": False})
    http, api = make_api(recorder)
    result = await api.search("/repo", SearchOptions(pattern="*.py", recursive=True, include_hidden=False,
                                                    max_results=50))
    await http.close()

    params = recorder.last.url.params
    assert recorder.last.url.path == "/api/fs/search"
    assert params["base_path"] == "/repo"
    assert params["pattern"] == "*.py"
    assert params["recursive"] == "true"
    assert params["include_hidden"] == "false"
    assert params["max_results"] == "50"
    assert "max_depth" not in params
    assert result.total == 1


@pytest.mark.asyncio
async def test_error_body_becomes_exception():
    http, api = make_api(Recorder(status=404, body={"error": "Path not found: /nope"}))
    with pytest.raises(JisiCodeError) as exc:
        await api.list("/nope")
    await http.close()

    assert exc.value.code == "http_error"
    assert "Path not found: /nope" in str(exc.value)
    assert exc.value.details == {"status_code": 404}


@pytest.mark.asyncio
async def test_transport_failure_becomes_exception():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    http = HttpClient("http://orchestrator:3001", transport=httpx.MockTransport(refuse))
    with pytest.raises(JisiCodeError) as exc:
        await FilesystemAPI(http).current_directory()
    await http.close()
    assert exc.value.code == "http_error"
