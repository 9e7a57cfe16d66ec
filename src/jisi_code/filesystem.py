"""
Filesystem browsing API, used to pick a session's project path.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from jisi_code.models.filesystem import (
    CurrentDirectoryResponse,
    DirectoryInfo,
    FileSystemEntry,
    PathExistsResponse,
    SearchOptions,
    SearchResult,
)
from jisi_code.transport.http import HttpClient


def _bool_param(value: bool) -> str:
    return "true" if value else "false"


class FilesystemAPI:
    def __init__(self, http: HttpClient):
        self._http = http

    async def list(self, path: str) -> DirectoryInfo:
        """List the directories and files under `path`."""
        data = await self._http.get("/fs/list", params={"path": path})
        return DirectoryInfo.model_validate(data)

    async def directory(self, path: str) -> DirectoryInfo:
        data = await self._http.get(f"/fs/dir/{quote(path, safe='')}")
        return DirectoryInfo.model_validate(data)

    async def common_directories(self) -> list[FileSystemEntry]:
        data = await self._http.get("/fs/common")
        return [FileSystemEntry.model_validate(item) for item in data]

    async def current_directory(self) -> str:
        data = await self._http.get("/fs/cwd")
        return CurrentDirectoryResponse.model_validate(data).path

    async def home_directory(self) -> Optional[str]:
        return await self._http.get("/fs/home")

    async def exists(self, path: str) -> PathExistsResponse:
        data = await self._http.get(f"/fs/exists/{quote(path, safe='')}")
        return PathExistsResponse.model_validate(data)

    async def search(self, base_path: str, options: SearchOptions) -> SearchResult:
        params = {"base_path": base_path, "pattern": options.pattern}
        if options.recursive is not None:
            params["recursive"] = _bool_param(options.recursive)
        if options.include_hidden is not None:
            params["include_hidden"] = _bool_param(options.include_hidden)
        if options.max_depth is not None:
            params["max_depth"] = str(options.max_depth)
        if options.max_results is not None:
            params["max_results"] = str(options.max_results)
        data = await self._http.get("/fs/search", params=params)
        return SearchResult.model_validate(data)
