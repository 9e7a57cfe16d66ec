"""
Responses of the orchestrator's /api/fs routes.
"""

from typing import Optional

from pydantic import BaseModel


class FileSystemEntry(BaseModel):
    name: str
    path: str
    is_dir: bool = False
    is_file: bool = False
    is_symlink: bool = False
    size: Optional[int] = None
    modified: Optional[int] = None
    is_hidden: bool = False


class DirectoryInfo(BaseModel):
    path: str
    name: str = ""
    parent: Optional[str] = None
    directories: list[FileSystemEntry] = []
    files: list[FileSystemEntry] = []
    accessible: bool = True


class SearchOptions(BaseModel):
    pattern: str
    recursive: Optional[bool] = None
    include_hidden: Optional[bool] = None
    max_depth: Optional[int] = None
    max_results: Optional[int] = None


class SearchResult(BaseModel):
    files: list[FileSystemEntry] = []
    total: int = 0
    truncated: bool = False


class PathExistsResponse(BaseModel):
    exists: bool
    is_dir: bool = False
    is_file: bool = False


class CurrentDirectoryResponse(BaseModel):
    path: str
