"""GitHub Git Data models and client."""

from .client import GitDataClient, get_token
from .exceptions import DecodeError, GitDataError, GitHubAPIError
from .models import (
    Blob,
    BlobMode,
    CreateBlob,
    CreateGitTree,
    CreateGitTreeBlob,
    CreateGitTreeSha,
    CreateTree,
    Encoding,
    GitMode,
    GitTree,
    GitTreeType,
    NewBlob,
    Tree,
    encode_create_git_tree,
)

__all__ = [
    "Blob",
    "BlobMode",
    "CreateBlob",
    "CreateGitTree",
    "CreateGitTreeBlob",
    "CreateGitTreeSha",
    "CreateTree",
    "DecodeError",
    "Encoding",
    "GitDataClient",
    "GitDataError",
    "GitHubAPIError",
    "GitMode",
    "GitTree",
    "GitTreeType",
    "NewBlob",
    "Tree",
    "encode_create_git_tree",
    "get_token",
]
