"""GitHub Git Data models: blobs, trees and tree-creation requests.

Response models decode the JSON documents returned by the low-level Git API
(``/repos/{owner}/{repo}/git/...``); request models encode the payloads it
accepts. Field names on the wire are exact and are kept as pydantic aliases.
"""

from __future__ import annotations

import base64
from enum import Enum
from typing import Annotated, Any, Self, assert_never

from pydantic import (
    AnyUrl,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    ValidationError,
    field_serializer,
    model_serializer,
)

from .exceptions import DecodeError


class WireEnum(str, Enum):
    """Closed set of wire literals."""

    @classmethod
    def decode(cls, raw: Any) -> Self:
        """Match ``raw`` against the literal table, raising ``DecodeError`` otherwise."""
        try:
            return cls(raw)
        except ValueError:
            raise DecodeError(cls.__name__, raw) from None


class Encoding(WireEnum):
    """Content encoding of an uploaded blob."""

    BASE64 = "base64"
    UTF8 = "utf-8"


class GitTreeType(WireEnum):
    """Kind of object a tree entry points at."""

    BLOB = "blob"
    COMMIT = "commit"
    TREE = "tree"


class GitMode(WireEnum):
    """Git file mode of a tree entry."""

    EXECUTABLE = "100755"
    FILE = "100644"
    SUBDIRECTORY = "040000"
    SUBMODULE = "160000"
    SYMLINK = "120000"


class BlobMode(WireEnum):
    """Modes allowed for an entry whose content is uploaded inline."""

    EXECUTABLE = "100755"
    FILE = "100644"

    def to_git_mode(self) -> GitMode:
        match self:
            case BlobMode.EXECUTABLE:
                return GitMode.EXECUTABLE
            case BlobMode.FILE:
                return GitMode.FILE
            case _:
                assert_never(self)


# Decoded through the enum's own table so failures name the enumeration.
GitTreeTypeField = Annotated[GitTreeType, BeforeValidator(GitTreeType.decode)]
GitModeField = Annotated[GitMode, BeforeValidator(GitMode.decode)]


def _decode_error(type_name: str, exc: ValidationError) -> DecodeError:
    error = exc.errors()[0]
    history = tuple(error["loc"])
    cause = error.get("ctx", {}).get("error")
    if isinstance(cause, DecodeError):
        return cause.with_history(history)
    return DecodeError(
        type_name,
        error.get("input"),
        history,
        reason=f"{type_name}: {error['msg']}",
    )


class GitDataModel(BaseModel):
    """Immutable Git Data value."""

    model_config = ConfigDict(frozen=True)


class ResponseModel(GitDataModel):
    """A value decoded from a GitHub API response."""

    @classmethod
    def decode(cls, data: Any) -> Self:
        """
        Decode a JSON document.

        Args:
            data: Parsed JSON object, or the raw JSON text

        Returns:
            The decoded value

        Raises:
            DecodeError: Any field is missing or invalid, at any depth
        """
        try:
            if isinstance(data, (str, bytes, bytearray)):
                return cls.model_validate_json(data)
            return cls.model_validate(data)
        except ValidationError as exc:
            raise _decode_error(cls.__name__, exc) from exc


class RequestModel(GitDataModel):
    """A value encoded into a GitHub API request body."""

    # Responses decode from wire names only.
    model_config = ConfigDict(populate_by_name=True)

    def encode(self) -> dict[str, Any]:
        """Encode to the wire JSON object."""
        return self.model_dump(mode="json", by_alias=True)

    def encode_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class Blob(ResponseModel):
    """Blob read model. ``content`` is base64 and may cover up to 100 MB of data."""

    content: str
    uri: AnyUrl = Field(alias="url")
    sha: str
    size: StrictInt

    def decoded_content(self) -> bytes:
        """Decode the base64 payload (GitHub wraps it with newlines)."""
        return base64.b64decode(self.content)


class CreateBlob(RequestModel):
    """Blob creation request. ``content`` is not checked against ``encoding``."""

    content: str
    encoding: Encoding

    @classmethod
    def from_bytes(cls, data: bytes) -> CreateBlob:
        return cls(content=base64.b64encode(data).decode("ascii"), encoding=Encoding.BASE64)

    @classmethod
    def from_text(cls, text: str) -> CreateBlob:
        return cls(content=text, encoding=Encoding.UTF8)


class NewBlob(ResponseModel):
    """Blob creation response."""

    uri: AnyUrl = Field(alias="url")
    sha: str


class GitTree(ResponseModel):
    """One entry of a tree listing. ``url`` and ``size`` are optional."""

    path: str
    sha: str
    type: GitTreeTypeField
    mode: GitModeField
    uri: AnyUrl | None = Field(default=None, alias="url")
    size: StrictInt | None = None


class Tree(ResponseModel):
    """A tree listing, entries in the order the API returned them.

    ``truncated`` is true when the server cut the listing off.
    """

    sha: str
    uri: AnyUrl = Field(alias="url")
    git_trees: tuple[GitTree, ...] = Field(alias="tree")
    truncated: StrictBool | None = None


class CreateGitTreeSha(RequestModel):
    """Tree entry pointing at an existing object. ``sha=None`` deletes the path."""

    path: str
    sha: str | None
    type: GitTreeType
    mode: GitMode

    @classmethod
    def from_git_tree(cls, git_tree: GitTree) -> CreateGitTreeSha:
        """Re-propose an existing entry unchanged."""
        return cls(
            path=git_tree.path,
            sha=git_tree.sha,
            type=git_tree.type,
            mode=git_tree.mode,
        )

    @model_serializer(mode="plain")
    def serialize_entry(self) -> dict[str, Any]:
        return encode_create_git_tree(self)


class CreateGitTreeBlob(RequestModel):
    """Tree entry whose blob content is uploaded inline."""

    path: str
    content: str
    mode: BlobMode

    @model_serializer(mode="plain")
    def serialize_entry(self) -> dict[str, Any]:
        return encode_create_git_tree(self)


CreateGitTree = CreateGitTreeSha | CreateGitTreeBlob


def encode_create_git_tree(entry: CreateGitTree) -> dict[str, Any]:
    """Encode a tree-creation entry; the two variants have different shapes."""
    match entry:
        case CreateGitTreeSha():
            return {
                "path": entry.path,
                "sha": entry.sha,
                "type": entry.type.value,
                "mode": entry.mode.value,
            }
        case CreateGitTreeBlob():
            return {
                "path": entry.path,
                "type": GitTreeType.BLOB.value,
                "mode": entry.mode.to_git_mode().value,
                "content": entry.content,
            }
        case _:
            assert_never(entry)


class CreateTree(RequestModel):
    """
    Tree creation request for ``POST /repos/{owner}/{repo}/git/trees``.

    Entries may be nested paths; a nested path under a tree that is also
    listed overwrites that tree's contents. The new tree still has to be
    committed and a branch moved to the commit.

    Without ``base_tree_sha`` the tree contains only the listed entries, so
    every other file of the repository shows up as deleted in the commit.
    """

    tree: tuple[CreateGitTree, ...]
    base_tree_sha: str | None = Field(default=None, alias="base_tree")

    @field_serializer("tree")
    def serialize_tree(self, tree: tuple[CreateGitTree, ...]) -> list[dict[str, Any]]:
        return [encode_create_git_tree(entry) for entry in tree]
