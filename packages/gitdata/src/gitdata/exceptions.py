"""Git Data exception hierarchy."""

from __future__ import annotations

from typing import Any


class GitDataError(Exception):
    """Base exception for the gitdata package."""


class DecodeError(GitDataError, ValueError):
    """A wire value could not be decoded into a Git Data type.

    Attributes:
        type_name: Name of the type being decoded (e.g. ``GitMode``)
        value: The offending raw value
        history: Path to the value inside the document, e.g. ``("tree", 3, "mode")``
        reason: Optional human-readable reason replacing the default message
    """

    def __init__(
        self,
        type_name: str,
        value: Any,
        history: tuple[str | int, ...] = (),
        reason: str | None = None,
    ) -> None:
        self.type_name = type_name
        self.value = value
        self.history = tuple(history)
        self.reason = reason
        super().__init__(self._message())

    def _message(self) -> str:
        message = self.reason or f"{self.type_name} got: {self.value}"
        if self.history:
            message += f" (at {format_history(self.history)})"
        return message

    def with_history(self, history: tuple[str | int, ...]) -> DecodeError:
        """Return a copy located at ``history`` inside the enclosing document."""
        return DecodeError(self.type_name, self.value, history, self.reason)


class GitHubAPIError(GitDataError):
    """The GitHub API answered with an error status."""

    def __init__(self, message: str, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(message)


def format_history(history: tuple[str | int, ...]) -> str:
    """Render a cursor path as ``tree[3].mode``."""
    parts: list[str] = []
    for step in history:
        if isinstance(step, int):
            parts.append(f"[{step}]")
        elif parts:
            parts.append(f".{step}")
        else:
            parts.append(str(step))
    return "".join(parts)
