"""Navigation sink.

The core decides where to go; the host application performs the move.
Route Guard, the API client's escape hatches, and the session manager all
navigate through this protocol and nothing else.
"""

from typing import Protocol
from urllib.parse import urlencode


class Navigator(Protocol):
    """Host-provided navigation side effect."""

    def replace(self, path: str) -> None:
        """Replace the current location with ``path`` (no history entry)."""
        ...


def has_unresolved_placeholder(path: str) -> bool:
    """Check whether a path still contains dynamic-route brackets.

    A path like ``/jobs/[id]`` is a template that was never interpolated;
    sending the user there after login would fail to resolve.

    Args:
        path: Path to inspect.

    Returns:
        True if the path contains ``[`` or ``]``.
    """
    return "[" in path or "]" in path


def is_same_or_subpath(current: str, target: str) -> bool:
    """Check whether ``current`` is ``target`` or nested beneath it.

    Args:
        current: Path the user is on.
        target: Path the user is required to be on.

    Returns:
        True for an exact match or a ``target + "/"`` prefix.
    """
    return current == target or current.startswith(target.rstrip("/") + "/")


def with_redirect_param(login_path: str, return_to: str | None) -> str:
    """Build a login URL carrying the return location.

    Args:
        login_path: Login route.
        return_to: Concrete path to come back to, or None.

    Returns:
        ``login_path`` with ``?redirect=`` appended when ``return_to`` is a
        usable path, else ``login_path`` alone.
    """
    if not return_to or has_unresolved_placeholder(return_to):
        return login_path
    return f"{login_path}?{urlencode({'redirect': return_to})}"
