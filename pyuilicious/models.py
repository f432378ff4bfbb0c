"""Data models for remote project files and test runs."""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Optional

FOLDER = "folder"
FILE = "file"

# Test run statuses that mean the run has not finished yet
PENDING_STATUSES = ("pending", "running")


@dataclass
class RemoteNode:
    """A node of a remote project's file tree."""

    path: str
    """Path of the node inside the project, without leading slash"""

    type: str
    """Either FILE or FOLDER"""

    name: str = ""
    """Base name of the node (derived from path when the API omits it)"""

    children: list["RemoteNode"] = field(default_factory=list)
    """Ordered children (folders only)"""

    def __post_init__(self) -> None:
        self.path = self.path.strip("/")
        if not self.name:
            self.name = PurePosixPath(self.path).name if self.path else ""

    @property
    def is_folder(self) -> bool:
        return self.type == FOLDER

    @property
    def is_file(self) -> bool:
        return self.type == FILE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RemoteNode":
        """Create a node (and its children) from an API dictionary."""
        children = [cls.from_dict(child) for child in data.get("children") or []]
        return cls(
            path=str(data.get("path") or ""),
            type=str(data.get("type") or FILE),
            name=str(data.get("name") or ""),
            children=children,
        )

    def find(self, path: str) -> Optional["RemoteNode"]:
        """Find a descendant (or this node) by its path."""
        path = path.strip("/")
        if self.path == path:
            return self
        for child in self.children:
            if child.path == path:
                return child
            if child.is_folder and path.startswith(child.path + "/"):
                return child.find(path)
        return None


def parse_file_listing(result: Any) -> list[RemoteNode]:
    """Convert the ``result`` of a flat file query into nodes.

    Args:
        result: List of dictionaries with at least ``path`` and ``type``

    Returns:
        List of RemoteNode objects in listing order
    """
    if not isinstance(result, list):
        return []
    return [RemoteNode.from_dict(item) for item in result if isinstance(item, dict)]


def build_remote_tree(entries: list[RemoteNode]) -> RemoteNode:
    """Build a hierarchical tree from a flat listing.

    Intermediate folders that the listing does not mention are created.
    Sibling order follows the order in which nodes first appear.

    Args:
        entries: Flat list of file and folder nodes

    Returns:
        Root folder node with an empty path
    """
    root = RemoteNode(path="", type=FOLDER)
    folders: dict[str, RemoteNode] = {"": root}

    def ensure_folder(path: str) -> RemoteNode:
        if path in folders:
            return folders[path]
        parent_path = str(PurePosixPath(path).parent)
        parent = ensure_folder("" if parent_path == "." else parent_path)
        folder = RemoteNode(path=path, type=FOLDER)
        parent.children.append(folder)
        folders[path] = folder
        return folder

    for entry in entries:
        if not entry.path:
            continue
        if entry.is_folder:
            ensure_folder(entry.path)
            continue
        parent_path = str(PurePosixPath(entry.path).parent)
        parent = ensure_folder("" if parent_path == "." else parent_path)
        parent.children.append(RemoteNode(path=entry.path, type=FILE, name=entry.name))

    return root


@dataclass
class RunResult:
    """Status and step log of a remote test run."""

    test_id: str
    status: str
    steps: list[dict[str, Any]] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_finished(self) -> bool:
        return self.status not in PENDING_STATUSES

    @property
    def is_success(self) -> bool:
        return self.status == "success"

    @classmethod
    def from_api_response(cls, test_id: str, result: Any) -> "RunResult":
        """Create a RunResult from the ``result`` of a poll request."""
        data = result if isinstance(result, dict) else {}
        return cls(
            test_id=test_id,
            status=str(data.get("status") or "pending").lower(),
            steps=list(data.get("steps") or []),
            raw=data,
        )
