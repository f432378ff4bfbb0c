"""Utility functions for pyuilicious."""

import os
import re
from pathlib import Path, PurePosixPath
from typing import Union

# =============================================================================
# Constants for file classification
# =============================================================================

# Files uploaded through the multipart raw-upload endpoint
MEDIA_EXTENSIONS: tuple[str, ...] = (".jpg", ".png")

# Files written as text on export; everything else is written as binary
SCRIPT_EXTENSION: str = ".js"

# A path segment starting with "." followed by a character that is neither
# "." nor "/"
HIDDEN_PATH_PATTERN = re.compile(r"(^|/)\.[^/.]")

# The service rejects empty script bodies
EMPTY_FILE_PLACEHOLDER: str = "//an empty file"

# Wire literals of the overwrite flag, sent verbatim. The casing mismatch
# is pending confirmation from the service owners.
OVERWRITE_TRUE: str = "True"
OVERWRITE_FALSE: str = "false"


# =============================================================================
# Classification helpers
# =============================================================================


def is_hidden_path(relative_path: str) -> bool:
    """Check whether a relative path contains a hidden segment.

    A path is hidden when any of its segments starts with a dot, or when
    its base name starts with a dot.

    Args:
        relative_path: Path relative to the import root, using forward slashes

    Returns:
        True if the path must not be uploaded

    Examples:
        >>> is_hidden_path(".gitignore")
        True
        >>> is_hidden_path("tests/.cache/login.js")
        True
        >>> is_hidden_path("tests/login.js")
        False
        >>> is_hidden_path("tests/..weird")
        True
    """
    if HIDDEN_PATH_PATTERN.search(relative_path):
        return True
    return PurePosixPath(relative_path).name.startswith(".")


def is_hidden_directory(relative_path: str) -> bool:
    """Check whether a walk must not enter a directory.

    Only the segment pattern applies, so folders such as ``..assets`` are
    still walked. Files below them are checked with :func:`is_hidden_path`.

    Examples:
        >>> is_hidden_directory(".cache")
        True
        >>> is_hidden_directory("suite/.git")
        True
        >>> is_hidden_directory("..assets")
        False
    """
    return HIDDEN_PATH_PATTERN.search(relative_path) is not None


def is_media_file(name: str) -> bool:
    """Check whether a file goes through the raw (multipart) upload.

    Examples:
        >>> is_media_file("logo.png")
        True
        >>> is_media_file("login.js")
        False
    """
    return name.endswith(MEDIA_EXTENSIONS)


def is_script_file(name: str) -> bool:
    """Check whether an exported file is written as text.

    Examples:
        >>> is_script_file("suite/login.js")
        True
        >>> is_script_file("logo.png")
        False
    """
    return name.endswith(SCRIPT_EXTENSION)


def encode_overwrite_flag(overwrite: bool) -> str:
    """Encode the overwrite option for the wire.

    Examples:
        >>> encode_overwrite_flag(True)
        'True'
        >>> encode_overwrite_flag(False)
        'false'
    """
    return OVERWRITE_TRUE if overwrite else OVERWRITE_FALSE


# =============================================================================
# Path helpers
# =============================================================================


def normalize_directory(directory: Union[str, Path]) -> str:
    """Strip a single trailing path separator.

    The filesystem root is returned unchanged.

    Examples:
        >>> normalize_directory("/out/")
        '/out'
        >>> normalize_directory("/out")
        '/out'
        >>> normalize_directory("/")
        '/'
    """
    directory = str(directory)
    if len(directory) > 1 and directory.endswith(("/", os.sep)):
        return directory[:-1]
    return directory


def split_remote_path(
    directory: Union[str, Path], remote_path: str
) -> tuple[Path, str]:
    """Map a remote path onto a local target directory and file name.

    The part of ``remote_path`` before its last separator is joined under
    ``directory``; the last segment becomes the file name.

    Args:
        directory: Local export directory
        remote_path: Path of the file in the remote project

    Returns:
        Tuple of (target_directory, file_name)

    Examples:
        >>> split_remote_path("/out/", "sub/dir/file.js")
        (PosixPath('/out/sub/dir'), 'file.js')
        >>> split_remote_path("/out", "/file.js")
        (PosixPath('/out'), 'file.js')
    """
    base = Path(normalize_directory(directory))
    relative = remote_path.lstrip("/")
    if "/" in relative:
        head, name = relative.rsplit("/", 1)
        return base.joinpath(*head.split("/")), name
    return base, relative


def to_binary_bytes(content: Union[str, bytes]) -> bytes:
    """Convert a "binary" string payload to bytes.

    Each code point is truncated to its low byte, which is how the service
    packs media files into JSON strings.

    Examples:
        >>> to_binary_bytes("\\x89PNG")
        b'\\x89PNG'
        >>> to_binary_bytes(b"raw")
        b'raw'
    """
    if isinstance(content, bytes):
        return content
    return bytes(ord(char) & 0xFF for char in content)
