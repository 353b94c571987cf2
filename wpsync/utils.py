"""Utility functions for wpsync."""

import re
import shlex
from functools import lru_cache

# =============================================================================
# Constants
# =============================================================================

# Default SSH port
DEFAULT_SSH_PORT: int = 22

# Timeout for a single remote command (seconds)
DEFAULT_COMMAND_TIMEOUT: float = 300.0

# Timeout for establishing the SSH connection (seconds)
DEFAULT_CONNECT_TIMEOUT: float = 30.0

# rsync exit codes for "partial transfer" and "vanished source files"
DEFAULT_PARTIAL_STATUS_CODES: frozenset[int] = frozenset({23, 24})


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


# =============================================================================
# Glob pattern utilities
# =============================================================================


@lru_cache(maxsize=512)
def glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """Translate a slash-separated glob pattern to a compiled regex.

    ``*`` and ``?`` never match ``/``. A ``**`` segment matches any number
    of path segments (including none). Character classes ``[abc]`` and
    ``[!abc]`` are supported.

    Args:
        pattern: Glob pattern using forward slashes

    Returns:
        Compiled regular expression matching the whole path
    """
    parts = pattern.split("/")
    out: list[str] = []
    last = len(parts) - 1
    for idx, part in enumerate(parts):
        if part == "**":
            if idx == last:
                out.append(".*")
            else:
                out.append("(?:[^/]+/)*")
            continue
        out.append(_translate_segment(part))
        if idx < last:
            out.append("/")
    return re.compile("".join(out) + r"\Z", re.DOTALL)


def _translate_segment(segment: str) -> str:
    """Translate a single path segment of a glob pattern."""
    i, n = 0, len(segment)
    res: list[str] = []
    while i < n:
        ch = segment[i]
        i += 1
        if ch == "*":
            # Collapse consecutive stars
            while i < n and segment[i] == "*":
                i += 1
            res.append("[^/]*")
        elif ch == "?":
            res.append("[^/]")
        elif ch == "[":
            j = i
            if j < n and segment[j] in "!^":
                j += 1
            if j < n and segment[j] == "]":
                j += 1
            while j < n and segment[j] != "]":
                j += 1
            if j >= n:
                res.append(re.escape(ch))
                continue
            body = segment[i:j].replace("\\", "\\\\")
            i = j + 1
            if body and body[0] in "!^":
                body = "^" + body[1:]
            res.append(f"[{body}]")
        else:
            res.append(re.escape(ch))
    return "".join(res)


# =============================================================================
# Shell utilities
# =============================================================================


def quote_remote_path(path: str) -> str:
    """Quote a path for use in a remote POSIX shell command."""
    return shlex.quote(path)
