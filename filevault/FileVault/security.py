"""
FileVault security module.

Provides root confinement, traversal prevention, and upload name/extension checking.
"""

import os
import re
from typing import Optional, Tuple

from filevault.shared.gate import GateLogger

from .models import VaultConfig

_log = GateLogger.get("FileVault")

# Separators accepted in caller input regardless of host conventions
_INPUT_SEPARATORS = "/\\"

# Filesystem name limit, counted in UTF-8 bytes
MAX_FILENAME_BYTES = 255


class PathSecurityError(Exception):
    """Raised when a path fails security validation."""
    pass


class AccessDenied(PathSecurityError):
    """Raised when a path resolves outside the root boundary."""
    pass


def canonical_root(root_path: str) -> str:
    """
    Canonicalize the configured root.

    Args:
        root_path: Raw root path from configuration

    Returns:
        Absolute, symlink-free root path
    """
    path = os.path.expanduser(root_path)
    return os.path.realpath(os.path.abspath(path))


def is_within_root(root: str, target: str) -> bool:
    """
    Separator-aware containment test.

    Both arguments must already be canonical. The target is inside when it is
    the root itself or starts with the root followed by a separator, so
    "/srv/root2" is never inside "/srv/root".
    """
    if target == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return target.startswith(prefix)


def _clean_relative(relative_input: Optional[str]) -> str:
    """Convert caller input to a host-relative path ("" for the root)."""
    if not relative_input:
        return ""
    cleaned = relative_input.replace("\\", "/").lstrip("/")
    if cleaned in ("", "."):
        return ""
    return cleaned.replace("/", os.sep)


def resolve_path(
    root: str,
    relative_input: Optional[str],
    follow_symlinks: bool = True
) -> str:
    """
    Resolve caller input to an absolute path inside the root.

    Args:
        root: Canonical root path
        relative_input: Root-relative path from the caller (None/"" = root)
        follow_symlinks: Allow symlinks whose target stays inside the root

    Returns:
        Canonical absolute path

    Raises:
        AccessDenied: If the canonical path lies outside the root
    """
    if relative_input and "\x00" in relative_input:
        _log.warning(f"Access denied: NUL byte in path {relative_input!r}")
        raise AccessDenied("Access denied")

    relative = _clean_relative(relative_input)
    if not relative:
        return root

    joined = os.path.normpath(os.path.join(root, relative))
    resolved = os.path.realpath(joined)

    if not is_within_root(root, resolved):
        _log.warning(f"Access denied: path escapes root: {relative_input!r}")
        raise AccessDenied("Access denied")

    if not follow_symlinks and resolved != joined:
        _log.warning(f"Access denied: symlink in path: {relative_input!r}")
        raise AccessDenied("Access denied")

    return resolved


def relative_path(root: str, absolute_path: str) -> str:
    """Root-relative, '/'-separated form of an absolute path inside the root."""
    rel = os.path.relpath(absolute_path, root)
    if rel == ".":
        return ""
    return rel.replace(os.sep, "/")


def requested_name(relative_input: Optional[str]) -> str:
    """Last component of the caller's path as typed, before symlinks are resolved."""
    relative = _clean_relative(relative_input)
    if not relative:
        return ""
    return os.path.basename(os.path.normpath(relative))


def entry_is_confined(root: str, entry_path: str, follow_symlinks: bool = True) -> bool:
    """Check that a directory child (possibly a symlink) stays inside the root."""
    if os.path.islink(entry_path):
        if not follow_symlinks:
            return False
        return is_within_root(root, os.path.realpath(entry_path))
    return True


def _utf8_prefix(text: str, max_bytes: int) -> str:
    # Cut on a character boundary
    return text.encode("utf-8")[:max_bytes].decode("utf-8", "ignore")


def fit_filename(stem: str, tail: str = "") -> str:
    """
    Shorten stem so that stem + tail fits in MAX_FILENAME_BYTES.

    The tail (extension, collision suffix) is kept whole unless it alone
    exceeds the limit, in which case the joined name is cut.
    """
    budget = MAX_FILENAME_BYTES - len(tail.encode("utf-8"))
    if budget <= 0:
        return _utf8_prefix(stem + tail, MAX_FILENAME_BYTES)
    return _utf8_prefix(stem, budget) + tail


def sanitize_filename(filename: str) -> str:
    """
    Sanitize an uploaded filename to a bare, safe basename.

    Args:
        filename: Raw filename from the client

    Returns:
        Sanitized filename ("" if nothing usable remains)
    """
    # Clients on any OS may send either separator
    for sep in _INPUT_SEPARATORS:
        filename = filename.rsplit(sep, 1)[-1]

    # Remove null bytes and other control characters
    filename = re.sub(r'[\x00-\x1f\x7f]', '', filename)

    # Remove other dangerous characters
    filename = re.sub(r'[<>:"|?*]', '_', filename)

    filename = filename.strip()
    if filename in (".", ".."):
        return ""

    name, ext = os.path.splitext(filename)
    return fit_filename(name, ext)


def check_extension_allowed(
    filename: str,
    config: VaultConfig
) -> Tuple[bool, Optional[str]]:
    """
    Check if a file extension is allowed for upload.

    Args:
        filename: Sanitized filename
        config: Vault configuration

    Returns:
        Tuple of (is_allowed, error_message)
    """
    _, ext = os.path.splitext(filename)
    ext = ext.lower()

    if config.allowed_extensions is None:
        return True, None

    if not ext:
        return False, "Files without an extension are not allowed"

    if not config.extension_allowed(ext):
        return False, f"Extension {ext} is not in allowed list"

    return True, None


def check_file_size(
    size_bytes: int,
    config: VaultConfig
) -> Tuple[bool, Optional[str]]:
    """
    Check if an upload size is within limits.

    Args:
        size_bytes: Bytes received so far
        config: Vault configuration

    Returns:
        Tuple of (is_allowed, error_message)
    """
    max_bytes = config.max_upload_mb * 1024 * 1024

    if size_bytes > max_bytes:
        return False, f"File exceeds upload limit ({config.max_upload_mb}MB)"

    return True, None
