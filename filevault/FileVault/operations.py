"""
FileVault read operations.

Provides list, info and search over the root with confinement checks.
"""

import os
import stat
from typing import List, Optional, Tuple

from filevault.shared.gate import GateLogger

from .models import VaultConfig, FileEntry, OperationResult, FailureKind
from .security import (
    AccessDenied,
    resolve_path,
    relative_path,
    requested_name,
    entry_is_confined,
)

_log = GateLogger.get("FileVault")


def _sort_key(entry: FileEntry):
    # Directories first, then case-insensitive name; exact name and path keep it stable
    return (not entry.is_directory, entry.name.casefold(), entry.name, entry.path)


def build_entry(root: str, absolute_path: str, name: Optional[str] = None) -> FileEntry:
    """
    Build a FileEntry from live filesystem state.

    Raises:
        OSError: If the path cannot be stat'ed
    """
    st = os.stat(absolute_path)
    is_dir = stat.S_ISDIR(st.st_mode)
    return FileEntry(
        name=name or os.path.basename(absolute_path),
        path=relative_path(root, absolute_path),
        is_directory=is_dir,
        size=None if is_dir else st.st_size,
        absolute_path=absolute_path,
    )


def check_pagination(
    page: int,
    page_size: int,
    config: VaultConfig
) -> Tuple[Optional[int], Optional[str]]:
    """
    Validate page parameters.

    Returns:
        Tuple of (page_size, error_message)
    """
    if page < 1:
        return None, "page must be >= 1"
    if page_size < 1:
        return None, "page_size must be >= 1"
    if page_size > config.max_page_size:
        return None, f"page_size must be <= {config.max_page_size}"
    return page_size, None


def paginate(entries: List[FileEntry], page: int, page_size: int) -> List[FileEntry]:
    """Skip (page-1)*page_size entries and take up to page_size."""
    start = (page - 1) * page_size
    return entries[start:start + page_size]


def list_directory(
    root: str,
    config: VaultConfig,
    relative_input: Optional[str] = None,
    page: int = 1,
    page_size: Optional[int] = None,
    show_hidden: bool = True
) -> OperationResult:
    """
    List the immediate children of a directory.

    Args:
        root: Canonical root path
        config: Vault configuration
        relative_input: Directory relative to the root (None = root)
        page: 1-based page number
        page_size: Entries per page (default from config)
        show_hidden: Include dot-files

    Returns:
        OperationResult with {"files", "total", "page", "page_size"} in data
    """
    effective_size, error = check_pagination(
        page, config.default_page_size if page_size is None else page_size, config
    )
    if error:
        return OperationResult.fail("list", FailureKind.VALIDATION_ERROR, error)

    try:
        resolved = resolve_path(root, relative_input, config.follow_symlinks)
    except AccessDenied as e:
        return OperationResult.fail("list", FailureKind.ACCESS_DENIED, str(e))

    rel = relative_path(root, resolved)

    if not os.path.isdir(resolved):
        return OperationResult.fail(
            "list", FailureKind.NOT_FOUND, "Directory not found.", path=rel
        )

    try:
        names = os.listdir(resolved)
    except OSError as e:
        _log.error(f"Failed to list directory {rel!r}: {e.strerror}")
        return OperationResult.fail(
            "list", FailureKind.GENERIC_FAILURE,
            f"Failed to list directory: {e.strerror}", path=rel
        )

    entries: List[FileEntry] = []
    for name in names:
        if not show_hidden and name.startswith('.'):
            continue

        entry_path = os.path.join(resolved, name)
        if not entry_is_confined(root, entry_path, config.follow_symlinks):
            continue

        try:
            entries.append(build_entry(root, entry_path, name))
        except OSError:
            # Vanished or dangling; the listing is a live snapshot
            continue

    entries.sort(key=_sort_key)
    page_entries = paginate(entries, page, effective_size)

    return OperationResult.ok(
        "list",
        path=rel,
        message=f"Listed {len(page_entries)} of {len(entries)} items",
        data={
            "files": page_entries,
            "total": len(entries),
            "page": page,
            "page_size": effective_size,
        },
    )


def get_file_info(
    root: str,
    config: VaultConfig,
    relative_input: Optional[str]
) -> OperationResult:
    """
    Look up a regular file for metadata or download.

    Returns:
        OperationResult with a FileEntry (absolute_path set) in data
    """
    try:
        resolved = resolve_path(root, relative_input, config.follow_symlinks)
    except AccessDenied as e:
        return OperationResult.fail("info", FailureKind.ACCESS_DENIED, str(e))

    rel = relative_path(root, resolved)

    if not os.path.isfile(resolved):
        return OperationResult.fail(
            "info", FailureKind.NOT_FOUND, "File not found.", path=rel
        )

    try:
        # Named as requested, so a link downloads under its own name
        entry = build_entry(root, resolved, requested_name(relative_input) or None)
    except OSError as e:
        _log.error(f"Failed to stat {rel!r}: {e.strerror}")
        return OperationResult.fail(
            "info", FailureKind.GENERIC_FAILURE,
            f"Failed to get file info: {e.strerror}", path=rel
        )

    return OperationResult.ok("info", path=rel, data=entry)


def _size_matches(entry: FileEntry, min_size: Optional[int], max_size: Optional[int]) -> bool:
    if min_size is None and max_size is None:
        return True
    # A size bound can only be compared against files
    if entry.is_directory:
        return False
    if min_size is not None and entry.size < min_size:
        return False
    if max_size is not None and entry.size > max_size:
        return False
    return True


def search(
    root: str,
    config: VaultConfig,
    query: str,
    min_size: Optional[int] = None,
    max_size: Optional[int] = None,
    page: Optional[int] = None,
    page_size: Optional[int] = None
) -> OperationResult:
    """
    Recursively search the root by case-insensitive name substring.

    Args:
        root: Canonical root path
        config: Vault configuration
        query: Substring to look for in entry names ("" matches everything)
        min_size: Minimum file size in bytes; excludes directories when set
        max_size: Maximum file size in bytes; excludes directories when set
        page: Optional 1-based page; no pagination when None
        page_size: Entries per page when paginating

    Returns:
        OperationResult with {"files", "total"} in data
    """
    if (min_size is not None and min_size < 0) or (max_size is not None and max_size < 0):
        return OperationResult.fail(
            "search", FailureKind.VALIDATION_ERROR, "Size bounds must be >= 0"
        )
    if min_size is not None and max_size is not None and min_size > max_size:
        return OperationResult.fail(
            "search", FailureKind.VALIDATION_ERROR, "minSize must not exceed maxSize"
        )

    effective_size = None
    if page is not None:
        effective_size, error = check_pagination(
            page, config.default_page_size if page_size is None else page_size, config
        )
        if error:
            return OperationResult.fail("search", FailureKind.VALIDATION_ERROR, error)

    needle = (query or "").casefold()
    root_errors: List[OSError] = []

    def _on_error(err: OSError):
        # Unreadable subdirectories are skipped; only the root itself is fatal
        if os.path.normpath(err.filename or "") == root:
            root_errors.append(err)

    matches: List[FileEntry] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error, followlinks=False):
        for name in dirnames + filenames:
            if needle not in name.casefold():
                continue
            entry_path = os.path.join(dirpath, name)
            if not entry_is_confined(root, entry_path, config.follow_symlinks):
                continue
            try:
                entry = build_entry(root, entry_path, name)
            except OSError:
                continue
            if _size_matches(entry, min_size, max_size):
                matches.append(entry)

    if root_errors:
        err = root_errors[0]
        _log.error(f"Search failed: {err.strerror}")
        return OperationResult.fail(
            "search", FailureKind.GENERIC_FAILURE, f"Search failed: {err.strerror}"
        )

    matches.sort(key=_sort_key)
    total = len(matches)
    if page is not None:
        matches = paginate(matches, page, effective_size)

    return OperationResult.ok(
        "search",
        message=f"Found {total} matches",
        data={"files": matches, "total": total},
    )
