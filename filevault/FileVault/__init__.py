"""
FileVault - Confined file access for the file browser.

Provides:
- Root confinement with traversal and symlink-escape prevention
- Paginated directory listings (directories first, case-insensitive)
- Recursive name search with optional size bounds
- Upload validation (extension allow-list, size limit) and collision-safe naming

Usage:
    from filevault.FileVault import FileVault, VaultConfig

    # Construct once on startup and pass it to whoever needs it
    vault = FileVault(VaultConfig(root_path="/srv/files", allowed_extensions=[".pdf"]))

    # List files
    result = vault.list_dir("reports", page=1, page_size=50)

    # Save an upload
    result = vault.save("q3.pdf", b"...", "reports")
    if result.success:
        saved_name = result.data
"""

import os
from typing import Any, BinaryIO, Dict, Iterable, List, Optional, Tuple, Union

from filevault.shared.gate import (
    GateLogger,
    build_health_status,
    ensure_directory,
)

from .models import (
    VaultConfig,
    FileEntry,
    FailureKind,
    OperationResult,
    UploadOutcome,
)
from .security import (
    AccessDenied,
    PathSecurityError,
    canonical_root,
    is_within_root,
    resolve_path,
)
from .operations import (
    list_directory as op_list_directory,
    get_file_info as op_get_file_info,
    search as op_search,
)
from .uploads import (
    save_file as op_save_file,
    save_files as op_save_files,
)

_log = GateLogger.get("FileVault")


class FileVault:
    """
    Owns all filesystem interaction below a single root.

    Holds only the canonical root and the read-only configuration, so one
    instance is safe to share between concurrent requests.
    """

    def __init__(self, config: Optional[VaultConfig] = None):
        self._config = config or VaultConfig()
        ensure_directory(self._config.root_path)
        self._root = canonical_root(self._config.root_path)
        _log.info(
            f"Vault ready (allowed extensions: "
            f"{'all' if self._config.allowed_extensions is None else self._config.allowed_extensions})"
        )

    @property
    def config(self) -> VaultConfig:
        return self._config

    @property
    def root(self) -> str:
        """Canonical root; for I/O and logs only, never sent to clients."""
        return self._root

    def resolve(self, relative_input: Optional[str]) -> str:
        """
        Resolve caller input to an absolute path inside the root.

        Raises:
            AccessDenied: If the path escapes the root
        """
        return resolve_path(self._root, relative_input, self._config.follow_symlinks)

    # ==================== Health Checks ====================

    def is_healthy(self) -> bool:
        """Check if the root is usable."""
        return os.path.isdir(self._root) and os.access(self._root, os.R_OK | os.W_OK)

    def get_health_status(self) -> Dict[str, Any]:
        """Get detailed health information."""
        exists = os.path.isdir(self._root)
        checks = {
            "root_exists": exists,
            "root_readable": exists and os.access(self._root, os.R_OK),
            "root_writable": exists and os.access(self._root, os.W_OK),
        }
        return build_health_status(
            gate_name="FileVault",
            checks=checks,
            dependencies=self.get_dependencies(),
            details={
                "allowed_extensions": self._config.allowed_extensions,
                "max_upload_mb": self._config.max_upload_mb,
            },
        )

    def get_dependencies(self) -> List[str]:
        """List external dependencies."""
        return ["filesystem"]

    # ==================== File Operations ====================

    def list_dir(
        self,
        relative_path: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
        show_hidden: bool = True
    ) -> OperationResult:
        """
        List directory contents.

        Args:
            relative_path: Path relative to the root (None = root)
            page: 1-based page number
            page_size: Entries per page (default from config)
            show_hidden: Include dot-files

        Returns:
            OperationResult with {"files": [FileEntry], "total", "page", "page_size"}
        """
        return op_list_directory(
            self._root, self._config, relative_path, page, page_size, show_hidden
        )

    def get_file(self, relative_path: Optional[str]) -> OperationResult:
        """
        Look up a regular file for metadata or download.

        Returns:
            OperationResult with FileEntry (absolute_path set for streaming)
        """
        return op_get_file_info(self._root, self._config, relative_path)

    def search(
        self,
        query: str,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None
    ) -> OperationResult:
        """
        Search every entry under the root by name.

        Size bounds filter files only; directories are dropped whenever a bound is set.

        Returns:
            OperationResult with {"files": [FileEntry], "total"}
        """
        return op_search(
            self._root, self._config, query, min_size, max_size, page, page_size
        )

    def save(
        self,
        file_name: str,
        content: Union[bytes, BinaryIO],
        target_relative_dir: Optional[str] = None
    ) -> OperationResult:
        """
        Save one upload; never overwrites.

        Returns:
            OperationResult with the final saved name in data
        """
        return op_save_file(
            self._root, self._config, file_name, content, target_relative_dir
        )

    def save_many(
        self,
        files: Iterable[Tuple[str, Union[bytes, BinaryIO]]],
        target_relative_dir: Optional[str] = None
    ) -> List[UploadOutcome]:
        """Save a batch; each file succeeds or fails on its own."""
        return op_save_files(self._root, self._config, files, target_relative_dir)

    def allowed_types(self) -> Optional[List[str]]:
        """Configured extension allow-list (None = everything allowed)."""
        if self._config.allowed_extensions is None:
            return None
        return list(self._config.allowed_extensions)


__all__ = [
    "FileVault",
    "VaultConfig",
    "FileEntry",
    "FailureKind",
    "OperationResult",
    "UploadOutcome",
    "AccessDenied",
    "PathSecurityError",
    "is_within_root",
]
