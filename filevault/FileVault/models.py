"""
FileVault Pydantic models.

Defines the vault configuration, file entries, failure kinds and operation results.
"""

from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FailureKind(str, Enum):
    """Why an operation failed. The HTTP layer maps each kind to one status."""
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    GENERIC_FAILURE = "generic_failure"


def normalize_extension(ext: str) -> str:
    """Lower-case an extension and make sure it carries its leading dot."""
    ext = ext.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


class VaultConfig(BaseModel):
    """Configuration for the vault. Read-only once the vault is constructed."""
    root_path: str = Field(default="./files", description="Root boundary directory")
    allowed_extensions: Optional[List[str]] = Field(
        default=None,
        description="Whitelist of upload extensions (None = all allowed, [] = none allowed)"
    )
    max_upload_mb: int = Field(default=100, ge=1)
    default_page_size: int = Field(default=50, ge=1)
    max_page_size: int = Field(default=1000, ge=1)
    follow_symlinks: bool = Field(
        default=True,
        description="Allow symlinks whose target stays inside the root"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("allowed_extensions")
    @classmethod
    def _normalize_extensions(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        if any(v.strip() == "*" for v in value):
            return None
        normalized = []
        for ext in value:
            ext = normalize_extension(ext)
            if ext and ext not in normalized:
                normalized.append(ext)
        return normalized

    @model_validator(mode="after")
    def _check_page_sizes(self) -> "VaultConfig":
        if self.default_page_size > self.max_page_size:
            raise ValueError("default_page_size must not exceed max_page_size")
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return self.model_dump(mode="json")

    def extension_allowed(self, ext: str) -> bool:
        """Check an extension (with dot) against the allow-list."""
        if self.allowed_extensions is None:
            return True
        return normalize_extension(ext) in self.allowed_extensions


class FileEntry(BaseModel):
    """A file or directory exposed to callers."""
    name: str
    path: str = Field(description="Path relative to the root, '/' separated")
    is_directory: bool = Field(alias="isDirectory")
    size: Optional[int] = None
    absolute_path: str = Field(default="", exclude=True)

    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire dict (absolute path never included)."""
        return self.model_dump(mode="json", by_alias=True)


class OperationResult(BaseModel):
    """Result of a vault operation."""
    success: bool
    operation: str = Field(description="Operation type: list/info/search/save")
    path: str = Field(default="", description="Root-relative path the operation touched")
    message: str = ""
    data: Optional[Any] = None
    error: Optional[str] = None
    failure: Optional[FailureKind] = None

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return self.model_dump(mode="json")

    @classmethod
    def ok(cls, operation: str, path: str = "", message: str = "", data: Any = None) -> "OperationResult":
        """Create a successful result."""
        return cls(success=True, operation=operation, path=path, message=message, data=data)

    @classmethod
    def fail(cls, operation: str, failure: FailureKind, error: str, path: str = "") -> "OperationResult":
        """Create a failed result."""
        return cls(success=False, operation=operation, path=path, error=error, failure=failure)


class UploadOutcome(BaseModel):
    """Per-file outcome of a batch upload."""
    file_name: str
    saved_name: Optional[str] = None
    success: bool
    error: Optional[str] = None
    failure: Optional[FailureKind] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire dict."""
        return {
            "fileName": self.file_name,
            "savedName": self.saved_name,
            "success": self.success,
            "error": self.error,
        }
