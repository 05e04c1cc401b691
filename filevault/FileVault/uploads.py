"""
FileVault upload handling.

Validates names and extensions, picks a non-colliding target name, and writes
content through a temp file so the final name never holds a partial upload.
"""

import io
import os
import tempfile
from datetime import datetime, timezone
from typing import BinaryIO, Iterable, Iterator, List, Optional, Tuple, Union

from filevault.shared.gate import GateLogger

from .models import VaultConfig, OperationResult, FailureKind, UploadOutcome
from .security import (
    AccessDenied,
    resolve_path,
    relative_path,
    sanitize_filename,
    fit_filename,
    check_extension_allowed,
    check_file_size,
)

_log = GateLogger.get("FileVault")

Content = Union[bytes, bytearray, BinaryIO]

CHUNK_SIZE = 1024 * 1024
MAX_NAME_ATTEMPTS = 1000
TEMP_PREFIX = ".upload-"


class UploadRejected(Exception):
    """Raised when an upload fails validation."""
    pass


def collision_suffix(now: Optional[datetime] = None) -> str:
    """Timestamp suffix used when the requested name is taken."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y%m%d%H%M%S")


def candidate_names(filename: str, now: Optional[datetime] = None) -> Iterator[str]:
    """
    Yield names to try, in order.

    notes.txt, notes_20240101120000.txt, notes_20240101120000_1.txt, ...
    """
    yield filename
    stem, ext = os.path.splitext(filename)
    suffix = collision_suffix(now)
    yield fit_filename(stem, f"_{suffix}{ext}")
    for n in range(1, MAX_NAME_ATTEMPTS):
        yield fit_filename(stem, f"_{suffix}_{n}{ext}")


def _as_stream(content: Content) -> BinaryIO:
    if isinstance(content, (bytes, bytearray)):
        return io.BytesIO(content)
    return content


def _write_temp(directory: str, content: Content, config: VaultConfig) -> Tuple[str, int]:
    """Copy content into a hidden temp file in the target directory."""
    fd, tmp_path = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=".part", dir=directory)
    stream = _as_stream(content)
    written = 0
    try:
        with os.fdopen(fd, "wb") as out:
            while True:
                chunk = stream.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                size_ok, size_error = check_file_size(written, config)
                if not size_ok:
                    raise UploadRejected(size_error)
                out.write(chunk)
        os.chmod(tmp_path, 0o644)
    except BaseException:
        _discard(tmp_path)
        raise
    return tmp_path, written


def _claim_name(directory: str, filename: str) -> str:
    """Atomically reserve the first free candidate name; returns it."""
    for candidate in candidate_names(filename):
        target = os.path.join(directory, candidate)
        try:
            fd = os.open(target, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            continue
        os.close(fd)
        return candidate
    raise FileExistsError(f"No free name for {filename}")


def _discard(path: str):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


def save_file(
    root: str,
    config: VaultConfig,
    file_name: str,
    content: Content,
    target_relative_dir: Optional[str] = None
) -> OperationResult:
    """
    Save one uploaded file without overwriting anything.

    Args:
        root: Canonical root path
        config: Vault configuration
        file_name: Client-supplied file name
        content: Bytes or a binary stream
        target_relative_dir: Directory relative to the root (None = root);
            created if absent

    Returns:
        OperationResult with the final saved name in data
    """
    try:
        directory = resolve_path(root, target_relative_dir, config.follow_symlinks)
    except AccessDenied as e:
        return OperationResult.fail("save", FailureKind.ACCESS_DENIED, str(e))

    rel_dir = relative_path(root, directory)

    filename = sanitize_filename(file_name or "")
    if not filename:
        return OperationResult.fail(
            "save", FailureKind.VALIDATION_ERROR, "Invalid file name"
        )

    ext_ok, ext_error = check_extension_allowed(filename, config)
    if not ext_ok:
        _log.info(f"Upload rejected: {filename!r}: {ext_error}")
        return OperationResult.fail("save", FailureKind.VALIDATION_ERROR, ext_error)

    if os.path.exists(directory) and not os.path.isdir(directory):
        return OperationResult.fail(
            "save", FailureKind.VALIDATION_ERROR,
            "Target path is not a directory", path=rel_dir
        )

    tmp_path = None
    claimed_path = None
    try:
        os.makedirs(directory, exist_ok=True)
        tmp_path, written = _write_temp(directory, content, config)
        saved_name = _claim_name(directory, filename)
        claimed_path = os.path.join(directory, saved_name)
        os.replace(tmp_path, claimed_path)
        tmp_path = claimed_path = None
    except UploadRejected as e:
        _log.info(f"Upload rejected: {filename!r}: {e}")
        return OperationResult.fail(
            "save", FailureKind.VALIDATION_ERROR, str(e), path=rel_dir
        )
    except OSError as e:
        reason = e.strerror or "name space exhausted"
        _log.error(f"Upload of {filename!r} failed: {reason}")
        return OperationResult.fail(
            "save", FailureKind.GENERIC_FAILURE,
            f"Failed to save file: {reason}", path=rel_dir
        )
    finally:
        if tmp_path is not None:
            _discard(tmp_path)
        if claimed_path is not None:
            _discard(claimed_path)

    saved_rel = f"{rel_dir}/{saved_name}" if rel_dir else saved_name
    if saved_name != filename:
        _log.info(f"Saved {filename!r} as {saved_rel!r} (name taken)")
    else:
        _log.info(f"Saved {saved_rel!r} ({written} bytes)")

    return OperationResult.ok(
        "save",
        path=saved_rel,
        message=f"Saved {written} bytes",
        data=saved_name,
    )


def save_files(
    root: str,
    config: VaultConfig,
    files: Iterable[Tuple[str, Content]],
    target_relative_dir: Optional[str] = None
) -> List[UploadOutcome]:
    """Save each file independently; one rejection never affects the others."""
    outcomes: List[UploadOutcome] = []
    for file_name, content in files:
        result = save_file(root, config, file_name, content, target_relative_dir)
        outcomes.append(UploadOutcome(
            file_name=file_name or "",
            saved_name=result.data if result.success else None,
            success=result.success,
            error=result.error,
            failure=result.failure,
        ))
    return outcomes
