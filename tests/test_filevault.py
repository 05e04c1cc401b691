"""
Tests for FileVault listing, lookup, search and uploads.
"""

import io
import os
import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest

from filevault.FileVault import FileVault, VaultConfig, FailureKind
from filevault.FileVault.uploads import candidate_names, collision_suffix, TEMP_PREFIX


def _names(result):
    return [f.name for f in result.data["files"]]


class TestVaultConstruction:
    """Tests for vault setup."""

    def test_creates_missing_root(self, temp_dir):
        """The root is created at startup if absent."""
        root = temp_dir / "new" / "root"
        FileVault(VaultConfig(root_path=str(root)))
        assert root.is_dir()

    def test_health_status(self, vault):
        """A writable root is healthy."""
        status = vault.get_health_status()
        assert vault.is_healthy() is True
        assert status["healthy"] is True
        assert status["gate"] == "FileVault"
        assert status["checks"]["root_writable"] is True

    def test_allowed_types(self, make_vault):
        """allowed_types reports the normalized allow-list."""
        assert make_vault(allowed_extensions=["PDF", ".Txt"]).allowed_types() == [".pdf", ".txt"]
        assert make_vault(allowed_extensions=None).allowed_types() is None
        assert make_vault(allowed_extensions=[]).allowed_types() == []


class TestListDir:
    """Tests for directory listing."""

    def test_directories_first_then_case_insensitive(self, temp_dir):
        """[b.txt, A/, a.txt] lists as [A, a.txt, b.txt]."""
        root = temp_dir / "order"
        root.mkdir()
        (root / "b.txt").write_text("b")
        (root / "A").mkdir()
        (root / "a.txt").write_text("a")
        vault = FileVault(VaultConfig(root_path=str(root)))

        result = vault.list_dir()

        assert result.success is True
        assert _names(result) == ["A", "a.txt", "b.txt"]

    def test_entries_shape(self, vault):
        """Entries carry relative paths; directories have no size."""
        result = vault.list_dir()
        entries = {f.name: f for f in result.data["files"]}

        assert entries["reports"].is_directory is True
        assert entries["reports"].size is None
        assert entries["readme.txt"].size == len("Hello World")
        assert entries["readme.txt"].path == "readme.txt"

    def test_nested_listing_paths(self, vault):
        """Nested entries use '/'-separated root-relative paths."""
        result = vault.list_dir("subfolder")
        assert result.data["files"][0].path == "subfolder/nested.txt"
        assert result.path == "subfolder"

    def test_non_recursive(self, vault):
        """Only immediate children are listed."""
        assert "nested.txt" not in _names(vault.list_dir())

    @pytest.fixture
    def five_entries(self, temp_dir):
        root = temp_dir / "five"
        root.mkdir()
        for name in ["e.txt", "a.txt", "d.txt", "b.txt", "c.txt"]:
            (root / name).write_text(name)
        return FileVault(VaultConfig(root_path=str(root)))

    def test_pagination_second_page(self, five_entries):
        """page=2, page_size=2 returns entries 3-4."""
        result = five_entries.list_dir(page=2, page_size=2)
        assert _names(result) == ["c.txt", "d.txt"]
        assert result.data["total"] == 5

    def test_pagination_out_of_range_is_empty(self, five_entries):
        """A page past the end is empty, not an error."""
        result = five_entries.list_dir(page=10, page_size=2)
        assert result.success is True
        assert result.data["files"] == []

    def test_invalid_pagination(self, vault):
        """page/page_size below 1 are validation errors."""
        assert vault.list_dir(page=0).failure == FailureKind.VALIDATION_ERROR
        assert vault.list_dir(page_size=0).failure == FailureKind.VALIDATION_ERROR

    def test_page_size_above_max_rejected(self, make_vault):
        """page_size above max_page_size is a validation error, not a silent cap."""
        vault = make_vault(default_page_size=2, max_page_size=2)

        assert vault.list_dir(page_size=2).data["page_size"] == 2
        result = vault.list_dir(page=2, page_size=100)
        assert result.failure == FailureKind.VALIDATION_ERROR
        assert "page_size" in result.error

    def test_default_above_max_rejected_at_construction(self, make_vault):
        """A default page size larger than the maximum is a config error."""
        with pytest.raises(ValueError):
            make_vault(default_page_size=100, max_page_size=10)

    def test_hidden_files(self, vault, sample_root):
        """Dot-files are listed unless show_hidden is off."""
        (sample_root / ".hidden").write_text("h")
        assert ".hidden" in _names(vault.list_dir())
        assert ".hidden" not in _names(vault.list_dir(show_hidden=False))

    def test_missing_directory_not_found(self, vault):
        """A missing directory is NotFound."""
        result = vault.list_dir("nope")
        assert result.success is False
        assert result.failure == FailureKind.NOT_FOUND

    def test_file_is_not_a_directory(self, vault):
        """Listing a file is NotFound."""
        assert vault.list_dir("readme.txt").failure == FailureKind.NOT_FOUND

    def test_traversal_denied(self, vault):
        """Escaping the root is AccessDenied."""
        result = vault.list_dir("../")
        assert result.failure == FailureKind.ACCESS_DENIED

    def test_listing_has_no_side_effects(self, vault, sample_root):
        """Listing a missing directory never creates it."""
        vault.list_dir("ghost")
        assert not (sample_root / "ghost").exists()

    @pytest.mark.skipif(os.name == "nt", reason="symlinks required")
    def test_escaping_symlink_hidden(self, vault, sample_root, temp_dir):
        """Links leading out of the root are omitted from listings."""
        outside = temp_dir / "outside"
        outside.mkdir()
        os.symlink(outside, sample_root / "escape")
        assert "escape" not in _names(vault.list_dir())


class TestGetFile:
    """Tests for metadata/download lookup."""

    def test_returns_entry_with_absolute_path(self, vault, sample_root):
        """A regular file returns its entry and absolute path."""
        result = vault.get_file("subfolder/nested.txt")
        entry = result.data

        assert result.success is True
        assert entry.name == "nested.txt"
        assert entry.path == "subfolder/nested.txt"
        assert Path(entry.absolute_path).read_text() == "Nested content"

    def test_absolute_path_not_serialized(self, vault):
        """The absolute path never reaches the wire dict."""
        data = vault.get_file("readme.txt").data.to_dict()
        assert "absolute_path" not in data
        assert data == {"name": "readme.txt", "path": "readme.txt", "isDirectory": False, "size": 11}

    def test_directory_is_not_found(self, vault):
        """A directory is NotFound, never file bytes."""
        result = vault.get_file("subfolder")
        assert result.success is False
        assert result.failure == FailureKind.NOT_FOUND

    def test_missing_file_not_found(self, vault):
        """A missing file is NotFound."""
        assert vault.get_file("missing.txt").failure == FailureKind.NOT_FOUND

    def test_traversal_denied(self, vault):
        """Escaping the root is AccessDenied."""
        assert vault.get_file("../../etc/passwd").failure == FailureKind.ACCESS_DENIED
        assert vault.get_file("..\\..\\etc\\passwd").failure == FailureKind.ACCESS_DENIED

    @pytest.mark.skipif(os.name == "nt", reason="symlinks required")
    def test_link_keeps_requested_name(self, vault, sample_root):
        """A link inside the root is named as requested, not after its target."""
        os.symlink(sample_root / "readme.txt", sample_root / "link.txt")

        entry = vault.get_file("link.txt").data

        assert entry.name == "link.txt"
        assert Path(entry.absolute_path).read_text() == "Hello World"

    def test_error_does_not_leak_root(self, vault):
        """Failure messages never contain the absolute root."""
        result = vault.get_file("missing.txt")
        assert vault.root not in (result.error or "")
        assert vault.root not in result.path


class TestSearch:
    """Tests for recursive search."""

    def test_matches_files_and_directories_case_insensitive(self, vault):
        """'report' finds Annual_Report.pdf and the reports/ directory."""
        result = vault.search("report")
        names = _names(result)

        assert "Annual_Report.pdf" in names
        assert "reports" in names
        assert "small_report.txt" in names
        assert "readme.txt" not in names

    def test_recurses(self, vault):
        """Nested entries are found with their relative paths."""
        result = vault.search("nested")
        assert [f.path for f in result.data["files"]] == ["subfolder/nested.txt"]

    def test_min_size_excludes_small_files_and_directories(self, vault):
        """minSize=1000 drops the 500-byte file and all directories."""
        names = _names(vault.search("report", min_size=1000))

        assert "Annual_Report.pdf" in names
        assert "small_report.txt" not in names
        assert "reports" not in names

    def test_max_size(self, vault):
        """maxSize keeps only files at or below the bound."""
        names = _names(vault.search("", max_size=500))
        assert "small_report.txt" in names
        assert "Annual_Report.pdf" not in names
        assert "subfolder" not in names

    def test_deterministic_order(self, vault):
        """Directories come first, then case-insensitive names."""
        names = _names(vault.search("report"))
        assert names == ["reports", "Annual_Report.pdf", "small_report.txt"]

    def test_empty_query_matches_everything(self, vault):
        """An empty query lists the whole tree."""
        assert vault.search("").data["total"] == 7

    def test_invalid_bounds(self, vault):
        """Negative or inverted bounds are validation errors."""
        assert vault.search("x", min_size=-1).failure == FailureKind.VALIDATION_ERROR
        assert vault.search("x", min_size=10, max_size=5).failure == FailureKind.VALIDATION_ERROR

    def test_optional_pagination(self, vault):
        """Search results paginate like listings when a page is given."""
        result = vault.search("", page=1, page_size=2)
        assert len(result.data["files"]) == 2
        assert result.data["total"] == 7


class TestSave:
    """Tests for uploads."""

    def test_saves_bytes(self, vault, sample_root):
        """A valid upload is written and its name returned."""
        result = vault.save("notes.txt", b"hello")

        assert result.success is True
        assert result.data == "notes.txt"
        assert (sample_root / "notes.txt").read_bytes() == b"hello"

    def test_saves_stream_into_new_subdirectory(self, vault, sample_root):
        """Streams work and missing target directories are created."""
        result = vault.save("doc.pdf", io.BytesIO(b"%PDF"), "new/deeper")

        assert result.success is True
        assert result.path == "new/deeper/doc.pdf"
        assert (sample_root / "new" / "deeper" / "doc.pdf").read_bytes() == b"%PDF"

    def test_disallowed_extension(self, vault, sample_root):
        """x.exe is rejected when only .pdf/.txt are allowed."""
        result = vault.save("x.exe", b"MZ")

        assert result.success is False
        assert result.failure == FailureKind.VALIDATION_ERROR
        assert not (sample_root / "x.exe").exists()

    def test_rejected_upload_creates_no_directory(self, vault, sample_root):
        """A rejected file does not create its target directory."""
        vault.save("x.exe", b"MZ", "created-for-nothing")
        assert not (sample_root / "created-for-nothing").exists()

    def test_same_name_twice_gets_distinct_names(self, vault, sample_root):
        """A second notes.txt is renamed, the first is kept intact."""
        first = vault.save("notes.txt", b"one")
        second = vault.save("notes.txt", b"two")

        assert first.success and second.success
        assert first.data != second.data
        assert second.data.startswith("notes_") and second.data.endswith(".txt")
        assert (sample_root / "notes.txt").read_bytes() == b"one"
        assert (sample_root / second.data).read_bytes() == b"two"

    def test_third_collision_in_same_second(self, vault):
        """Repeated names never overwrite, even within one second."""
        names = {vault.save("notes.txt", str(i).encode()).data for i in range(4)}
        assert len(names) == 4

    def test_round_trip(self, vault):
        """save then get_file with the saved name yields identical bytes."""
        payload = os.urandom(4096)
        saved = vault.save("blob.pdf", payload, "rt")
        result = vault.get_file(f"rt/{saved.data}")

        assert Path(result.data.absolute_path).read_bytes() == payload

    def test_target_outside_root_denied(self, vault, temp_dir):
        """Uploading to ../outside is AccessDenied and creates nothing."""
        result = vault.save("notes.txt", b"x", "../outside")

        assert result.failure == FailureKind.ACCESS_DENIED
        assert not (temp_dir / "outside").exists()

    def test_escape_checked_before_extension(self, vault, temp_dir, caplog):
        """A disallowed file aimed outside the root is AccessDenied and logged."""
        with caplog.at_level("WARNING", logger="filevault.FileVault"):
            result = vault.save("x.exe", b"x", "../../outside")

        assert result.failure == FailureKind.ACCESS_DENIED
        assert "Access denied" in caplog.text
        assert not (temp_dir / "outside").exists()

    def test_longest_name_collision_renamed(self, vault, sample_root):
        """A 255-byte name that is taken gets a suffixed name that still fits."""
        name = "a" * 251 + ".txt"
        first = vault.save(name, b"one")
        second = vault.save(name, b"two")

        assert first.success and second.success
        assert second.data != name
        assert len(second.data.encode("utf-8")) <= 255
        assert second.data.endswith(".txt")
        assert (sample_root / name).read_bytes() == b"one"
        assert (sample_root / second.data).read_bytes() == b"two"

    def test_multibyte_name_fits_byte_limit(self, vault, sample_root):
        """Names are limited in UTF-8 bytes, not characters."""
        first = vault.save("文" * 120 + ".txt", b"x")
        second = vault.save("文" * 120 + ".txt", b"y")

        assert first.success and second.success
        for saved in (first.data, second.data):
            assert len(saved.encode("utf-8")) <= 255
            assert saved.endswith(".txt")
            assert (sample_root / saved).exists()

    def test_client_path_in_filename_ignored(self, vault, sample_root):
        """Directory parts of the client filename are dropped."""
        result = vault.save("../../evil.txt", b"x")
        assert result.data == "evil.txt"
        assert (sample_root / "evil.txt").exists()

    def test_invalid_filename(self, vault):
        """Names with nothing usable are validation errors."""
        assert vault.save("..", b"x").failure == FailureKind.VALIDATION_ERROR

    def test_target_is_a_file(self, vault):
        """A target that is a regular file is a validation error."""
        assert vault.save("notes.txt", b"x", "readme.txt").failure == FailureKind.VALIDATION_ERROR

    def test_size_limit_leaves_nothing_behind(self, make_vault, sample_root):
        """Oversized uploads fail and leave neither file nor temp file."""
        vault = make_vault(max_upload_mb=1)
        result = vault.save("big.txt", io.BytesIO(b"x" * (1024 * 1024 + 1)))

        assert result.failure == FailureKind.VALIDATION_ERROR
        assert not (sample_root / "big.txt").exists()
        assert not [p for p in os.listdir(sample_root) if p.startswith(TEMP_PREFIX)]

    def test_empty_allow_list_blocks_uploads(self, make_vault):
        """With an empty allow-list nothing can be uploaded."""
        vault = make_vault(allowed_extensions=[])
        assert vault.save("notes.txt", b"x").failure == FailureKind.VALIDATION_ERROR

    def test_no_allow_list_accepts_anything(self, make_vault):
        """With no allow-list every extension is accepted."""
        vault = make_vault(allowed_extensions=None)
        assert vault.save("tool.exe", b"MZ").success is True

    def test_concurrent_same_name_uploads(self, vault, sample_root):
        """Parallel uploads of one name all land under distinct names."""
        results = []
        lock = threading.Lock()

        def upload(i):
            r = vault.save("race.txt", f"payload-{i}".encode())
            with lock:
                results.append(r)

        threads = [threading.Thread(target=upload, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert all(r.success for r in results)
        names = {r.data for r in results}
        assert len(names) == 8
        contents = {(sample_root / n).read_bytes() for n in names}
        assert contents == {f"payload-{i}".encode() for i in range(8)}


class TestSaveMany:
    """Tests for batch uploads."""

    def test_rejection_does_not_abort_siblings(self, vault, sample_root):
        """[x.exe, ok.txt] saves ok.txt and rejects x.exe."""
        outcomes = vault.save_many([("x.exe", b"MZ"), ("ok.txt", b"fine")])

        assert [o.success for o in outcomes] == [False, True]
        assert outcomes[0].failure == FailureKind.VALIDATION_ERROR
        assert outcomes[1].saved_name == "ok.txt"
        assert (sample_root / "ok.txt").read_bytes() == b"fine"

    def test_outcome_wire_shape(self, vault):
        """Outcomes serialize with camelCase keys."""
        outcome = vault.save_many([("ok.txt", b"fine")])[0]
        assert outcome.to_dict() == {
            "fileName": "ok.txt",
            "savedName": "ok.txt",
            "success": True,
            "error": None,
        }


class TestCollisionNames:
    """Tests for collision name generation."""

    def test_candidate_sequence(self):
        """Original name, then timestamp, then timestamp plus counter."""
        now = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        names = candidate_names("notes.txt", now)

        assert next(names) == "notes.txt"
        assert next(names) == "notes_20240102030405.txt"
        assert next(names) == "notes_20240102030405_1.txt"

    def test_candidates_fit_byte_limit(self):
        """Suffixed candidates shorten the stem and keep suffix and extension."""
        now = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        names = candidate_names("é" * 126 + ".pdf", now)
        next(names)

        renamed = next(names)
        counted = next(names)

        assert renamed.endswith("_20240102030405.pdf")
        assert counted.endswith("_20240102030405_1.pdf")
        assert len(renamed.encode("utf-8")) <= 255
        assert len(counted.encode("utf-8")) <= 255

    def test_suffix_is_second_granularity(self):
        """The suffix is YYYYMMDDHHMMSS."""
        now = datetime(2024, 12, 31, 23, 59, 58, 999999, tzinfo=timezone.utc)
        assert collision_suffix(now) == "20241231235958"
