import gzip
import tempfile
from pathlib import Path

import pytest

from src.engines.nlp.gline import (
    LibraryInitializationError,
    LibraryNotInitializedError,
    PlatformUnsupportedError,
    get_library,
    initialize,
    is_initialized,
    new_span_model,
)
from src.engines.nlp.gline import loader, platforms
from src.engines.nlp.gline.native import ENTRY_POINTS

from .conftest import FakeNativeLibrary

PAYLOAD = b"\x7fELF-not-really-a-library"


@pytest.fixture
def linux_amd64(monkeypatch):
    monkeypatch.setattr(platforms, "current_platform", lambda: ("Linux", "x86_64"))


@pytest.fixture
def lib_dir(tmp_path) -> Path:
    target = tmp_path / "lib" / "linux-amd64"
    target.mkdir(parents=True)
    with gzip.open(target / "libgline_binding.so.gz", "wb") as fp:
        fp.write(PAYLOAD)
    return tmp_path / "lib"


@pytest.fixture
def staging_root(tmp_path, monkeypatch) -> Path:
    root = tmp_path / "staging"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


def _staged(root: Path) -> list:
    return sorted(p.name for p in root.glob(loader.TEMP_DIR_PREFIX + "*"))


@pytest.fixture
def opened(monkeypatch):
    calls = []

    def fake_open(path):
        calls.append(Path(path))
        return FakeNativeLibrary()

    monkeypatch.setattr(loader, "_open_library", fake_open)
    return calls


def test_initialize_extracts_decompressed_library_and_binds_entry_points(linux_amd64, lib_dir, opened):
    library = initialize(lib_dir)

    assert is_initialized()
    assert get_library() is library
    assert library.path.name == "libgline_binding.so"
    assert library.path.parent.name.startswith(loader.TEMP_DIR_PREFIX)
    assert library.path.read_bytes() == PAYLOAD
    assert opened == [library.path]
    assert set(library.entry_points) == set(ENTRY_POINTS)
    assert len(ENTRY_POINTS) == 12


def test_initialize_is_idempotent(linux_amd64, lib_dir, opened, monkeypatch):
    extracted = []
    original_extract = loader._extract_artifact

    def counting_extract(source):
        extracted.append(source)
        return original_extract(source)

    monkeypatch.setattr(loader, "_extract_artifact", counting_extract)

    first = initialize(lib_dir)
    second = initialize(lib_dir)
    third = initialize()

    assert first is second is third
    assert first.entry_points == third.entry_points
    assert len(extracted) == 1
    assert len(opened) == 1


def test_lib_dir_can_come_from_environment(linux_amd64, lib_dir, opened, monkeypatch):
    monkeypatch.setenv("GLINE_LIB_DIR", str(lib_dir))
    library = initialize()
    assert library.path.read_bytes() == PAYLOAD


def test_unsupported_platform_fails_before_extraction(lib_dir, opened, monkeypatch):
    monkeypatch.setattr(platforms, "current_platform", lambda: ("Windows", "AMD64"))

    def fail_extract(source):
        raise AssertionError("extraction must not run on unsupported platforms")

    monkeypatch.setattr(loader, "_extract_artifact", fail_extract)

    with pytest.raises(PlatformUnsupportedError):
        initialize(lib_dir)
    assert not is_initialized()
    assert opened == []


def test_missing_bundled_artifact(linux_amd64, tmp_path, opened):
    with pytest.raises(LibraryInitializationError, match="bundled library not found"):
        initialize(tmp_path)
    assert not is_initialized()


def test_corrupt_archive_reports_extraction_failure(linux_amd64, tmp_path, opened):
    target = tmp_path / "linux-amd64"
    target.mkdir()
    (target / "libgline_binding.so.gz").write_bytes(b"definitely not gzip")

    with pytest.raises(LibraryInitializationError, match="failed to extract"):
        initialize(tmp_path)
    assert opened == []


def test_dlopen_failure_surfaces_loader_diagnostic(linux_amd64, lib_dir):
    with pytest.raises(LibraryInitializationError, match="dlopen failed: "):
        initialize(lib_dir)
    assert not is_initialized()


def test_missing_symbol_is_named(linux_amd64, lib_dir, monkeypatch):
    class PartialLibrary:
        def __getattr__(self, name):
            if name == "inference_relation":
                raise AttributeError(name)
            return lambda *args: None

    monkeypatch.setattr(loader, "_open_library", lambda path: PartialLibrary())

    with pytest.raises(LibraryInitializationError, match="symbol not found: inference_relation"):
        initialize(lib_dir)
    assert not is_initialized()
    with pytest.raises(LibraryNotInitializedError, match="library not initialized"):
        get_library()


def test_failed_initialization_can_be_retried(linux_amd64, lib_dir, monkeypatch):
    attempts = []

    def flaky_open(path):
        attempts.append(path)
        if len(attempts) == 1:
            raise LibraryInitializationError("dlopen failed: transient")
        return FakeNativeLibrary()

    monkeypatch.setattr(loader, "_open_library", flaky_open)

    with pytest.raises(LibraryInitializationError):
        initialize(lib_dir)
    assert initialize(lib_dir) is get_library()
    assert len(attempts) == 2


def test_model_construction_requires_initialized_library():
    with pytest.raises(LibraryNotInitializedError, match="library not initialized"):
        new_span_model("model.onnx", "tokenizer.json")


def test_corrupt_archive_leaves_no_staging_directory(linux_amd64, tmp_path, staging_root, opened):
    target = tmp_path / "linux-amd64"
    target.mkdir()
    (target / "libgline_binding.so.gz").write_bytes(b"definitely not gzip")

    for _ in range(2):
        with pytest.raises(LibraryInitializationError, match="failed to extract"):
            initialize(tmp_path)

    assert _staged(staging_root) == []


def test_dlopen_failure_leaves_no_staging_directory(linux_amd64, lib_dir, staging_root):
    with pytest.raises(LibraryInitializationError, match="dlopen failed: "):
        initialize(lib_dir)

    assert _staged(staging_root) == []


def test_missing_symbol_leaves_no_staging_directory(linux_amd64, lib_dir, staging_root, monkeypatch):
    class NoSymbols:
        def __getattr__(self, name):
            raise AttributeError(name)

    monkeypatch.setattr(loader, "_open_library", lambda path: NoSymbols())

    with pytest.raises(LibraryInitializationError, match="symbol not found: "):
        initialize(lib_dir)

    assert _staged(staging_root) == []


def test_retry_after_failure_keeps_single_staged_copy(linux_amd64, lib_dir, staging_root, monkeypatch):
    attempts = []

    def flaky_open(path):
        attempts.append(path)
        if len(attempts) == 1:
            raise LibraryInitializationError("dlopen failed: transient")
        return FakeNativeLibrary()

    monkeypatch.setattr(loader, "_open_library", flaky_open)

    with pytest.raises(LibraryInitializationError):
        initialize(lib_dir)
    library = initialize(lib_dir)

    assert _staged(staging_root) == [library.path.parent.name]
