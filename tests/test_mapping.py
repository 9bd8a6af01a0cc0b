"""Tests for mapping files and category codecs."""

import tempfile
from pathlib import Path

import pytest

from featurefactory.config import MappingStoreConfig
from featurefactory.errors import MappingError, MappingStoreError
from featurefactory.mapping import store
from featurefactory.mapping.codecs import BinaryCodec, DynamicNumericCodec, StaticNumericCodec
from featurefactory.mapping.store import (
    MappingFile,
    candidate_directories,
    find_mapping_file,
    mapping_file_name,
    parse_mapping_lines,
)


@pytest.fixture
def fallback_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, Path]:
    """Point the package, home and temp directories into tmp_path."""
    dirs = {name: tmp_path / name for name in ("package", "home", "temp")}
    for directory in dirs.values():
        directory.mkdir()
    monkeypatch.setattr(store, "PACKAGE_DIR", dirs["package"])
    monkeypatch.setenv("HOME", str(dirs["home"]))
    monkeypatch.setattr(tempfile, "tempdir", str(dirs["temp"]))
    return dirs


def unusable(tmp_path: Path, name: str) -> Path:
    """A directory path below a regular file, which can't be opened or created."""
    blocker = tmp_path / f"{name}-blocker"
    blocker.write_text("", encoding="utf-8")
    return blocker / name


class TestFileNames:
    """Tests for mapping file naming and lookup order."""

    def test_non_word_characters_replaced(self) -> None:
        assert (
            mapping_file_name("my.pkg.Words", "first letter")
            == ".featurefactory.my_pkg_Words__first_letter"
        )

    def test_configured_directory_only(self, tmp_path: Path) -> None:
        config = MappingStoreConfig(directory=tmp_path)
        assert candidate_directories(config) == [tmp_path]

    def test_fallback_order(self, fallback_dirs: dict[str, Path]) -> None:
        assert candidate_directories(MappingStoreConfig()) == [
            fallback_dirs["package"],
            fallback_dirs["home"],
            fallback_dirs["temp"],
        ]

    def test_find_mapping_file(self, fallback_dirs: dict[str, Path]) -> None:
        config = MappingStoreConfig()
        assert find_mapping_file("ident", "word", config) is None

        path = fallback_dirs["home"] / ".featurefactory.ident__word"
        path.write_text("a\t1\n", encoding="utf-8")

        assert find_mapping_file("ident", "word", config) == path


class TestMappingFileOpen:
    """Tests for recovering and creating mapping files."""

    def test_created_in_first_usable_directory(
        self, tmp_path: Path, fallback_dirs: dict[str, Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(store, "PACKAGE_DIR", unusable(tmp_path, "package"))

        with MappingFile.open("ident", "word", MappingStoreConfig()) as mapping:
            assert mapping.path == fallback_dirs["home"] / ".featurefactory.ident__word"
            assert mapping.entries == {}

        assert mapping.path.is_file()

    def test_recovery_preferred_over_creation(
        self, tmp_path: Path, fallback_dirs: dict[str, Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An existing file in the temp directory beats a new one at home."""
        monkeypatch.setattr(store, "PACKAGE_DIR", unusable(tmp_path, "package"))
        existing = fallback_dirs["temp"] / ".featurefactory.ident__word"
        existing.write_text("dog\t1\ncat\t2\n", encoding="utf-8")

        with MappingFile.open("ident", "word", MappingStoreConfig()) as mapping:
            assert mapping.path == existing
            assert mapping.entries == {"dog": 1, "cat": 2}

        assert not (fallback_dirs["home"] / ".featurefactory.ident__word").exists()

    def test_appends_after_recovered_entries(self, tmp_path: Path) -> None:
        config = MappingStoreConfig(directory=tmp_path)
        (tmp_path / ".featurefactory.ident__word").write_text("dog\t1\n", encoding="utf-8")

        with MappingFile.open("ident", "word", config) as mapping:
            mapping.append("cat", 2)
            assert mapping.entries == {"dog": 1, "cat": 2}

        assert mapping.path.read_text(encoding="utf-8") == "dog\t1\ncat\t2\n"

    def test_appends_after_unterminated_last_line(self, tmp_path: Path) -> None:
        """A file not ending in a newline keeps its last entry when appended to."""
        config = MappingStoreConfig(directory=tmp_path)
        (tmp_path / ".featurefactory.ident__word").write_text("dog\t1\ncat\t2", encoding="utf-8")

        with MappingFile.open("ident", "word", config) as mapping:
            mapping.append("emu", 3)
            mapping.append("owl", 4)

        assert mapping.path.read_text(encoding="utf-8") == "dog\t1\ncat\t2\nemu\t3\nowl\t4\n"
        with MappingFile.open("ident", "word", config) as reopened:
            assert reopened.entries == {"dog": 1, "cat": 2, "emu": 3, "owl": 4}

    def test_append_is_flushed(self, tmp_path: Path) -> None:
        config = MappingStoreConfig(directory=tmp_path)

        with MappingFile.open("ident", "word", config) as mapping:
            mapping.append("dog", 1)
            assert mapping.path.read_text(encoding="utf-8") == "dog\t1\n"

    def test_configured_directory_created(self, tmp_path: Path) -> None:
        config = MappingStoreConfig(directory=tmp_path / "nested" / "mappings")

        with MappingFile.open("ident", "word", config) as mapping:
            assert mapping.path.parent == tmp_path / "nested" / "mappings"

    def test_configured_directory_not_creatable(self, tmp_path: Path) -> None:
        config = MappingStoreConfig(directory=unusable(tmp_path, "mappings"))

        with pytest.raises(MappingStoreError, match="Couldn't create mapping directory"):
            MappingFile.open("ident", "word", config)

    def test_no_usable_location(
        self, tmp_path: Path, fallback_dirs: dict[str, Path], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(store, "PACKAGE_DIR", unusable(tmp_path, "package"))
        monkeypatch.setenv("HOME", str(unusable(tmp_path, "home")))
        monkeypatch.setattr(tempfile, "tempdir", str(unusable(tmp_path, "temp")))

        with pytest.raises(MappingStoreError, match="Couldn't open a file for saving"):
            MappingFile.open("ident", "word", MappingStoreConfig())

    def test_malformed_file(self, tmp_path: Path) -> None:
        config = MappingStoreConfig(directory=tmp_path)
        (tmp_path / ".featurefactory.ident__word").write_text(
            "dog\t1\ncat\ttwo\n", encoding="utf-8"
        )

        with pytest.raises(MappingStoreError, match="Malformed line 2"):
            MappingFile.open("ident", "word", config)


class TestMappingFileAppend:
    """Tests for writing new assignments."""

    @pytest.mark.parametrize("category", ["a\tb", "a\nb", "a\rb"])
    def test_separator_in_category(self, tmp_path: Path, category: str) -> None:
        with MappingFile.open("ident", "word", MappingStoreConfig(directory=tmp_path)) as mapping:
            with pytest.raises(MappingStoreError, match="tab or line break"):
                mapping.append(category, 1)
            assert mapping.entries == {}

    def test_append_after_close(self, tmp_path: Path) -> None:
        mapping = MappingFile.open("ident", "word", MappingStoreConfig(directory=tmp_path))
        mapping.close()

        assert mapping.closed
        with pytest.raises(MappingStoreError, match="Couldn't save the mapping"):
            mapping.append("dog", 1)


class TestParseMappingLines:
    """Tests for the mapping file format."""

    def test_blank_lines_skipped(self, tmp_path: Path) -> None:
        assert parse_mapping_lines("a\t1\n\nb c\t2\n", tmp_path) == {"a": 1, "b c": 2}

    def test_missing_tab(self, tmp_path: Path) -> None:
        with pytest.raises(MappingStoreError, match="missing tab separator"):
            parse_mapping_lines("a 1\n", tmp_path)


class TestCodecs:
    """Tests for static, dynamic and binary codecs."""

    def test_static_numbering(self) -> None:
        codec = StaticNumericCodec.from_values("letter", ["a", "b", "c"])

        assert [codec.encode(v) for v in "abc"] == [1, 2, 3]
        assert codec.decode(3) == "c"

    def test_static_misses(self) -> None:
        codec = StaticNumericCodec("letter", {"a": 10})

        with pytest.raises(MappingError, match="no mapping to numbers"):
            codec.encode("z")
        with pytest.raises(MappingError):
            codec.encode(["unhashable"])
        with pytest.raises(MappingError, match="no category numbered 11"):
            codec.decode(11)

    def test_dynamic_continues_numbering(self, tmp_path: Path) -> None:
        (tmp_path / ".featurefactory.ident__word").write_text("dog\t4\n", encoding="utf-8")

        with MappingFile.open("ident", "word", MappingStoreConfig(directory=tmp_path)) as mapping:
            codec = DynamicNumericCodec("word", mapping)

            assert codec.encode("dog") == 4
            assert codec.encode("cat") == 5
            assert codec.decode(5) == "cat"
            with pytest.raises(MappingError):
                codec.decode(1)

    def test_binary_vectors(self) -> None:
        codec = BinaryCodec("letter", ["a", "b", "c"])

        assert codec.width == 3
        assert codec.encode("a") == [1, 0, 0]
        assert codec.encode("c") == [0, 0, 1]
        assert codec.decode([0, 1, 0]) == "b"

    def test_binary_misses(self) -> None:
        codec = BinaryCodec("letter", ["a", "b"])

        with pytest.raises(MappingError, match="No mapping for value 'z'"):
            codec.encode("z")
        with pytest.raises(MappingError):
            codec.encode({"unhashable"})
        with pytest.raises(MappingError, match="is not a binary code"):
            codec.decode([1, 1])

    def test_empty_binary_codec(self) -> None:
        assert BinaryCodec("letter", []).width == 0
