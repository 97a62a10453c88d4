"""Tests for includecheck.readers."""

from __future__ import annotations

from pathlib import Path

import pytest

from includecheck.readers import FilesystemReader, MappingReader, canonical_path


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("a\\b\\..\\c.h", "a/c.h"),
        ("./src/./Car.h", "src/Car.h"),
        ("//work//inc/Car.h", "/work/inc/Car.h"),
        ("src/", "src"),
        ("", "."),
    ],
)
def test_canonical_path(raw: str, expected: str) -> None:
    assert canonical_path(raw) == expected


def test_mapping_reader_serves_canonical_keys() -> None:
    reader = MappingReader({"./src/main.cpp": "int main();", "inc\\Car.h": "class Car;"})

    assert reader.read("src/main.cpp") == "int main();"
    assert reader.read("inc/./Car.h") == "class Car;"
    assert reader.read("inc/Wheel.h") is None
    assert reader.paths() == ["inc/Car.h", "src/main.cpp"]


def test_mapping_reader_directories() -> None:
    reader = MappingReader({"src/main.cpp": ""})

    assert reader.is_directory("src")
    assert reader.is_directory(".")
    assert not reader.is_directory("sr")
    assert not MappingReader({}).is_directory(".")


def test_filesystem_reader(tmp_path: Path) -> None:
    source = tmp_path / "main.cpp"
    source.write_bytes(b"int value = 1; // caf\xe9\n")
    reader = FilesystemReader()

    text = reader.read(source.as_posix())

    assert text is not None
    assert text.startswith("int value = 1;")
    assert "�" in text
    assert reader.read((tmp_path / "missing.h").as_posix()) is None
    assert reader.read(tmp_path.as_posix()) is None
    assert reader.is_directory(tmp_path.as_posix())
    assert not reader.is_directory(source.as_posix())
