"""
Unit tests for filesystem document discovery.

Covers extension filtering, whole-file and line-by-line modes, and
propagation of listing errors.
"""

from pathlib import Path

import pytest

from bulkimport.ingestion.source import DocumentSource, matches_extension


def test_matches_extension_without_dot():
    """Test that a bare extension is compared with a leading dot."""
    assert matches_extension(Path("a/b.json"), "json")
    assert not matches_extension(Path("a/b.jsonl"), "json")
    assert not matches_extension(Path("a/bjson"), "json")


def test_matches_extension_with_dot_and_wildcard():
    """Test explicit dot suffixes and the match-all filters."""
    assert matches_extension(Path("x.tar.gz"), ".tar.gz")
    assert matches_extension(Path("anything"), "*")
    assert matches_extension(Path("anything"), None)


def test_whole_file_mode_emits_one_document_per_matching_file(make_tree):
    """Test that only matching files are read, recursively, as raw bytes."""
    root = make_tree(
        {
            "a.json": '{"a": 1}',
            "nested/b.json": '{"b": 2}',
            "notes.txt": "skip me",
        }
    )

    docs = list(DocumentSource(root, file_ext="json"))

    assert sorted(doc.payload for doc in docs) == [b'{"a": 1}', b'{"b": 2}']
    assert all(doc.line_index is None for doc in docs)
    assert {doc.source_path.name for doc in docs} == {"a.json", "b.json"}


def test_wildcard_includes_every_file(make_tree):
    """Test that "*" imports files of any extension."""
    root = make_tree({"a.json": "1", "b.txt": "2", "c": "3"})

    docs = list(DocumentSource(root, file_ext="*"))

    assert len(docs) == 3


def test_line_mode_skips_blank_lines(make_tree):
    """Test one document per non-blank line, stripped, with kept-line index."""
    root = make_tree({"data.json": '{"a":1}\n\n  {"b":2}  \n   \n{"c":3}\n{"d":4}\n{"e":5}'})

    docs = list(DocumentSource(root, file_ext="json", line_by_line=True))

    assert [doc.payload for doc in docs] == [
        b'{"a":1}',
        b'{"b":2}',
        b'{"c":3}',
        b'{"d":4}',
        b'{"e":5}',
    ]
    assert [doc.line_index for doc in docs] == [0, 1, 2, 3, 4]
    assert docs[1].describe().endswith("data.json:1")


def test_empty_root_yields_nothing(tmp_path):
    """Test that an empty folder produces no documents."""
    assert list(DocumentSource(tmp_path)) == []


def test_missing_root_raises(tmp_path):
    """Test that a root that cannot be listed aborts enumeration."""
    source = DocumentSource(tmp_path / "does-not-exist")

    with pytest.raises(OSError):
        list(source)


def test_stream_is_lazy(make_tree):
    """Test that files are not read before the stream is consumed."""
    root = make_tree({"a.json": "1"})
    source = DocumentSource(root)

    stream = source.stream()
    (root / "b.json").write_text("2", encoding="utf-8")

    assert len(list(stream)) == 2


@pytest.mark.parametrize(
    "file_ext, expected",
    [("json", "*.json"), (".json", "*.json"), (".tar.gz", "*.tar.gz"), ("*", "*"), (None, "*")],
)
def test_pattern_describes_filter(tmp_path, file_ext, expected):
    """Test the filter description used in log lines."""
    assert DocumentSource(tmp_path, file_ext=file_ext).pattern == expected
