"""Tests for turning local files into Documents."""

import base64
from pathlib import Path

import pytest

from shadowindex.ingest.loader import IMAGE_MODULE, iter_documents, load_document
from shadowindex.ingest.models import DocumentStatus
from shadowindex.utils.helpers import stable_id

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.js").write_text("console.log('hi');\n", encoding="utf-8")
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "guide.md").write_text("# Guide\nUse the index.", encoding="utf-8")
    (tmp_path / "shots").mkdir()
    (tmp_path / "shots" / "bug.png").write_bytes(PNG_BYTES)
    (tmp_path / "bin").mkdir()
    (tmp_path / "bin" / "blob.dat").write_bytes(b"\xff\xfe\x00\x81")
    (tmp_path / "notes.txt").write_text("top level", encoding="utf-8")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "HEAD").write_text("ref: refs/heads/main", encoding="utf-8")
    return tmp_path


def test_text_file_becomes_ready_document(tree: Path) -> None:
    doc = load_document(tree / "src" / "app.js", tree)
    assert doc.status == DocumentStatus.READY
    assert doc.content == "console.log('hi');\n"
    assert doc.path == "src/app.js"
    assert doc.name == "app.js"
    assert doc.module_name == "src"
    assert doc.size == len("console.log('hi');\n")
    assert doc.id == stable_id("src/app.js")
    assert not doc.is_image


def test_top_level_file_uses_default_module(tree: Path) -> None:
    assert load_document(tree / "notes.txt", tree).module_name == "General"


def test_image_is_base64_in_visual_module(tree: Path) -> None:
    doc = load_document(tree / "shots" / "bug.png", tree)
    assert doc.is_image
    assert doc.type == "image/png"
    assert doc.module_name == IMAGE_MODULE
    assert base64.b64decode(doc.content) == PNG_BYTES
    assert doc.status == DocumentStatus.READY


def test_undecodable_file_is_marked_error(tree: Path) -> None:
    doc = load_document(tree / "bin" / "blob.dat", tree)
    assert doc.status == DocumentStatus.ERROR
    assert doc.content == ""


def test_known_text_extension_decodes_with_replacement(tmp_path: Path) -> None:
    path = tmp_path / "legacy.php"
    path.write_bytes(b"<?php echo '\xe9t\xe9'; ?>")
    doc = load_document(path, tmp_path)
    assert doc.status == DocumentStatus.READY
    assert "�" in doc.content


def test_missing_file_is_marked_error(tmp_path: Path) -> None:
    doc = load_document(tmp_path / "gone.txt", tmp_path)
    assert doc.status == DocumentStatus.ERROR


def test_ids_are_stable_across_loads(tree: Path) -> None:
    first = load_document(tree / "docs" / "guide.md", tree)
    second = load_document(tree / "docs" / "guide.md", tree)
    assert first.id == second.id


def test_iter_documents_walks_sorted_and_skips_hidden(tree: Path) -> None:
    paths = [d.path for d in iter_documents(tree)]
    assert paths == ["bin/blob.dat", "docs/guide.md", "notes.txt", "shots/bug.png", "src/app.js"]


def test_iter_documents_on_single_file(tree: Path) -> None:
    docs = list(iter_documents(tree / "docs" / "guide.md"))
    assert len(docs) == 1
    assert docs[0].path == "guide.md"
    assert docs[0].module_name == "General"
