"""Turn local files into Documents (text and images only; PDF/ZIP extraction lives elsewhere)."""

from __future__ import annotations

import base64
import mimetypes
from collections.abc import Iterator
from pathlib import Path

from loguru import logger

from shadowindex.ingest.models import Document, DocumentStatus
from shadowindex.utils.helpers import stable_id

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".gif"}
TEXT_EXTENSIONS = {".php", ".xml", ".ini", ".json", ".txt", ".md", ".js", ".css"}
IMAGE_MODULE = "Visual Feedback"
DEFAULT_MODULE = "General"

_TEXT_MIME_FALLBACK = {
    ".php": "text/x-php",
    ".ini": "text/plain",
    ".md": "text/markdown",
}


def _relative(path: Path, root: Path | None) -> str:
    if root is not None:
        try:
            return str(path.relative_to(root)).replace("\\", "/")
        except ValueError:
            pass
    return path.name


def _module_for(rel_path: str) -> str:
    """First directory component of the relative path, or the default module."""
    parts = rel_path.split("/")
    return parts[0] if len(parts) > 1 else DEFAULT_MODULE


def _mime_for(path: Path) -> str:
    suffix = path.suffix.lower()
    guessed, _ = mimetypes.guess_type(path.name)
    if suffix in IMAGE_EXTENSIONS:
        return guessed or "image/png"
    return guessed or _TEXT_MIME_FALLBACK.get(suffix, "text/plain")


def load_document(path: Path, root: Path | None = None) -> Document:
    """
    Read a single file into a Document.

    Images become base64 content with an image/* type. Known source/config
    extensions are read as UTF-8 with replacement; any other file must decode
    cleanly. Files that cannot be read or decoded come back with status=error.
    """
    path = Path(path).resolve()
    root = Path(root).resolve() if root else None
    rel = _relative(path, root)
    doc = Document(
        id=stable_id(rel),
        name=path.name,
        type=_mime_for(path),
        path=rel,
        module_name=_module_for(rel),
    )
    try:
        raw = path.read_bytes()
    except OSError as e:
        logger.warning(f"Cannot read {path}: {e}")
        doc.status = DocumentStatus.ERROR
        return doc

    doc.size = len(raw)
    if path.suffix.lower() in IMAGE_EXTENSIONS:
        doc.content = base64.b64encode(raw).decode("ascii")
        doc.module_name = IMAGE_MODULE
        doc.status = DocumentStatus.READY
        return doc

    if path.suffix.lower() in TEXT_EXTENSIONS:
        doc.content = raw.decode("utf-8", errors="replace")
        doc.status = DocumentStatus.READY
        return doc
    try:
        doc.content = raw.decode("utf-8")
    except UnicodeDecodeError:
        logger.debug(f"Skipping non-text file {path}")
        doc.status = DocumentStatus.ERROR
        return doc
    doc.status = DocumentStatus.READY
    return doc


def iter_documents(root: Path) -> Iterator[Document]:
    """Yield a Document for every regular file under root (sorted, hidden files skipped)."""
    root = Path(root).resolve()
    if root.is_file():
        yield load_document(root, root.parent)
        return
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        if any(part.startswith(".") for part in path.relative_to(root).parts):
            continue
        yield load_document(path, root)
