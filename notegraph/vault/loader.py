"""Load a directory of Markdown notes into NoteRecords."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from pathlib import Path

import frontmatter

from ..models import NoteRecord
from .parser import count_words, extract_tags

logger = logging.getLogger(__name__)


def _as_list(value, *, split: bool = True) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        if not split:
            return [value.strip()] if value.strip() else []
        return [part.strip() for part in value.replace(",", " ").split() if part.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return [str(value)]


def _as_datetime(value) -> datetime | None:
    """Frontmatter dates arrive as date, datetime or ISO strings."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def load_note(path: Path, vault_path: Path) -> NoteRecord:
    """Load a single markdown file and parse its frontmatter."""
    post = frontmatter.load(path)
    fm = post.metadata
    content = post.content

    rel = path.relative_to(vault_path)
    folder = rel.parent.as_posix()
    folder = None if folder in ("", ".") else folder

    tags: list[str] = []
    for tag in _as_list(fm.get("tags")) + extract_tags(content):
        tag = tag.lstrip("#")
        if tag and tag not in tags:
            tags.append(tag)

    stat = path.stat()
    created = _as_datetime(fm.get("created")) or datetime.fromtimestamp(stat.st_ctime, tz=timezone.utc)
    updated = _as_datetime(fm.get("updated") or fm.get("modified")) or datetime.fromtimestamp(
        stat.st_mtime, tz=timezone.utc
    )

    return NoteRecord.create(
        path.stem,
        content,
        folder=folder,
        tags=tags,
        aliases=_as_list(fm.get("aliases"), split=False),
        created_at=created,
        updated_at=updated,
        word_count=count_words(content),
        metadata=dict(fm),
    )


def iter_note_paths(vault_path: Path) -> list[Path]:
    """Markdown files under the vault, hidden paths skipped, sorted by relative path."""
    paths = []
    for md_file in vault_path.rglob("*.md"):
        rel = md_file.relative_to(vault_path)
        if any(part.startswith(".") for part in rel.parts):
            continue
        paths.append(md_file)
    return sorted(paths, key=lambda p: p.relative_to(vault_path).as_posix())


def load_notes(vault_path: Path) -> list[NoteRecord]:
    """Load all markdown files from the vault.

    Files that fail to parse are logged and skipped.
    """
    vault_path = Path(vault_path)
    notes: list[NoteRecord] = []
    for md_file in iter_note_paths(vault_path):
        try:
            notes.append(load_note(md_file, vault_path))
        except Exception as e:
            logger.warning("Failed to load %s: %s", md_file, e)
    logger.debug("Loaded %d notes from %s", len(notes), vault_path)
    return notes
