"""Data models for notes entering the graph engine."""

import re
from dataclasses import dataclass, field
from datetime import datetime

_NAME_UNSAFE = re.compile(r"[^a-zA-Z0-9_-]")
_FOLDER_UNSAFE = re.compile(r"[^a-zA-Z0-9_/-]")


def note_id(name: str, folder: str | None = None) -> str:
    """Derive the stable node id for a note path.

    The same (folder, name) pair always maps to the same id, so a note keeps
    its identity across rebuilds.
    """
    stem = name[:-3] if name.lower().endswith(".md") else name
    clean_name = _NAME_UNSAFE.sub("_", stem).lower()
    if not folder:
        return clean_name
    clean_folder = _FOLDER_UNSAFE.sub("_", folder.replace("\\", "/").strip("/")).lower()
    return f"{clean_folder}/{clean_name}" if clean_folder else clean_name


@dataclass
class NoteRecord:
    """A single note as handed to the engine by the loading layer."""

    id: str
    name: str  # display name, usually the filename without extension
    content: str  # raw text, scanned for link references
    folder: str | None = None
    tags: list[str] = field(default_factory=list)
    aliases: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    word_count: int = 0
    metadata: dict = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        name: str,
        content: str = "",
        *,
        folder: str | None = None,
        tags: list[str] | None = None,
        aliases: list[str] | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
        word_count: int | None = None,
        metadata: dict | None = None,
    ) -> "NoteRecord":
        """Build a record whose id is derived from its folder and name."""
        return cls(
            id=note_id(name, folder),
            name=name[:-3] if name.lower().endswith(".md") else name,
            content=content,
            folder=folder or None,
            tags=list(tags or []),
            aliases=list(aliases or []),
            created_at=created_at,
            updated_at=updated_at,
            word_count=len(content.split()) if word_count is None else word_count,
            metadata=dict(metadata or {}),
        )
