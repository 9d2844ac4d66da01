import logging
from datetime import datetime

from notegraph.vault.loader import iter_note_paths, load_note, load_notes


def test_load_note_reads_frontmatter_and_inline_tags(tmp_path, write_note) -> None:
    path = write_note(
        tmp_path / "Projects" / "Plan.md",
        "Working on #roadmap with [[Ideas]].",
        frontmatter=[
            "tags: [planning, roadmap]",
            "aliases: The Plan",
            "created: 2024-01-05",
            "updated: 2024-02-01T10:30:00",
        ],
    )
    note = load_note(path, tmp_path)

    assert note.id == "projects/plan"
    assert note.name == "Plan"
    assert note.folder == "Projects"
    assert note.tags == ["planning", "roadmap"]
    assert note.aliases == ["The Plan"]
    assert note.created_at == datetime(2024, 1, 5)
    assert note.updated_at == datetime(2024, 2, 1, 10, 30)
    assert note.word_count == 5
    assert note.metadata["aliases"] == "The Plan"
    assert "[[Ideas]]" in note.content


def test_load_note_without_frontmatter_uses_file_times(tmp_path, write_note) -> None:
    note = load_note(write_note(tmp_path / "root.md", "just text"), tmp_path)
    assert note.folder is None
    assert note.tags == []
    assert note.created_at is not None and note.created_at.tzinfo is not None
    assert note.updated_at is not None


def test_string_tags_are_split(tmp_path, write_note) -> None:
    path = write_note(tmp_path / "n.md", "body", frontmatter=['tags: "one, two three"'])
    assert load_note(path, tmp_path).tags == ["one", "two", "three"]


def test_iter_note_paths_skips_hidden_and_sorts(tmp_path, write_note) -> None:
    write_note(tmp_path / "b.md")
    write_note(tmp_path / "a" / "z.md")
    write_note(tmp_path / ".obsidian" / "hidden.md")
    write_note(tmp_path / "notes.txt")

    rel = [p.relative_to(tmp_path).as_posix() for p in iter_note_paths(tmp_path)]
    assert rel == ["a/z.md", "b.md"]


def test_load_notes_skips_broken_files(tmp_path, write_note, caplog) -> None:
    write_note(tmp_path / "good.md", "fine")
    (tmp_path / "bad.md").write_text("---\ntags: [unclosed\n---\nbody\n", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="notegraph.vault.loader"):
        notes = load_notes(tmp_path)

    assert [n.id for n in notes] == ["good"]
    assert "bad.md" in caplog.text
