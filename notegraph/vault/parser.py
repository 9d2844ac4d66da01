"""Link, tag and word extraction from raw note text."""

import re
from typing import Literal, NamedTuple
from urllib.parse import unquote

# Match [[target]], [[target|display]], [[target#section]], [[target#section|display]]
WIKILINK_PATTERN = re.compile(r"\[\[([^\]|#]+)(?:#[^\]|]+)?(?:\|[^\]]+)?\]\]")

# Match [display](target) but not ![alt](image)
MARKDOWN_LINK_PATTERN = re.compile(r"(?<!!)\[([^\]]+)\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")

# Inline #tag, not a heading marker and not glued to a word (url fragments, anchors)
TAG_PATTERN = re.compile(r"(?:^|(?<=\s))#([a-zA-Z0-9_/-]+)", re.MULTILINE)

WORD_PATTERN = re.compile(r"\b\w+\b")

_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")

LinkKind = Literal["wikilink", "markdown"]


class LinkReference(NamedTuple):
    target: str  # as written, without section or display text
    kind: LinkKind
    position: int


def extract_link_references(content: str) -> list[LinkReference]:
    """Extract every link reference in document order, keeping repeats.

    Wiki-links and Markdown-style internal links are both returned. External
    URLs, mail links and links to non-note assets are skipped.
    """
    refs: list[LinkReference] = []

    for match in WIKILINK_PATTERN.finditer(content):
        target = match.group(1).strip()
        if target:
            refs.append(LinkReference(target, "wikilink", match.start()))

    for match in MARKDOWN_LINK_PATTERN.finditer(content):
        target = _internal_target(match.group(2))
        if target:
            refs.append(LinkReference(target, "markdown", match.start()))

    refs.sort(key=lambda r: r.position)
    return refs


def _internal_target(raw: str) -> str | None:
    """Normalize a Markdown link target, or None if it is not a note link."""
    if _SCHEME.match(raw) or raw.startswith("#"):
        return None
    target = unquote(raw.split("#", 1)[0]).strip()
    if target.startswith("./"):
        target = target[2:]
    if not target:
        return None
    last = target.rsplit("/", 1)[-1]
    if "." in last and not last.lower().endswith(".md"):
        return None  # image, pdf or other asset
    return target


def extract_links(content: str) -> list[str]:
    """Extract all link targets from content.

    Returns normalized (lowercase) link targets, deduplicated.
    """
    seen = set()
    result = []
    for ref in extract_link_references(content):
        normalized = ref.target.lower().strip()
        if normalized not in seen:
            seen.add(normalized)
            result.append(normalized)
    return result


def extract_tags(content: str) -> list[str]:
    """Extract inline #tags, deduplicated in order of first appearance.

    Purely numeric tokens (issue references like #12) are not tags.
    """
    seen = set()
    result = []
    for match in TAG_PATTERN.finditer(content):
        tag = match.group(1).strip("/")
        if not tag or tag.isdigit() or tag in seen:
            continue
        seen.add(tag)
        result.append(tag)
    return result


def count_words(content: str) -> int:
    """Count words in content."""
    return len(WORD_PATTERN.findall(content))
