"""Vault loading and parsing utilities."""

from .loader import load_note, load_notes
from .parser import extract_link_references, extract_links, extract_tags

__all__ = [
    "load_note",
    "load_notes",
    "extract_link_references",
    "extract_links",
    "extract_tags",
]
