"""Deck documents: the markdown file a host writes the encoded cards into.

These helpers only build strings; reading and writing files stays with the
host.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from notecards.modules.flashcards.models.cards import EncodedDeck

DECK_TAG = "#flashcards"
DEFAULT_FILE_NAME_PATTERN = "{filename}-fcards.md"


def deck_file_name(source_name: str, pattern: Optional[str] = None) -> str:
    base = source_name[:-3] if source_name.endswith(".md") else source_name
    return (pattern or DEFAULT_FILE_NAME_PATTERN).replace("{filename}", base)


def render_deck_document(
    deck: EncodedDeck, source_name: str, created: Optional[date] = None
) -> str:
    """Full file body for a new deck built from ``source_name``."""
    created = created or date.today()
    extra_tags = [t for t in deck.tags if "flashcard" not in t.lower()]

    lines = [DECK_TAG, "", "---", f'source: "[[{source_name}]]"', f"created: {created.isoformat()}"]
    if extra_tags:
        lines.append("tags: [" + ", ".join(f'"{t}"' for t in extra_tags) + "]")
    lines += [
        "---",
        "",
        f"# Flashcards from {source_name}",
        "",
        f"> Generated from [[{source_name}]]",
        "",
        deck.markup,
    ]
    return "\n".join(lines)


def append_to_deck_document(
    existing: str, deck: EncodedDeck, added: Optional[date] = None
) -> str:
    added = added or date.today()
    return (
        f"{existing.strip()}\n\n---\n"
        f"*Added on {added.isoformat()}*\n\n"
        f"{deck.markup}"
    )
