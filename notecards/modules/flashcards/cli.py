from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from notecards.core.config import settings
from notecards.core.errors import NotecardsError
from notecards.core.logging import setup_logging
from notecards.modules.flashcards.backends import build_backend_from_settings
from notecards.modules.flashcards.deck import (
    append_to_deck_document,
    deck_file_name,
    render_deck_document,
)
from notecards.modules.flashcards.encoder import detect_type, split_cards
from notecards.modules.flashcards.main import FlashcardsGenerator, validate_and_encode
from notecards.modules.flashcards.models.cards import (
    EncodedDeck,
    GenerationOptions,
    RawCardRecord,
)


def _load_text(args: argparse.Namespace) -> str:
    if args.text and args.file:
        raise SystemExit("Provide either --text or --file, not both")
    if args.file:
        return Path(args.file).read_text(encoding="utf-8")
    if args.text:
        return args.text
    raise SystemExit("--text or --file is required")


def _title(args: argparse.Namespace) -> str | None:
    if args.title:
        return args.title
    if args.file:
        return Path(args.file).stem
    return None


def _options(args: argparse.Namespace) -> GenerationOptions:
    return GenerationOptions(
        max_cards=args.max_cards,
        card_types=args.type or ["oneway", "bidirectional"],
        tags=args.tag if args.tag is not None else list(settings.pipeline.default_tags),
        template_id=getattr(args, "template", None),
        custom_prompt=getattr(args, "instruction", None),
    )


def write_deck(directory: Path, source_name: str, deck: EncodedDeck) -> Path:
    """Create the deck file for ``source_name`` or append a new section to it."""
    path = directory / deck_file_name(source_name, settings.pipeline.file_name_pattern)
    if path.exists():
        body = append_to_deck_document(path.read_text(encoding="utf-8"), deck)
    else:
        path.parent.mkdir(parents=True, exist_ok=True)
        body = render_deck_document(deck, source_name)
    path.write_text(body, encoding="utf-8")
    return path


def _add_note_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--text", "-t", help="Note text")
    p.add_argument("--file", "-f", help="Path to a markdown note")
    p.add_argument("--title", help="Note title (defaults to the file name)")
    p.add_argument("--max-cards", type=int, default=None)
    p.add_argument(
        "--type",
        action="append",
        help="Allowed card type (repeatable): oneway, bidirectional, multiline, "
        "multiline-bidirectional, cloze",
    )
    p.add_argument("--tag", action="append", help="Tag such as #biology (repeatable)")
    p.add_argument("--template", help="Template id; suggested from the content when omitted")
    p.add_argument("--instruction", help="Custom instruction replacing the template")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="notecards", description="Turn notes into spaced-repetition flashcards"
    )
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="cmd", required=True)

    g = sub.add_parser("generate", help="Generate flashcards from a note")
    _add_note_args(g)
    g.add_argument("--json", action="store_true", help="Print the full result as JSON")
    g.add_argument(
        "--deck-dir",
        help="Write (or append to) a deck document in this directory instead of printing",
    )

    p = sub.add_parser("prompt", help="Print the prompt that would be sent (no model call)")
    _add_note_args(p)

    e = sub.add_parser("encode", help="Validate card records (JSON list) and print markup")
    e.add_argument("input", nargs="?", help="JSON file; stdin when omitted")
    e.add_argument("--type", action="append")
    e.add_argument("--max-cards", type=int, default=None)
    e.add_argument("--tag", action="append")

    d = sub.add_parser("detect", help="Print the detected type of each card in a deck")
    d.add_argument("input", nargs="?", help="Markup file; stdin when omitted")

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if args.cmd == "generate":
        text = _load_text(args)
        svc = FlashcardsGenerator(build_backend_from_settings())
        result = svc.generate_sync(text, _options(args), title=_title(args))
        if args.json:
            print(json.dumps(result.model_dump(mode="json"), indent=2))
        elif result.success and args.deck_dir:
            path = write_deck(Path(args.deck_dir), _title(args) or "Untitled", result.deck)
            print(path)
        elif result.success:
            print(result.markup)
        else:
            print(f"error: {result.error}", file=sys.stderr)
        return 0 if result.success else 1

    if args.cmd == "prompt":
        text = _load_text(args)
        svc = FlashcardsGenerator(build_backend_from_settings())
        try:
            for notice in svc.check_request(text, _options(args)):
                print(f"warning: {notice}", file=sys.stderr)
            _, template_id, prompt = svc.prepare(text, _options(args), title=_title(args))
        except NotecardsError as err:
            print(f"error: {err.message}", file=sys.stderr)
            return 1
        print(f"# template: {template_id}\n")
        print(prompt)
        return 0

    if args.cmd == "encode":
        raw = Path(args.input).read_text(encoding="utf-8") if args.input else sys.stdin.read()
        records = [RawCardRecord.model_validate(r) for r in json.loads(raw)]
        options = GenerationOptions(
            card_types=args.type or [r.type for r in records] or ["oneway"],
            max_cards=args.max_cards,
            tags=args.tag or [],
        )
        result = validate_and_encode(records, options)
        if not result.success:
            print(f"error: {result.error}", file=sys.stderr)
            return 1
        for w in result.warnings:
            print(f"warning: {w}", file=sys.stderr)
        print(result.markup)
        return 0

    if args.cmd == "detect":
        raw = Path(args.input).read_text(encoding="utf-8") if args.input else sys.stdin.read()
        for block in split_cards(raw):
            detected = detect_type(block)
            first_line = block.splitlines()[0]
            print(f"{detected.value if detected else 'undetected'}\t{first_line}")
        return 0

    parser.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
