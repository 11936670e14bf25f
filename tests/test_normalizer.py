import pytest

from notecards.modules.flashcards.models import NoteContent, ProcessingOptions
from notecards.modules.flashcards.normalizer import (
    chunk_words,
    clean_markdown,
    estimate_tokens,
    extract_key_topics,
    light_clean_markdown,
    normalize,
    normalize_note,
)


def test_clean_markdown_strips_formatting(sample_note):
    cleaned = clean_markdown(sample_note)
    assert cleaned == (
        "Photosynthesis\n\n"
        "Plants convert light energy into chemical energy.\n\n"
        "• Happens in the chloroplast\n"
        "• Produces oxygen as a result"
    )


def test_clean_markdown_links_images_and_code():
    text = (
        "See ![diagram](img.png) and [the docs](https://x.io).\n"
        "Call `run()` then:\n"
        "```python\nprint('hi')\n```\n"
        "> quoted *idea* and ~~old~~ __bold__ _it_\n"
        "1. first\n"
        "2.  second"
    )
    assert clean_markdown(text) == (
        "See diagram and the docs.\n"
        "Call run() then:\n"
        "print('hi')\n"
        "quoted idea and old bold it\n"
        "• first\n"
        "• second"
    )


def test_clean_markdown_keeps_snake_case_identifiers():
    assert clean_markdown("use my_var_name here") == "use my_var_name here"


def test_clean_markdown_collapses_whitespace():
    assert clean_markdown("a\n\n\n\n\nb  \t c") == "a\n\nb c"


def test_light_clean_keeps_markdown():
    text = "---\ntitle: x\n---\n# Head\n\n\n\n**bold**"
    assert light_clean_markdown(text) == "# Head\n\n**bold**"


def test_front_matter_only_removed_at_start():
    text = "Intro line\n---\nnot front matter\n---\nrest"
    assert light_clean_markdown(text) == text


def test_normalize_metadata(sample_note):
    processed = normalize(sample_note, "Bio notes")
    md = processed.metadata
    assert md.title == "Bio notes"
    assert md.word_count == len(sample_note.split())
    assert md.has_images is False
    assert md.has_links is False
    assert md.has_code_blocks is False
    assert md.chunks is None
    assert processed.original_content == sample_note


def test_normalize_flags_are_independent():
    md = normalize("![a](b.png) `x`").metadata
    assert md.has_images is True
    # image syntax also contains link syntax
    assert md.has_links is True
    assert md.has_code_blocks is True


def test_normalize_empty_input_is_not_an_error():
    processed = normalize("")
    assert processed.cleaned_content == ""
    assert processed.metadata.word_count == 0
    assert processed.metadata.title == "Untitled"


def test_normalize_preserve_formatting():
    processed = normalize("# Title\n\n**b**", options=ProcessingOptions(preserve_formatting=True))
    assert processed.cleaned_content == "# Title\n\n**b**"


def test_normalize_chunks_long_content():
    words = [f"w{i}" for i in range(100)]
    text = " ".join(words)
    opts = ProcessingOptions(max_tokens=10, chunk_size=30, overlap_size=5)
    processed = normalize(text, options=opts)
    chunks = processed.metadata.chunks
    assert chunks is not None and len(chunks) > 1
    assert processed.cleaned_content == chunks[0].text
    assert processed.metadata.estimated_tokens == estimate_tokens(text)


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcde") == 2


@pytest.mark.parametrize("n,size,overlap", [(100, 30, 5), (10, 3, 2), (31, 10, 0), (50, 7, 6)])
def test_chunks_cover_every_word_with_fixed_overlap(n, size, overlap):
    words = [f"w{i}" for i in range(n)]
    chunks = chunk_words(" ".join(words), size, overlap)

    covered = set()
    for c in chunks:
        covered.update(range(c.start, c.end))
        assert c.text == " ".join(words[c.start:c.end])
        assert c.end - c.start <= size
    assert covered == set(range(n))

    for prev, nxt in zip(chunks, chunks[1:]):
        assert prev.end - nxt.start == overlap
    assert chunks[-1].end == n
    assert [c.index for c in chunks] == list(range(len(chunks)))


def test_short_text_is_single_chunk():
    chunks = chunk_words("just a few words", 10, 2)
    assert len(chunks) == 1
    assert chunks[0].text == "just a few words"


def test_overlap_not_smaller_than_window_is_clamped():
    words = " ".join(str(i) for i in range(12))
    chunks = chunk_words(words, 4, 4)
    # clamped to 3: the window advances one word at a time
    assert [c.start for c in chunks] == list(range(9))
    assert chunks[-1].end == 12


def test_chunk_size_must_be_positive():
    with pytest.raises(ValueError):
        chunk_words("a b c", 0, 0)


def test_extract_key_topics():
    text = "# Cells\nThe **nucleus** and the **nucleus** again\n## Membranes"
    assert extract_key_topics(text) == ["Cells", "Membranes", "nucleus"]


def test_normalize_note_uses_note_title(sample_note):
    processed = normalize_note(NoteContent(text=sample_note, title="Bio notes"))
    assert processed == normalize(sample_note, "Bio notes")
    assert processed.metadata.title == "Bio notes"
