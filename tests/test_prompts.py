import pytest

from notecards.core.errors import TemplateError
from notecards.modules.flashcards.models import (
    CardType,
    GenerationOptions,
    PromptContext,
    PromptTemplate,
)
from notecards.modules.flashcards import render_prompt
from notecards.modules.flashcards.interpreter import interpret_response, read_structured
from notecards.modules.flashcards.normalizer import normalize
from notecards.modules.flashcards.prompts import (
    BUILTIN_TEMPLATES,
    PromptComposer,
    TemplateRegistry,
    validate_template,
)


@pytest.fixture
def composer():
    return PromptComposer()


def _context(**kw):
    base = dict(
        title="Cells",
        content="The cell is the basic unit of life.",
        word_count=8,
        card_types=[CardType.ONE_WAY, CardType.CLOZE],
    )
    base.update(kw)
    return PromptContext(**base)


def _template(body, **kw):
    return PromptTemplate(id=kw.get("id", "t"), name=kw.get("name", "T"), template=body)


def test_builtin_templates_are_registered(composer):
    ids = {t.id for t in composer.all()}
    assert ids == {"default", "academic", "language-learning", "technical"}
    for t in composer.all():
        assert validate_template(t) == []


def test_render_substitutes_variables(composer):
    composer.add(_template("{title}|{content}|{wordCount}|{maxCards}|{cardTypes}|{tags}|{tagsInstruction}|{metadata}"))
    out = composer.render(
        "t",
        _context(max_cards=3, tags=["#bio", "#cells"], metadata={"has_images": True, "source": "book"}),
    )
    assert out == (
        "Cells|The cell is the basic unit of life.|8|3|one-way, cloze deletion|"
        "#bio #cells|Apply these tags to each card: #bio #cells|has_images: True, source: book"
    )


def test_render_defaults_when_optional_values_missing(composer):
    composer.add(_template("[{maxCards}][{tags}][{tagsInstruction}][{metadata}] {content}"))
    assert composer.render("t", _context(content="x")) == "[5][][][] x"


def test_render_lists_every_card_type_label(composer):
    composer.add(_template("{cardTypes} {content}"))
    out = composer.render("t", _context(content="c", card_types=list(CardType)))
    assert out == "one-way, bidirectional, multi-line, multi-line bidirectional, cloze deletion c"


def test_render_does_not_expand_placeholders_inside_content(composer):
    composer.add(_template("{content} / {title}"))
    out = composer.render("t", _context(content="literal {title}"))
    assert out == "literal {title} / Cells"


def test_render_trims_result(composer):
    composer.add(_template("\n\n  {content}  \n"))
    assert composer.render("t", _context(content="x")) == "x"


def test_render_unknown_template(composer):
    with pytest.raises(TemplateError, match="Template 'nope' not found"):
        composer.render("nope", _context())


def test_validate_template_errors():
    assert validate_template(_template("no content here")) == ["Template must include {content} variable"]
    errors = validate_template(_template("{content} {bogus} {other} {bogus}"))
    assert errors == ["Unknown variables: bogus, other"]
    errors = validate_template(PromptTemplate(id=" ", name="", template=""))
    assert "Template ID is required" in errors
    assert "Template name is required" in errors
    assert "Template content is required" in errors


def test_add_rejects_invalid_template(composer):
    with pytest.raises(TemplateError):
        composer.add(_template("missing placeholder"))
    assert composer.get("t") is None


def test_registries_are_independent():
    a = PromptComposer()
    b = PromptComposer()
    a.add(_template("{content}", id="mine"))
    assert a.get("mine") is not None
    assert b.get("mine") is None
    assert len(TemplateRegistry()) == 4


def test_remove_template(composer):
    assert composer.remove("technical") is True
    assert composer.remove("technical") is False


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Call the function with two args", "technical"),
        ("The REST API returns JSON", "technical"),
        ("Spanish vocabulary for the kitchen", "language-learning"),
        ("German GRAMMAR rules", "language-learning"),
        ("A definition of entropy", "academic"),
        ("Darwin's theory of evolution", "academic"),
        ("Shopping list for Tuesday", "default"),
    ],
)
def test_suggest(text, expected):
    assert PromptComposer.suggest(normalize(text)) == expected


def test_suggest_first_rule_wins():
    # both technical and language keywords; technical is checked first
    assert PromptComposer.suggest(normalize("grammar of a function")) == "technical"


def test_suggest_code_and_length():
    assert PromptComposer.suggest(normalize("run `ls` now")) == "technical"
    long_text = " ".join(["word"] * 501)
    assert PromptComposer.suggest(normalize(long_text)) == "academic"


def test_create_context_from_processed():
    processed = normalize("Some [link](http://a.b) text", "Links")
    options = GenerationOptions(max_cards=4, card_types=["cloze"], tags=["#x"])
    ctx = PromptComposer.create_context(processed, options)
    assert ctx.title == "Links"
    assert ctx.content == "Some link text"
    assert ctx.max_cards == 4
    assert ctx.card_types == [CardType.CLOZE]
    assert ctx.metadata == {"has_images": False, "has_links": True, "has_code_blocks": False}


def test_compose_prefers_custom_prompt_then_template_then_suggestion(composer):
    processed = normalize("Plain notes about a garden party", "Party")

    template_id, prompt = composer.compose(
        processed, GenerationOptions(custom_prompt="Make {maxCards} flashcards about {title}", max_cards=2)
    )
    assert template_id == "custom"
    assert prompt == "Make 2 flashcards about Party\n\nContent:\nPlain notes about a garden party"

    template_id, prompt = composer.compose(processed, GenerationOptions(template_id="academic"))
    assert template_id == "academic"
    assert "Plain notes about a garden party" in prompt

    template_id, _ = composer.compose(processed, GenerationOptions())
    assert template_id == "default"


def test_available_variables_match_validation_vocabulary(composer):
    names = [v.name for v in composer.available_variables()]
    assert names[:2] == ["content", "title"]
    body = " ".join("{%s}" % n for n in names)
    assert validate_template(_template(body)) == []


def test_module_level_render_prompt():
    assert "The cell is the basic unit of life." in render_prompt("default", _context())


@pytest.mark.parametrize("template_id", [t.id for t in BUILTIN_TEMPLATES])
def test_builtin_format_example_is_readable(composer, template_id):
    prompt = composer.render(template_id, _context(tags=["#cells"]))
    read = read_structured(prompt)
    assert read.ok, read.reason
    example = prompt[prompt.index("{"): prompt.rindex("}") + 1]
    records = interpret_response(example, GenerationOptions(tags=["#cells"]))
    assert [(r.front, r.type, r.tags) for r in records] == [
        ("question or prompt", "oneway", ["#tag", "#cells"])
    ]
