import asyncio

from conftest import FakeBackend, cards_json
from pydantic_ai.messages import ModelResponse, TextPart
from pydantic_ai.models.function import AgentInfo, FunctionModel

from notecards.core.config import settings
from notecards.core.errors import describe_error
from notecards.modules.flashcards import FlashcardsGenerator, generate
from notecards.modules.flashcards.backends import BackendConfig, PydanticAIBackend
from notecards.modules.flashcards.main import validate_and_encode
from notecards.modules.flashcards.models import (
    CardType,
    GenerationOptions,
    RawCardRecord,
)


def _run(generator, text, options, **kw):
    return asyncio.run(generator.generate(text, options, **kw))


def test_generate_happy_path(sample_note, options, fake_backend):
    result = _run(FlashcardsGenerator(fake_backend), sample_note, options, title="Bio")

    assert result.success is True
    assert result.error is None
    assert result.markup == (
        "What is photosynthesis?::Turning light into energy\n\n"
        "Chloroplast:::Organelle where photosynthesis happens"
    )
    assert result.deck.tags == ["#biology"]
    assert [c.type for c in result.cards] == [CardType.ONE_WAY, CardType.BIDIRECTIONAL]
    assert all(c.tags == ("#biology",) for c in result.cards)
    assert result.usage.tokens_used == 42
    assert result.usage.model == "fake-model"
    assert result.usage.cards_generated == 2
    assert result.usage.cards_rejected == 0

    assert len(fake_backend.prompts) == 1
    prompt = fake_backend.prompts[0]
    assert "Plants convert light energy into chemical energy." in prompt
    assert "Apply these tags to each card: #biology" in prompt
    assert "**" not in prompt


def test_empty_content_never_reaches_backend(options, fake_backend):
    result = _run(FlashcardsGenerator(fake_backend), "", options)
    assert result.success is False
    assert "cannot be empty" in result.error
    assert fake_backend.prompts == []


def test_short_content_is_rejected(options, fake_backend):
    result = _run(FlashcardsGenerator(fake_backend), "only three words", options)
    assert result.success is False
    assert "too short" in result.error
    assert fake_backend.prompts == []


def test_min_words_comes_from_settings(options, fake_backend):
    pipeline = settings.pipeline.model_copy(update={"min_words": 2})
    result = _run(FlashcardsGenerator(fake_backend, pipeline=pipeline), "only three words", options)
    assert result.success is True


def test_invalid_options_never_reach_backend(sample_note, fake_backend):
    options = GenerationOptions(card_types=["flip"], tags=["nohash"])
    result = _run(FlashcardsGenerator(fake_backend), sample_note, options)
    assert result.success is False
    assert result.error.startswith("Invalid generation options")
    assert "Invalid card types: flip" in result.warnings
    assert 'Tag "nohash" must start with #' in result.warnings
    assert fake_backend.prompts == []


def test_provider_error_is_passed_through(sample_note, options, auth_error):
    backend = FakeBackend(error=auth_error)
    result = _run(FlashcardsGenerator(backend), sample_note, options)
    assert result.success is False
    assert result.provider_error is auth_error
    assert result.error == describe_error(auth_error)
    assert result.error.startswith("Authentication failed.")
    assert "provider_error" not in result.model_dump()


def test_unexpected_exception_becomes_failed_result(sample_note, options):
    backend = FakeBackend(error=RuntimeError("kaput"))
    result = _run(FlashcardsGenerator(backend), sample_note, options)
    assert result.success is False
    assert result.error == "kaput"
    assert result.provider_error is None


def test_no_cards_survive_cloze_only(sample_note):
    backend = FakeBackend(cards_json({"front": "Plain question", "back": "answer", "type": "oneway"}))
    result = _run(FlashcardsGenerator(backend), sample_note, GenerationOptions(card_types=["cloze"]))
    assert result.success is False
    assert result.error.startswith("No valid flashcards could be generated")
    assert len(result.warnings) == 1


def test_empty_model_output(sample_note, options):
    result = _run(FlashcardsGenerator(FakeBackend("")), sample_note, options)
    assert result.success is False
    assert "did not return any cards" in result.error


def test_line_fallback_output(sample_note, options):
    backend = FakeBackend("Q: What is X?\nA: It is Y.")
    result = _run(FlashcardsGenerator(backend), sample_note, options)
    assert result.success is True
    assert result.markup == "What is X?::It is Y."


def test_skipped_cards_are_reported_as_warnings(sample_note, options):
    backend = FakeBackend(
        cards_json(
            {"front": "", "back": "nothing", "type": "oneway"},
            {"front": "Kept", "back": "yes", "type": "oneway"},
        )
    )
    result = _run(FlashcardsGenerator(backend), sample_note, options)
    assert result.success is True
    assert result.warnings == ["Card 1: Front content is required and cannot be empty"]
    assert result.usage.cards_rejected == 1


def test_unknown_template_is_a_failed_result(sample_note, fake_backend):
    options = GenerationOptions(template_id="nope")
    result = _run(FlashcardsGenerator(fake_backend), sample_note, options)
    assert result.success is False
    assert result.error == "Template 'nope' not found"
    assert fake_backend.prompts == []


def test_custom_prompt_is_sent(sample_note, fake_backend):
    options = GenerationOptions(custom_prompt="Only ask about {title}.")
    _run(FlashcardsGenerator(fake_backend), sample_note, options, title="Leaves")
    assert fake_backend.prompts[0].startswith("Only ask about Leaves.\n\nContent:\n")


def test_module_level_generate(sample_note, options, fake_backend):
    result = asyncio.run(generate(sample_note, options, fake_backend))
    assert result.success is True


def test_generate_sync(sample_note, options, fake_backend):
    assert FlashcardsGenerator(fake_backend).generate_sync(sample_note, options).success is True


def test_validate_and_encode_without_backend():
    records = [RawCardRecord(front="Term", back="Meaning", type="bidirectional")]
    result = validate_and_encode(records, GenerationOptions(card_types=["bidirectional"], tags=["bio"]))
    assert result.markup == "Term:::Meaning"
    assert result.deck.tags == ["#bio"]
    assert result.usage.tokens_used is None


def test_pydantic_ai_backend_end_to_end(sample_note, options):
    reply = cards_json({"front": "What makes oxygen?", "back": "Photosynthesis", "type": "oneway"})
    seen = []

    def respond(messages, info: AgentInfo) -> ModelResponse:
        seen.append(messages)
        return ModelResponse(parts=[TextPart(content=reply)])

    backend = PydanticAIBackend(BackendConfig(kind="openai"), model=FunctionModel(respond))
    assert backend.validate_config() is True

    result = _run(FlashcardsGenerator(backend), sample_note, options)
    assert result.success is True
    assert result.markup == "What makes oxygen?::Photosynthesis"
    assert len(seen) == 1


SHORT_NOTE = "The key stages of photosynthesis happen inside chloroplasts"


def test_content_warnings_are_attached_to_result(options, fake_backend):
    result = _run(FlashcardsGenerator(fake_backend), SHORT_NOTE, options)
    assert result.success is True
    assert len(result.cards) == 2
    assert result.warnings == ["Content is quite short - you may get limited flashcards"]


def test_content_warnings_come_before_card_warnings(options):
    backend = FakeBackend(
        cards_json(
            {"front": "", "back": "b", "type": "oneway"},
            {"front": "Where?", "back": "Chloroplasts", "type": "oneway"},
        )
    )
    result = _run(FlashcardsGenerator(backend), SHORT_NOTE, options)
    assert result.warnings == [
        "Content is quite short - you may get limited flashcards",
        "Card 1: Front content is required and cannot be empty",
    ]


def test_content_warnings_survive_provider_failure(options, auth_error):
    result = _run(FlashcardsGenerator(FakeBackend(error=auth_error)), SHORT_NOTE, options)
    assert result.success is False
    assert result.warnings == ["Content is quite short - you may get limited flashcards"]
