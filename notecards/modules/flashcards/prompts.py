"""Prompt templates and the composer that renders them.

A ``PromptComposer`` owns its own ``TemplateRegistry``; the orchestrator builds
one per process and passes it around explicitly. Rendering never mutates the
registry.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

from notecards.core.errors import TemplateError
from notecards.core.logging import get_logger
from notecards.modules.flashcards.models.cards import (
    CardType,
    GenerationOptions,
)
from notecards.modules.flashcards.models.content import ProcessedContent
from notecards.modules.flashcards.models.templates import (
    PromptContext,
    PromptTemplate,
    TemplateVariable,
)

logger = get_logger(__name__)

DEFAULT_MAX_CARDS_DISPLAY = "5"
TAGS_INSTRUCTION = "Apply these tags to each card:"

_PLACEHOLDER = re.compile(r"\{(\w+)\}")

AVAILABLE_VARIABLES: tuple[TemplateVariable, ...] = (
    TemplateVariable(name="content", description="The processed note content", example="The main content of your note..."),
    TemplateVariable(name="title", description="The note title or filename", example="My Study Notes"),
    TemplateVariable(name="wordCount", description="Number of words in the content", example="250"),
    TemplateVariable(name="maxCards", description="Maximum number of cards to generate", example="5"),
    TemplateVariable(name="cardTypes", description="List of card types to generate", example="one-way, bidirectional, cloze deletion"),
    TemplateVariable(name="tags", description="Tags to apply to the flashcards", example="#biology #flashcards"),
    TemplateVariable(name="tagsInstruction", description="Instruction about tags (generated)", example="Apply these tags to each card: #biology #flashcards"),
    TemplateVariable(name="metadata", description="Additional facts about the content", example="has_images: True, has_links: False"),
)

KNOWN_VARIABLES = frozenset(v.name for v in AVAILABLE_VARIABLES)

_STANDARD_VARIABLES = ["title", "content", "maxCards", "cardTypes", "tagsInstruction"]

# Must stay readable by interpreter.read_structured
_FORMAT_FOOTER = (
    "Respond with a single JSON object and nothing else, in this shape:\n"
    '{"cards": [{"front": "question or prompt", "back": "answer or explanation", '
    '"type": "oneway", "tags": ["#tag"]}]}\n'
    "- type is one of: oneway, bidirectional, multiline, multiline-bidirectional, cloze\n"
    "- for cloze cards, wrap the hidden words of the front in ==double equals==\n"
    "- tags is optional; use only the tags requested above"
)

BUILTIN_TEMPLATES: tuple[PromptTemplate, ...] = (
    PromptTemplate(
        id="default",
        name="Default Flashcard Generator",
        description="General purpose flashcard generation template",
        template=(
            "Generate flashcards from the following content. Write clear, concise "
            "questions and answers that are useful for studying.\n\n"
            "Title: {title}\n"
            "Content:\n{content}\n\n"
            "Instructions:\n"
            "- Generate {maxCards} flashcards based on the content\n"
            "- Focus on key concepts, definitions and important facts\n"
            "- Keep questions specific and answers complete but short\n"
            "- Use the following card types: {cardTypes}\n"
            "{tagsInstruction}\n\n" + _FORMAT_FOOTER
        ),
        variables=list(_STANDARD_VARIABLES),
        card_types=[CardType.ONE_WAY, CardType.BIDIRECTIONAL, CardType.CLOZE],
    ),
    PromptTemplate(
        id="academic",
        name="Academic Study Cards",
        description="Textbook material, lecture notes and other academic content",
        template=(
            "Create academic flashcards from this educational content. Concentrate "
            "on definitions, theories and the details a student must memorize.\n\n"
            "Subject: {title}\n"
            "Content:\n{content}\n\n"
            "Guidelines:\n"
            "- Generate {maxCards} high-quality flashcards\n"
            "- Mix factual recall with conceptual understanding\n"
            "- Questions should be challenging but fair\n"
            "- Card types to use: {cardTypes}\n"
            "{tagsInstruction}\n\n" + _FORMAT_FOOTER
        ),
        variables=list(_STANDARD_VARIABLES),
        card_types=[CardType.ONE_WAY, CardType.BIDIRECTIONAL, CardType.CLOZE],
    ),
    PromptTemplate(
        id="language-learning",
        name="Language Learning Cards",
        description="Vocabulary, phrases and grammar patterns",
        template=(
            "Create language learning flashcards from this content. Cover "
            "vocabulary, phrases, grammar points and recurring patterns.\n\n"
            "Topic: {title}\n"
            "Content:\n{content}\n\n"
            "Instructions:\n"
            "- Generate {maxCards} language learning flashcards\n"
            "- Prefer bidirectional cards for vocabulary (word and definition)\n"
            "- Use cloze deletion for sentence patterns and grammar\n"
            "- Card types: {cardTypes}\n"
            "{tagsInstruction}\n\n" + _FORMAT_FOOTER
        ),
        variables=list(_STANDARD_VARIABLES),
        card_types=[CardType.BIDIRECTIONAL, CardType.CLOZE, CardType.ONE_WAY],
    ),
    PromptTemplate(
        id="technical",
        name="Technical Documentation",
        description="APIs, programming concepts and technical references",
        template=(
            "Generate technical flashcards from this documentation. Cover APIs, "
            "functions, concepts and practical knowledge.\n\n"
            "Topic: {title}\n"
            "Content:\n{content}\n\n"
            "Requirements:\n"
            "- Create {maxCards} technical flashcards\n"
            "- Include function signatures, endpoints and key concepts\n"
            "- Add short code examples where they help\n"
            "- Card types: {cardTypes}\n"
            "{tagsInstruction}\n\n" + _FORMAT_FOOTER
        ),
        variables=list(_STANDARD_VARIABLES),
        card_types=[CardType.ONE_WAY, CardType.CLOZE, CardType.MULTI_LINE],
    ),
)

# Keyword rules for suggest(); first matching rule wins
_TECHNICAL_KEYWORDS = ("function", "api", "class", "method")
_LANGUAGE_KEYWORDS = ("vocabulary", "translation", "grammar", "language")
_ACADEMIC_KEYWORDS = ("definition", "theory", "concept")
ACADEMIC_WORD_THRESHOLD = 500


class TemplateRegistry:
    """Keyed collection of prompt templates."""

    def __init__(self, templates: Iterable[PromptTemplate] = BUILTIN_TEMPLATES) -> None:
        self._templates: dict[str, PromptTemplate] = {}
        for t in templates:
            self._templates[t.id] = t

    def get(self, template_id: str) -> Optional[PromptTemplate]:
        return self._templates.get(template_id)

    def put(self, template: PromptTemplate) -> None:
        self._templates[template.id] = template

    def remove(self, template_id: str) -> bool:
        return self._templates.pop(template_id, None) is not None

    def all(self) -> list[PromptTemplate]:
        return list(self._templates.values())

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def __len__(self) -> int:
        return len(self._templates)


def placeholders(body: str) -> list[str]:
    return _PLACEHOLDER.findall(body)


def validate_template(template: PromptTemplate) -> list[str]:
    """Design-time checks; returns a list of problems (empty when valid)."""
    errors: list[str] = []
    if not (template.id or "").strip():
        errors.append("Template ID is required")
    if not (template.name or "").strip():
        errors.append("Template name is required")
    body = template.template or ""
    if not body.strip():
        errors.append("Template content is required")
    if "{content}" not in body:
        errors.append("Template must include {content} variable")

    unknown: list[str] = []
    for name in placeholders(body):
        if name not in KNOWN_VARIABLES and name not in unknown:
            unknown.append(name)
    if unknown:
        errors.append(f"Unknown variables: {', '.join(unknown)}")
    return errors


def _substitutions(context: PromptContext) -> dict[str, str]:
    max_cards = (
        str(context.max_cards) if context.max_cards else DEFAULT_MAX_CARDS_DISPLAY
    )
    card_types = ", ".join(ct.label for ct in context.card_types)
    if context.tags:
        tags = " ".join(context.tags)
        tags_instruction = f"{TAGS_INSTRUCTION} {tags}"
    else:
        tags = ""
        tags_instruction = ""
    metadata = ""
    if context.metadata:
        metadata = ", ".join(f"{k}: {v}" for k, v in context.metadata.items())
    return {
        "content": context.content,
        "title": context.title,
        "wordCount": str(context.word_count),
        "maxCards": max_cards,
        "cardTypes": card_types,
        "tags": tags,
        "tagsInstruction": tags_instruction,
        "metadata": metadata,
    }


def substitute(body: str, context: PromptContext) -> str:
    """Fill known ``{name}`` placeholders in one pass; unknown ones stay as-is."""
    values = _substitutions(context)

    def _replace(match: re.Match) -> str:
        return values.get(match.group(1), match.group(0))

    return _PLACEHOLDER.sub(_replace, body).strip()


class PromptComposer:
    """Renders registered templates against a ``PromptContext``."""

    def __init__(self, registry: Optional[TemplateRegistry] = None) -> None:
        self.registry = registry if registry is not None else TemplateRegistry()

    @staticmethod
    def available_variables() -> list[TemplateVariable]:
        return list(AVAILABLE_VARIABLES)

    def add(self, template: PromptTemplate) -> None:
        errors = validate_template(template)
        if errors:
            raise TemplateError(
                f"Invalid template '{template.id}': {'; '.join(errors)}", errors
            )
        self.registry.put(template)

    def get(self, template_id: str) -> Optional[PromptTemplate]:
        return self.registry.get(template_id)

    def remove(self, template_id: str) -> bool:
        return self.registry.remove(template_id)

    def all(self) -> list[PromptTemplate]:
        return self.registry.all()

    def validate(self, template: PromptTemplate) -> list[str]:
        return validate_template(template)

    def render(self, template_id: str, context: PromptContext) -> str:
        template = self.registry.get(template_id)
        if template is None:
            raise TemplateError(f"Template '{template_id}' not found")
        return substitute(template.template, context)

    def render_text(self, body: str, context: PromptContext) -> str:
        """Render an ad-hoc body such as a caller's custom instruction."""
        if "{content}" not in body:
            body = body.rstrip() + "\n\nContent:\n{content}"
        return substitute(body, context)

    @staticmethod
    def create_context(
        processed: ProcessedContent, options: GenerationOptions
    ) -> PromptContext:
        md = processed.metadata
        return PromptContext(
            title=md.title,
            content=processed.cleaned_content,
            word_count=md.word_count,
            max_cards=options.max_cards,
            card_types=options.allowed_types or [CardType.ONE_WAY],
            tags=list(options.tags),
            metadata={
                "has_images": md.has_images,
                "has_links": md.has_links,
                "has_code_blocks": md.has_code_blocks,
            },
        )

    @staticmethod
    def suggest(processed: ProcessedContent) -> str:
        """Pick a template id from keywords and metadata."""
        md = processed.metadata
        text = processed.cleaned_content.lower()

        if md.has_code_blocks or any(k in text for k in _TECHNICAL_KEYWORDS):
            return "technical"
        if any(k in text for k in _LANGUAGE_KEYWORDS):
            return "language-learning"
        if any(k in text for k in _ACADEMIC_KEYWORDS) or md.word_count > ACADEMIC_WORD_THRESHOLD:
            return "academic"
        return "default"

    def compose(
        self, processed: ProcessedContent, options: GenerationOptions
    ) -> tuple[str, str]:
        """Build the prompt for one request; returns ``(template_id, prompt)``."""
        context = self.create_context(processed, options)
        if options.custom_prompt and options.custom_prompt.strip():
            return "custom", self.render_text(options.custom_prompt, context)
        template_id = options.template_id or self.suggest(processed)
        logger.debug("Rendering template %s", template_id, extra={"template": template_id})
        return template_id, self.render(template_id, context)
