import json

import pytest

from notecards.core.errors import ProviderError, ProviderErrorKind
from notecards.modules.flashcards.backends import ModelBackend
from notecards.modules.flashcards.models import BackendResponse, GenerationOptions


class FakeBackend(ModelBackend):
    """Backend stub that returns canned text and records every prompt."""

    name = "fake"

    def __init__(self, text="", *, tokens_used=42, model="fake-model", error=None):
        self.text = text
        self.tokens_used = tokens_used
        self.model = model
        self.error = error
        self.prompts = []

    async def authenticate(self):
        return self.error is None

    async def generate_flashcards(self, prompt, options):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return BackendResponse(text=self.text, tokens_used=self.tokens_used, model=self.model)

    def validate_config(self):
        return True


def cards_json(*cards):
    return json.dumps({"cards": list(cards)})


@pytest.fixture
def sample_note():
    return (
        "---\ntags: [bio]\n---\n"
        "# Photosynthesis\n\n"
        "Plants convert **light energy** into chemical energy.\n\n"
        "- Happens in the chloroplast\n"
        "- Produces oxygen as a result\n"
    )


@pytest.fixture
def options():
    return GenerationOptions(card_types=["oneway", "bidirectional"], tags=["#biology"])


@pytest.fixture
def fake_backend():
    return FakeBackend(
        cards_json(
            {"front": "What is photosynthesis?", "back": "Turning light into energy", "type": "oneway"},
            {"front": "Chloroplast", "back": "Organelle where photosynthesis happens", "type": "bidirectional"},
        )
    )


@pytest.fixture
def auth_error():
    return ProviderError(ProviderErrorKind.AUTHENTICATION, "Authentication failed for fake.", provider="fake")
