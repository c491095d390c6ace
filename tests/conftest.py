"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import asyncio
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from kanjiflow.study.card_queue import CardQueue  # noqa: E402
from kanjiflow.study.models import StudyCard  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def make_card():
    """Build a StudyCard with sensible defaults."""

    def _make(card_id=1, character="日", **overrides):
        fields = {
            "id": card_id,
            "character": character,
            "meaning": "sun, day",
            "reading": "にち",
            "stroke_count": 4,
            "grade": 1,
            "frequency": 1,
            "is_new": True,
            "is_due": False,
        }
        fields.update(overrides)
        return StudyCard(**fields)

    return _make


@pytest.fixture
def study_cards(make_card):
    """Three well-formed cards in study order."""
    return [
        make_card(101, "日", meaning="sun, day", reading="にち"),
        make_card(102, "月", meaning="moon, month", reading="げつ", is_new=False, is_due=True),
        make_card(103, "火", meaning="fire", reading="か"),
    ]


@pytest.fixture
def session_payload():
    """Study endpoint response as the API sends it (camelCase, wrapped)."""
    return {
        "session": {
            "deckId": 7,
            "deckTitle": "JLPT N5 Basics",
            "totalCards": 2,
            "studyCards": [
                {
                    "id": 11,
                    "character": "水",
                    "meaning": "water",
                    "reading": "すい",
                    "strokeCount": 4,
                    "grade": 1,
                    "frequency": 223,
                    "isNew": True,
                    "isDue": False,
                },
                {
                    "id": 12,
                    "character": "木",
                    "meaning": "tree, wood",
                    "reading": "もく",
                    "strokeCount": 4,
                    "grade": 1,
                    "frequency": 317,
                    "isNew": False,
                    "isDue": True,
                },
            ],
        }
    }


class FakeGateway:
    """Records submitted outcomes; can fail chosen cards or hold submissions open."""

    def __init__(self, fail_ids=(), hold=False):
        self.received = []
        self.fail_ids = set(fail_ids)
        self.release = asyncio.Event() if hold else None

    async def submit(self, outcome, deck_id=None):
        if self.release is not None:
            await self.release.wait()
        self.received.append(outcome)
        return outcome.card_id not in self.fail_ids


class QueueFetcher:
    """Async stand-in for load_card_queue that replays scripted results."""

    def __init__(self, *results, deck_title="Test Deck", declared_total=None):
        self.results = list(results)
        self.deck_title = deck_title
        self.declared_total = declared_total
        self.calls = []

    async def __call__(self, deck_id):
        self.calls.append(deck_id)
        result = self.results[min(len(self.calls), len(self.results)) - 1]
        # Yield so concurrent callers can interleave
        await asyncio.sleep(0)
        if isinstance(result, Exception):
            raise result
        declared = len(result) if self.declared_total is None else self.declared_total
        return CardQueue(result, deck_id=deck_id, deck_title=self.deck_title, declared_total=declared)


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def gateway_factory():
    return FakeGateway


@pytest.fixture
def fetcher_factory():
    return QueueFetcher
