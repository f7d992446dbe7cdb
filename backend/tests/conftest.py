import asyncio
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock

# Load the test environment FIRST, before any interviewer imports, so the
# settings module sees ENVIRONMENT=test (rate limiting off, no AI keys needed).
load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent / ".env.test")

from interviewer.main import app  # noqa: E402
from interviewer.models.guide import Guide, GuideVersion, Question  # noqa: E402
from interviewer.models.session import InterviewSession, SessionState  # noqa: E402
from interviewer.services.followup_service import FollowUpEvaluator  # noqa: E402
from interviewer.services.guide_service import GuideService, guide_service  # noqa: E402
from interviewer.services.session_service import SessionService, session_service  # noqa: E402


class InMemoryStore:
    """
    Stands in for DatabaseService in tests.

    Documents are stored as deep copies, and run_in_transaction restores the
    previous contents when the operation raises.
    """

    def __init__(self):
        self.guides: Dict[str, Guide] = {}
        self.versions: Dict[str, GuideVersion] = {}
        self.sessions: Dict[str, InterviewSession] = {}

    async def run_in_transaction(self, operation):
        snapshot = (
            {k: v.model_copy(deep=True) for k, v in self.guides.items()},
            {k: v.model_copy(deep=True) for k, v in self.versions.items()},
        )
        try:
            return await operation(None)
        except Exception:
            self.guides, self.versions = snapshot
            raise

    async def find_guide_by_title(self, title, txn=None) -> Optional[Guide]:
        for guide in self.guides.values():
            if guide.title == title:
                return guide.model_copy(deep=True)
        return None

    async def find_guide_by_id(self, guide_id, txn=None) -> Optional[Guide]:
        guide = self.guides.get(guide_id)
        return guide.model_copy(deep=True) if guide else None

    async def list_guides(self) -> List[Guide]:
        return [g.model_copy(deep=True) for g in sorted(self.guides.values(), key=lambda g: g.created_at)]

    async def save_guide(self, guide, txn=None):
        self.guides[guide.id] = guide.model_copy(deep=True)

    async def list_versions(self, guide_id, txn=None) -> List[GuideVersion]:
        versions = [v for v in self.versions.values() if v.guide_id == guide_id]
        return [v.model_copy(deep=True) for v in sorted(versions, key=lambda v: v.version, reverse=True)]

    async def find_version(self, guide_id, version_number, txn=None) -> Optional[GuideVersion]:
        for version in self.versions.values():
            if version.guide_id == guide_id and version.version == version_number:
                return version.model_copy(deep=True)
        return None

    async def find_version_by_id(self, version_id) -> Optional[GuideVersion]:
        version = self.versions.get(version_id)
        return version.model_copy(deep=True) if version else None

    async def find_active_versions(self, guide_id) -> List[GuideVersion]:
        return [
            v.model_copy(deep=True) for v in self.versions.values()
            if v.guide_id == guide_id and v.is_active
        ]

    async def save_version(self, version, txn=None):
        self.versions[version.id] = version.model_copy(deep=True)

    async def deactivate_all_versions(self, guide_id, txn=None) -> int:
        modified = 0
        for version in self.versions.values():
            if version.guide_id == guide_id and version.is_active:
                version.is_active = False
                modified += 1
        return modified

    async def set_version_active(self, guide_id, version_number, txn=None) -> bool:
        for version in self.versions.values():
            if version.guide_id == guide_id and version.version == version_number:
                version.is_active = True
                return True
        return False

    async def find_session(self, session_id) -> Optional[InterviewSession]:
        stored = self.sessions.get(session_id)
        return stored.model_copy(deep=True) if stored else None

    async def insert_session(self, interview_session):
        self.sessions[interview_session.id] = interview_session.model_copy(deep=True)

    async def save_session_state(self, session_id, state: SessionState, expected_version: int) -> bool:
        stored = self.sessions.get(session_id)
        if stored is None or stored.state.version != expected_version:
            return False
        stored.state = state.model_copy(deep=True)
        return True


class ScriptedGenerator:
    """
    Text generator that answers by prompt fragment and records every prompt.

    `replies` is a list of (fragment, reply) pairs checked in order; a reply
    that is an exception instance is raised instead of returned.
    """

    def __init__(self, replies=None, default: str = "yes"):
        self.replies = list(replies or [])
        self.default = default
        self.prompts: List[str] = []

    async def generate(self, prompt, prior_turns=None) -> str:
        self.prompts.append(prompt)
        await asyncio.sleep(0)
        for fragment, reply in self.replies:
            if fragment in prompt:
                if isinstance(reply, Exception):
                    raise reply
                return reply
        return self.default

    def prompts_containing(self, fragment: str) -> List[str]:
        return [p for p in self.prompts if fragment in p]


# Prompt fragments identifying each kind of generation request
QUALITY = "Respond in JSON format"
KEYWORDS = "Keywords:"
SENTIMENT = "emotional tone"
SUBSTANCE = "substantive answer"
FOLLOW_UP = "expert interviewer"


def sample_questions() -> List[Question]:
    return [Question.model_validate(q) for q in [
        {
            "id": "q1",
            "text": "Tell me about your role.",
            "sub_questions": [
                {"id": "q1a", "text": "How long have you been in it?"},
                {"id": "q1b", "text": "What does a typical day look like?"},
            ],
        },
        {
            "id": "q2",
            "text": "How do you feel about the onboarding process?",
            "follow_up_rules": [
                {
                    "condition": {"type": "keywords", "value": ["training", "mentor"]},
                    "prompt_template": "asks what made the training useful",
                },
                {
                    "condition": {"type": "sentiment", "value": "negative"},
                    "prompt_template": "asks what could be improved",
                },
            ],
            "context_included": True,
        },
        {"id": "q3", "text": "Anything else you would like to add?"},
    ]]


@pytest.fixture
def questions() -> List[Question]:
    return sample_questions()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def generator() -> ScriptedGenerator:
    return ScriptedGenerator()


@pytest.fixture
def guides(store) -> GuideService:
    return GuideService(store)


@pytest.fixture
def sessions(store, guides, generator) -> SessionService:
    return SessionService(store, guides, FollowUpEvaluator(generator))


@pytest.fixture(scope="function")
def test_client(mocker, store, generator):
    """
    TestClient wired to the in-memory store and scripted generator.
    Index creation is skipped so no MongoDB server is needed.
    """
    mocker.patch("interviewer.services.db_service.DatabaseService.create_indexes", new_callable=AsyncMock)
    mocker.patch.object(guide_service, "db", store)
    mocker.patch.object(session_service, "db", store)
    mocker.patch.object(session_service, "evaluator", FollowUpEvaluator(generator))

    with TestClient(app) as client:
        yield client
