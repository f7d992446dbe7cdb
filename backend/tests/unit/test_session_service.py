# backend/tests/unit/test_session_service.py
import asyncio

import pytest
from unittest.mock import AsyncMock

from interviewer.models.guide import Question
from interviewer.utils.exceptions import (
    AlreadyComplete,
    ConcurrentUpdate,
    IntegrityViolation,
    QualityRejected,
    QuestionMismatch,
    SessionNotFound,
    ValidationError,
)

QUALITY = "Respond in JSON format"
SENTIMENT = "emotional tone"
FOLLOW_UP = "expert interviewer"

GOOD_ANSWER = "A perfectly reasonable answer here"


async def _start(guides, sessions, questions, title="Onboarding"):
    created = await guides.create_or_update_guide(title, None, questions)
    started = await sessions.start_session(created["id"])
    return created, started


@pytest.mark.asyncio
async def test_start_session_binds_active_version(guides, sessions, store, questions):
    created, started = await _start(guides, sessions, questions)

    assert started["current_question"].id == "q1"
    stored = store.sessions[started["session_id"]]
    assert stored.guide_id == created["id"]
    assert stored.guide_version_id == (await guides.get_active_version(created["id"])).id
    assert stored.state.version == 1


@pytest.mark.asyncio
async def test_start_session_empty_tree(guides, sessions, store, questions):
    created = await guides.create_or_update_guide("Onboarding", None, questions)
    version = (await store.find_active_versions(created["id"]))[0]
    store.versions[version.id].content.questions = []

    with pytest.raises(ValidationError):
        await sessions.start_session(created["id"])
    assert store.sessions == {}


@pytest.mark.asyncio
async def test_full_interview_in_preorder(guides, sessions, store, questions, generator):
    generator.replies = [(QUALITY, '{"isValid": true}'), (SENTIMENT, "neutral")]
    _, started = await _start(guides, sessions, questions)
    session_id = started["session_id"]

    expected_next = ["q1a", "q1b", "q2", "q3", None]
    for question_id, next_id in zip(["q1", "q1a", "q1b", "q2", "q3"], expected_next):
        result = await sessions.submit_answer(session_id, question_id, GOOD_ANSWER)
        assert (result["next_question"].id if result["next_question"] else None) == next_id

    assert result["is_complete"] is True
    state = store.sessions[session_id].state
    assert state.is_complete is True
    assert state.current_question_id is None
    assert [a.question_id for a in state.answered_questions] == ["q1", "q1a", "q1b", "q2", "q3"]
    assert state.version == 6


@pytest.mark.asyncio
async def test_answers_after_completion_rejected(guides, sessions, questions):
    _, started = await _start(guides, sessions, questions[2:])
    await sessions.submit_answer(started["session_id"], "q3", GOOD_ANSWER)

    with pytest.raises(AlreadyComplete):
        await sessions.submit_answer(started["session_id"], "q3", GOOD_ANSWER)


@pytest.mark.asyncio
async def test_wrong_question_rejected(guides, sessions, store, questions):
    _, started = await _start(guides, sessions, questions)
    with pytest.raises(QuestionMismatch):
        await sessions.submit_answer(started["session_id"], "q2", GOOD_ANSWER)
    assert store.sessions[started["session_id"]].state.version == 1


@pytest.mark.asyncio
async def test_rejected_answer_leaves_state_untouched(guides, sessions, store, questions, generator):
    _, started = await _start(guides, sessions, questions)

    with pytest.raises(QualityRejected) as exc_info:
        await sessions.submit_answer(started["session_id"], "q1", "no idea")

    assert exc_info.value.error_code == "DEFLECTION_NO_IDEA"
    state = store.sessions[started["session_id"]].state
    assert state.answered_questions == []
    assert state.version == 1
    assert generator.prompts == []


@pytest.mark.asyncio
async def test_unknown_session(sessions):
    with pytest.raises(SessionNotFound):
        await sessions.submit_answer("missing", "q1", GOOD_ANSWER)
    with pytest.raises(SessionNotFound):
        await sessions.get_session("missing")


@pytest.mark.asyncio
async def test_follow_ups_attached_with_context(guides, sessions, store, questions, generator):
    generator.replies = [(FOLLOW_UP, "Who was your mentor?"), (QUALITY, '{"isValid": true}'), (SENTIMENT, "neutral")]
    _, started = await _start(guides, sessions, questions)
    session_id = started["session_id"]
    for question_id in ["q1", "q1a", "q1b"]:
        await sessions.submit_answer(session_id, question_id, f"Answer for {question_id} in detail")

    result = await sessions.submit_answer(session_id, "q2", "My mentor ran the training sessions")

    assert [f.prompt for f in result["follow_ups"]] == ["Who was your mentor?"]
    recorded = store.sessions[session_id].state.answered_questions[-1]
    assert recorded.question_id == "q2"
    assert recorded.follow_ups[0].rule_id == "keywords"
    follow_up_prompt = generator.prompts_containing(FOLLOW_UP)[0]
    assert "Q: Tell me about your role.\nA: Answer for q1 in detail" in follow_up_prompt


@pytest.mark.asyncio
async def test_session_keeps_its_version_after_activation(guides, sessions, questions):
    created, started = await _start(guides, sessions, questions)
    await guides.create_or_update_guide("Onboarding", None, [Question(id="new", text="Brand new question")])

    result = await sessions.submit_answer(started["session_id"], "q1", GOOD_ANSWER)
    assert result["next_question"].id == "q1a"

    fresh = await sessions.start_session(created["id"])
    assert fresh["current_question"].id == "new"


@pytest.mark.asyncio
async def test_get_session_resolves_current_question(guides, sessions, questions):
    _, started = await _start(guides, sessions, questions)
    await sessions.submit_answer(started["session_id"], "q1", GOOD_ANSWER)

    result = await sessions.get_session(started["session_id"])
    assert result["current_question"].id == "q1a"
    assert result["session"].state.version == 2


@pytest.mark.asyncio
async def test_concurrent_answers_only_one_applies(guides, sessions, store, questions, generator):
    generator.replies = [(QUALITY, '{"isValid": true}'), (SENTIMENT, "neutral")]
    _, started = await _start(guides, sessions, questions[1:])
    session_id = started["session_id"]

    results = await asyncio.gather(
        sessions.submit_answer(session_id, "q2", "First concurrent answer text"),
        sessions.submit_answer(session_id, "q2", "Second concurrent answer text"),
        return_exceptions=True,
    )

    successes = [r for r in results if isinstance(r, dict)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], QuestionMismatch)

    state = store.sessions[session_id].state
    assert len(state.answered_questions) == 1
    assert state.version == 2


@pytest.mark.asyncio
async def test_lost_write_without_visible_progress(guides, sessions, store, questions, mocker):
    _, started = await _start(guides, sessions, questions)
    mocker.patch.object(store, "save_session_state", AsyncMock(return_value=False))

    with pytest.raises(ConcurrentUpdate):
        await sessions.submit_answer(started["session_id"], "q1", GOOD_ANSWER)


@pytest.mark.asyncio
async def test_length_rule_follow_up_only_for_long_enough_answers(guides, sessions, store, generator):
    generator.replies = [(FOLLOW_UP, "Why do you say that?"), (QUALITY, '{"isValid": true}')]
    tree = [
        Question.model_validate({
            "id": "Q1", "text": "What do you enjoy about your job?",
            "follow_up_rules": [{"condition": {"type": "length", "value": 5}, "prompt_template": "ask why"}],
        }),
        Question(id="Q2", text="What would you change?"),
    ]
    created = await guides.create_or_update_guide("Job satisfaction", None, tree)

    detailed = await sessions.start_session(created["id"])
    result = await sessions.submit_answer(detailed["session_id"], "Q1", "I really enjoy helping our customers")
    assert [f.rule_id for f in result["follow_ups"]] == ["length"]
    assert result["next_question"].id == "Q2"

    brief = await sessions.start_session(created["id"])
    result = await sessions.submit_answer(brief["session_id"], "Q1", "The people mostly")
    assert result["follow_ups"] == []
    recorded = store.sessions[brief["session_id"]].state.answered_questions
    assert len(recorded) == 1
    assert recorded[0].follow_ups == []


@pytest.mark.asyncio
async def test_current_question_missing_from_version(guides, sessions, store, questions):
    _, started = await _start(guides, sessions, questions)
    store.sessions[started["session_id"]].state.current_question_id = "ghost"

    with pytest.raises(IntegrityViolation):
        await sessions.submit_answer(started["session_id"], "ghost", GOOD_ANSWER)
    assert store.sessions[started["session_id"]].state.version == 1
