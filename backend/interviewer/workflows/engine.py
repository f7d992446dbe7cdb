# /interviewer/workflows/engine.py

"""
Pure session state machine.

A session is either InProgress (current_question_id set, is_complete False)
or Complete (current_question_id None, is_complete True). Complete is
terminal. This module:
- Builds the initial state for a guide version's question tree
- Decides whether an answer may be submitted against a state
- Appends an accepted answer and advances to the next pre-order question
- Increments version and updates last_updated

All functions are:
- Pure (no side effects, inputs are never mutated)
- No database writes
- No AI calls
- No logging
"""

from typing import Optional, Sequence, TypedDict

from interviewer.models.guide import Question, utc_now
from interviewer.models.session import Answer, SessionState
from interviewer.workflows import question_tree
from interviewer.workflows.validator import ValidationResult


class EngineResult(TypedDict):
    """Result of applying an answer to a session state."""
    applied: bool
    error_code: Optional[str]
    reason: Optional[str]
    updated_state: Optional[SessionState]
    next_question: Optional[Question]


def initial_state(questions: Sequence[Question]) -> Optional[SessionState]:
    """
    State for a fresh session positioned on the first pre-order question.

    Returns None when the tree has no questions.
    """
    first = question_tree.first_question(questions)
    if first is None:
        return None
    return SessionState(
        current_question_id=first.id,
        answered_questions=[],
        is_complete=False,
        version=1,
        last_updated=utc_now()
    )


def check_submission(state: SessionState, question_id: str) -> ValidationResult:
    """
    Answers are accepted strictly in traversal order, never after completion.
    """
    if state.is_complete:
        return {
            "is_valid": False,
            "error_code": "ALREADY_COMPLETE",
            "message": "Session is already complete"
        }

    if state.current_question_id != question_id:
        return {
            "is_valid": False,
            "error_code": "QUESTION_MISMATCH",
            "message": f"Expected an answer for question '{state.current_question_id}', got '{question_id}'"
        }

    return {
        "is_valid": True,
        "error_code": None,
        "message": None
    }


def apply_answer(
    state: SessionState,
    questions: Sequence[Question],
    answer: Answer
) -> EngineResult:
    """
    Record an accepted answer and move the session forward.

    Args:
        state: Current session state (left untouched)
        questions: The question tree of the session's bound guide version
        answer: The validated answer, follow-ups already attached

    Returns:
        EngineResult with the new state, or applied=False if the answer
        does not belong to the current question
    """
    submission = check_submission(state, answer.question_id)
    if not submission["is_valid"]:
        return {
            "applied": False,
            "error_code": submission["error_code"],
            "reason": submission["message"],
            "updated_state": None,
            "next_question": None
        }

    nxt = question_tree.next_question(questions, answer.question_id)

    updated_state = SessionState(
        current_question_id=nxt.id if nxt else None,
        answered_questions=[*state.answered_questions, answer],
        is_complete=nxt is None,
        version=state.version + 1,
        last_updated=utc_now()
    )

    return {
        "applied": True,
        "error_code": None,
        "reason": None,
        "updated_state": updated_state,
        "next_question": nxt
    }
