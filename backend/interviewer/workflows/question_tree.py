# /interviewer/workflows/question_tree.py

"""
Traversal primitives for a guide's question tree.

The interview order is the pre-order sequence of the tree: a question's
sub-questions are visited immediately after it, before its next sibling.
Every lookup, next-question and context computation goes through this module
so that order is defined in exactly one place.

All functions are:
- Pure (no side effects)
- Read-only over the tree (it belongs to a GuideVersion)
- No database access
- No AI calls
"""

from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from interviewer.models.guide import Question
from interviewer.models.session import Answer


def iter_preorder(questions: Sequence[Question]) -> Iterator[Question]:
    """Yield every question of the tree in interview order."""
    for question in questions:
        yield question
        if question.sub_questions:
            yield from iter_preorder(question.sub_questions)


def flatten(questions: Sequence[Question]) -> List[Question]:
    return list(iter_preorder(questions))


def first_question(questions: Sequence[Question]) -> Optional[Question]:
    return next(iter_preorder(questions), None)


def find_by_id(questions: Sequence[Question], question_id: Optional[str]) -> Optional[Question]:
    """
    Depth-first, pre-order search for a question id.

    Returns the first match, or None when the id is empty or absent.
    """
    if not question_id:
        return None
    for question in iter_preorder(questions):
        if question.id == question_id:
            return question
    return None


def next_question(questions: Sequence[Question], current_id: str) -> Optional[Question]:
    """
    Return the question immediately following `current_id` in interview order.

    Returns None if `current_id` is the last question or is not in the tree.
    """
    found_current = False
    for question in iter_preorder(questions):
        if found_current:
            return question
        if question.id == current_id:
            found_current = True
    return None


def find_duplicate_ids(questions: Sequence[Question]) -> List[str]:
    """Ids that appear more than once anywhere in the tree, in first-seen order."""
    counts: Dict[str, int] = {}
    for question in iter_preorder(questions):
        counts[question.id] = counts.get(question.id, 0) + 1
    return [question_id for question_id, count in counts.items() if count > 1]


def collect_context(questions: Sequence[Question], answers: Sequence[Answer]) -> List[Tuple[str, str]]:
    """
    Build (question text, answer text) pairs for previously answered questions.

    Answers whose question id no longer resolves in the tree are skipped.
    """
    context = []
    for answer in answers:
        question = find_by_id(questions, answer.question_id)
        if question is not None:
            context.append((question.text, answer.text))
    return context
