# /interviewer/workflows/validator.py

"""
Pure validation functions for submitted answers.

An answer is checked here strictly before any follow-up evaluation and before
it is recorded, so a rejection never touches session state.

All functions are:
- Pure (no side effects)
- Deterministic (same input = same output)
- Unit-testable (no external dependencies)
- No database access
- No AI calls
"""

import re
from typing import Optional, TypedDict

MIN_ANSWER_TOKENS = 3

# Matched case-insensitively against the trimmed answer. The first two are
# prefix patterns; the rest must match the whole answer.
DEFLECTION_PATTERNS = [
    ("DEFLECTION_WHAT_ABOUT", re.compile(r"^what about\b", re.IGNORECASE)),
    ("DEFLECTION_WHY_DO_YOU", re.compile(r"^why do you\b", re.IGNORECASE)),
    ("DEFLECTION_DONT_KNOW", re.compile(r"^i don'?t know$", re.IGNORECASE)),
    ("DEFLECTION_NO_IDEA", re.compile(r"^no idea$", re.IGNORECASE)),
    ("DEFLECTION_MAYBE", re.compile(r"^maybe$", re.IGNORECASE)),
    ("DEFLECTION_NOT_SURE", re.compile(r"^not sure$", re.IGNORECASE)),
    ("DEFLECTION_QUESTION_MARKS", re.compile(r"^\?+$")),
    ("DEFLECTION_YES_NO", re.compile(r"^(yes|no)$", re.IGNORECASE)),
]


class ValidationResult(TypedDict):
    """Result of a validation check."""
    is_valid: bool
    error_code: Optional[str]
    message: Optional[str]


def tokenize(text: str) -> list[str]:
    """Whitespace-separated tokens of the trimmed text."""
    return text.split()


def validate_answer(answer_text: Optional[str]) -> ValidationResult:
    """
    Reject empty, deflecting or too-short answers.

    Args:
        answer_text: The raw answer as submitted

    Returns:
        ValidationResult with is_valid=True if the answer can be accepted
    """
    text = (answer_text or "").strip()

    if not text:
        return {
            "is_valid": False,
            "error_code": "EMPTY_ANSWER",
            "message": "Answer cannot be empty"
        }

    for error_code, pattern in DEFLECTION_PATTERNS:
        if pattern.search(text):
            return {
                "is_valid": False,
                "error_code": error_code,
                "message": "Please provide a more detailed answer to the question"
            }

    if len(tokenize(text)) < MIN_ANSWER_TOKENS:
        return {
            "is_valid": False,
            "error_code": "ANSWER_TOO_SHORT",
            "message": f"Answer must contain at least {MIN_ANSWER_TOKENS} words"
        }

    return {
        "is_valid": True,
        "error_code": None,
        "message": None
    }
