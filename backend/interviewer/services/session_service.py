# /interviewer/services/session_service.py

import logging
from typing import Any, Dict, Tuple

from interviewer.models.guide import GuideVersion
from interviewer.models.session import Answer, InterviewSession
from interviewer.services.ai_service import ai_service
from interviewer.services.db_service import DatabaseService, db_service
from interviewer.services.followup_service import FollowUpEvaluator
from interviewer.services.guide_service import GuideService, guide_service
from interviewer.utils.exceptions import (
    AlreadyComplete,
    ConcurrentUpdate,
    IntegrityViolation,
    QualityRejected,
    QuestionMismatch,
    SessionNotFound,
    ValidationError,
)
from interviewer.utils.metrics import answers_counter, sessions_counter
from interviewer.workflows import engine, question_tree
from interviewer.workflows.validator import validate_answer

# Orchestrates one interview session per request: state is always read fresh
# from the store, run through the pure engine, and written back with an
# optimistic version check. Nothing is cached between requests.

logger = logging.getLogger(__name__)

SUBMISSION_ERRORS = {
    "ALREADY_COMPLETE": AlreadyComplete,
    "QUESTION_MISMATCH": QuestionMismatch,
}


class SessionService:
    def __init__(self, db: DatabaseService, guides: GuideService, evaluator: FollowUpEvaluator):
        self.db = db
        self.guides = guides
        self.evaluator = evaluator

    async def start_session(self, guide_id: str) -> Dict[str, Any]:
        active_version = await self.guides.get_active_version(guide_id)
        questions = active_version.content.questions

        state = engine.initial_state(questions)
        if state is None:
            raise ValidationError("Guide has no questions")

        interview_session = InterviewSession(
            guide_id=guide_id,
            guide_version_id=active_version.id,
            state=state
        )
        await self.db.insert_session(interview_session)
        sessions_counter.labels(event="started").inc()
        logger.info(f"Started session {interview_session.id} on guide {guide_id} v{active_version.version}")

        return {
            "session_id": interview_session.id,
            "current_question": question_tree.find_by_id(questions, state.current_question_id),
        }

    async def get_session(self, session_id: str) -> Dict[str, Any]:
        interview_session, version = await self._load(session_id)
        current_question = question_tree.find_by_id(
            version.content.questions, interview_session.state.current_question_id
        )
        return {"session": interview_session, "current_question": current_question}

    async def submit_answer(self, session_id: str, question_id: str, answer_text: str) -> Dict[str, Any]:
        interview_session, version = await self._load(session_id)
        state = interview_session.state
        questions = version.content.questions

        self._raise_for_submission(engine.check_submission(state, question_id))

        validation = validate_answer(answer_text)
        if not validation["is_valid"]:
            answers_counter.labels(status="rejected").inc()
            logger.info(f"Rejected answer for session {session_id} question {question_id}: {validation['error_code']}")
            raise QualityRejected(validation["message"], error_code=validation["error_code"])

        question = question_tree.find_by_id(questions, question_id)
        if question is None:
            logger.error(f"Session {session_id} points at question {question_id} missing from its guide version")
            raise IntegrityViolation("Session's current question is missing from its guide version")

        follow_ups = []
        if question.follow_up_rules:
            context = []
            if question.context_included:
                context = question_tree.collect_context(questions, state.answered_questions)
            follow_ups = await self.evaluator.generate_follow_ups(question, answer_text, context)

        result = engine.apply_answer(state, questions, Answer(
            question_id=question_id,
            text=answer_text,
            follow_ups=follow_ups
        ))
        if not result["applied"]:
            self._raise_for_submission({"is_valid": False, "error_code": result["error_code"], "message": result["reason"]})

        updated_state = result["updated_state"]
        saved = await self.db.save_session_state(interview_session.id, updated_state, expected_version=state.version)
        if not saved:
            await self._raise_for_lost_race(session_id, question_id)

        answers_counter.labels(status="accepted").inc()
        if updated_state.is_complete:
            sessions_counter.labels(event="completed").inc()
            logger.info(f"Session {session_id} complete after {len(updated_state.answered_questions)} answers")

        return {
            "next_question": result["next_question"],
            "is_complete": updated_state.is_complete,
            "follow_ups": follow_ups,
        }

    async def _load(self, session_id: str) -> Tuple[InterviewSession, GuideVersion]:
        interview_session = await self.db.find_session(session_id)
        if interview_session is None:
            raise SessionNotFound()

        version = await self.db.find_version_by_id(interview_session.guide_version_id)
        if version is None:
            logger.error(f"Session {session_id} references missing guide version {interview_session.guide_version_id}")
            raise IntegrityViolation("Session references a guide version that no longer exists")
        return interview_session, version

    async def _raise_for_lost_race(self, session_id: str, question_id: str) -> None:
        """Another request advanced the session first; report what it left behind."""
        latest = await self.db.find_session(session_id)
        if latest is None:
            raise SessionNotFound()
        self._raise_for_submission(engine.check_submission(latest.state, question_id))
        raise ConcurrentUpdate()

    @staticmethod
    def _raise_for_submission(check) -> None:
        if check["is_valid"]:
            return
        error_cls = SUBMISSION_ERRORS.get(check["error_code"], ConcurrentUpdate)
        raise error_cls(check["message"])


# Globally accessible instance
session_service = SessionService(db_service, guide_service, FollowUpEvaluator(ai_service))
