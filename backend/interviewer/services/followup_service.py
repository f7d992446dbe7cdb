# /interviewer/services/followup_service.py

import re
import json
import logging
from typing import List, Optional, Protocol, Sequence, Tuple

from interviewer.config import prompts
from interviewer.models.guide import (
    FollowUpRule,
    KeywordsCondition,
    LengthCondition,
    Question,
    SentimentCondition,
)
from interviewer.models.session import FollowUpPrompt
from interviewer.services.ai_service import PriorTurn
from interviewer.utils.exceptions import UpstreamFailure
from interviewer.utils.metrics import follow_ups_counter
from interviewer.workflows.validator import tokenize

# Decides, for an accepted answer, which follow-up rules fire and asks the
# text-generation capability to phrase the follow-up questions.

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class TextGenerator(Protocol):
    async def generate(self, prompt: str, prior_turns: Optional[Sequence[PriorTurn]] = None) -> str:
        ...


def parse_quality_verdict(raw: str) -> bool:
    """
    Read the quality gate's JSON verdict. Anything unparseable counts as valid.
    """
    text = _CODE_FENCE.sub("", (raw or "").strip())
    try:
        data = json.loads(text)
    except ValueError:
        logger.warning("Quality verdict was not valid JSON; treating answer as valid.")
        return True
    if not isinstance(data, dict):
        return True
    verdict = data.get("isValid", data.get("is_valid"))
    if isinstance(verdict, bool):
        if not verdict:
            logger.info(f"Answer judged invalid by quality gate: {data.get('reason')}")
        return verdict
    return True


def is_affirmative(raw: str) -> bool:
    return "yes" in (raw or "").lower()


def parse_sentiment(raw: str) -> str:
    return (raw or "").strip().strip(".!\"'`").strip().lower()


class FollowUpEvaluator:
    def __init__(self, generator: TextGenerator):
        self.generator = generator

    async def generate_follow_ups(
        self,
        question: Question,
        answer_text: str,
        previous_context: Sequence[Tuple[str, str]] = ()
    ) -> List[FollowUpPrompt]:
        """
        Evaluate the question's rules in declared order and generate follow-ups.

        The quality gate runs once for the whole pass. Generation stops as
        soon as the running total reaches the cap of the rule that produced
        the last follow-up. A failure while generating raises UpstreamFailure.
        """
        if not question.follow_up_rules:
            return []

        if not await self.evaluate_answer_quality(question, answer_text):
            return []

        follow_ups: List[FollowUpPrompt] = []

        for rule in question.follow_up_rules:
            if not await self.evaluate_condition(question, answer_text, rule):
                continue

            prompt = self.build_follow_up_prompt(question, answer_text, rule, previous_context)
            try:
                follow_up_text = await self.generator.generate(prompt)
            except UpstreamFailure:
                logger.error(f"Error generating follow-up for question {question.id} (rule={rule.rule_id})")
                raise
            except Exception as e:
                logger.error(f"Error generating follow-up for question {question.id}: {e}", exc_info=True)
                raise UpstreamFailure("Failed to generate follow-up question") from e

            follow_ups.append(FollowUpPrompt(
                question_id=question.id,
                prompt=follow_up_text.strip(),
                source_answer=answer_text,
                rule_id=rule.rule_id
            ))
            follow_ups_counter.labels(rule=rule.rule_id).inc()
            logger.info(f"Generated follow-up for question {question.id} (rule={rule.rule_id})")

            if rule.max_follow_ups > 0 and len(follow_ups) >= rule.max_follow_ups:
                break

        return follow_ups

    async def evaluate_answer_quality(self, question: Question, answer_text: str) -> bool:
        """Relevance/completeness/clarity/engagement gate. Fails open."""
        prompt = prompts.ANSWER_QUALITY_PROMPT.format(question_text=question.text, answer_text=answer_text)
        try:
            raw = await self.generator.generate(prompt)
        except Exception as e:
            logger.warning(f"Error evaluating answer quality, defaulting to valid: {e}")
            return True
        return parse_quality_verdict(raw)

    async def evaluate_condition(self, question: Question, answer_text: str, rule: FollowUpRule) -> bool:
        """Rule-specific check. Any capability failure means the condition is not met."""
        condition = rule.condition
        try:
            if isinstance(condition, KeywordsCondition):
                return await self._check_keywords(question, answer_text, condition)
            if isinstance(condition, LengthCondition):
                return await self._check_length(question, answer_text, condition)
            if isinstance(condition, SentimentCondition):
                return await self._check_sentiment(question, answer_text, condition)
        except Exception as e:
            logger.warning(f"Error evaluating {rule.rule_id} condition for question {question.id}: {e}")
            return False
        raise TypeError(f"Unsupported follow-up condition: {condition!r}")

    async def _check_keywords(self, question: Question, answer_text: str, condition: KeywordsCondition) -> bool:
        lowered = answer_text.lower()
        if not any(keyword.lower() in lowered for keyword in condition.value):
            return False
        raw = await self.generator.generate(prompts.KEYWORD_RELEVANCE_PROMPT.format(
            question_text=question.text,
            answer_text=answer_text,
            keywords=", ".join(condition.value)
        ))
        return is_affirmative(raw)

    async def _check_length(self, question: Question, answer_text: str, condition: LengthCondition) -> bool:
        if len(tokenize(answer_text)) < condition.value:
            return False
        raw = await self.generator.generate(prompts.SUBSTANCE_PROMPT.format(
            question_text=question.text,
            answer_text=answer_text
        ))
        return is_affirmative(raw)

    async def _check_sentiment(self, question: Question, answer_text: str, condition: SentimentCondition) -> bool:
        raw = await self.generator.generate(prompts.SENTIMENT_PROMPT.format(
            question_text=question.text,
            answer_text=answer_text
        ))
        return parse_sentiment(raw) == condition.value

    def build_follow_up_prompt(
        self,
        question: Question,
        answer_text: str,
        rule: FollowUpRule,
        previous_context: Sequence[Tuple[str, str]]
    ) -> str:
        prompt = prompts.FOLLOW_UP_PREFIX

        if question.context_included and previous_context:
            prompt += "Previous context:\n"
            for previous_question, previous_answer in previous_context:
                prompt += f"Q: {previous_question}\nA: {previous_answer}\n\n"

        prompt += f"Current question: {question.text}\n"
        prompt += f"Interviewee's answer: {answer_text}\n\n"
        prompt += prompts.FOLLOW_UP_GUIDANCE[rule.rule_id]
        prompt += prompts.FOLLOW_UP_TEMPLATE_LEAD + rule.prompt_template
        return prompt
