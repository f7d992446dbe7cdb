# /interviewer/config/prompts.py

# This file defines every instruction sent to the text-generation model, for
# both follow-up generation and the yes/no style judgements made on answers.

ANSWER_QUALITY_PROMPT = """
Analyze this interview question and answer:

Question: "{question_text}"
Answer: "{answer_text}"

Evaluate if this is a valid, meaningful response by checking:
1. Relevance: Does it directly address the question?
2. Completeness: Does it provide sufficient information?
3. Clarity: Is it clearly expressed and understandable?
4. Engagement: Does it show genuine engagement with the topic?

Respond in JSON format:
{{
  "isValid": boolean,
  "reason": "explanation if invalid"
}}"""

KEYWORD_RELEVANCE_PROMPT = """
Question: "{question_text}"
Answer: "{answer_text}"
Keywords: {keywords}

Are the keywords used meaningfully in relation to the question? Answer only 'yes' or 'no'.
Consider:
1. Are they used in the right context?
2. Do they contribute to answering the question?
3. Are they not just mentioned in passing?"""

SENTIMENT_PROMPT = """
Question: "{question_text}"
Answer: "{answer_text}"

What is the predominant emotional tone of this answer? Choose one:
- positive
- negative
- neutral

Respond with just one word."""

SUBSTANCE_PROMPT = """
Question: "{question_text}"
Answer: "{answer_text}"

Is this a substantive answer with meaningful content, not just filler words? Answer only 'yes' or 'no'.
Consider:
1. Does it provide specific information?
2. Does it avoid repetition and fluff?
3. Does each part contribute to answering the question?"""

FOLLOW_UP_PREFIX = "You are an expert interviewer. Your task is to generate a thoughtful follow-up question.\n\n"

FOLLOW_UP_GUIDANCE = {
    "keywords": (
        "The answer contains keywords of interest. Generate a follow-up that:\n"
        "1. Explores the mentioned concepts in more depth\n"
        "2. Asks for specific examples or scenarios\n"
        "3. Seeks to understand the reasoning or impact\n\n"
    ),
    "length": (
        "The answer is detailed. Generate a follow-up that:\n"
        "1. Picks up on a specific detail mentioned\n"
        "2. Asks for clarification on any assumptions\n"
        "3. Explores potential implications\n\n"
    ),
    "sentiment": (
        "The answer has a notable emotional tone. Generate a follow-up that:\n"
        "1. Acknowledges the expressed sentiment respectfully\n"
        "2. Seeks to understand the underlying reasons\n"
        "3. Explores potential solutions or alternatives\n\n"
    ),
}

FOLLOW_UP_TEMPLATE_LEAD = "Using this guidance, generate a follow-up question that: "
