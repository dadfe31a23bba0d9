"""
AI Service for generating study content using Anthropic Claude.

Three tasks share one "generate from messages" call: summaries, quizzes and
context-grounded answers. Provider errors surface as GenerationUnavailable;
nothing is retried here.
"""
import json
import re
import time

import anthropic
from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.core.errors import GenerationUnavailable, InvalidGenerationFormat
from app.core.logging_config import get_logger
from app.schemas.chat import ChatTurn
from app.schemas.generated_content import QuizQuestion

logger = get_logger(__name__)

REFUSAL_PHRASE = "I'm sorry, but I cannot answer that question based on the provided text."

SUMMARY_SYSTEM_PROMPT = (
    "You are an expert academic assistant. You write high-quality, concise summaries "
    "in clear, neutral, professional language."
)

QUIZ_SYSTEM_PROMPT = (
    "You are an expert quiz designer. You create clear multiple-choice questions that test "
    "key concepts and important facts. Always return valid JSON and nothing else."
)

CHAT_SYSTEM_PROMPT = (
    "You are an expert Q&A assistant. Your task is to answer questions based *only* on the "
    "provided text context. If the answer CANNOT be found in the text, you MUST respond with "
    f"the exact phrase: \"{REFUSAL_PHRASE}\" Do not use any prior knowledge or make up information."
)

CHAT_ACKNOWLEDGEMENT = "Understood. I will answer questions based only on the provided text context."


def strip_json_fences(text: str) -> str:
    """Strip markdown code fences (```json ... ```) from AI responses."""
    stripped = re.sub(r"^```(?:json)?\s*\n?", "", text.strip())
    stripped = re.sub(r"\n?```\s*$", "", stripped)
    return stripped.strip()


def parse_quiz(raw: str, num_questions: int) -> list[QuizQuestion]:
    """Parse and validate a quiz payload returned by the model.

    Raises InvalidGenerationFormat unless the payload is a JSON array of exactly
    ``num_questions`` questions, each with 4 options and a correctAnswer that
    matches one of them.
    """
    cleaned = strip_json_fences(raw)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.error(f"Failed to parse quiz response as JSON: {raw[:500]}")
        raise InvalidGenerationFormat(error="AI service returned an invalid format for the quiz.")

    if not isinstance(data, list) or len(data) != num_questions:
        logger.error(f"Quiz response has wrong shape | expected={num_questions} questions")
        raise InvalidGenerationFormat(error="AI service returned an invalid format for the quiz.")

    try:
        return [QuizQuestion.model_validate(item) for item in data]
    except PydanticValidationError as e:
        logger.error(f"Quiz question failed validation: {e}")
        raise InvalidGenerationFormat(error="AI service returned an invalid format for the quiz.")


def build_chat_messages(context_text: str, history: list[ChatTurn], question: str) -> list[dict]:
    """Assemble the message list for a grounded Q&A turn.

    The session is seeded with the document context and an acknowledgement,
    then prior turns are replayed before the new question. Adjacent turns with
    the same role are merged since the API expects alternating roles.
    """
    turns = [
        ("user", f"Here is the context:\n---\n{context_text}\n---"),
        ("assistant", CHAT_ACKNOWLEDGEMENT),
    ]
    turns.extend((turn.role, turn.text) for turn in history if turn.text.strip())
    turns.append(("user", question))

    messages: list[dict] = []
    for role, text in turns:
        if messages and messages[-1]["role"] == role:
            messages[-1]["content"] += "\n\n" + text
        else:
            messages.append({"role": role, "content": text})
    return messages


def truncate_context(text: str) -> str:
    if len(text) <= settings.max_context_chars:
        return text
    logger.warning(f"Context truncated | chars={len(text)} | limit={settings.max_context_chars}")
    return text[: settings.max_context_chars]


class GenerationClient:
    """Thin async wrapper over the Anthropic Messages API."""

    def __init__(self, client: anthropic.AsyncAnthropic, model: str):
        self.client = client
        self.model = model

    async def generate_content(
        self,
        messages: list[dict],
        system_prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.7,
    ) -> str:
        start_time = time.time()
        logger.info(f"Starting AI content generation | model={self.model} | max_tokens={max_tokens}")

        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                system=system_prompt,
                messages=messages,
                temperature=temperature,
            )
        except anthropic.APIError as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(f"AI generation failed | duration={duration_ms:.2f}ms | error={e}")
            raise GenerationUnavailable() from e

        duration_ms = (time.time() - start_time) * 1000
        text = "".join(block.text for block in message.content if block.type == "text")
        logger.info(
            f"AI generation completed | duration={duration_ms:.2f}ms | "
            f"input_tokens={message.usage.input_tokens} | output_tokens={message.usage.output_tokens}"
        )
        if not text.strip():
            raise GenerationUnavailable(error="AI service returned an empty response.")
        return text

    async def summarize(self, text: str) -> str:
        prompt = f"""Provide a high-quality, concise summary of the following text.
- Focus on the main arguments, key findings, and critical concepts.
- Ignore irrelevant details or filler content.
- Write in clear, neutral, professional language.
- End with a list of key points and key takeaways.

Here is the text to summarize:
---
{truncate_context(text)}
---"""
        return await self.generate_content(
            [{"role": "user", "content": prompt}], SUMMARY_SYSTEM_PROMPT, temperature=0.3
        )

    async def generate_quiz(self, text: str, num_questions: int = 5) -> list[QuizQuestion]:
        prompt = f"""Create a multiple-choice quiz based on the provided text.
Instructions:
1. Generate exactly {num_questions} questions.
2. Each question must have exactly 4 options.
3. One of the options must be the correct answer.
4. The questions should test key concepts and important facts from the text.

Respond with a JSON array of objects and no other text. Each object must have these exact keys:
"question", "options" (an array of 4 strings), and "correctAnswer" (a string that exactly matches one of the options).
Example:
[{{"question": "What is the primary color of Mars?", "options": ["Blue", "Green", "Red", "Yellow"], "correctAnswer": "Red"}}]

Here is the text to generate the quiz from:
---
{truncate_context(text)}
---"""
        raw = await self.generate_content(
            [{"role": "user", "content": prompt}], QUIZ_SYSTEM_PROMPT, temperature=0.5
        )
        return parse_quiz(raw, num_questions)

    async def answer(self, context_text: str, history: list[ChatTurn], question: str) -> str:
        messages = build_chat_messages(truncate_context(context_text), history, question)
        logger.debug(f"Chat turn | prior_turns={len(history)}")
        return await self.generate_content(messages, CHAT_SYSTEM_PROMPT, max_tokens=1500, temperature=0.2)


def create_generation_client() -> GenerationClient:
    """Build the process-wide generation client from settings."""
    if not settings.anthropic_api_key:
        logger.error("Anthropic API key not configured")
        raise ValueError("ANTHROPIC_API_KEY not configured")
    client = anthropic.AsyncAnthropic(
        api_key=settings.anthropic_api_key,
        timeout=settings.generation_timeout_seconds,
        max_retries=0,
    )
    return GenerationClient(client, settings.claude_model)
