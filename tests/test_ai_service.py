import asyncio
import json
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from app.core.errors import GenerationUnavailable, InvalidGenerationFormat
from app.schemas.chat import ChatTurn
from app.services.ai_service import (
    CHAT_ACKNOWLEDGEMENT,
    GenerationClient,
    build_chat_messages,
    parse_quiz,
    strip_json_fences,
    truncate_context,
)


def _question(i, answer="B"):
    return {"question": f"Q{i}?", "options": ["A", "B", "C", "D"], "correctAnswer": answer}


class _FakeMessages:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.result


def _client_returning(blocks=None, error=None):
    message = SimpleNamespace(
        content=blocks or [],
        usage=SimpleNamespace(input_tokens=10, output_tokens=5),
    )
    messages = _FakeMessages(result=message, error=error)
    return GenerationClient(SimpleNamespace(messages=messages), "test-model"), messages


# ── Quiz parsing ──────────────────────────────────────────────

class TestParseQuiz:
    def test_strip_fences(self):
        assert strip_json_fences('```json\n[1, 2]\n```') == "[1, 2]"
        assert strip_json_fences("```\n{}\n```") == "{}"
        assert strip_json_fences("  [3]  ") == "[3]"

    def test_valid_quiz(self):
        quiz = parse_quiz(json.dumps([_question(i) for i in range(3)]), 3)
        assert [q.question for q in quiz] == ["Q0?", "Q1?", "Q2?"]
        assert quiz[0].correct_answer == "B"
        assert quiz[0].model_dump(by_alias=True)["correctAnswer"] == "B"

    def test_not_json(self):
        with pytest.raises(InvalidGenerationFormat):
            parse_quiz("Sure! Here is a quiz.", 3)

    def test_not_a_list(self):
        with pytest.raises(InvalidGenerationFormat):
            parse_quiz(json.dumps({"questions": [_question(0)]}), 1)

    def test_wrong_count(self):
        with pytest.raises(InvalidGenerationFormat):
            parse_quiz(json.dumps([_question(i) for i in range(4)]), 5)

    def test_three_options(self):
        bad = _question(0)
        bad["options"] = ["A", "B", "C"]
        with pytest.raises(InvalidGenerationFormat):
            parse_quiz(json.dumps([bad]), 1)

    def test_answer_must_match_an_option(self):
        with pytest.raises(InvalidGenerationFormat):
            parse_quiz(json.dumps([_question(0, answer="b")]), 1)

    def test_blank_question(self):
        bad = _question(0)
        bad["question"] = "  "
        with pytest.raises(InvalidGenerationFormat) as exc:
            parse_quiz(json.dumps([bad]), 1)
        assert exc.value.status_code == 500


# ── Chat message assembly ─────────────────────────────────────

class TestBuildChatMessages:
    def test_seeded_with_context(self):
        messages = build_chat_messages("DOC", [], "Q?")
        assert messages[0]["role"] == "user"
        assert "DOC" in messages[0]["content"]
        assert messages[1] == {"role": "assistant", "content": CHAT_ACKNOWLEDGEMENT}
        assert messages[2] == {"role": "user", "content": "Q?"}

    def test_adjacent_user_turns_are_merged(self):
        history = [ChatTurn(role="assistant", text="Earlier answer"), ChatTurn(role="user", text="Unanswered")]
        messages = build_chat_messages("DOC", history, "Q?")
        assert [m["role"] for m in messages] == ["user", "assistant", "user"]
        assert messages[1]["content"] == CHAT_ACKNOWLEDGEMENT + "\n\nEarlier answer"
        assert messages[2]["content"] == "Unanswered\n\nQ?"

    def test_blank_turns_skipped(self):
        history = [ChatTurn(role="user", text="  "), ChatTurn(role="assistant", text="")]
        assert len(build_chat_messages("DOC", history, "Q?")) == 3

    def test_legacy_turn_shape(self):
        turn = ChatTurn.model_validate({"role": "model", "parts": [{"text": "Hello "}, {"text": "there"}]})
        assert turn.role == "assistant"
        assert turn.text == "Hello there"

    def test_truncate_context(self, monkeypatch):
        from app.core.config import settings

        monkeypatch.setattr(settings, "max_context_chars", 5)
        assert truncate_context("abcdefgh") == "abcde"
        assert truncate_context("abc") == "abc"


# ── Provider calls ────────────────────────────────────────────

class TestGenerationClient:
    def test_joins_text_blocks(self):
        generator, messages = _client_returning(blocks=[
            SimpleNamespace(type="text", text="Part one. "),
            SimpleNamespace(type="tool_use", text="ignored"),
            SimpleNamespace(type="text", text="Part two."),
        ])
        result = asyncio.run(generator.generate_content([{"role": "user", "content": "hi"}], "system"))
        assert result == "Part one. Part two."
        assert messages.kwargs["model"] == "test-model"
        assert messages.kwargs["system"] == "system"

    def test_empty_response(self):
        generator, _ = _client_returning(blocks=[SimpleNamespace(type="text", text="  ")])
        with pytest.raises(GenerationUnavailable):
            asyncio.run(generator.generate_content([{"role": "user", "content": "hi"}], "system"))

    def test_provider_error(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        generator, _ = _client_returning(error=anthropic.APIConnectionError(request=request))
        with pytest.raises(GenerationUnavailable) as exc:
            asyncio.run(generator.summarize("Some text"))
        assert exc.value.message == "AI service failed to generate a response."

    def test_generate_quiz_parses_output(self):
        payload = json.dumps([_question(i) for i in range(2)])
        generator, messages = _client_returning(blocks=[SimpleNamespace(type="text", text=payload)])
        quiz = asyncio.run(generator.generate_quiz("Some text", num_questions=2))
        assert len(quiz) == 2
        assert "exactly 2 questions" in messages.kwargs["messages"][0]["content"]

    def test_create_without_api_key(self, monkeypatch):
        from app.core.config import settings
        from app.services.ai_service import create_generation_client

        monkeypatch.setattr(settings, "anthropic_api_key", "")
        with pytest.raises(ValueError):
            create_generation_client()
