from typing import Any, Literal

from pydantic import model_validator

from app.schemas.base import CamelModel


class ChatTurn(CamelModel):
    """One prior conversational turn.

    Also accepts the legacy ``{"role": "model", "parts": [{"text": ...}]}``
    shape sent by older clients.
    """
    role: Literal["user", "assistant"]
    text: str

    @model_validator(mode="before")
    @classmethod
    def normalize_legacy_shape(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("role") == "model":
            data["role"] = "assistant"
        if "text" not in data and isinstance(data.get("parts"), list):
            texts = []
            for part in data["parts"]:
                if not isinstance(part, dict):
                    continue
                text = part.get("text", "")
                if not isinstance(text, str):
                    raise ValueError("parts[].text must be a string")
                texts.append(text)
            data["text"] = "".join(texts)
        return data


class ChatRequest(CamelModel):
    question: str | None = None
    history: list[ChatTurn] | None = None


class ChatResponse(CamelModel):
    answer: str


class SaveChatRequest(CamelModel):
    history: list[ChatTurn] | None = None
