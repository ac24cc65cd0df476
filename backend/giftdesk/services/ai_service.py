# Overview: AI Assist; holiday greeting drafts and gift ideas from a generative text model.

"""
AI Assist

Single-shot prompts to Gemini through its OpenAI-compatible endpoint. Failures
never reach the caller: they are logged and replaced by a fixed apology text
the user can read in place of the draft.
"""
from __future__ import annotations

import logging
from typing import Callable

from openai import OpenAI

from ..records import Client


logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-3-flash-preview"

GREETING_FALLBACK = "감사 인사를 생성하는 중 오류가 발생했습니다. 직접 입력해 주세요."
SUGGESTION_FALLBACK = "선물 추천을 불러올 수 없습니다."


def greeting_prompt(name: str, company: str, position: str, holiday: str) -> str:
    return (
        f"거래처 담당자에게 보낼 {holiday} 감사 인사말을 작성해줘.\n"
        f"수신자 정보: {company} {position} {name}님.\n"
        "비즈니스적으로 예의 바르면서도 너무 딱딱하지 않은 한국어 톤앤매너로 작성해줘.\n"
        "결과는 JSON 형식이 아닌 일반 텍스트로 바로 사용할 수 있게 줘."
    )


def suggestion_prompt(category: str, holiday: str) -> str:
    return (
        f"비즈니스 거래처({category} 등급)를 위한 {holiday} 선물 아이템 5가지를 추천해줘.\n"
        "각 아이템별로 대략적인 가격대와 추천 이유를 포함해줘."
    )


class GiftAssistant:
    """
    Wraps a chat-completions client.

    client_factory is called on first use so a missing API key only shows
    up as a logged failure when someone actually asks for a draft.
    """

    def __init__(self, client_factory: Callable[[], object], model: str = DEFAULT_MODEL):
        self._client_factory = client_factory
        self._client = None
        self.model = model

    def _get_client(self):
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def generate(self, prompt: str) -> str:
        """Return the model's text; an empty completion comes back as ""."""
        resp = self._get_client().chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
        )
        if not resp.choices:
            return ""
        return resp.choices[0].message.content or ""

    def greeting(self, client: Client, holiday: str) -> str:
        prompt = greeting_prompt(client.name, client.company, client.position, holiday)
        try:
            return self.generate(prompt)
        except Exception:
            logger.exception("AI greeting generation failed for client %s", client.id)
            return GREETING_FALLBACK

    def suggest_gifts(self, category: str, holiday: str) -> str:
        try:
            return self.generate(suggestion_prompt(category, holiday))
        except Exception:
            logger.exception("AI gift suggestion failed for %s / %s", category, holiday)
            return SUGGESTION_FALLBACK


def create_assistant(app) -> GiftAssistant:
    """Build the assistant from GEMINI_* config; AI_CLIENT overrides the client."""
    injected = app.config.get("AI_CLIENT")
    if injected is not None:
        factory = lambda: injected
    else:
        api_key = app.config.get("GEMINI_API_KEY") or ""
        base_url = app.config.get("GEMINI_BASE_URL")

        def factory():
            return OpenAI(api_key=api_key, base_url=base_url)

    return GiftAssistant(factory, model=app.config.get("GEMINI_MODEL") or DEFAULT_MODEL)
