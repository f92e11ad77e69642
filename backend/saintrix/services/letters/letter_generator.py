"""
Dispute Letter Generator

Drafts FCRA dispute letters through an OpenAI-compatible chat completion API
(OpenRouter by default). The model is a black box: prompt in, letter text out.
"""
import asyncio
from typing import Optional
import logging
import os

import requests
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

LLM_API_KEY = os.getenv("LLM_API_KEY", "")
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "https://openrouter.ai/api/v1")
LLM_MODEL = os.getenv("LLM_MODEL", "deepseek-chat")

SYSTEM_PROMPT = "You are a legal assistant for a credit repair SaaS."
MAX_TOKENS = 800
TEMPERATURE = 0.7
REQUEST_TIMEOUT = 60


class LetterRequest(BaseModel):
    """Inputs for one dispute letter."""
    model_config = ConfigDict(extra="forbid")

    client_name: str = Field(..., min_length=1)
    item_name: str = Field(..., min_length=1, description="Disputed tradeline or item")
    bureau: str = Field(..., min_length=1, description="Equifax, Experian or TransUnion")
    violation_type: str = Field(..., min_length=1)
    evidence: Optional[str] = None

    @field_validator("client_name", "item_name", "bureau", "violation_type")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


def build_prompt(request: LetterRequest) -> str:
    lines = [
        "You are a legal assistant for a credit repair SaaS. Write a unique, legally compliant "
        "FCRA dispute letter for the following:",
        "",
        f"Client: {request.client_name}",
        f"Bureau: {request.bureau}",
        f"Item: {request.item_name}",
        f"Violation: {request.violation_type}",
    ]
    if request.evidence:
        lines.append(f"Evidence: {request.evidence}")
    lines += [
        "",
        "Tone: Knowledgeable, human, and professional. Include FCRA citations and make the "
        "letter fingerprint-unique.",
    ]
    return "\n".join(lines)


class DisputeLetterGenerator:
    """
    Chat-completion client for dispute letters.

    Usage:
        generator = DisputeLetterGenerator()
        letter = generator.generate(LetterRequest(...))
    """

    def __init__(
        self,
        api_key: str = LLM_API_KEY,
        base_url: str = LLM_BASE_URL,
        model: str = LLM_MODEL,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.session = session or requests.Session()

    def generate(self, request: LetterRequest) -> str:
        if not self.api_key:
            raise ExternalServiceError("llm", "LLM_API_KEY not set")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(request)},
            ],
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": "SAINTRIX Credit AI Agent",
        }
        try:
            response = self.session.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=headers,
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Letter generation failed for {request.bureau} / {request.item_name}: {e}")
            raise ExternalServiceError("llm", str(e)) from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ExternalServiceError("llm", f"unexpected response shape: {e}") from e

        logger.info(f"Generated {request.bureau} letter for {request.client_name} ({len(content or '')} chars)")
        return content or ""

    async def generate_async(self, request: LetterRequest) -> str:
        """Async wrapper; runs the blocking HTTP call in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.generate, request)
