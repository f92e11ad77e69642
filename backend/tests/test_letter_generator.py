"""
Tests for the Dispute Letter Generator.
"""
import asyncio
from unittest.mock import MagicMock

import pytest
import requests

from saintrix.services.exceptions import ExternalServiceError
from saintrix.services.letters import DisputeLetterGenerator, LetterRequest, build_prompt


def make_request(**overrides):
    values = dict(
        client_name="Jane Client",
        item_name="Capital One ****1234",
        bureau="TransUnion",
        violation_type="Inaccurate balance",
    )
    values.update(overrides)
    return LetterRequest(**values)


def make_session(content="Dear TransUnion, ..."):
    session = MagicMock()
    session.post.return_value.json.return_value = {"choices": [{"message": {"content": content}}]}
    return session


class TestLetterRequest:

    def test_blank_required_field_rejected(self):
        with pytest.raises(ValueError):
            make_request(bureau="  ")

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            make_request(tone="angry")


class TestPrompt:

    def test_prompt_includes_fields(self):
        prompt = build_prompt(make_request())
        for expected in ("Client: Jane Client", "Bureau: TransUnion", "Item: Capital One ****1234",
                         "Violation: Inaccurate balance", "FCRA"):
            assert expected in prompt
        assert "Evidence:" not in prompt

    def test_prompt_includes_evidence_when_given(self):
        prompt = build_prompt(make_request(evidence="Paid in full 2024-01"))
        assert "Evidence: Paid in full 2024-01" in prompt


class TestGenerate:

    def test_posts_chat_completion(self):
        session = make_session("Dear TransUnion")
        generator = DisputeLetterGenerator("key-1", "https://llm.example.com/v1/", "deepseek-chat", session)

        letter = generator.generate(make_request())

        assert letter == "Dear TransUnion"
        url = session.post.call_args[0][0]
        kwargs = session.post.call_args[1]
        assert url == "https://llm.example.com/v1/chat/completions"
        assert kwargs["json"]["model"] == "deepseek-chat"
        assert kwargs["json"]["max_tokens"] == 800
        assert kwargs["json"]["temperature"] == 0.7
        assert kwargs["json"]["messages"][0]["role"] == "system"
        assert kwargs["headers"]["Authorization"] == "Bearer key-1"

    def test_empty_content_returns_empty_string(self):
        generator = DisputeLetterGenerator("key-1", session=make_session(None))
        assert generator.generate(make_request()) == ""

    def test_transport_error_wrapped(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("down")
        generator = DisputeLetterGenerator("key-1", session=session)

        with pytest.raises(ExternalServiceError):
            generator.generate(make_request())

    def test_http_error_wrapped(self):
        session = make_session()
        session.post.return_value.raise_for_status.side_effect = requests.HTTPError("429 Too Many Requests")
        generator = DisputeLetterGenerator("key-1", session=session)

        with pytest.raises(ExternalServiceError):
            generator.generate(make_request())

    def test_unexpected_shape_wrapped(self):
        session = MagicMock()
        session.post.return_value.json.return_value = {"error": "quota"}
        generator = DisputeLetterGenerator("key-1", session=session)

        with pytest.raises(ExternalServiceError):
            generator.generate(make_request())

    def test_missing_api_key(self):
        session = make_session()
        with pytest.raises(ExternalServiceError):
            DisputeLetterGenerator("", session=session).generate(make_request())
        session.post.assert_not_called()

    def test_generate_async(self):
        generator = DisputeLetterGenerator("key-1", session=make_session("async letter"))
        assert asyncio.run(generator.generate_async(make_request())) == "async letter"
