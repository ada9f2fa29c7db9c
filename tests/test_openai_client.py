import unittest

import requests

from ecolife import openai_client as oc
from ecolife.openai_client import (
    ChatCompletionClient,
    ChatCompletionConfigError,
    ChatCompletionError,
    ChatCompletionRequest,
    ChatMessage,
    UserStats,
)


class DummyResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text
        # mimic requests.Response.elapsed
        self.elapsed = type("Elapsed", (), {"total_seconds": lambda self: 0.123})()

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


def _completion(content="Take the stairs.", usage=None):
    payload = {"choices": [{"message": {"role": "assistant", "content": content}}]}
    if usage is not None:
        payload["usage"] = usage
    return payload


class TestChatCompletionClient(unittest.TestCase):
    def setUp(self):
        self._orig_post = oc.requests.post
        self.calls = []

    def tearDown(self):
        oc.requests.post = self._orig_post

    def _fake(self, response):
        def fake_post(url, json=None, headers=None, timeout=None):
            self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
            if isinstance(response, Exception):
                raise response
            return response

        oc.requests.post = fake_post

    def _client(self, **kwargs):
        kwargs.setdefault("api_key", "sk-test")
        kwargs.setdefault("base_url", "https://llm.example/v1/")
        return ChatCompletionClient(**kwargs)

    def test_missing_key_raises_before_any_request(self):
        self._fake(DummyResponse(200, _completion()))
        client = self._client(api_key="")
        with self.assertRaises(ChatCompletionConfigError):
            client.generate_eco_tip()
        self.assertEqual(self.calls, [])

    def test_request_shape_and_defaults(self):
        self._fake(DummyResponse(200, _completion("hi")))
        client = self._client(model="gpt-3.5-turbo", temperature=0.7, max_tokens=500)

        out = client.create_chat_completion(ChatCompletionRequest(messages=[ChatMessage(role="user", content="hello")]))

        self.assertEqual(out.message, "hi")
        self.assertIsNone(out.usage)
        call = self.calls[0]
        self.assertEqual(call["url"], "https://llm.example/v1/chat/completions")
        self.assertEqual(call["headers"]["Authorization"], "Bearer sk-test")
        self.assertEqual(call["json"]["model"], "gpt-3.5-turbo")
        self.assertEqual(call["json"]["temperature"], 0.7)
        self.assertEqual(call["json"]["max_tokens"], 500)
        self.assertEqual(call["json"]["messages"], [{"role": "user", "content": "hello"}])
        self.assertEqual(call["timeout"], oc.REQUEST_TIMEOUT_SEC)

    def test_zero_temperature_is_an_override(self):
        self._fake(DummyResponse(200, _completion()))
        client = self._client(temperature=0.7)
        client.create_chat_completion(
            ChatCompletionRequest(messages=[ChatMessage(role="user", content="x")], temperature=0)
        )
        self.assertEqual(self.calls[0]["json"]["temperature"], 0)

    def test_usage_is_mapped(self):
        usage = {"prompt_tokens": 12, "completion_tokens": 30, "total_tokens": 42}
        self._fake(DummyResponse(200, _completion(usage=usage)))
        out = self._client().create_chat_completion(
            ChatCompletionRequest(messages=[ChatMessage(role="user", content="x")])
        )
        self.assertEqual(out.usage.prompt_tokens, 12)
        self.assertEqual(out.usage.completion_tokens, 30)
        self.assertEqual(out.usage.total_tokens, 42)

    def test_non_2xx_raises_with_status_and_body(self):
        self._fake(DummyResponse(401, {"error": {"message": "bad key"}}))
        with self.assertRaises(ChatCompletionError) as ctx:
            self._client().generate_eco_tip()
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(ctx.exception.body, {"error": {"message": "bad key"}})
        self.assertIsInstance(ctx.exception, RuntimeError)

    def test_non_json_error_body_is_kept_as_text(self):
        self._fake(DummyResponse(500, None, text="upstream down"))
        with self.assertRaises(ChatCompletionError) as ctx:
            self._client().generate_eco_tip()
        self.assertEqual(ctx.exception.body, "upstream down")

    def test_empty_choices_raise(self):
        self._fake(DummyResponse(200, {"choices": []}))
        with self.assertRaises(ChatCompletionError):
            self._client().generate_eco_tip()

    def test_blank_content_raises(self):
        for content in (None, "", "   \n"):
            with self.subTest(content=content):
                self._fake(DummyResponse(200, _completion(content)))
                with self.assertRaises(ChatCompletionError) as ctx:
                    self._client().generate_age_specific_tip(30)
                self.assertIn("No content", str(ctx.exception))

    def test_transport_errors_propagate(self):
        self._fake(requests.exceptions.ConnectionError("refused"))
        with self.assertRaises(requests.exceptions.ConnectionError):
            self._client().generate_eco_tip()

    def test_eco_tip_parameters(self):
        self._fake(DummyResponse(200, _completion()))
        self._client().generate_eco_tip()
        body = self.calls[0]["json"]
        self.assertEqual(body["temperature"], 0.8)
        self.assertEqual(body["max_tokens"], 200)
        self.assertEqual(body["messages"][0]["role"], "system")
        self.assertEqual(body["messages"][1]["content"], "Generate a daily eco tip for me.")

    def test_motivational_message_mentions_stats(self):
        self._fake(DummyResponse(200, _completion("Great work!")))
        out = self._client().generate_motivational_message(
            UserStats(completed_missions=5, carbon_credits=120, ranking=3)
        )
        self.assertEqual(out, "Great work!")
        body = self.calls[0]["json"]
        self.assertEqual(body["temperature"], 0.7)
        self.assertEqual(body["max_tokens"], 150)
        user_msg = body["messages"][1]["content"]
        self.assertIn("5 completed missions", user_msg)
        self.assertIn("120 carbon credits", user_msg)
        self.assertIn("ranking #3", user_msg)

    def test_question_appends_context_to_system_prompt(self):
        self._fake(DummyResponse(200, _completion("Because...")))
        self._client().answer_eco_question("Why recycle?", context="User lives in Seoul")
        body = self.calls[0]["json"]
        self.assertEqual(body["temperature"], 0.3)
        self.assertEqual(body["max_tokens"], 600)
        self.assertTrue(body["messages"][0]["content"].endswith("Context: User lives in Seoul"))
        self.assertEqual(body["messages"][1]["content"], "Why recycle?")

    def test_question_without_context(self):
        self._fake(DummyResponse(200, _completion()))
        self._client().answer_eco_question("Why recycle?")
        self.assertNotIn("Context:", self.calls[0]["json"]["messages"][0]["content"])

    def test_age_specific_tip_uses_bracket(self):
        self._fake(DummyResponse(200, _completion("  Bike to class. Saves 1kg CO2 daily.  ")))
        out = self._client().generate_age_specific_tip(16)
        self.assertEqual(out, "Bike to class. Saves 1kg CO2 daily.")
        prompt = self.calls[0]["json"]["messages"][1]["content"]
        self.assertIn("16-year-old", prompt)
        self.assertIn("Age category: teen", prompt)
        self.assertIn("school or home", prompt)


if __name__ == "__main__":
    unittest.main()
