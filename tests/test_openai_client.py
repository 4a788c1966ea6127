"""Tests for quickevent/openai_client.py OpenAIClient."""

import errno
import socket
import unittest

import requests

from quickevent.keychain import KeychainStore
from quickevent.openai_client import (
    HOST_UNREACHABLE_MESSAGE,
    MAX_TOKENS,
    NOT_CONFIGURED_MESSAGE,
    OFFLINE_MESSAGE,
    TEMPERATURE,
    TIMEOUT_MESSAGE,
    OpenAIClient,
    describe_transport_error,
    validate_api_key,
)
from quickevent.state import AppState
from tests.fakes import FakeResponse, FakeSession, MemoryKeychainBackend, chat_body

API_KEY = "sk-" + "a" * 40


def make_client(session, key=API_KEY, backend=None):
    store = KeychainStore("com.quickevent.test", backend=backend or MemoryKeychainBackend())
    if key is not None:
        store.save(key)
    state = AppState()
    client = OpenAIClient(store, state, session=session, endpoint="https://example.test/v1/chat/completions")
    return client, state


class TestSendMessage(unittest.TestCase):
    def test_no_credential_makes_no_call(self):
        session = FakeSession(FakeResponse(200, chat_body("unused")))
        client, _ = make_client(session, key=None)
        self.assertEqual(client.send_message("hi"), NOT_CONFIGURED_MESSAGE)
        self.assertEqual(session.calls, [])

    def test_keychain_failure_makes_no_call(self):
        session = FakeSession(FakeResponse(200, chat_body("unused")))
        client, _ = make_client(session, key=None, backend=MemoryKeychainBackend(fail_with=-25308))
        out = client.send_message("hi")
        self.assertTrue(out.startswith("Failed to load API key"))
        self.assertEqual(session.calls, [])

    def test_success_returns_content_and_publishes(self):
        session = FakeSession(FakeResponse(200, chat_body("Hello there")))
        client, state = make_client(session)
        self.assertEqual(client.send_message("hi"), "Hello there")
        self.assertEqual(state.last_response, "Hello there")
        self.assertFalse(state.is_loading)

    def test_request_shape(self):
        session = FakeSession(FakeResponse(200, chat_body("ok")))
        client, _ = make_client(session)
        client.send_message("what is up")
        url, kwargs = session.calls[0]
        self.assertEqual(url, "https://example.test/v1/chat/completions")
        self.assertEqual(kwargs["headers"]["Authorization"], f"Bearer {API_KEY}")
        self.assertEqual(kwargs["timeout"], 30.0)
        body = kwargs["json"]
        self.assertEqual(body["max_tokens"], MAX_TOKENS)
        self.assertEqual(body["temperature"], TEMPERATURE)
        self.assertEqual([m["role"] for m in body["messages"]], ["system", "user"])
        self.assertEqual(body["messages"][1]["content"], "what is up")

    def test_non_200_embeds_status_and_body(self):
        session = FakeSession(FakeResponse(429, '{"error":"rate limited"}'))
        client, state = make_client(session)
        out = client.send_message("hi")
        self.assertIn("429", out)
        self.assertIn('{"error":"rate limited"}', out)
        self.assertIsNone(state.last_response)

    def test_unparseable_body(self):
        session = FakeSession(FakeResponse(200, "<html>oops</html>"))
        client, _ = make_client(session)
        out = client.send_message("hi")
        self.assertTrue(out.startswith("Error parsing response"))
        self.assertIn("<html>oops</html>", out)

    def test_wrong_shape_body(self):
        session = FakeSession(FakeResponse(200, '{"choices": []}'))
        client, _ = make_client(session)
        self.assertIn('{"choices": []}', client.send_message("hi"))

    def test_timeout(self):
        client, state = make_client(FakeSession(error=requests.exceptions.ReadTimeout("read timed out")))
        self.assertEqual(client.send_message("hi"), TIMEOUT_MESSAGE)
        self.assertFalse(state.is_loading)

    def test_other_transport_error(self):
        client, _ = make_client(FakeSession(error=requests.exceptions.TooManyRedirects("loop")))
        out = client.send_message("hi")
        self.assertTrue(out.startswith("Network error:"))
        self.assertIn("loop", out)

    def test_test_api_sends_one_request(self):
        session = FakeSession(FakeResponse(200, chat_body("pong")))
        client, _ = make_client(session)
        self.assertEqual(client.test_api(), "pong")
        self.assertEqual(len(session.calls), 1)


class TestDescribeTransportError(unittest.TestCase):
    def test_offline(self):
        exc = requests.exceptions.ConnectionError(OSError(errno.ENETUNREACH, "Network is unreachable"))
        self.assertEqual(describe_transport_error(exc), OFFLINE_MESSAGE)

    def test_dns_failure(self):
        exc = requests.exceptions.ConnectionError(socket.gaierror(8, "nodename nor servname provided"))
        self.assertEqual(describe_transport_error(exc), HOST_UNREACHABLE_MESSAGE)

    def test_refused(self):
        exc = requests.exceptions.ConnectionError(ConnectionRefusedError(errno.ECONNREFUSED, "refused"))
        self.assertEqual(describe_transport_error(exc), HOST_UNREACHABLE_MESSAGE)

    def test_connect_timeout(self):
        self.assertEqual(describe_transport_error(requests.exceptions.ConnectTimeout("slow")), TIMEOUT_MESSAGE)

    def test_nested_cause(self):
        inner = OSError(errno.ENETDOWN, "Network is down")
        try:
            try:
                raise inner
            except OSError as e:
                raise requests.exceptions.ConnectionError("wrapped") from e
        except requests.exceptions.ConnectionError as outer:
            self.assertEqual(describe_transport_error(outer), OFFLINE_MESSAGE)


class TestApiKeyManagement(unittest.TestCase):
    def test_save_and_clear_publish_flag(self):
        client, state = make_client(FakeSession(), key=None)
        client.load_api_key()
        self.assertFalse(state.api_key_set)
        self.assertTrue(client.save_api_key(API_KEY))
        self.assertTrue(state.api_key_set)
        self.assertTrue(client.clear_api_key())
        self.assertFalse(state.api_key_set)
        self.assertIsNone(state.api_error)

    def test_save_failure_sets_error(self):
        client, state = make_client(FakeSession(), key=None, backend=MemoryKeychainBackend(fail_with=-34018))
        self.assertFalse(client.save_api_key(API_KEY))
        self.assertTrue(state.api_error.startswith("Failed to save API key"))

    def test_validate_api_key(self):
        self.assertTrue(validate_api_key(API_KEY))
        self.assertFalse(validate_api_key("sk-short"))
        self.assertFalse(validate_api_key("pk-" + "a" * 40))
        self.assertFalse(validate_api_key(""))


if __name__ == "__main__":
    unittest.main()
