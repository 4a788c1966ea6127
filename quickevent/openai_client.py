# openai_client.py
"""
Chat-completion client for the "Ask OpenAI" menu action.

One POST per call, no retry. Every outcome, including failures, comes back
as a display string; nothing is raised to the menu callbacks.
"""
import errno
import logging
import re
import socket
from typing import Optional

import requests

from . import config
from .keychain import ItemNotFoundError, KeychainError, KeychainStore
from .state import AppState

SYSTEM_PROMPT = "You are a helpful assistant."
MAX_TOKENS = 500
TEMPERATURE = 0.7
TEST_PROMPT = "Hello, please provide a short response to test the API connection."

NOT_CONFIGURED_MESSAGE = "API key not configured. Please set up your OpenAI API key in settings."
OFFLINE_MESSAGE = "Not connected to the internet. Please check your connection."
TIMEOUT_MESSAGE = "Request timed out. Please try again."
HOST_UNREACHABLE_MESSAGE = (
    "Cannot connect to OpenAI servers. Check your internet connection or try again later."
)

API_KEY_PATTERN = re.compile(r"^sk-[a-zA-Z0-9]{32,}$")

_OFFLINE_ERRNOS = {errno.ENETUNREACH, errno.ENETDOWN}
_UNREACHABLE_ERRNOS = {errno.ECONNREFUSED, errno.EHOSTUNREACH, errno.EHOSTDOWN}


def _exception_chain(exc: BaseException):
    """Walk the nested causes requests/urllib3 wrap around socket errors."""
    seen = set()
    stack = [exc]
    while stack:
        cur = stack.pop()
        if cur is None or id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur
        stack.append(cur.__cause__)
        stack.append(cur.__context__)
        reason = getattr(cur, "reason", None)
        if isinstance(reason, BaseException):
            stack.append(reason)
        stack.extend(a for a in getattr(cur, "args", ()) if isinstance(a, BaseException))


def describe_transport_error(exc: requests.RequestException) -> str:
    if isinstance(exc, requests.exceptions.Timeout):
        return TIMEOUT_MESSAGE
    for cur in _exception_chain(exc):
        if isinstance(cur, socket.timeout):
            return TIMEOUT_MESSAGE
        if isinstance(cur, socket.gaierror) or type(cur).__name__ == "NameResolutionError":
            return HOST_UNREACHABLE_MESSAGE
        if isinstance(cur, OSError) and cur.errno in _OFFLINE_ERRNOS:
            return OFFLINE_MESSAGE
        if isinstance(cur, OSError) and cur.errno in _UNREACHABLE_ERRNOS:
            return HOST_UNREACHABLE_MESSAGE
    return f"Network error: {exc}"


def validate_api_key(key: str) -> bool:
    """Rough shape check; OpenAI keys start with "sk-"."""
    return bool(API_KEY_PATTERN.match(key or ""))


def extract_content(payload) -> Optional[str]:
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None


class OpenAIClient:
    def __init__(self, store: KeychainStore, state: AppState,
                 session: Optional[requests.Session] = None,
                 endpoint: str = config.OPENAI_ENDPOINT,
                 model: str = config.OPENAI_MODEL,
                 timeout: float = config.OPENAI_TIMEOUT):
        self.store = store
        self.state = state
        self.session = session or requests.Session()
        self.endpoint = endpoint
        self.model = model
        self.timeout = timeout

    # ---- credential management ----
    def load_api_key(self) -> None:
        try:
            key = self.store.retrieve()
        except KeychainError as e:
            logging.error("Failed to load API key: %s", e)
            self.state.update(api_key_set=False, api_error=f"Failed to load API key: {e}")
            return
        self.state.update(api_key_set=key is not None, api_error=None)

    def save_api_key(self, key: str) -> bool:
        try:
            self.store.save(key)
        except KeychainError as e:
            logging.error("Failed to save API key: %s", e)
            self.state.update(api_error=f"Failed to save API key: {e}")
            return False
        self.state.update(api_key_set=True, api_error=None)
        return True

    def clear_api_key(self) -> bool:
        try:
            self.store.delete()
        except KeychainError as e:
            logging.error("Failed to clear API key: %s", e)
            self.state.update(api_error=f"Failed to clear API key: {e}")
            return False
        self.state.update(api_key_set=False, api_error=None)
        return True

    # ---- requests ----
    def build_payload(self, text: str) -> dict:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": text},
            ],
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
        }

    def send_message(self, text: str) -> str:
        try:
            api_key = self.store.require()
        except ItemNotFoundError:
            logging.error(NOT_CONFIGURED_MESSAGE)
            return NOT_CONFIGURED_MESSAGE
        except KeychainError as e:
            logging.error("Failed to load API key: %s", e)
            return f"Failed to load API key: {e}"

        logging.info("Sending request to OpenAI (%d chars)", len(text))
        logging.debug("OpenAI request text: %s", text)
        self.state.update(is_loading=True)
        try:
            resp = self.session.post(
                self.endpoint,
                json=self.build_payload(text),
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logging.error("Network error: %s", e)
            return describe_transport_error(e)
        finally:
            self.state.update(is_loading=False)

        body = resp.text
        if resp.status_code != 200:
            err = f"API Error ({resp.status_code}): {body}"
            logging.error(err)
            return err

        try:
            content = extract_content(resp.json())
        except ValueError:
            content = None
        if content is None:
            err = f"Error parsing response: {body}"
            logging.error(err)
            return err

        logging.info("OpenAI response content: %s", content)
        self.state.update(last_response=content)
        return content

    def test_api(self) -> str:
        return self.send_message(TEST_PROMPT)
