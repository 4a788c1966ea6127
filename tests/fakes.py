"""Fake calendar, Keychain and HTTP collaborators for the unit tests."""

from __future__ import annotations

import json

from quickevent.eventkit_access import AccessOutcome, AccessResult, AuthorizationStatus, CalendarAccess
from quickevent.keychain import ERR_SEC_ITEM_NOT_FOUND, ERR_SEC_SUCCESS, KeychainBackend


class FakeCalendarAccess(CalendarAccess):
    def __init__(self, status=AuthorizationStatus.AUTHORIZED, result=None, events=None, query_error=None):
        self.status = status
        self.result = result or AccessResult(AccessOutcome.GRANTED)
        self.events = list(events or [])
        self.query_error = query_error
        self.requests = 0
        self.queries = []

    def authorization_status(self):
        return self.status

    def request_access(self):
        self.requests += 1
        return self.result

    def events_between(self, start, end):
        self.queries.append((start, end))
        if self.query_error is not None:
            raise self.query_error
        # EventKit matches on overlap, so hand back everything and let the caller filter
        return list(self.events)


class MemoryKeychainBackend(KeychainBackend):
    """In-memory generic-password table. ``fail_with`` forces a status on every call."""

    def __init__(self, fail_with=None, add_status=None):
        self.items = {}
        self.fail_with = fail_with
        self.add_status = add_status
        self.calls = []

    def add(self, service, data):
        self.calls.append("add")
        if self.fail_with is not None:
            return self.fail_with
        if self.add_status is not None:
            return self.add_status
        self.items[service] = data
        return ERR_SEC_SUCCESS

    def find(self, service):
        self.calls.append("find")
        if self.fail_with is not None:
            return self.fail_with, None
        if service not in self.items:
            return ERR_SEC_ITEM_NOT_FOUND, None
        return ERR_SEC_SUCCESS, self.items[service]

    def update(self, service, data):
        self.calls.append("update")
        if self.fail_with is not None:
            return self.fail_with
        if service not in self.items:
            return ERR_SEC_ITEM_NOT_FOUND
        self.items[service] = data
        return ERR_SEC_SUCCESS

    def delete(self, service):
        self.calls.append("delete")
        if self.fail_with is not None:
            return self.fail_with
        if self.items.pop(service, None) is None:
            return ERR_SEC_ITEM_NOT_FOUND
        return ERR_SEC_SUCCESS


class FakeResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text

    def json(self):
        return json.loads(self.text)


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def chat_body(content):
    return json.dumps({"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]})
