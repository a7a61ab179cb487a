"""Shared fixtures for the SharePoint PDF test suite.

No test touches the network: Graph traffic goes through FakeSession, which
hands back real requests.Response objects from a script.
"""

import json

import pytest
import requests

from sharepoint_pdf.data import DbInitializer, create_db_engine
from sharepoint_pdf.graph_client import GraphClient


def make_response(status_code, json_body=None, content=b"", headers=None):
    """Build a requests.Response without a network round trip."""
    response = requests.Response()
    response.status_code = status_code
    if json_body is not None:
        content = json.dumps(json_body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    response._content = content
    response.headers.update(headers or {})
    response.encoding = "utf-8"
    return response


class FakeSession:
    """Records requests and replays scripted responses in order."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def request(self, method, url, headers=None, params=None, data=None, json=None):
        self.calls.append({
            "method": method,
            "url": url,
            "headers": dict(headers or {}),
            "params": params,
            "data": data,
            "json": json,
        })
        if not self.responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        pass


class FakeTokenProvider:
    def __init__(self, token="test-token"):
        self.token = token
        self.calls = 0

    def get_access_token(self):
        self.calls += 1
        return self.token


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def graph(session):
    return GraphClient(session, FakeTokenProvider())


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "Data" / "GraphLib.db")


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(str(tmp_path / "graphlib.db"))
    DbInitializer(engine).ensure_created_and_seed_defaults()
    yield engine
    engine.dispose()
