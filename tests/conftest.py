"""
Pytest configuration and shared fixtures.

HTTP never leaves the process: ``FakeGraph`` answers requests through an
``httpx.MockTransport`` from canned payloads keyed by method and path.
"""

import os
from typing import Any, Dict, List, Tuple
from urllib.parse import parse_qsl

import httpx
import pytest

from meta_ads_cli.config import get_settings
from meta_ads_cli.services.graph_client import GraphClient


class FakeGraph:
    """Routes ``(method, path)`` to queued responses; the last response repeats."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Any]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, *responses: Any) -> "FakeGraph":
        self.routes.setdefault((method, path), []).extend(responses)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        # /v22.0/act_1/campaigns -> act_1/campaigns
        path = request.url.path.split("/", 2)[2]
        queue = self.routes.get((request.method, path))
        if not queue:
            return httpx.Response(
                400,
                json={"error": {"message": f"Unexpected {request.method} {path}", "code": 803}},
            )
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(response):
            return response(request)
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self, method: str = None) -> List[str]:
        return [
            r.url.path.split("/", 2)[2]
            for r in self.requests
            if method is None or r.method == method
        ]

    @staticmethod
    def params(request: httpx.Request) -> Dict[str, str]:
        return dict(request.url.params)

    @staticmethod
    def form(request: httpx.Request) -> Dict[str, str]:
        return dict(parse_qsl(request.content.decode()))


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """No real environment or ~/.config leaks into a test."""
    for name in list(os.environ):
        if name.startswith("META_ADS_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("META_ADS_CONFIG_DIR", str(tmp_path / "config"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def graph():
    return FakeGraph()


@pytest.fixture
def client(graph):
    return GraphClient("test-token", account_id="act_123", transport=graph.transport)


def insight_row(**overrides) -> Dict[str, Any]:
    """A raw /insights row with string metrics, as Graph returns them."""
    row = {
        "campaign_id": "c1",
        "campaign_name": "Campaign 1",
        "impressions": "1000",
        "clicks": "50",
        "spend": "10.00",
        "reach": "800",
        "ctr": "5.0",
        "cpc": "0.2",
        "cpm": "10.0",
        "actions": [],
        "cost_per_action_type": [],
        "date_start": "2024-01-01",
        "date_stop": "2024-01-07",
    }
    row.update(overrides)
    return row
