"""Shared fixtures for unit tests."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import httpx
import pytest

from dataarts_provisioner.config import load
from dataarts_provisioner.core import DataArtsProvider, ServiceClient
from dataarts_provisioner.engine.handlers import EngineContext

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from dataarts_provisioner.config.schema import Config

_DATAARTS_ENV_VARS = (
    "DATAARTS_REGION",
    "DATAARTS_PROJECT_ID",
    "DATAARTS_ENDPOINT",
    "DATAARTS_TOKEN",
    "DATAARTS_TIMEOUT",
    "DATAARTS_PROJECTS",
    "DATAARTS_LOG",
)

ENDPOINT = "https://dayu.cn-north-4.example.com/"
PROJECT_ID = "proj-1"
RULES_URL = f"{ENDPOINT}v1/{PROJECT_ID}/security/data-classification/rule"


@pytest.fixture(autouse=True)
def _clean_dataarts_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove DATAARTS_* env vars so unit tests don't leak host config."""
    for var in _DATAARTS_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., Config]:
    """Factory fixture: write YAML + optional .env, return loaded Config."""

    def _make(yaml_str: str, *, dotenv: str | None = None) -> Config:
        (tmp_path / "config.yaml").write_text(yaml_str)
        if dotenv is not None:
            (tmp_path / ".env").write_text(dotenv)
        return load(tmp_path / "config.yaml")

    return _make


class FakeRuleApi:
    """In-memory stand-in for the rule endpoints, served via ``httpx.MockTransport``.

    Every request is recorded in ``requests``. Set ``next_responses`` to
    queue canned ``httpx.Response`` objects that bypass the fake store.
    """

    rules_url = RULES_URL

    def __init__(self) -> None:
        self.rules: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.next_responses: list[httpx.Response] = []
        self._counter = 0

    def bodies(self, method: str) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.method == method]

    def methods(self) -> list[str]:
        return [r.method for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.next_responses:
            return self.next_responses.pop(0)

        path = request.url.path
        prefix = f"/v1/{PROJECT_ID}/security/data-classification/rule"
        rule_id = path[len(prefix) + 1 :] if path.startswith(prefix + "/") else ""

        if request.method == "POST" and not rule_id:
            self._counter += 1
            new_id = f"rule-{self._counter}"
            body = json.loads(request.content)
            self.rules[new_id] = {
                **body,
                "secrecy_level": "Sensitive",
                "secrecy_level_num": 3,
                "enable": True,
                "created_at": 1700000000000,
                "created_by": "alice",
                "updated_at": 1700000000000,
                "updated_by": "alice",
            }
            return httpx.Response(200, json={"uuid": new_id})

        if rule_id not in self.rules:
            return httpx.Response(
                400, json={"error_code": "DLS.4106", "error_msg": "Rule is not exist."}
            )

        if request.method == "GET":
            return httpx.Response(200, json={"uuid": rule_id, **self.rules[rule_id]})
        if request.method == "PUT":
            body = json.loads(request.content)
            server_fields = {
                k: self.rules[rule_id][k]
                for k in (
                    "secrecy_level",
                    "secrecy_level_num",
                    "enable",
                    "created_at",
                    "created_by",
                    "updated_by",
                )
            }
            self.rules[rule_id] = {**body, **server_fields, "updated_at": 1700000060000}
            return httpx.Response(200, json={})
        if request.method == "DELETE":
            del self.rules[rule_id]
            return httpx.Response(204)
        return httpx.Response(405)


@pytest.fixture
def api() -> FakeRuleApi:
    return FakeRuleApi()


@pytest.fixture
def client(api: FakeRuleApi) -> ServiceClient:
    return ServiceClient.create(
        ENDPOINT,
        PROJECT_ID,
        region="cn-north-4",
        token="secret-token",
        transport=httpx.MockTransport(api),
    )


@pytest.fixture
def ctx(client: ServiceClient) -> EngineContext:
    return EngineContext(provider=DataArtsProvider.from_client(client), project_id=PROJECT_ID)
