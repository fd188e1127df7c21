"""Tests for the SecurityRuleHandler against a fake DataArts API."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from dataarts_provisioner.core.errors import (
    FieldAssignmentError,
    MissingIdentifierError,
    NotFoundError,
    RequestError,
)
from dataarts_provisioner.core.state import ResourceInstance
from dataarts_provisioner.engine.errors import ImportIdError
from dataarts_provisioner.engine.security_rule_handler import (
    SecurityRuleHandler,
    parse_rule_error,
)
from dataarts_provisioner.resources.security_rule import SecurityRuleResource

if TYPE_CHECKING:
    from conftest import FakeRuleApi

    from dataarts_provisioner.engine.handlers import EngineContext

_NOT_FOUND_BODY = {"error_code": "DLS.4106", "error_msg": "Rule is not exist."}


@pytest.fixture
def handler() -> SecurityRuleHandler:
    return SecurityRuleHandler()


def _rule(**overrides: object) -> SecurityRuleResource:
    fields: dict[str, object] = {
        "label": "phone_number",
        "name": "Phone number",
        "workspace_id": "ws-1",
        "rule_type": "CUSTOM",
        "secrecy_level_id": "lvl-1",
    }
    fields.update(overrides)
    return SecurityRuleResource(**fields)


def _instance(attrs: dict[str, object]) -> ResourceInstance:
    return ResourceInstance(
        address="dataarts_security_rule.phone_number",
        resource_type="dataarts_security_rule",
        label="phone_number",
        attributes=attrs,
    )


def _rule_response(**overrides: object) -> dict[str, object]:
    body: dict[str, object] = {
        "uuid": "rule-9",
        "name": "Phone number",
        "rule_type": "CUSTOM",
        "secrecy_level_id": "lvl-1",
        "secrecy_level": "Sensitive",
        "secrecy_level_num": 3,
        "enable": True,
        "created_at": 1700000000000,
        "updated_at": 1700000000000,
    }
    body.update(overrides)
    return body


class TestCreate:
    def test_round_trip(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        attrs = handler.create(ctx, _rule(description="mobile numbers"))

        assert attrs["id"] == "rule-1"
        assert attrs["name"] == "Phone number"
        assert attrs["rule_type"] == "CUSTOM"
        assert attrs["secrecy_level_id"] == "lvl-1"
        assert attrs["secrecy_level"] == "Sensitive"
        assert attrs["enable"] is True
        assert attrs["created_at"] == "2023-11-14T22:13:20Z"
        assert attrs["workspace_id"] == "ws-1"
        assert attrs["region"] == "cn-north-4"
        assert api.methods() == ["POST", "GET"]

    def test_posts_to_collection_with_workspace_header(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        handler.create(ctx, _rule())

        post = api.requests[0]
        assert str(post.url) == api.rules_url
        assert post.headers["workspace"] == "ws-1"
        assert post.headers["X-Auth-Token"] == "secret-token"
        assert str(api.requests[1].url) == f"{api.rules_url}/rule-1"
        assert api.requests[1].headers["workspace"] == "ws-1"

    def test_empty_optional_fields_are_omitted(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        handler.create(ctx, _rule())

        assert api.bodies("POST") == [
            {"rule_type": "CUSTOM", "secrecy_level_id": "lvl-1", "name": "Phone number"}
        ]

    def test_comment_expression_sent_as_commit_expression(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        attrs = handler.create(ctx, _rule(comment_expression="phone", method="REGULAR"))

        body = api.bodies("POST")[0]
        assert body["commit_expression"] == "phone"
        assert "comment_expression" not in body
        assert body["method"] == "REGULAR"
        assert attrs["comment_expression"] == "phone"

    def test_workspace_never_in_body(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        handler.create(ctx, _rule())

        assert "workspace_id" not in api.bodies("POST")[0]

    def test_missing_uuid_fails_without_read(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        api.next_responses.append(httpx.Response(200, json={"id": "rule-1"}))

        with pytest.raises(MissingIdentifierError, match="unable to find the rule ID"):
            handler.create(ctx, _rule())

        assert api.methods() == ["POST"]

    def test_non_json_response_is_missing_identifier(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        api.next_responses.append(httpx.Response(200, text="ok"))

        with pytest.raises(MissingIdentifierError):
            handler.create(ctx, _rule())

    def test_http_error_names_verb_and_resource(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        api.next_responses.append(
            httpx.Response(400, json={"error_code": "DLS.1000", "error_msg": "bad"})
        )

        with pytest.raises(RequestError) as exc_info:
            handler.create(ctx, _rule())

        assert "error creating DataArts Security data recognition rule" in str(exc_info.value)
        assert exc_info.value.status_code == 400
        assert not isinstance(exc_info.value, NotFoundError)


class TestRead:
    def test_reads_attributes(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        api.next_responses.append(
            httpx.Response(200, json=_rule_response(commit_expression="tel", updated_by="bob"))
        )

        attrs = handler.read(
            ctx, _instance({"id": "rule-9", "workspace_id": "ws-1", "region": "cn-north-4"})
        )

        assert attrs is not None
        assert attrs["id"] == "rule-9"
        assert attrs["comment_expression"] == "tel"
        assert attrs["updated_by"] == "bob"
        assert attrs["secrecy_level_num"] == 3
        assert attrs["updated_at"] == "2023-11-14T22:13:20Z"
        assert api.requests[0].headers["workspace"] == "ws-1"

    def test_null_fields_decode_to_empty(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        api.next_responses.append(
            httpx.Response(200, json=_rule_response(description=None, created_at=None))
        )

        attrs = handler.read(ctx, _instance({"id": "rule-9", "workspace_id": "ws-1"}))

        assert attrs is not None
        assert attrs["description"] == ""
        assert attrs["created_at"] == ""

    def test_keeps_secrecy_level_id_when_response_omits_it(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        body = _rule_response()
        del body["secrecy_level_id"]
        api.next_responses.append(httpx.Response(200, json=body))

        attrs = handler.read(
            ctx, _instance({"id": "rule-9", "workspace_id": "ws-1", "secrecy_level_id": "lvl-1"})
        )

        assert attrs is not None
        assert attrs["secrecy_level_id"] == "lvl-1"

    def test_rule_not_exist_code_returns_none(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        api.next_responses.append(httpx.Response(400, json=_NOT_FOUND_BODY))

        assert handler.read(ctx, _instance({"id": "rule-9", "workspace_id": "ws-1"})) is None

    def test_http_404_returns_none(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        api.next_responses.append(httpx.Response(404, text="not found"))

        assert handler.read(ctx, _instance({"id": "rule-9", "workspace_id": "ws-1"})) is None

    def test_get_rule_raises_not_found(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        api.next_responses.append(httpx.Response(400, json=_NOT_FOUND_BODY))

        with pytest.raises(NotFoundError, match="error retrieving"):
            handler.get_rule(ctx, rule_id="rule-9", workspace_id="ws-1")

    @pytest.mark.parametrize(
        ("status", "body"),
        [
            (400, {"error_code": "DLS.4107", "error_msg": "Rule is not exist."}),
            (500, _NOT_FOUND_BODY),
            (403, {"error_code": "DLS.4106", "error_msg": "Rule is not exist."}),
        ],
    )
    def test_other_errors_stay_fatal(
        self,
        ctx: EngineContext,
        handler: SecurityRuleHandler,
        api: FakeRuleApi,
        status: int,
        body: dict[str, str],
    ) -> None:
        api.next_responses.append(httpx.Response(status, json=body))

        with pytest.raises(RequestError) as exc_info:
            handler.read(ctx, _instance({"id": "rule-9", "workspace_id": "ws-1"}))

        assert not isinstance(exc_info.value, NotFoundError)
        assert exc_info.value.status_code == status

    def test_field_errors_are_collected(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        api.next_responses.append(
            httpx.Response(
                200,
                json=_rule_response(name=["not", "a", "string"], created_at="yesterday"),
            )
        )

        with pytest.raises(FieldAssignmentError) as exc_info:
            handler.read(ctx, _instance({"id": "rule-9", "workspace_id": "ws-1"}))

        fields = [e.split(":", 1)[0] for e in exc_info.value.errors]
        assert fields == ["name", "created_at"]
        assert "Failed to read response fields" in str(exc_info.value)


class TestUpdate:
    def test_sends_full_projection(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        prior_attrs = handler.create(
            ctx, _rule(content_expression="^1\\d{10}$", category_id="cat-1", method="REGULAR")
        )

        desired = _rule(
            content_expression="^1\\d{10}$",
            category_id="cat-1",
            method="REGULAR",
            description="changed",
        )
        attrs = handler.update(ctx, desired, _instance(prior_attrs))

        assert api.methods() == ["POST", "GET", "PUT", "GET"]
        put = api.requests[2]
        assert str(put.url) == f"{api.rules_url}/rule-1"
        assert put.headers["workspace"] == "ws-1"
        assert api.bodies("PUT") == [
            {
                "rule_type": "CUSTOM",
                "secrecy_level_id": "lvl-1",
                "name": "Phone number",
                "method": "REGULAR",
                "content_expression": "^1\\d{10}$",
                "description": "changed",
                "category_id": "cat-1",
            }
        ]
        assert attrs["description"] == "changed"
        assert attrs["updated_at"] == "2023-11-14T22:14:20Z"

    def test_unset_method_falls_back_to_state(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        prior_attrs = handler.create(ctx, _rule(method="REGULAR"))

        handler.update(ctx, _rule(secrecy_level_id="lvl-2"), _instance(prior_attrs))

        put_body = api.bodies("PUT")[0]
        assert put_body["method"] == "REGULAR"
        assert put_body["secrecy_level_id"] == "lvl-2"

    def test_error_is_wrapped(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        api.next_responses.append(httpx.Response(500, text="boom"))

        with pytest.raises(RequestError, match="error updating"):
            handler.update(ctx, _rule(), _instance({"id": "rule-9", "workspace_id": "ws-1"}))


class TestDelete:
    def test_deletes_rule(
        self, ctx: EngineContext, handler: SecurityRuleHandler, api: FakeRuleApi
    ) -> None:
        attrs = handler.create(ctx, _rule())

        handler.delete(ctx, _instance(attrs))

        delete = api.requests[-1]
        assert delete.method == "DELETE"
        assert str(delete.url) == f"{api.rules_url}/rule-1"
        assert delete.headers["workspace"] == "ws-1"
        assert api.rules == {}

    def test_already_gone_is_fatal(
        self, ctx: EngineContext, handler: SecurityRuleHandler
    ) -> None:
        with pytest.raises(RequestError, match="error deleting") as exc_info:
            handler.delete(ctx, _instance({"id": "rule-404", "workspace_id": "ws-1"}))

        assert not isinstance(exc_info.value, NotFoundError)


class TestValidate:
    def test_custom_rule_is_valid(self, ctx: EngineContext, handler: SecurityRuleHandler) -> None:
        assert handler.validate(ctx, _rule()) == []

    def test_builtin_requires_builtin_rule_id(
        self, ctx: EngineContext, handler: SecurityRuleHandler
    ) -> None:
        errors = handler.validate(ctx, _rule(rule_type="BUILTIN"))

        assert len(errors) == 1
        assert "builtin_rule_id" in errors[0]

    def test_unknown_rule_type(self, ctx: EngineContext, handler: SecurityRuleHandler) -> None:
        errors = handler.validate(ctx, _rule(rule_type="REGEX"))

        assert len(errors) == 1
        assert "rule_type must be one of BUILTIN, CUSTOM" in errors[0]


class TestImport:
    def test_splits_composite_id(self, ctx: EngineContext, handler: SecurityRuleHandler) -> None:
        assert handler.import_state(ctx, "ws-1/rule-9") == {
            "workspace_id": "ws-1",
            "id": "rule-9",
        }

    @pytest.mark.parametrize("import_id", ["rule-9", "ws-1/", "/rule-9", "a/b/c"])
    def test_rejects_malformed_ids(
        self, ctx: EngineContext, handler: SecurityRuleHandler, import_id: str
    ) -> None:
        with pytest.raises(ImportIdError, match="<workspace_id>/<id>"):
            handler.import_state(ctx, import_id)


class TestParseRuleError:
    def test_remaps_rule_not_exist(self) -> None:
        exc = RequestError(
            "GET x returned HTTP 400", status_code=400, body='{"error_code":"DLS.4106"}'
        )

        remapped = parse_rule_error(exc)

        assert isinstance(remapped, NotFoundError)
        assert remapped.status_code == 400

    def test_keeps_non_json_body(self) -> None:
        exc = RequestError("GET x returned HTTP 400", status_code=400, body="<html>")

        assert parse_rule_error(exc) is exc

    def test_keeps_transport_errors(self) -> None:
        exc = RequestError("GET x failed: timeout")

        assert parse_rule_error(exc) is exc
