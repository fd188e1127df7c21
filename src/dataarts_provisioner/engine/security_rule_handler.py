"""Security data recognition rule handler implementing CRUD via the DataArts REST API."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import pydantic

from dataarts_provisioner.core.errors import (
    FieldAssignmentError,
    MissingIdentifierError,
    NotFoundError,
    RequestError,
)
from dataarts_provisioner.engine.handlers import ResourceHandler, parse_composite_id
from dataarts_provisioner.resources.security_rule import RULE_TYPES, RuleRequestBody, RuleResponse

if TYPE_CHECKING:
    from dataarts_provisioner.core.client import ServiceClient
    from dataarts_provisioner.core.state import ResourceInstance
    from dataarts_provisioner.engine.handlers import EngineContext
    from dataarts_provisioner.resources.security_rule import SecurityRuleResource

logger = logging.getLogger(__name__)

_RULE = "DataArts Security data recognition rule"
_CREATE_PATH = "v1/{project_id}/security/data-classification/rule"
_RULE_PATH = "v1/{project_id}/security/data-classification/rule/{id}"

# Returned as HTTP 400 when the rule id is unknown.
RULE_NOT_FOUND_CODE = "DLS.4106"


def parse_rule_error(exc: RequestError) -> RequestError:
    """Turn a ``DLS.4106`` bad request into ``NotFoundError``; return anything else unchanged."""
    if exc.status_code != 400 or not exc.body:
        return exc
    try:
        payload = json.loads(exc.body)
    except ValueError:
        return exc
    if isinstance(payload, dict) and payload.get("error_code") == RULE_NOT_FOUND_CODE:
        return NotFoundError(str(exc), status_code=exc.status_code, body=exc.body)
    return exc


def _wrap(verb: str, exc: RequestError) -> RequestError:
    return type(exc)(f"error {verb} {_RULE}: {exc}", status_code=exc.status_code, body=exc.body)


def _workspace_header(workspace_id: str) -> dict[str, str]:
    return {"workspace": workspace_id}


class SecurityRuleHandler(ResourceHandler["SecurityRuleResource"]):
    """CRUD handler for security data recognition rules."""

    def _client(self, ctx: EngineContext, region: str | None) -> tuple[ServiceClient, str]:
        resolved = ctx.provider.get_region(region)
        return ctx.provider.client(resolved), resolved

    def validate(self, ctx: EngineContext, desired: SecurityRuleResource) -> list[str]:
        _ = ctx
        errors: list[str] = []
        if desired.rule_type not in RULE_TYPES:
            errors.append(
                f"Resource '{desired.address}': rule_type must be one of "
                f"{', '.join(RULE_TYPES)}, got '{desired.rule_type}'"
            )
        if desired.rule_type == "BUILTIN" and not desired.builtin_rule_id:
            errors.append(f"Resource '{desired.address}': BUILTIN rules require builtin_rule_id")
        return errors

    def get_rule(
        self, ctx: EngineContext, *, rule_id: str, workspace_id: str, region: str | None = None
    ) -> RuleResponse:
        """Fetch and decode one rule.

        Raises:
            NotFoundError: The rule does not exist (HTTP 404 or ``DLS.4106``).
            RequestError: Any other failed call.
            FieldAssignmentError: The response does not fit the rule schema.
        """
        client, _ = self._client(ctx, region)
        url = client.url(_RULE_PATH, id=rule_id)
        try:
            resp = client.request("GET", url, headers=_workspace_header(workspace_id))
        except RequestError as exc:
            raise _wrap("retrieving", parse_rule_error(exc)) from exc

        try:
            return RuleResponse.model_validate(resp.json())
        except ValueError as exc:
            raise FieldAssignmentError(_field_errors(exc)) from exc

    def _read_attrs(
        self,
        ctx: EngineContext,
        *,
        rule_id: str,
        workspace_id: str,
        region: str | None,
        secrecy_level_id: str = "",
    ) -> dict[str, Any]:
        resolved = ctx.provider.get_region(region)
        rule = self.get_rule(ctx, rule_id=rule_id, workspace_id=workspace_id, region=resolved)
        return rule.to_attributes(
            rule_id=rule_id,
            workspace_id=workspace_id,
            region=resolved,
            secrecy_level_id=secrecy_level_id,
        )

    def create(self, ctx: EngineContext, desired: SecurityRuleResource) -> dict[str, Any]:
        client, region = self._client(ctx, desired.region)
        body = RuleRequestBody.from_resource(desired).to_json()
        try:
            resp = client.request(
                "POST",
                client.url(_CREATE_PATH),
                json=body,
                headers=_workspace_header(desired.workspace_id),
            )
        except RequestError as exc:
            raise _wrap("creating", exc) from exc

        rule_id = _extract_uuid(resp)
        if not rule_id:
            raise MissingIdentifierError(f"error creating {_RULE}: unable to find the rule ID")
        logger.info("Created rule %s (%s)", desired.name, rule_id)

        return self._read_attrs(
            ctx,
            rule_id=rule_id,
            workspace_id=desired.workspace_id,
            region=region,
            secrecy_level_id=desired.secrecy_level_id,
        )

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        """Read a rule back. Returns None if it no longer exists."""
        attrs = prior.attributes
        try:
            return self._read_attrs(
                ctx,
                rule_id=attrs["id"],
                workspace_id=attrs["workspace_id"],
                region=attrs.get("region"),
                secrecy_level_id=attrs.get("secrecy_level_id", ""),
            )
        except NotFoundError:
            logger.debug("Rule %s not found", attrs["id"])
            return None

    def update(
        self, ctx: EngineContext, desired: SecurityRuleResource, prior: ResourceInstance
    ) -> dict[str, Any]:
        """Send the full rule body, then read back computed fields."""
        rule_id = prior.attributes["id"]
        client, region = self._client(ctx, desired.region or prior.attributes.get("region"))
        fallback_method = prior.attributes.get("method")
        body = RuleRequestBody.from_resource(desired, method=fallback_method).to_json()
        try:
            client.request(
                "PUT",
                client.url(_RULE_PATH, id=rule_id),
                json=body,
                headers=_workspace_header(desired.workspace_id),
            )
        except RequestError as exc:
            raise _wrap("updating", exc) from exc

        return self._read_attrs(
            ctx,
            rule_id=rule_id,
            workspace_id=desired.workspace_id,
            region=region,
            secrecy_level_id=desired.secrecy_level_id,
        )

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        attrs = prior.attributes
        client, _ = self._client(ctx, attrs.get("region"))
        try:
            client.request(
                "DELETE",
                client.url(_RULE_PATH, id=attrs["id"]),
                headers=_workspace_header(attrs["workspace_id"]),
            )
        except RequestError as exc:
            raise _wrap("deleting", exc) from exc
        logger.info("Deleted rule %s (%s)", prior.address, attrs["id"])

    def import_state(self, ctx: EngineContext, import_id: str) -> dict[str, Any]:
        """Import ids have the form ``<workspace_id>/<rule_id>``."""
        _ = ctx
        return parse_composite_id(import_id, ["workspace_id", "id"])


def _extract_uuid(resp: Any) -> str:
    try:
        payload = resp.json()
    except ValueError:
        return ""
    if not isinstance(payload, dict):
        return ""
    rule_id = payload.get("uuid")
    return rule_id if isinstance(rule_id, str) else ""


def _field_errors(exc: ValueError) -> list[str]:
    if isinstance(exc, pydantic.ValidationError):
        return [
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()
        ]
    return [f"<root>: {exc}"]
