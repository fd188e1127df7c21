"""Security data recognition rule: desired-state model and wire schemas."""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Self

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from dataarts_provisioner.core.timestamps import format_millis_rfc3339
from dataarts_provisioner.resources.base import Resource
from dataarts_provisioner.resources.markers import ForceNew

RULE_TYPES = ("BUILTIN", "CUSTOM")


class SecurityRuleResource(Resource):
    """A DataArts Studio security data recognition rule.

    Rules classify columns by their content, name or comment and tag matches
    with a secrecy level. ``workspace_id`` scopes the rule and is sent as the
    ``workspace`` header, never in the body.

    ``name`` is the rule name on the server and may be any string; the
    address uses ``label`` instead.

    ``method`` and ``region`` are optional and computed: when left unset the
    value reported by the server is kept without showing a diff.
    """

    resource_type: ClassVar[str] = "dataarts_security_rule"

    name: Annotated[str, ForceNew()] = Field(min_length=1, max_length=255)
    description: str = ""
    workspace_id: Annotated[str, ForceNew()] = Field(min_length=1)
    rule_type: Annotated[str, ForceNew()] = Field(min_length=1)
    secrecy_level_id: str = Field(min_length=1)
    builtin_rule_id: Annotated[str, ForceNew()] = ""
    content_expression: str = ""
    column_expression: str = ""
    comment_expression: str = ""
    category_id: str = ""
    method: str | None = None
    region: Annotated[str | None, ForceNew()] = None


def _omit_empty(value: str | None) -> str | None:
    """Empty strings are "unset" and must not reach the wire."""
    return value or None


class RuleRequestBody(BaseModel):
    """Create/update payload.

    Required fields are always sent; every optional field is ``None`` when
    unset and dropped on serialization. The local ``comment_expression`` is
    named ``commit_expression`` on the wire.
    """

    model_config = ConfigDict(extra="forbid")

    rule_type: str
    secrecy_level_id: str
    name: str
    method: str | None = None
    content_expression: str | None = None
    column_expression: str | None = None
    comment_expression: str | None = Field(default=None, serialization_alias="commit_expression")
    builtin_rule_id: str | None = None
    description: str | None = None
    category_id: str | None = None

    @classmethod
    def from_resource(cls, rule: SecurityRuleResource, *, method: str | None = None) -> Self:
        """Project the full mutable+immutable field set of *rule*.

        *method* is the fallback for a rule that leaves ``method`` to the
        server (the value currently stored in state).
        """
        return cls(
            rule_type=rule.rule_type,
            secrecy_level_id=rule.secrecy_level_id,
            name=rule.name,
            method=_omit_empty(rule.method or method),
            content_expression=_omit_empty(rule.content_expression),
            column_expression=_omit_empty(rule.column_expression),
            comment_expression=_omit_empty(rule.comment_expression),
            builtin_rule_id=_omit_empty(rule.builtin_rule_id),
            description=_omit_empty(rule.description),
            category_id=_omit_empty(rule.category_id),
        )

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def _none_to_empty(v: Any) -> Any:
    return "" if v is None else v


_Str = Annotated[str, BeforeValidator(_none_to_empty)]


def _epoch_millis(v: Any) -> Any:
    if v is None:
        return ""
    if isinstance(v, bool) or not isinstance(v, int | float):
        raise ValueError("expected epoch milliseconds")
    return format_millis_rfc3339(v)


_Timestamp = Annotated[str, BeforeValidator(_epoch_millis)]


class RuleResponse(BaseModel):
    """Rule object returned by ``GET .../rule/{id}``.

    Absent or ``null`` strings decode to ``""``. Timestamps arrive as epoch
    milliseconds and are stored as RFC3339 strings.
    """

    model_config = ConfigDict(extra="ignore")

    rule_type: _Str = ""
    name: _Str = ""
    method: _Str = ""
    content_expression: _Str = ""
    column_expression: _Str = ""
    comment_expression: _Str = Field(default="", validation_alias="commit_expression")
    builtin_rule_id: _Str = ""
    category_id: _Str = ""
    description: _Str = ""
    secrecy_level_id: _Str = ""
    secrecy_level: _Str = ""
    secrecy_level_num: int | None = None
    enable: bool | None = None
    created_at: _Timestamp = ""
    created_by: _Str = ""
    updated_at: _Timestamp = ""
    updated_by: _Str = ""

    def to_attributes(
        self,
        *,
        rule_id: str,
        workspace_id: str,
        region: str,
        secrecy_level_id: str = "",
    ) -> dict[str, Any]:
        """Stored attributes, keyed like ``SecurityRuleResource`` plus computed fields.

        Responses may omit ``secrecy_level_id``; *secrecy_level_id* is the value
        to keep in that case.
        """
        return {
            "id": rule_id,
            "region": region,
            "workspace_id": workspace_id,
            "name": self.name,
            "rule_type": self.rule_type,
            "method": self.method,
            "content_expression": self.content_expression,
            "column_expression": self.column_expression,
            "comment_expression": self.comment_expression,
            "builtin_rule_id": self.builtin_rule_id,
            "category_id": self.category_id,
            "description": self.description,
            "secrecy_level_id": self.secrecy_level_id or secrecy_level_id,
            "secrecy_level": self.secrecy_level,
            "secrecy_level_num": self.secrecy_level_num,
            "enable": self.enable,
            "created_at": self.created_at,
            "created_by": self.created_by,
            "updated_at": self.updated_at,
            "updated_by": self.updated_by,
        }
