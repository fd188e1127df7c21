"""Tests for declarative field markers and introspection helpers."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel

from dataarts_provisioner.resources.markers import ForceNew, collect_force_new_fields
from dataarts_provisioner.resources.security_rule import SecurityRuleResource


class TestCollectForceNew:
    def test_marked_fields(self) -> None:
        class M(BaseModel):
            a: Annotated[str, ForceNew()] = ""
            b: Annotated[str | None, ForceNew()] = None
            c: str = ""

        assert collect_force_new_fields(M) == frozenset({"a", "b"})

    def test_accepts_instances(self) -> None:
        class M(BaseModel):
            a: Annotated[str, ForceNew()] = ""

        assert collect_force_new_fields(M()) == frozenset({"a"})

    def test_no_markers(self) -> None:
        class M(BaseModel):
            name: str = ""

        assert collect_force_new_fields(M) == frozenset()

    def test_security_rule_immutable_fields(self) -> None:
        assert collect_force_new_fields(SecurityRuleResource) == frozenset(
            {"name", "workspace_id", "rule_type", "builtin_rule_id", "region"}
        )
