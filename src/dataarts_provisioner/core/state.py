"""On-disk record of the rules this tool manages."""

from __future__ import annotations

import contextlib
import hashlib
import json
import logging
import os
import tempfile
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(UTC)


def _sha256(obj: Any) -> str:
    encoded = json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def compute_attributes_hash(attrs: Mapping[str, Any]) -> str:
    """Order-independent hash of stored attributes."""
    return _sha256(dict(attrs))


class ResourceInstance(BaseModel):
    """One managed object.

    ``attributes`` is the last server read, including the server id.
    ``label`` is the local half of ``address``.
    """

    address: str
    resource_type: str
    label: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    attributes_hash: str = ""
    dependencies: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def set_attributes(self, attrs: dict[str, Any]) -> bool:
        """Store a fresh read. Returns True if anything changed."""
        new_hash = compute_attributes_hash(attrs)
        if new_hash == self.attributes_hash and attrs == self.attributes:
            return False
        self.attributes = attrs
        self.attributes_hash = new_hash
        self.updated_at = _now()
        return True


class State(BaseModel):
    """State for one DataArts project.

    ``serial`` grows with every write. ``lineage`` is fixed for the life of
    the file so a saved plan can only be applied to the state it came from.
    """

    version: int = 1
    project_id: str
    serial: int = 0
    lineage: str = Field(default_factory=lambda: str(uuid.uuid4()))
    resources: dict[str, ResourceInstance] = Field(default_factory=dict)

    def track(
        self,
        *,
        address: str,
        resource_type: str,
        label: str,
        attributes: dict[str, Any],
        dependencies: Iterable[str] = (),
    ) -> ResourceInstance:
        inst = ResourceInstance(
            address=address,
            resource_type=resource_type,
            label=label,
            attributes=attributes,
            attributes_hash=compute_attributes_hash(attributes),
            dependencies=list(dependencies),
        )
        self.resources[address] = inst
        return inst

    def forget(self, address: str) -> None:
        self.resources.pop(address, None)

    def digest(self) -> str:
        """Content digest used to detect stale plans. Timestamps don't count."""
        return _sha256(
            {
                "version": self.version,
                "project_id": self.project_id,
                "lineage": self.lineage,
                "serial": self.serial,
                "resources": [
                    [addr, inst.resource_type, inst.label, inst.attributes_hash,
                     sorted(inst.dependencies)]
                    for addr, inst in sorted(self.resources.items())
                ],
            }
        )

    def commit(self, path: Path) -> None:
        """Bump ``serial`` and write."""
        self.serial += 1
        self.save(path)

    def save(self, path: Path) -> None:
        """Write atomically, keeping the previous file as ``<path>.backup``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists():
            Path(f"{path}.backup").write_bytes(path.read_bytes())

        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(self.model_dump_json(indent=2) + "\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        finally:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp)
        logger.debug("Wrote state serial=%d to %s", self.serial, path)

    @classmethod
    def load(cls, path: Path) -> State:
        return cls.model_validate_json(path.read_text(encoding="utf-8"))

    @classmethod
    def load_or_create(cls, path: Path, project_id: str) -> State:
        if path.exists():
            logger.debug("Reading state from %s", path)
            return cls.load(path)
        logger.debug("No state at %s, starting empty for project %s", path, project_id)
        return cls(project_id=project_id)
