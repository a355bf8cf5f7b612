"""lfsgate object storage data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ObjectMeta:
    """Externally visible metadata of a stored object.

    Attributes:
        oid: Content digest without the storage namespace prefix.
        size: Size of the object content in bytes.
    """

    oid: str
    size: int

    def to_dict(self) -> dict[str, str | int]:
        """Convert metadata to dictionary for JSON serialization."""
        return {"oid": self.oid, "size": self.size}


@dataclass(frozen=True)
class ObjectRecord:
    """Audit sidecar written next to an object on first successful upload.

    Attributes:
        oid: Namespace-prefixed identity.
        size: Size of the object content in bytes.
        created_by: Username of the uploader, None for anonymous uploads.
        created_at: Timestamp when the object was first published.
    """

    oid: str
    size: int
    created_by: str | None
    created_at: datetime

    def to_dict(self) -> dict[str, str | int | None]:
        """Convert record to dictionary for JSON serialization."""
        return {
            "oid": self.oid,
            "size": self.size,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, str | int | None]) -> ObjectRecord:
        """Create record from dictionary."""
        created_by_raw = data.get("created_by")
        return cls(
            oid=str(data["oid"]),
            size=int(data.get("size") or 0),
            created_by=str(created_by_raw) if created_by_raw else None,
            created_at=datetime.fromisoformat(str(data["created_at"])),
        )
