from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class ReferenceEntity(BaseModel):
    """Upstream-owned lookup entry resolvable by ID or by name."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str

    def matches_id(self, value: str) -> bool:
        return self.id == value

    def matches_name(self, value: str) -> bool:
        return self.name.lower() == value.lower()

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump()


class Severity(ReferenceEntity):
    """Incident severity, e.g. "Critical" or "Minor"."""

    description: Optional[str] = None
    rank: Optional[int] = None


class IncidentType(ReferenceEntity):
    """Incident type, e.g. "Default" or "Security"."""

    description: Optional[str] = None
    rank: Optional[int] = None


class IncidentStatus(ReferenceEntity):
    """Incident status with its lifecycle category (triage, live, closed, ...)."""

    category: Optional[str] = None


class IncidentRole(ReferenceEntity):
    """Role that can be assigned on an incident, e.g. "Incident Lead"."""

    description: Optional[str] = None
    role_type: Optional[str] = None
    shortform: Optional[str] = None


class IncidentTimestamp(ReferenceEntity):
    """Timestamp definition, e.g. "Impact started"."""

    rank: Optional[int] = None


@dataclass(frozen=True)
class ReferenceSnapshot:
    """
    The full set of lookup tables at a point in time.

    A snapshot is never modified after construction; the cache replaces it
    as a unit on every successful refresh.
    """

    severities: Tuple[Severity, ...] = ()
    incident_types: Tuple[IncidentType, ...] = ()
    statuses: Tuple[IncidentStatus, ...] = ()
    fetched_at: Optional[datetime] = field(default=None)

    @property
    def is_empty(self) -> bool:
        return not (self.severities or self.incident_types or self.statuses)
