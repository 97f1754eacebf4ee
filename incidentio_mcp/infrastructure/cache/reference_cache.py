import asyncio
from datetime import datetime, timezone
from typing import Iterable, List, Optional, TypeVar

from incidentio_mcp.adapters.client import IncidentIoClient
from incidentio_mcp.core.logging import get_logger
from incidentio_mcp.domain.models.reference import (
    IncidentStatus,
    IncidentType,
    ReferenceEntity,
    ReferenceSnapshot,
    Severity,
)

logger = get_logger(__name__)

E = TypeVar("E", bound=ReferenceEntity)


def find_entry(entries: Iterable[E], name_or_id: Optional[str]) -> Optional[E]:
    """
    Look up a reference entry by exact ID, then by case-insensitive name.

    Args:
        entries: Entries to search
        name_or_id: ID or human-readable name

    Returns:
        The matching entry, or None when nothing matches
    """
    if name_or_id is None:
        return None
    value = str(name_or_id).strip()
    if not value:
        return None

    entries = list(entries)
    for entry in entries:
        if entry.matches_id(value):
            return entry
    for entry in entries:
        if entry.matches_name(value):
            return entry
    return None


class ReferenceDataCache:
    """
    In-memory cache of incident.io reference data.

    Holds severities, incident types and statuses as one immutable
    ``ReferenceSnapshot``. A refresh builds a complete new snapshot and swaps
    it in with a single assignment, so readers on the event loop see either
    the old tables or the new ones, never a mix. Refresh failures keep the
    previous snapshot.
    """

    def __init__(self, client: IncidentIoClient, refresh_interval: int = 3600):
        """
        Initialize the cache.

        Args:
            client: Upstream client used to fetch the lookup tables
            refresh_interval: Seconds between periodic refreshes
        """
        self.client = client
        self.refresh_interval = refresh_interval
        self._snapshot = ReferenceSnapshot()
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def snapshot(self) -> ReferenceSnapshot:
        return self._snapshot

    async def refresh(self) -> bool:
        """
        Fetch all three lookup tables concurrently and replace the snapshot.

        Returns:
            True if the snapshot was replaced, False if the refresh failed and
            the previous snapshot was kept
        """
        try:
            raw_severities, raw_types, raw_statuses = await asyncio.gather(
                self.client.list_severities(),
                self.client.list_incident_types(),
                self.client.list_incident_statuses(),
            )
            snapshot = ReferenceSnapshot(
                severities=tuple(Severity.model_validate(s) for s in raw_severities),
                incident_types=tuple(IncidentType.model_validate(t) for t in raw_types),
                statuses=tuple(IncidentStatus.model_validate(s) for s in raw_statuses),
                fetched_at=datetime.now(timezone.utc),
            )
        except Exception as e:
            logger.error(
                f"Error refreshing reference data cache, keeping previous snapshot: {str(e)}",
                exc_info=True,
            )
            return False

        self._snapshot = snapshot
        logger.info(
            "Cached reference data",
            extra={
                "data": {
                    "severities": [s.name for s in snapshot.severities],
                    "incident_types": [t.name for t in snapshot.incident_types],
                    "statuses": [s.name for s in snapshot.statuses],
                }
            },
        )
        return True

    async def start(self) -> None:
        """Populate the cache, then schedule the periodic refresh."""
        await self.refresh()
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(self._refresh_loop())
            logger.debug(f"Scheduled reference data refresh every {self.refresh_interval}s")

    async def stop(self) -> None:
        """Cancel the periodic refresh."""
        task, self._refresh_task = self._refresh_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval)
            await self.refresh()

    # Lookups

    def severities(self) -> List[Severity]:
        return list(self._snapshot.severities)

    def incident_types(self) -> List[IncidentType]:
        return list(self._snapshot.incident_types)

    def statuses(self) -> List[IncidentStatus]:
        return list(self._snapshot.statuses)

    def find_severity(self, name_or_id: Optional[str]) -> Optional[Severity]:
        return find_entry(self._snapshot.severities, name_or_id)

    def find_incident_type(self, name_or_id: Optional[str]) -> Optional[IncidentType]:
        return find_entry(self._snapshot.incident_types, name_or_id)

    def find_status(self, name_or_id: Optional[str]) -> Optional[IncidentStatus]:
        return find_entry(self._snapshot.statuses, name_or_id)

    def resolve_severity_id(self, name_or_id: Optional[str]) -> Optional[str]:
        severity = self.find_severity(name_or_id)
        return severity.id if severity else None

    def resolve_incident_type_id(self, name_or_id: Optional[str]) -> Optional[str]:
        incident_type = self.find_incident_type(name_or_id)
        return incident_type.id if incident_type else None

    def resolve_status_id(self, name_or_id: Optional[str]) -> Optional[str]:
        status = self.find_status(name_or_id)
        return status.id if status else None
