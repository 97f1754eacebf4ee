from typing import Any, Dict, List, Optional

import httpx

from incidentio_mcp.core.config import Settings
from incidentio_mcp.core.exceptions import NotFoundError, UpstreamError
from incidentio_mcp.core.logging import get_logger

logger = get_logger(__name__)

# Largest page the incidents endpoint accepts; used when scanning for a reference.
LOOKUP_PAGE_SIZE = 250


class IncidentIoClient:
    """
    Client for the incident.io HTTP API.

    Wraps the two version roots (``/v1`` for reference data, ``/v2`` for
    incidents, users and roles) behind one bearer credential. There is no
    retry policy: every failure surfaces immediately as ``NotFoundError``
    (HTTP 404) or ``UpstreamError`` (any other status, or a transport fault).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.incident.io",
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the client.

        Args:
            api_key: incident.io API key, sent as a bearer token
            base_url: API host without version segment
            timeout: Request timeout in seconds, or None for no timeout
            transport: Optional httpx transport, used by tests to fake upstream
        """
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        root = base_url.rstrip("/")
        self.v1 = httpx.AsyncClient(
            base_url=f"{root}/v1", headers=headers, timeout=timeout, transport=transport
        )
        self.v2 = httpx.AsyncClient(
            base_url=f"{root}/v2", headers=headers, timeout=timeout, transport=transport
        )
        logger.info(f"incident.io client initialized for {root}")

    @classmethod
    def from_settings(cls, settings: Settings) -> "IncidentIoClient":
        return cls(
            api_key=settings.API_KEY,
            base_url=settings.INCIDENT_IO_BASE_URL,
            timeout=settings.REQUEST_TIMEOUT,
        )

    async def close(self) -> None:
        await self.v1.aclose()
        await self.v2.aclose()

    async def request(
        self,
        http: httpx.AsyncClient,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        resource_type: str = "resource",
        resource_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Make a request against one of the version roots.

        Args:
            http: ``self.v1`` or ``self.v2``
            method: HTTP method
            path: Path relative to the version root
            params: Query parameters
            json: JSON body
            resource_type: Entity name used in not-found errors
            resource_id: Entity identifier used in not-found errors

        Returns:
            Parsed JSON body (an empty dict for empty responses)

        Raises:
            NotFoundError: If upstream answers 404
            UpstreamError: For any other error status or transport failure
        """
        try:
            response = await http.request(method, path, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            payload = self._error_payload(e.response)
            if status_code == 404:
                logger.info(f"{resource_type} not found upstream: {method} {path}")
                raise NotFoundError(
                    resource_type=resource_type,
                    resource_id=resource_id or path,
                    context={"details": payload},
                )
            logger.error(f"incident.io returned {status_code} for {method} {path}: {payload}")
            raise UpstreamError(
                detail=f"incident.io API returned {status_code}",
                upstream_status=status_code,
                payload=payload,
            )
        except httpx.RequestError as e:
            logger.error(f"Request error calling incident.io {method} {path}: {str(e)}")
            raise UpstreamError(
                detail=f"Failed to reach incident.io: {str(e) or type(e).__name__}",
                original_exception=e,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                detail="incident.io returned a non-JSON response",
                upstream_status=response.status_code,
                payload={"message": response.text[:500]},
                original_exception=e,
            )

    @staticmethod
    def _error_payload(response: httpx.Response) -> Any:
        """Return the upstream error body verbatim, decoded when it is JSON."""
        try:
            return response.json()
        except ValueError:
            return {"message": response.text or response.reason_phrase}

    # Reference data (v1)

    async def list_severities(self) -> List[Dict[str, Any]]:
        data = await self.request(self.v1, "GET", "/severities")
        return data.get("severities", [])

    async def list_incident_types(self) -> List[Dict[str, Any]]:
        data = await self.request(self.v1, "GET", "/incident_types")
        return data.get("incident_types", [])

    async def get_incident_type(self, incident_type_id: str) -> Dict[str, Any]:
        data = await self.request(
            self.v1,
            "GET",
            f"/incident_types/{incident_type_id}",
            resource_type="Incident type",
            resource_id=incident_type_id,
        )
        return data.get("incident_type", data)

    async def list_incident_statuses(self) -> List[Dict[str, Any]]:
        data = await self.request(self.v1, "GET", "/incident_statuses")
        return data.get("incident_statuses", [])

    # Incidents (v2)

    async def list_incidents(
        self,
        page_size: int = 25,
        after: Optional[str] = None,
        filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Fetch one page of incidents; returns the raw body with ``pagination_meta``."""
        params: Dict[str, Any] = {"page_size": page_size}
        if after:
            params["after"] = after
        if filters:
            params.update(filters)
        return await self.request(self.v2, "GET", "/incidents", params=params)

    async def find_incident_by_reference(self, reference: str) -> Dict[str, Any]:
        """
        Resolve a human-readable reference (e.g. "INC-123") to the upstream incident.

        Pages through the incident list until the reference matches. Incidents
        are mutable and unbounded, so nothing is cached between calls.

        Raises:
            NotFoundError: If no incident carries the reference
        """
        wanted = reference.strip().lower()
        after: Optional[str] = None
        while True:
            page = await self.list_incidents(page_size=LOOKUP_PAGE_SIZE, after=after)
            for incident in page.get("incidents", []):
                if str(incident.get("reference", "")).lower() == wanted:
                    return incident
            after = (page.get("pagination_meta") or {}).get("after")
            if not after or not page.get("incidents"):
                break

        raise NotFoundError(
            resource_type="Incident",
            resource_id=reference,
            detail=f"No incident found with reference {reference}",
        )

    async def create_incident(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = await self.request(self.v2, "POST", "/incidents", json=payload)
        return data.get("incident", data)

    async def edit_incident(self, incident_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = await self.request(
            self.v2,
            "POST",
            f"/incidents/{incident_id}/actions/edit",
            json=payload,
            resource_type="Incident",
            resource_id=incident_id,
        )
        return data.get("incident", data)

    async def list_incident_updates(
        self,
        incident_id: Optional[str] = None,
        page_size: int = 25,
        after: Optional[str] = None
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page_size": page_size}
        if incident_id:
            params["incident_id"] = incident_id
        if after:
            params["after"] = after
        return await self.request(self.v2, "GET", "/incident_updates", params=params)

    async def list_incident_timestamps(self) -> List[Dict[str, Any]]:
        data = await self.request(self.v2, "GET", "/incident_timestamps")
        return data.get("incident_timestamps", [])

    async def list_custom_fields(self) -> List[Dict[str, Any]]:
        data = await self.request(self.v2, "GET", "/custom_fields")
        return data.get("custom_fields", [])

    async def list_custom_field_options(self, custom_field_id: str) -> List[Dict[str, Any]]:
        data = await self.request(
            self.v1,
            "GET",
            "/custom_field_options",
            params={"custom_field_id": custom_field_id, "page_size": LOOKUP_PAGE_SIZE},
        )
        return data.get("custom_field_options", [])

    # Users and roles (v2)

    async def list_users(
        self,
        page_size: int = 25,
        after: Optional[str] = None,
        email: Optional[str] = None
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page_size": page_size}
        if after:
            params["after"] = after
        if email:
            params["email"] = email
        return await self.request(self.v2, "GET", "/users", params=params)

    async def get_user(self, user_id: str) -> Dict[str, Any]:
        data = await self.request(
            self.v2, "GET", f"/users/{user_id}", resource_type="User", resource_id=user_id
        )
        return data.get("user", data)

    async def list_incident_roles(self) -> List[Dict[str, Any]]:
        data = await self.request(self.v2, "GET", "/incident_roles")
        return data.get("incident_roles", [])
