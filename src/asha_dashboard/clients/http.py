"""Backend REST API clients.

All four collaborators share one httpx.AsyncClient pointed at the backend:

    POST  /auth/login          ASHA login
    GET   /mothers             roster
    GET   /mothers/{id}        one patient
    PATCH /mothers/{id}        partial update
    GET   /ivr/call-logs       call log, newest first
    POST  /ivr/call            place a call, respond with its outcome

Reads are retried on transport errors. Updates and calls are sent once.
"""
from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from asha_dashboard.clients.base import (
    AuthProvider,
    CallLogStore,
    IVRDispatcher,
    PatientStore,
)
from asha_dashboard.core.exceptions import (
    BackendError,
    DispatchFailure,
    InvalidCredentials,
    NotFoundError,
    UpdateFailure,
)
from asha_dashboard.core.log import get_logger, mask_phone
from asha_dashboard.core.retry import retry
from asha_dashboard.models import AshaProfile, CallLogEntry, Patient, PatientUpdate

log = get_logger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Pull a readable message out of an error response."""
    try:
        data = response.json() if response.content else {}
    except ValueError:
        data = {}
    if isinstance(data, dict):
        message = data.get("message") or data.get("detail") or data.get("error")
        if message:
            return str(message)
    return f"HTTP {response.status_code}"


def _json_body(response: httpx.Response, path: str) -> Any:
    """Decoded body of a successful response; BackendError if it is not JSON."""
    try:
        return response.json()
    except ValueError as e:
        raise BackendError(
            f"{path} returned invalid JSON",
            details={"path": path, "status_code": response.status_code},
            cause=e,
        ) from e


class BackendClient:
    """Shared HTTP session for the backend REST API.

    Attributes:
        base_url: Backend API root
        timeout: Default request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        api_token: str | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize backend client.

        Args:
            base_url: Backend API root (e.g. https://backend.example/api)
            api_token: Optional bearer token sent with every request
            timeout: HTTP request timeout
            transport: Custom transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        headers = {"Accept": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    @retry(attempts=3, base_delay=0.5, max_delay=5.0, retry_on=(httpx.TransportError,))
    async def get(self, path: str) -> httpx.Response:
        """Idempotent GET, retried on transport errors."""
        return await self._client.get(path)

    async def patch(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        return await self._client.patch(path, json=payload)

    async def post(
        self,
        path: str,
        payload: dict[str, Any],
        timeout: httpx.Timeout | float | None = None,
    ) -> httpx.Response:
        if timeout is None:
            return await self._client.post(path, json=payload)
        return await self._client.post(path, json=payload, timeout=timeout)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


class HTTPPatientStore(PatientStore):
    """Patient Record Store over the backend REST API."""

    def __init__(self, client: BackendClient):
        self._client = client

    async def get_all(self) -> list[Patient]:
        data = await self._get_json("/mothers")
        try:
            return [Patient.model_validate(item) for item in data]
        except (PydanticValidationError, TypeError) as e:
            raise BackendError("Malformed roster from backend", cause=e) from e

    async def get_by_id(self, patient_id: str) -> Patient:
        data = await self._get_json(f"/mothers/{patient_id}", patient_id=patient_id)
        try:
            return Patient.model_validate(data)
        except PydanticValidationError as e:
            raise BackendError(
                "Malformed patient from backend",
                details={"patient_id": patient_id},
                cause=e,
            ) from e

    async def update(self, patient_id: str, changes: PatientUpdate) -> Patient:
        payload = changes.to_payload()

        try:
            response = await self._client.patch(f"/mothers/{patient_id}", payload)
        except httpx.HTTPError as e:
            log.error("Patient update transport error", patient_id=patient_id, error=str(e))
            raise UpdateFailure(
                f"Could not update patient {patient_id}",
                details={"patient_id": patient_id},
                cause=e,
            ) from e

        if not response.is_success:
            message = _error_message(response)
            log.error(
                "Patient update rejected",
                patient_id=patient_id,
                status_code=response.status_code,
                error=message,
            )
            raise UpdateFailure(
                message,
                details={"patient_id": patient_id, "status_code": response.status_code},
            )

        try:
            return Patient.model_validate(response.json())
        except (PydanticValidationError, ValueError) as e:
            raise UpdateFailure(
                "Malformed patient in update response",
                details={"patient_id": patient_id},
                cause=e,
            ) from e

    async def _get_json(self, path: str, patient_id: str | None = None) -> Any:
        try:
            response = await self._client.get(path)
        except httpx.HTTPError as e:
            raise BackendError(f"GET {path} failed", cause=e) from e

        if response.status_code == 404 and patient_id is not None:
            raise NotFoundError(
                f"Patient {patient_id} not found",
                details={"patient_id": patient_id},
            )
        if not response.is_success:
            raise BackendError(
                _error_message(response),
                details={"path": path, "status_code": response.status_code},
            )

        return _json_body(response, path)


class HTTPCallLogStore(CallLogStore):
    """Call Log Store over the backend REST API."""

    def __init__(self, client: BackendClient):
        self._client = client

    async def get_recent(self) -> list[CallLogEntry]:
        try:
            response = await self._client.get("/ivr/call-logs")
        except httpx.HTTPError as e:
            raise BackendError("GET /ivr/call-logs failed", cause=e) from e

        if not response.is_success:
            raise BackendError(
                _error_message(response),
                details={"path": "/ivr/call-logs", "status_code": response.status_code},
            )

        data = _json_body(response, "/ivr/call-logs")
        if not isinstance(data, list):
            raise BackendError(
                "Call logs from backend are not a list",
                details={"path": "/ivr/call-logs", "type": type(data).__name__},
            )

        entries: list[CallLogEntry] = []
        for item in data:
            try:
                entries.append(CallLogEntry.model_validate(item))
            except PydanticValidationError as e:
                # Read-only display data: drop the bad row, keep the rest
                log.warning("Skipping malformed call log entry", entry=item, error=str(e))
        return entries


class HTTPIVRDispatcher(IVRDispatcher):
    """IVR Dispatch Service over the backend REST API.

    The backend holds the request open until the callee answers, hangs up or
    presses a key, so only the connect phase has a timeout here; the wait
    for an outcome is bounded by the orchestrator's call timeout.
    """

    def __init__(self, client: BackendClient, connect_timeout: float = 10.0):
        self._client = client
        self._timeout = httpx.Timeout(None, connect=connect_timeout)

    async def place_call(self, phone: str, patient_id: str | None = None) -> Any:
        payload: dict[str, Any] = {"phone": phone}
        if patient_id is not None:
            payload["mother_id"] = patient_id

        try:
            response = await self._client.post("/ivr/call", payload, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise DispatchFailure(
                "IVR call could not be initiated",
                details={"phone": mask_phone(phone), "patient_id": patient_id},
                cause=e,
            ) from e

        if not response.is_success:
            raise DispatchFailure(
                _error_message(response),
                details={
                    "phone": mask_phone(phone),
                    "patient_id": patient_id,
                    "status_code": response.status_code,
                },
            )

        try:
            data = response.json()
        except ValueError:
            return None
        if isinstance(data, dict):
            return data.get("result", data.get("outcome"))
        return data


class HTTPAuthProvider(AuthProvider):
    """ASHA login against the backend REST API."""

    def __init__(self, client: BackendClient):
        self._client = client

    async def login(self, asha_id: str, password: str) -> AshaProfile:
        try:
            response = await self._client.post(
                "/auth/login", {"asha_id": asha_id, "password": password}
            )
        except httpx.HTTPError as e:
            raise BackendError("Login request failed", cause=e) from e

        if response.status_code in (400, 401, 403):
            raise InvalidCredentials(
                "Invalid ASHA ID or password",
                details={"asha_id": asha_id},
            )
        if not response.is_success:
            raise BackendError(
                _error_message(response),
                details={"path": "/auth/login", "status_code": response.status_code},
            )

        data = _json_body(response, "/auth/login")
        if not isinstance(data, dict):
            raise BackendError(
                "Malformed login response",
                details={"path": "/auth/login", "type": type(data).__name__},
            )
        if isinstance(data.get("asha"), dict):
            data = data["asha"]
        try:
            return AshaProfile.model_validate(data)
        except PydanticValidationError as e:
            raise BackendError("Malformed login response", cause=e) from e
