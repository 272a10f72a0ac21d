"""Tests for the backend REST clients (httpx.MockTransport, no network)."""

import json

import httpx
import pytest

from asha_dashboard.clients.http import (
    BackendClient,
    HTTPAuthProvider,
    HTTPCallLogStore,
    HTTPIVRDispatcher,
    HTTPPatientStore,
)
from asha_dashboard.core.exceptions import (
    BackendError,
    DispatchFailure,
    InvalidCredentials,
    NotFoundError,
    UpdateFailure,
)
from asha_dashboard.models import CallOutcome, PatientUpdate


PATIENT_JSON = {
    "id": "m-001",
    "name": "Priya Sharma",
    "age": 24,
    "phone": "+919876543210",
    "address": "12 Temple Street",
    "last_anc_date": "2024-03-05",
    "gestation_weeks": 28,
    "flagged": False,
    "visited": False,
    "notes": None,
}


def make_client(handler) -> BackendClient:
    return BackendClient(
        base_url="http://backend.test/api",
        api_token="backend-token",
        transport=httpx.MockTransport(handler),
    )


class TestHTTPPatientStore:
    """Test the patient store client."""

    @pytest.mark.asyncio
    async def test_get_all(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("authorization")
            return httpx.Response(200, json=[PATIENT_JSON])

        store = HTTPPatientStore(make_client(handler))
        patients = await store.get_all()

        assert seen == {"path": "/api/mothers", "auth": "Bearer backend-token"}
        assert [p.id for p in patients] == ["m-001"]
        assert patients[0].last_anc_date.isoformat() == "2024-03-05"

    @pytest.mark.asyncio
    async def test_get_by_id_not_found(self):
        store = HTTPPatientStore(make_client(lambda request: httpx.Response(404)))

        with pytest.raises(NotFoundError) as exc_info:
            await store.get_by_id("m-404")

        assert exc_info.value.details["patient_id"] == "m-404"

    @pytest.mark.asyncio
    async def test_server_error_is_backend_error(self):
        store = HTTPPatientStore(
            make_client(lambda request: httpx.Response(500, json={"message": "db down"}))
        )

        with pytest.raises(BackendError, match="db down"):
            await store.get_all()

    @pytest.mark.asyncio
    async def test_malformed_roster(self):
        store = HTTPPatientStore(
            make_client(lambda request: httpx.Response(200, json=[{"id": "m-001"}]))
        )

        with pytest.raises(BackendError):
            await store.get_all()

    @pytest.mark.asyncio
    async def test_read_retried_on_transport_error(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=PATIENT_JSON)

        store = HTTPPatientStore(make_client(handler))
        patient = await store.get_by_id("m-001")

        assert patient.id == "m-001"
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_update_sends_only_set_fields(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={**PATIENT_JSON, "flagged": True})

        store = HTTPPatientStore(make_client(handler))
        updated = await store.update("m-001", PatientUpdate(flagged=True))

        assert seen == {"method": "PATCH", "path": "/api/mothers/m-001", "body": {"flagged": True}}
        assert updated.flagged is True

    @pytest.mark.asyncio
    async def test_update_rejected(self):
        store = HTTPPatientStore(
            make_client(lambda request: httpx.Response(409, json={"detail": "conflict"}))
        )

        with pytest.raises(UpdateFailure, match="conflict"):
            await store.update("m-001", PatientUpdate(visited=True))

    @pytest.mark.asyncio
    async def test_update_not_retried(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        store = HTTPPatientStore(make_client(handler))

        with pytest.raises(UpdateFailure):
            await store.update("m-001", PatientUpdate(visited=True))
        assert len(attempts) == 1


class TestHTTPCallLogStore:
    """Test the call log client."""

    @pytest.mark.asyncio
    async def test_skips_malformed_entries(self):
        entries = [
            {"id": "l1", "mother_id": "m-001", "timestamp": "2024-03-05T10:00:00", "outcome": "answered"},
            {"id": "l2", "mother_id": "m-002", "timestamp": "2024-03-05T09:00:00", "outcome": "busy"},
        ]
        store = HTTPCallLogStore(make_client(lambda request: httpx.Response(200, json=entries)))

        logs = await store.get_recent()

        assert [e.id for e in logs] == ["l1"]
        assert logs[0].outcome == CallOutcome.ANSWERED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body", [b"<html>gateway</html>", b"null", b'{"logs": []}']
    )
    async def test_unusable_body_is_backend_error(self, body):
        store = HTTPCallLogStore(
            make_client(lambda request: httpx.Response(200, content=body))
        )

        with pytest.raises(BackendError):
            await store.get_recent()


class TestHTTPIVRDispatcher:
    """Test the IVR client."""

    @pytest.mark.asyncio
    async def test_place_call(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"result": "pressed_2"})

        ivr = HTTPIVRDispatcher(make_client(handler))
        result = await ivr.place_call("+919876543210", patient_id="m-001")

        assert result == "pressed_2"
        assert seen == {
            "path": "/api/ivr/call",
            "body": {"phone": "+919876543210", "mother_id": "m-001"},
        }

    @pytest.mark.asyncio
    async def test_unknown_result_returned_raw(self):
        ivr = HTTPIVRDispatcher(
            make_client(lambda request: httpx.Response(200, json={"result": "voicemail"}))
        )

        assert await ivr.place_call("+911") == "voicemail"

    @pytest.mark.asyncio
    async def test_non_2xx_is_dispatch_failure(self):
        ivr = HTTPIVRDispatcher(
            make_client(lambda request: httpx.Response(503, json={"message": "IVR offline"}))
        )

        with pytest.raises(DispatchFailure, match="IVR offline"):
            await ivr.place_call("+911")

    @pytest.mark.asyncio
    async def test_transport_error_not_retried(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        ivr = HTTPIVRDispatcher(make_client(handler))

        with pytest.raises(DispatchFailure):
            await ivr.place_call("+911")
        assert len(attempts) == 1


class TestHTTPAuthProvider:
    """Test the login client."""

    @pytest.mark.asyncio
    async def test_login(self):
        profile = {"id": "ASHA001", "name": "Lakshmi Devi", "phc_name": "PHC Kannamma"}
        auth = HTTPAuthProvider(
            make_client(lambda request: httpx.Response(200, json={"asha": profile}))
        )

        asha = await auth.login("ASHA001", "pw")

        assert asha.name == "Lakshmi Devi"
        assert asha.phc_name == "PHC Kannamma"

    @pytest.mark.asyncio
    async def test_bad_credentials(self):
        auth = HTTPAuthProvider(make_client(lambda request: httpx.Response(401)))

        with pytest.raises(InvalidCredentials):
            await auth.login("ASHA001", "wrong")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body", [b"<html>gateway</html>", b"null", b'["ASHA001"]']
    )
    async def test_unusable_body_is_backend_error(self, body):
        auth = HTTPAuthProvider(
            make_client(lambda request: httpx.Response(200, content=body))
        )

        with pytest.raises(BackendError):
            await auth.login("ASHA001", "pw")
