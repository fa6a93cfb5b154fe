import os
from typing import Any, Dict, List, Optional

import httpx
from dotenv import load_dotenv

from .base import DEFAULT_FIELDS, PermissionStore
from ..metrics import record_api_request
from ..models.contracts import PermissionRecord
from ...utils.errors import AuthenticationError, DriveAPIError, handle_provider_error

# Note: plain REST over httpx; googleapiclient is not needed for four endpoints.

load_dotenv()

RECORD_FIELDS = "id,type,emailAddress,role,pendingOwner"
RATE_LIMIT_REASONS = {"rateLimitExceeded", "userRateLimitExceeded", "sharingRateLimitExceeded"}


class DriveProvider(PermissionStore):
    API_BASE = os.getenv("DH_DRIVE_API_BASE", "https://www.googleapis.com/drive/v3")
    USER_AGENT = os.getenv("DH_DRIVE_USER_AGENT", "drivehandoff/1.0.0")
    TIMEOUT = float(os.getenv("DH_DRIVE_TIMEOUT", "15"))
    # Swapped for httpx.MockTransport in tests.
    TRANSPORT: Optional[httpx.AsyncBaseTransport] = None

    @staticmethod
    def _headers(token: str) -> Dict[str, str]:
        if not token:
            raise AuthenticationError("Drive access token is required")
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
            "User-Agent": DriveProvider.USER_AGENT,
        }

    @staticmethod
    def _error_from_response(response: httpx.Response) -> DriveAPIError:
        message = response.text
        reason = None
        try:
            error = response.json().get("error", {})
        except ValueError:
            error = {}
        if isinstance(error, dict):
            message = error.get("message") or message
            errors = error.get("errors") or []
            if errors and isinstance(errors[0], dict):
                reason = errors[0].get("reason")
        if reason in RATE_LIMIT_REASONS:
            message = f"rate limit exceeded ({reason})"
        return DriveAPIError(response.status_code, message, reason)

    @staticmethod
    async def _request(method: str, path: str, token: str, params: Dict[str, Any] | None = None, json_payload: Dict[str, Any] | None = None) -> Dict[str, Any] | None:
        url = f"{DriveProvider.API_BASE}{path}"
        headers = DriveProvider._headers(token)
        try:
            async with httpx.AsyncClient(timeout=DriveProvider.TIMEOUT, transport=DriveProvider.TRANSPORT) as client:
                response = await client.request(
                    method,
                    url,
                    headers=headers,
                    params=params,
                    json=json_payload,
                )
        except httpx.HTTPError as exc:
            record_api_request(method, "transport_error")
            raise handle_provider_error("gdrive", f"{method} {path}", exc) from exc

        record_api_request(method, str(response.status_code))

        if response.status_code == 204:
            return None

        if response.status_code >= 400:
            raise DriveProvider._error_from_response(response)

        try:
            return response.json()
        except ValueError as exc:
            raise DriveAPIError(response.status_code, "Unexpected non-JSON response") from exc

    @staticmethod
    def _drive_params(supports_all_drives: bool) -> Dict[str, str]:
        # supportsTeamDrives is deprecated but still honoured by older backends
        flag = "true" if supports_all_drives else "false"
        return {"supportsAllDrives": flag, "supportsTeamDrives": flag}

    @staticmethod
    async def list_permissions(file_id: str, token: str, fields: str = DEFAULT_FIELDS) -> List[PermissionRecord]:
        """Return every permission on the file, following nextPageToken."""
        records: List[PermissionRecord] = []
        params: Dict[str, Any] = {"fields": fields, "supportsAllDrives": "true"}
        while True:
            data = await DriveProvider._request("GET", f"/files/{file_id}/permissions", token, params=params)
            if not isinstance(data, dict):
                raise DriveAPIError(502, "Unexpected response when listing permissions")
            records.extend(PermissionRecord.model_validate(p) for p in data.get("permissions", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                return records
            params = {**params, "pageToken": page_token}

    @staticmethod
    async def create_permission(file_id: str, token: str, body: Dict[str, Any]) -> PermissionRecord:
        data = await DriveProvider._request(
            "POST",
            f"/files/{file_id}/permissions",
            token,
            params={"fields": RECORD_FIELDS},
            json_payload=body,
        )
        if not isinstance(data, dict):
            raise DriveAPIError(502, "Unexpected response when creating permission")
        return PermissionRecord.model_validate(data)

    @staticmethod
    async def update_permission(
        file_id: str,
        permission_id: str,
        token: str,
        body: Dict[str, Any],
        transfer_ownership: bool = False,
        supports_all_drives: bool = True,
    ) -> PermissionRecord:
        params = DriveProvider._drive_params(supports_all_drives)
        params["transferOwnership"] = "true" if transfer_ownership else "false"
        params["fields"] = RECORD_FIELDS
        data = await DriveProvider._request(
            "PATCH",
            f"/files/{file_id}/permissions/{permission_id}",
            token,
            params=params,
            json_payload=body,
        )
        if not isinstance(data, dict):
            raise DriveAPIError(502, "Unexpected response when updating permission")
        return PermissionRecord.model_validate(data)

    @staticmethod
    async def delete_permission(file_id: str, permission_id: str, token: str, supports_all_drives: bool = True) -> None:
        await DriveProvider._request(
            "DELETE",
            f"/files/{file_id}/permissions/{permission_id}",
            token,
            params=DriveProvider._drive_params(supports_all_drives),
        )
