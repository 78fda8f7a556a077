import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from constants import SAVE_FORMAT_VERSION
from save_service import Snapshot
from service_client import ServiceError, build_http_client, request_json


@dataclass
class CloudSaveResult:
    success: bool = False
    saved_at: Optional[float] = None
    error: Optional[str] = None


@dataclass
class CloudLoadResult:
    save_data: Optional[Snapshot] = None
    last_saved: Optional[float] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CloudSaveClient:
    """Client for the /save endpoints. Failures come back as results, never raised."""

    def __init__(self, api_key: str = "", http: Optional[httpx.Client] = None) -> None:
        self.api_key = api_key
        self.http = http if http is not None else build_http_client()

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

    def upload(self, device_id: str, snapshot: Snapshot, player_name: str) -> CloudSaveResult:
        payload: Dict[str, Any] = {
            "deviceId": device_id,
            "saveData": snapshot,
            "playerName": player_name,
            "version": snapshot.get("version", SAVE_FORMAT_VERSION),
        }
        try:
            body = request_json(self.http, "POST", "/save", json_body=payload, headers=self._headers())
        except ServiceError as exc:
            logging.warning("Cloud save failed: %s", exc)
            return CloudSaveResult(error=str(exc))
        return CloudSaveResult(success=True, saved_at=body.get("savedAt"))

    def download(self, device_id: str) -> CloudLoadResult:
        try:
            body = request_json(self.http, "GET", "/save", params={"deviceId": device_id}, headers=self._headers())
        except ServiceError as exc:
            logging.warning("Cloud load failed: %s", exc)
            return CloudLoadResult(error=str(exc))
        data = body.get("saveData")
        return CloudLoadResult(
            save_data=data if isinstance(data, dict) else None,
            last_saved=body.get("lastSaved"),
        )

    def delete(self, device_id: str) -> bool:
        try:
            request_json(self.http, "DELETE", "/save", params={"deviceId": device_id}, headers=self._headers())
        except ServiceError as exc:
            logging.warning("Cloud save delete failed: %s", exc)
            return False
        return True
