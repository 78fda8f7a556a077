"""
Cloud save router — one save slot per device.

Routes:
  GET    /save?deviceId=ID   — stored save (null when none) and when it was saved
  POST   /save               — upsert the device's save
  DELETE /save?deviceId=ID   — drop the device's save
"""

import json
import logging
import os
import sqlite3
import time
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from constants import ANONYMOUS_PLAYER, SAVE_FORMAT_VERSION
from db import get_db
import save_repository

REQUIRE_API_KEY = os.environ.get("CLOUD_SAVE_REQUIRE_API_KEY", "0").strip().lower() in ("1", "true", "yes")
MAX_SAVE_BYTES = int(os.environ.get("CLOUD_SAVE_MAX_BYTES", str(1024 * 1024)))

router = APIRouter()


class SaveRequest(BaseModel):
    deviceId: Optional[str] = None
    saveData: Optional[Any] = None
    playerName: Optional[str] = None
    version: str = SAVE_FORMAT_VERSION


def request_api_key(request: Request) -> str:
    key = request.headers.get("x-api-key") or ""
    auth = request.headers.get("authorization") or ""
    if not key and auth.lower().startswith("bearer "):
        key = auth[7:]
    return key.strip()


def require_api_key(request: Request) -> None:
    if REQUIRE_API_KEY and not request_api_key(request):
        raise HTTPException(status_code=401, detail="Unauthorized - Invalid API key")


def _require_device_id(device_id: Optional[str]) -> str:
    device_id = (device_id or "").strip()
    if not device_id:
        raise HTTPException(status_code=400, detail="Device ID is required")
    return device_id


@router.get("/save", dependencies=[Depends(require_api_key)])
def load_save(deviceId: Optional[str] = None, conn: sqlite3.Connection = Depends(get_db)):
    device_id = _require_device_id(deviceId)
    row = save_repository.find_save(conn, device_id)
    if row is None:
        return {"success": True, "saveData": None, "lastSaved": None}

    save_repository.touch_save(conn, device_id, time.time())
    conn.commit()
    return {"success": True, "saveData": json.loads(row["save_data"]), "lastSaved": row["saved_at"]}


@router.post("/save", dependencies=[Depends(require_api_key)])
def store_save(req: SaveRequest, conn: sqlite3.Connection = Depends(get_db)):
    device_id = (req.deviceId or "").strip()
    if not device_id or req.saveData is None:
        raise HTTPException(status_code=400, detail="Device ID and save data are required")
    if not isinstance(req.saveData, dict):
        raise HTTPException(status_code=400, detail="Save data must be a valid JSON object")

    size = len(json.dumps(req.saveData, separators=(",", ":")))
    if size > MAX_SAVE_BYTES:
        raise HTTPException(status_code=413, detail="Save data too large")

    now = time.time()
    player_name = (req.playerName or "").strip() or ANONYMOUS_PLAYER
    stored = dict(req.saveData)
    stored["_metadata"] = {
        "version": req.version,
        "playerName": player_name,
        "deviceId": device_id,
        "savedAt": now,
        "size": size,
    }
    save_repository.upsert_save(conn, device_id, json.dumps(stored), player_name, now)
    conn.commit()
    logging.info("Cloud save stored for device %s (%s)", device_id, player_name)
    return {"success": True, "message": "Save successful", "savedAt": now, "deviceId": device_id}


@router.delete("/save", dependencies=[Depends(require_api_key)])
def remove_save(deviceId: Optional[str] = None, conn: sqlite3.Connection = Depends(get_db)):
    device_id = _require_device_id(deviceId)
    deleted = save_repository.delete_save(conn, device_id)
    conn.commit()
    return {"success": True, "message": "Save deleted" if deleted else "No save found"}
