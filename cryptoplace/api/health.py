# cryptoplace/api/health.py
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request, Response

router = APIRouter(tags=["health"])

APP_STARTED_AT = time.time()


def _now_meta() -> Dict[str, Any]:
    now_ts = time.time()
    now_dt = datetime.fromtimestamp(now_ts, tz=timezone.utc)
    return {
        "now_unix": int(now_ts),
        "now_iso": now_dt.isoformat().replace("+00:00", "Z"),
        "uptime_s": int(now_ts - APP_STARTED_AT),
    }


def _check_store(request: Request) -> Dict[str, Any]:
    store = getattr(request.app.state, "store", None)
    if store is None:
        return {"ok": False, "error": "coin store not initialised"}

    status = store.get_state().status()
    status["currency"] = status["currency"].model_dump()
    if status["priced_in"] is not None:
        status["priced_in"] = status["priced_in"].model_dump()
    status["ok"] = bool(status["loaded"])
    return status


@router.get("/live")
async def live():
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request, response: Response):
    payload: Dict[str, Any] = {"status": "ok", **_now_meta()}
    store_check = _check_store(request)
    payload["checks"] = {"store": store_check}

    degraded_reasons = []
    if not store_check.get("ok", False):
        degraded_reasons.append("coin_list_not_loaded")
    if store_check.get("last_error"):
        degraded_reasons.append("last_fetch_failed")

    if degraded_reasons:
        payload["status"] = "degraded"
        payload["degraded"] = True
        payload["degraded_reasons"] = degraded_reasons
        # a stale-but-loaded list is still servable
        if not store_check.get("ok", False):
            response.status_code = 503
    else:
        payload["degraded"] = False
        payload["degraded_reasons"] = []

    return payload


@router.get("/health")
async def health(request: Request, response: Response):
    return await ready(request, response)
