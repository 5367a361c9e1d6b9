# backend/paperledger/routes/system.py
"""
System health endpoint.

Reports whether every ledger collection can be read back from the
configured storage medium.
"""

import json
import time
from flask import Blueprint, current_app

from ..services.collection_store import COLLECTION_KEYS
from ..services.registry import get_ledgers
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_storage_health() -> dict:
    """
    Read each collection key straight from the medium.

    A key that is absent is healthy (never written yet); a key whose
    payload is not a JSON array is reported as corrupt.
    """
    start_time = time.time()
    medium = get_ledgers().store.medium
    collections = {}
    healthy = True
    try:
        for key in COLLECTION_KEYS:
            raw = medium.read(key)
            if raw is None:
                collections[key] = {"status": "empty"}
                continue
            try:
                data = json.loads(raw)
            except ValueError:
                data = None
            if isinstance(data, list):
                collections[key] = {"status": "ok", "records": len(data)}
            else:
                healthy = False
                collections[key] = {"status": "corrupt"}
    except Exception:
        current_app.logger.exception("Storage health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Storage error",
        }

    return {
        "status": "healthy" if healthy else "degraded",
        "latency_ms": round((time.time() - start_time) * 1000, 2),
        "medium": type(medium).__name__,
        "collections": collections,
    }


@system_bp.get("/api/health")
def health_route():
    storage = check_storage_health()
    status_code = 503 if storage["status"] == "unhealthy" else 200
    return {
        "status": storage["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"storage": storage},
    }, status_code
