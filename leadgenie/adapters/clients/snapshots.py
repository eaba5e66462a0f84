# leadgenie/adapters/clients/snapshots.py
from __future__ import annotations

import hashlib
import logging
import os
from datetime import datetime, timezone

from ...config import AcquisitionConfig

log = logging.getLogger(__name__)


def _sha(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()[:16]


def write_snapshot(config: AcquisitionConfig, prefix: str, key: str, content: str) -> str | None:
    """
    Used for debugging parser drift: dump the payload that produced nothing.
    Disabled unless ACQ_SNAPSHOTS_ENABLED is set. Never raises.
    """
    if not config.snapshots_enabled:
        return None
    try:
        os.makedirs(config.snapshots_dir, exist_ok=True)
        ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        path = os.path.join(config.snapshots_dir, f"{ts}_{prefix}_{_sha(key)}.txt")
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        return path
    except OSError as e:
        log.warning("snapshot write failed for %s: %s", prefix, e)
        return None
