# nav_logger.py
# File I/O for the guidance engine: the last-route cache (JSON, rewritten
# atomically) and the per-session event trail (JSON lines, append-only).

import json
import logging
import os
from datetime import datetime
from typing import Optional, Tuple

from .models import LatLng, ProgressResult, Route
from .nav_config import NavConfig

logger = logging.getLogger(__name__)

CACHE_VERSION = 1


class NavLogger:
    """
    Route cache and session log.

    The cache lets guidance resume on the last route without the directions
    service (e.g. after a restart with no network). A failed write never
    leaves a truncated cache behind.

    Args:
        config: NavConfig for the log directory and file names.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        os.makedirs(self.config.log_dir, exist_ok=True)

    # ------------------------------------------------------------------
    # Route cache
    # ------------------------------------------------------------------

    def save_route(self, route: Route, destination: LatLng, origin: Optional[LatLng] = None) -> bool:
        """
        Replace the cached route.

        Returns:
            True when the cache was written.
        """
        target = self.config.route_filepath
        payload = {
            "version": CACHE_VERSION,
            "saved_at": datetime.now().isoformat(),
            "origin": origin.to_dict() if origin else None,
            "destination": destination.to_dict(),
            "step_count": len(route.steps),
            "route": route.to_dict(),
        }
        tmp = target + ".tmp"
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp, target)
        except (OSError, TypeError) as e:
            logger.error(f"Could not cache route at {target}: {e}")
            return False
        logger.info(f"Cached route: {len(route.steps)} steps -> {target}")
        return True

    def load_route(self, filepath: Optional[str] = None) -> Optional[Tuple[Route, LatLng]]:
        """
        Read the cached route.

        Args:
            filepath: Alternative cache file; config.route_filepath by default.

        Returns:
            (route, destination), or None when there is no usable cache.
        """
        source = filepath or self.config.route_filepath
        if not os.path.exists(source):
            logger.info(f"No cached route at {source}.")
            return None
        try:
            with open(source, "r", encoding="utf-8") as f:
                payload = json.load(f)
            cached = Route.from_dict(payload["route"]), LatLng.from_dict(payload["destination"])
        except (OSError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Ignoring unreadable route cache {source}: {e}")
            return None
        logger.info(f"Loaded cached route from {source} ({len(cached[0].steps)} steps).")
        return cached

    # ------------------------------------------------------------------
    # Session trail
    # ------------------------------------------------------------------

    def log_event(self, result: ProgressResult, position: LatLng) -> None:
        """Append one progress result, with the position it was computed for."""
        record = {
            "ts": datetime.now().isoformat(),
            "lat": position.lat,
            "lon": position.lon,
            "status": result.status.value,
            "message": result.message,
            "distance_to_next": result.distance_to_next,
            "off_route_m": result.off_route_m,
            "reroute_request": result.reroute.request_id if result.reroute else None,
        }
        try:
            with open(self.config.session_filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(record, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.error(f"Session log write failed: {e}")
