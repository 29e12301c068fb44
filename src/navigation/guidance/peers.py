# peers.py
# Convoy peer markers fed from the realtime channel.
# Positions are displayed as received: no smoothing, snapping or guidance.

import logging
from typing import Dict, List, Optional

from .models import PeerPosition

logger = logging.getLogger(__name__)


class PeerRegistry:
    """Latest known position per convoy participant."""

    def __init__(self, self_id: Optional[str] = None) -> None:
        self.self_id = self_id
        self._peers: Dict[str, PeerPosition] = {}

    def upsert(self, peer: PeerPosition) -> bool:
        """Store a peer position. Returns False for our own echo."""
        if self.self_id is not None and peer.user_id == self.self_id:
            return False
        self._peers[peer.user_id] = peer
        return True

    def remove(self, user_id: str) -> None:
        if self._peers.pop(user_id, None) is not None:
            logger.debug(f"Peer {user_id} removed.")

    def clear(self) -> None:
        self._peers.clear()

    def markers(self) -> List[PeerPosition]:
        return sorted(self._peers.values(), key=lambda p: p.user_id)

    def __len__(self) -> int:
        return len(self._peers)
