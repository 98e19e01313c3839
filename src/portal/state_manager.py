"""
Session state for multi-request flows (contract wizard drafts)
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

WIZARD_FLOW = "contract_wizard"


class StateManager:
    def __init__(self, redis_cache, ttl: int = 1800):
        self.redis = redis_cache
        self.ttl = ttl

    def create_session(self, flow: str, state: Dict[str, Any]) -> str:
        """Create new session holding a flow's state"""
        session_id = str(uuid.uuid4())
        session_data = {
            "session_id": session_id,
            "flow": flow,
            "state": state,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self.redis.set_session(session_id, session_data, ttl=self.ttl)
        logger.info("Session created session_id=%s flow=%s", session_id, flow)
        return session_id

    def get_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        return self.redis.get_session(session_id)

    def get_state(self, session_id: str, flow: str) -> Optional[Dict[str, Any]]:
        """Flow state, or None when the session expired or belongs to another flow"""
        session = self.get_session(session_id)
        if not session or session.get("flow") != flow:
            return None
        return session.get("state")

    def save_state(self, session_id: str, state: Dict[str, Any]) -> None:
        """Store the flow state and refresh the TTL"""
        self.redis.update_session(session_id, {"state": state}, ttl=self.ttl)

    def end_session(self, session_id: str) -> None:
        self.redis.delete_session(session_id)
        logger.info("Session ended session_id=%s", session_id)
