"""
IN-APP NOTIFICATION ENGINE

Purpose:
- Non-blocking toast + inbox style messages for the dashboard
- Surface transient write/refresh failures without an error screen
- Confirm successful actions (note sent, CTE marked as located)

Requirements:
• Stored in memory for the session
• Never block the UI
• Timestamped and tied to a CTE when there is one
"""

import time
from datetime import datetime
from typing import Dict, List, Optional

LEVEL_INFO = "INFO"
LEVEL_SUCCESS = "SUCCESS"
LEVEL_WARNING = "WARNING"
LEVEL_ERROR = "ERROR"


class InAppNotifier:
    """Session-level notification store."""

    def __init__(self):
        self._notifications: List[Dict] = []
        self._sequence = 0

    def emit(
        self,
        message: str,
        level: str = LEVEL_INFO,
        cte: Optional[str] = None,
        metadata: Optional[Dict] = None,
    ) -> Dict:
        """
        Emit an in-app notification.

        Args:
            message: Text shown to the user
            level: INFO, SUCCESS, WARNING or ERROR
            cte: CTE the message refers to, if any
            metadata: Additional context (e.g. text to restore in the input box)
        """
        self._sequence += 1
        notification = {
            "id": f"NOTIF-{int(time.time() * 1000)}-{self._sequence}",
            "cte": cte,
            "level": level,
            "message": message,
            "timestamp": datetime.now().isoformat(),
            "read": False,
            "metadata": metadata or {},
        }
        self._notifications.append(notification)
        return notification

    def unread(self) -> List[Dict]:
        """Unread notifications, newest first."""
        pending = [n for n in self._notifications if not n["read"]]
        pending.sort(key=lambda x: x["timestamp"], reverse=True)
        return pending

    def mark_as_read(self, notification_id: str) -> bool:
        for notification in self._notifications:
            if notification["id"] == notification_id:
                notification["read"] = True
                return True
        return False

    def drain(self) -> List[Dict]:
        """Return unread notifications and mark them read (toast display)."""
        pending = self.unread()
        for notification in pending:
            notification["read"] = True
        return pending

    def clear(self) -> None:
        self._notifications = []
