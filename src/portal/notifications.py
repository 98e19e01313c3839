"""
Contract notifications - polled every 30 seconds
"""

import logging
from typing import List, Optional

from src.integrations.contracts.interfaces import ContractNotification, VMSApi
from src.portal.polling import Poller

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 30


class ContractNotifications:
    def __init__(self, api: VMSApi, poll_interval_seconds: float = POLL_INTERVAL_SECONDS):
        self.api = api
        self.notifications: List[ContractNotification] = []
        self.loading = False
        self._poller = Poller("contract-notifications", poll_interval_seconds, self.fetch)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)

    def get(self, notification_id: str) -> Optional[ContractNotification]:
        return next((n for n in self.notifications if n.id == notification_id), None)

    async def fetch(self) -> List[ContractNotification]:
        self.loading = True
        try:
            self.notifications = await self.api.list_contract_notifications()
        except Exception as e:
            logger.error("Error fetching contract notifications: %s", e)
        finally:
            self.loading = False
        return self.notifications

    async def mark_as_read(self, notification_id: str) -> bool:
        try:
            await self.api.mark_notification_read(notification_id)
        except Exception as e:
            logger.error("Error marking notification %s as read: %s", notification_id, e)
            return False
        notification = self.get(notification_id)
        if notification is not None:
            notification.read = True
        return True

    async def start(self) -> None:
        await self.fetch()
        self._poller.start()

    async def stop(self) -> None:
        await self._poller.stop()
