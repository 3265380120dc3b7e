"""NotificationService -- 用户通知查询与已读标记"""

from taskhub.core.models import Notification, Pagination, PaginationResult
from taskhub.core.store.protocols import NotificationStore


class NotificationService:
    def __init__(self, notification_store: NotificationStore) -> None:
        self._notification_store = notification_store

    async def get_user_notifications(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 10,
        only_unread: bool = False,
    ) -> PaginationResult[Notification]:
        """用户通知列表，最新在前；page / limit 越界时抛出 ValidationError"""
        pagination = Pagination(page=page, limit=limit)
        return await self._notification_store.find_user_notifications(
            user_id, pagination.page, pagination.limit, only_unread=only_unread
        )

    async def mark_as_read(self, notification_id: str) -> bool:
        """标记单条已读；通知不存在返回 False"""
        return await self._notification_store.mark_as_read(notification_id)

    async def mark_all_as_read(self, user_id: str) -> bool:
        """标记用户全部通知已读；返回是否有记录被修改"""
        changed = await self._notification_store.mark_all_as_read(user_id)
        return changed > 0
