"""taskfeed 异常体系

ValidationError: 写入前校验失败，不会产生部分写入。
NotFoundOrUnauthorizedError: 通知不存在或不属于调用者，客户端错误，不重试。
DependencyUnavailableError: 协作方或存储读写失败；扇出期间发生时只放弃该事件的扇出。
"""


class TaskFeedError(Exception):
    """taskfeed 基础异常"""

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 是否可通过重试恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class ValidationError(TaskFeedError):
    """未知动作、缺失标识符或非法参数"""

    def __init__(self, message: str) -> None:
        super().__init__(message, recoverable=False)


class NotFoundOrUnauthorizedError(TaskFeedError):
    """通知不存在，或不属于请求用户"""

    def __init__(self, notification_id: str, user_id: str) -> None:
        super().__init__("Notification not found or unauthorized", recoverable=False)
        self.notification_id = notification_id
        self.user_id = user_id


class DependencyUnavailableError(TaskFeedError):
    """任务/身份存储不可用，或历史/通知存储读写失败

    扇出期间抛出时只放弃该事件的通知，不影响已写入的历史记录。
    """

    def __init__(self, dependency: str, original_error: Exception | None = None) -> None:
        """
        Args:
            dependency: 失败的依赖名称（task_store / user_store /
                history_store / notification_store）
            original_error: 原始异常
        """
        detail = f" -- {original_error}" if original_error is not None else ""
        super().__init__(f"依赖不可用: {dependency}{detail}", recoverable=True)
        self.dependency = dependency
        self.original_error = original_error
