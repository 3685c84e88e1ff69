"""HistoryEntry Domain Model -- 任务变更审计记录

历史表 append-only，不允许更新或删除。
history_id 使用 ULID 格式，时间有序。
transfer_details / status_change 是按 action 标记的专属数据块，
挂在错误的 action 上会在构造时被拒绝。
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .enums import HistoryAction

# 数据块同时接受 snake_case 与 camelCase 输入，序列化保持 snake_case；未知字段拒绝
BLOCK_CONFIG = ConfigDict(
    extra="forbid",
    populate_by_name=True,
    alias_generator=AliasGenerator(validation_alias=to_camel),
)

# 审计描述（getFormattedDescription 的前半句）
ACTION_DESCRIPTIONS: dict[HistoryAction, str] = {
    HistoryAction.CREATED: "Task was created",
    HistoryAction.ASSIGNED: "Task was assigned",
    HistoryAction.STATUS_CHANGED: "Task status was changed",
    HistoryAction.STAGE_CHANGED: "Task stage was updated",
    HistoryAction.TRANSFERRED: "Task was transferred",
    HistoryAction.REMARK_ADDED: "Remark was added",
    HistoryAction.ATTACHMENT_ADDED: "Attachment was added",
    HistoryAction.ATTACHMENT_REMOVED: "Attachment was removed",
    HistoryAction.DEADLINE_CHANGED: "Deadline was modified",
    HistoryAction.PRIORITY_CHANGED: "Priority was updated",
    HistoryAction.COMPLETED: "Task was marked as completed",
    HistoryAction.APPROVED: "Task was approved",
    HistoryAction.REJECTED: "Task was rejected",
}


class FieldChange(BaseModel):
    """字段变更

    description 与 (old_value, new_value) 至多填写其一。
    """

    model_config = BLOCK_CONFIG

    field: str | None = Field(default=None, description="变更的字段名")
    old_value: Any = Field(default=None, description="旧值")
    new_value: Any = Field(default=None, description="新值")
    description: str | None = Field(default=None, description="可读描述")

    @model_validator(mode="after")
    def _description_or_values(self) -> "FieldChange":
        has_values = self.old_value is not None or self.new_value is not None
        if self.description and has_values:
            raise ValueError("changes 只能包含 description 或 old_value/new_value 之一")
        return self


class HistoryMetadata(BaseModel):
    """变更上下文"""

    model_config = BLOCK_CONFIG

    reason: str | None = None
    origin: str | None = None
    user_agent: str | None = None
    ip_address: str | None = None
    additional_info: dict[str, Any] = Field(default_factory=dict)


class TransferDetails(BaseModel):
    """transferred 专属数据块"""

    model_config = BLOCK_CONFIG

    from_user: str | None = Field(default=None, description="移出任务的用户")
    to_user: str | None = Field(default=None, description="接收任务的用户")
    approved_by: str | None = Field(default=None, description="批准转交的用户")
    reason: str | None = None


class StatusChange(BaseModel):
    """status_changed 专属数据块（序列化为 from / to）"""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    from_status: str | None = Field(default=None, alias="from")
    to_status: str | None = Field(default=None, alias="to")
    reason: str | None = None


class HistoryEntry(BaseModel):
    """HistoryEntry 数据模型

    每次任务变更恰好写入一条，写入后不可修改。
    """

    history_id: str = Field(description="唯一标识，ULID 格式")
    task_id: str = Field(min_length=1, description="所属任务 ID")
    action: HistoryAction = Field(description="动作类型")
    performed_by: str = Field(min_length=1, description="操作者 ID")
    performed_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="操作时间",
    )
    changes: FieldChange | None = None
    metadata: HistoryMetadata = Field(default_factory=HistoryMetadata)
    transfer_details: TransferDetails | None = None
    status_change: StatusChange | None = None

    @model_validator(mode="after")
    def _blocks_match_action(self) -> "HistoryEntry":
        if self.transfer_details is not None and self.action != HistoryAction.TRANSFERRED:
            raise ValueError(f"transfer_details 仅适用于 transferred，当前为 {self.action}")
        if self.status_change is not None and self.action != HistoryAction.STATUS_CHANGED:
            raise ValueError(f"status_change 仅适用于 status_changed，当前为 {self.action}")
        return self

    def describe(self) -> str:
        """生成可读的审计描述"""
        description = ACTION_DESCRIPTIONS.get(self.action, "Unknown action")
        if self.changes is None:
            return description
        if self.changes.description:
            return f"{description}: {self.changes.description}"
        if self.changes.field and self.changes.old_value and self.changes.new_value:
            return (
                f'{description} from "{self.changes.old_value}" '
                f'to "{self.changes.new_value}"'
            )
        return description
