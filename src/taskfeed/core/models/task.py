"""Task 快照模型 -- 任务协作方提供的只读视图

核心只通过 ID 弱引用任务，用于收件人解析、渲染和提醒扫描。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import CLOSED_STATUSES, Priority, TaskStage, TaskStatus


class Assignment(BaseModel):
    """任务指派"""

    user: str = Field(description="被指派用户 ID")
    assigned_at: datetime | None = Field(default=None, description="指派时间")


class Task(BaseModel):
    """Task 快照"""

    task_id: str = Field(description="唯一标识")
    title: str = Field(default="", description="任务标题")
    priority: Priority = Field(default=Priority.MEDIUM, description="任务优先级")
    status: TaskStatus = Field(default=TaskStatus.CREATED, description="审批状态")
    stage: TaskStage = Field(default=TaskStage.NOT_STARTED, description="执行阶段")
    deadline: datetime | None = Field(default=None, description="截止时间")
    created_by: str = Field(description="创建者 ID")
    assigned_to: list[Assignment] = Field(default_factory=list, description="指派列表")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")

    @property
    def assignee_ids(self) -> list[str]:
        """去重后的被指派用户 ID，保持原有顺序"""
        return list(dict.fromkeys(a.user for a in self.assigned_to if a.user))

    @property
    def is_open(self) -> bool:
        """仍需提醒：未完成且未结束审批"""
        return self.stage != TaskStage.DONE and self.status not in CLOSED_STATUSES
