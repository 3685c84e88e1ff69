"""通知内容渲染测试

测试内容：
1. 标题模板与通用回退
2. 状态/阶段/截止/优先级变更正文
3. 操作者与标题缺失回退
4. 通知优先级规则与通知类型映射
5. 提醒内容
"""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import pytest

from taskfeed.core.models import (
    FieldChange,
    HistoryAction,
    HistoryEntry,
    NotificationType,
    Priority,
    StatusChange,
    Task,
)
from taskfeed.core.rendering import (
    NOTIFICATION_TYPES,
    TITLE_TEMPLATES,
    format_locale_date,
    notification_priority,
    notification_type_for,
    render_content,
    render_reminder,
)

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=UTC)


def _task(**kwargs) -> Task:
    defaults = dict(
        task_id="task-1",
        title="Quarterly report",
        created_by="creator",
        created_at=NOW,
        updated_at=NOW,
    )
    defaults.update(kwargs)
    return Task(**defaults)


def _entry(action: HistoryAction, **kwargs) -> HistoryEntry:
    return HistoryEntry(
        history_id="h1",
        task_id="task-1",
        action=action,
        performed_by="actor",
        performed_at=NOW,
        **kwargs,
    )


class TestTitles:
    """标题模板"""

    def test_every_notified_action_has_title(self):
        notified = set(HistoryAction) - {HistoryAction.REMARK_ADDED}
        assert set(TITLE_TEMPLATES) == notified

    def test_created_title_and_message(self):
        content = render_content(_entry(HistoryAction.CREATED), _task(priority="high"), "Alice")
        assert content.title == "New Task Created: Quarterly report"
        assert content.message == (
            'Alice created a new task "Quarterly report". Priority: HIGH'
        )

    def test_fallback_title_for_unlisted_action(self):
        content = render_content(_entry(HistoryAction.REMARK_ADDED), _task(), "Alice")
        assert content.title == "Task Updated: Quarterly report"
        assert content.message == 'Alice updated task "Quarterly report"'

    def test_missing_actor_and_title(self):
        content = render_content(_entry(HistoryAction.COMPLETED), _task(title=""), None)
        assert content.title == "Task Completed: Untitled Task"
        assert content.message == 'Someone marked task "Untitled Task" as completed'

    def test_long_title_truncated(self):
        content = render_content(_entry(HistoryAction.ASSIGNED), _task(title="x" * 500), "A")
        assert len(content.title) <= 200
        assert len(content.message) <= 1000


class TestStatusChangeMessage:
    """状态变更正文"""

    def test_from_to_upper_cased(self):
        entry = _entry(
            HistoryAction.STATUS_CHANGED,
            status_change=StatusChange(from_status="pending", to_status="approved"),
        )
        content = render_content(entry, _task(), "Alice")
        assert "from PENDING to APPROVED" in content.message
        assert content.message == (
            'Alice changed status of "Quarterly report" from PENDING to APPROVED'
        )

    def test_missing_side_renders_unknown(self):
        entry = _entry(
            HistoryAction.STATUS_CHANGED,
            status_change=StatusChange(to_status="completed"),
        )
        content = render_content(entry, _task(), "Alice")
        assert "from Unknown to COMPLETED" in content.message

    def test_without_block_is_generic(self):
        content = render_content(_entry(HistoryAction.STATUS_CHANGED), _task(), "Alice")
        assert content.message == 'Alice updated the status of task "Quarterly report"'


class TestStageChangeMessage:
    """阶段变更正文"""

    def test_done_is_completion_message(self):
        entry = _entry(
            HistoryAction.STAGE_CHANGED,
            changes=FieldChange(field="stage", old_value="pending", new_value="done"),
        )
        content = render_content(entry, _task(), "Bob")
        assert content.message == (
            'Bob marked task "Quarterly report" as completed and ready for review'
        )

    def test_only_first_underscore_replaced(self):
        entry = _entry(
            HistoryAction.STAGE_CHANGED,
            changes=FieldChange(field="stage", new_value="not_started_yet"),
        )
        content = render_content(entry, _task(), "Bob")
        assert content.message.endswith("to NOT STARTED_YET")

    def test_without_value_is_generic(self):
        content = render_content(_entry(HistoryAction.STAGE_CHANGED), _task(), "Bob")
        assert content.message == 'Bob updated the stage of task "Quarterly report"'


class TestDeadlineAndPriorityMessage:
    """截止时间与优先级变更正文"""

    def test_deadline_formatted_as_locale_date(self):
        entry = _entry(
            HistoryAction.DEADLINE_CHANGED,
            changes=FieldChange(field="deadline", new_value="2026-04-05T12:00:00+00:00"),
        )
        content = render_content(entry, _task(), "Carol")
        assert content.message == 'Carol changed deadline of "Quarterly report" to 4/5/2026'

    def test_deadline_uses_configured_timezone(self):
        entry = _entry(
            HistoryAction.DEADLINE_CHANGED,
            changes=FieldChange(field="deadline", new_value="2026-04-05T02:00:00+00:00"),
        )
        content = render_content(entry, _task(), "Carol", ZoneInfo("America/New_York"))
        assert content.message.endswith("to 4/4/2026")

    def test_unparsable_deadline_is_generic(self):
        entry = _entry(
            HistoryAction.DEADLINE_CHANGED,
            changes=FieldChange(field="deadline", new_value="next friday"),
        )
        content = render_content(entry, _task(), "Carol")
        assert content.message == 'Carol updated the deadline of task "Quarterly report"'

    def test_priority_upper_cased(self):
        entry = _entry(
            HistoryAction.PRIORITY_CHANGED,
            changes=FieldChange(field="priority", old_value="low", new_value="urgent"),
        )
        content = render_content(entry, _task(), "Dan")
        assert content.message == 'Dan changed priority of "Quarterly report" to URGENT'

    def test_priority_without_value_is_generic(self):
        content = render_content(_entry(HistoryAction.PRIORITY_CHANGED), _task(), "Dan")
        assert content.message == 'Dan updated the priority of task "Quarterly report"'

    def test_format_locale_date_has_no_leading_zeros(self):
        assert format_locale_date(datetime(2026, 1, 2, tzinfo=UTC), UTC) == "1/2/2026"


class TestPriorityAndType:
    """通知优先级与类型映射"""

    @pytest.mark.parametrize(
        "action",
        [
            HistoryAction.COMPLETED,
            HistoryAction.APPROVED,
            HistoryAction.REJECTED,
            HistoryAction.TRANSFERRED,
        ],
    )
    def test_action_precedence_beats_urgent(self, action):
        """高优先级动作固定为 high，即使任务为 urgent"""
        assert notification_priority(action, Priority.URGENT) == Priority.HIGH

    @pytest.mark.parametrize(
        ("task_priority", "expected"),
        [
            (Priority.URGENT, Priority.URGENT),
            (Priority.HIGH, Priority.HIGH),
            (Priority.MEDIUM, Priority.MEDIUM),
            (Priority.LOW, Priority.MEDIUM),
            (None, Priority.MEDIUM),
        ],
    )
    def test_inherits_task_priority(self, task_priority, expected):
        assert notification_priority(HistoryAction.ASSIGNED, task_priority) == expected

    def test_render_content_priority(self):
        entry = _entry(
            HistoryAction.STATUS_CHANGED,
            status_change=StatusChange(from_status="pending", to_status="approved"),
        )
        assert render_content(entry, _task(priority="urgent"), "A").priority == Priority.URGENT
        assert render_content(entry, _task(priority="low"), "A").priority == Priority.MEDIUM

    def test_type_mapping(self):
        assert notification_type_for(HistoryAction.CREATED) == NotificationType.TASK_ASSIGNED
        assert notification_type_for(HistoryAction.TRANSFERRED) == (
            NotificationType.TASK_TRANSFERRED
        )
        assert notification_type_for(HistoryAction.DEADLINE_CHANGED) == (
            NotificationType.STATUS_CHANGED
        )
        assert notification_type_for(HistoryAction.REMARK_ADDED) == (
            NotificationType.STATUS_CHANGED
        )

    def test_every_notified_action_has_type(self):
        notified = set(HistoryAction) - {HistoryAction.REMARK_ADDED}
        assert set(NOTIFICATION_TYPES) == notified


class TestReminderContent:
    """提醒内容"""

    def test_deadline_reminder(self):
        task = _task(deadline=datetime(2026, 3, 11, 8, 0, tzinfo=UTC))
        content = render_reminder(NotificationType.TASK_DEADLINE_REMINDER, task)
        assert content.title == "Deadline Reminder: Quarterly report"
        assert content.message == 'Task "Quarterly report" is due soon. Deadline: 3/11/2026'
        assert content.priority == Priority.MEDIUM

    def test_overdue_reminder(self):
        content = render_reminder(NotificationType.TASK_OVERDUE, _task())
        assert content.title == "Task Overdue: Quarterly report"
        assert content.message == (
            'Task "Quarterly report" is now overdue. Please complete it as soon as possible.'
        )

    def test_non_reminder_type_rejected(self):
        with pytest.raises(ValueError):
            render_reminder(NotificationType.TASK_ASSIGNED, _task())
