"""ReminderLoop -- 定时执行提醒扫描的后台任务

在 lifespan 中启动，每 interval_s 秒依次执行截止提醒与逾期提醒扫描。
单轮失败只记录日志，下一轮照常执行；关闭时取消后台任务。
"""

import asyncio

import structlog

from taskfeed.core.reminders import ReminderScheduler

log = structlog.get_logger()


class ReminderLoop:
    """提醒扫描轮询器"""

    def __init__(self, scheduler: ReminderScheduler, interval_s: float) -> None:
        self._scheduler = scheduler
        self._interval_s = max(1.0, float(interval_s))
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """启动后台任务（重复调用无副作用）"""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="reminder-loop")
        log.info("reminder_loop_started", interval_s=self._interval_s)

    async def stop(self) -> None:
        """取消后台任务并等待其退出"""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        log.info("reminder_loop_stopped")

    async def run_once(self) -> int:
        """执行一轮扫描，返回新建提醒总数"""
        results = await self._scheduler.run_all()
        return sum(len(created) for created in results.values())

    async def _run(self) -> None:
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.exception("reminder_loop_iteration_failed", error=str(e))
            await asyncio.sleep(self._interval_s)
