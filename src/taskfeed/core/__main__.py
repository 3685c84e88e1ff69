"""CLI 入口模块 -- python -m taskfeed.core <command>

支持的命令：
  deadline-sweep  执行截止提醒扫描
  overdue-sweep   执行逾期提醒扫描
  run-sweeps      依次执行两种扫描
"""

import asyncio
import sys

from .config import get_db_path

_COMMANDS = ("deadline-sweep", "overdue-sweep", "run-sweeps")


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print("用法: python -m taskfeed.core <command>")
        print("命令:")
        print("  deadline-sweep  执行截止提醒扫描")
        print("  overdue-sweep   执行逾期提醒扫描")
        print("  run-sweeps      依次执行两种扫描")
        sys.exit(1)

    command = sys.argv[1]

    if command in _COMMANDS:
        asyncio.run(run_sweeps(command))
    else:
        print(f"未知命令: {command}")
        print(f"可用命令: {', '.join(_COMMANDS)}")
        sys.exit(1)


async def run_sweeps(command: str) -> dict[str, int]:
    """执行提醒扫描，返回各类型新建的提醒数"""
    from .reminders import ReminderScheduler
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)

    try:
        scheduler = ReminderScheduler(store_group)
        counts: dict[str, int] = {}
        if command in ("deadline-sweep", "run-sweeps"):
            counts["deadline"] = len(await scheduler.run_deadline_sweep())
        if command in ("overdue-sweep", "run-sweeps"):
            counts["overdue"] = len(await scheduler.run_overdue_sweep())
        for kind, count in counts.items():
            print(f"{kind}: 新建 {count} 条提醒")
        return counts
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
