"""taskfeed -- 任务活动历史与通知派生引擎

taskfeed.core: 领域模型、持久化、收件人解析、内容渲染、提醒扫描。
taskfeed.gateway: FastAPI HTTP 入口。
"""
