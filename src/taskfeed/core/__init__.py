"""taskfeed Core -- 任务历史、收件人解析、通知渲染与提醒扫描"""
