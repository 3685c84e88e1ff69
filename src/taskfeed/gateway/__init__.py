"""taskfeed Gateway -- FastAPI HTTP 入口与提醒后台循环"""
