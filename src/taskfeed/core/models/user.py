"""UserProfile 模型 -- 身份协作方提供的展示字段"""

from pydantic import BaseModel, Field


class UserProfile(BaseModel):
    """用户展示信息（核心不做认证，只读取渲染所需字段）"""

    user_id: str = Field(description="用户 ID")
    name: str = Field(default="", description="显示名称")
    email: str = Field(default="", description="邮箱")
    role: str = Field(default="employee", description="角色")
