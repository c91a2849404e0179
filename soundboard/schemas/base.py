"""
soundboard.schemas.base
~~~~~~~~~~~~~~~~~~~~~~~

客户端协议使用 camelCase 字段名，Python 侧统一使用 snake_case。
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """按 camelCase 别名收发、按 snake_case 访问的基础模型。"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """序列化为下发给客户端的 JSON 字典。"""
        return self.model_dump(mode="json", by_alias=True)
