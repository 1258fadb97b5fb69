"""TPL解码结果模型.

`ToolRecord` 表示一个工具预设条目, `Document` 按工具类型标签分组,
`DecodeResult` 额外携带文件是否有效的标记.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

# 单个属性: 最多一个键 (属性名) -> {"type": 标签, "value": 值}
Property = dict[str, Any]


class ToolRecord(BaseModel):
    """单个工具预设条目.

    Attributes:
        name: 显示名称 (原始名称中最后一个 '=' 之后的部分).
        properties: 按出现顺序排列的属性列表.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    properties: list[Property] = Field(default_factory=list)


Document = dict[str, list[ToolRecord]]

DocumentAdapter: TypeAdapter[Document] = TypeAdapter(Document)


class DecodeResult(BaseModel):
    """带有效性标记的解码结果.

    用于区分 "文件无效" (魔数不匹配/缺少数据段) 和 "解码成功".
    """

    model_config = ConfigDict(frozen=True)

    valid: bool
    error: str | None = None
    tools: Document = Field(default_factory=dict)
