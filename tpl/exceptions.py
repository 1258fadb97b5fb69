"""TPL特定的异常类.

该模块为TPL解码库定义了异常层次结构.
"""


class TplError(Exception):
    """所有 TPL 异常的基类."""

    pass


class TplDecodeError(TplError):
    """解码失败时抛出.

    Case:
        - 输入数据被截断.
        - 格式错误 (如魔数不匹配).
        - 无法从未知标签中恢复.
    """

    def __init__(
        self,
        msg: str,
        loc: list[str | int] | None = None,
        offset: int | None = None,
    ) -> None:
        """初始化解码错误.

        Args:
            msg: 错误描述信息.
            loc: 错误发生的位置路径 (工具名、属性名或列表索引).
            offset: 出错时游标所在的字节偏移.
        """
        super().__init__(msg)
        self.loc = loc or []
        self.offset = offset

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.loc:
            # 格式化为 dotted path
            loc_str = ".".join(str(x) for x in self.loc)
            return f"{base_msg} (at {loc_str})"
        return base_msg


class TplInvalidHeaderError(TplDecodeError):
    """文件头魔数 (`8BTP` / `8BIM`) 不匹配时抛出."""

    pass


class TplSectionNotFoundError(TplDecodeError):
    """找不到工具数据段标记 `8BIMtptp` 时抛出."""

    pass


class TplEndOfBufferError(TplDecodeError):
    """读取请求的字节数超过剩余数据时抛出.

    通常意味着文件被截断, 或者某个长度字段被错误解释.
    """

    pass


class TplPlaceholderScanError(TplDecodeError):
    """占位符扫描到达数据末尾仍未找到已知标签时抛出."""

    pass


class TplRecursionError(TplDecodeError):
    """嵌套对象/列表深度超过限制时抛出."""

    pass
