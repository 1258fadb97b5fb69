"""TPL解码的配置选项.

该模块定义了用于控制 `decode` 函数行为的选项标志.
"""

from enum import IntFlag


class TplOption(IntFlag):
    """TPL 解码选项标志.

    可以使用位运算组合多个选项:
        option = TplOption.STRICT | TplOption.KEEP_RAW_NAME
    """

    # 默认行为: 文件头/数据段校验失败时返回空文档
    NONE = 0x0000

    # 文件头/数据段校验失败时抛出异常而不是返回空文档
    STRICT = 0x0001

    # 保留完整的原始工具名 (不截取最后一个 '=' 之后的部分)
    KEEP_RAW_NAME = 0x0002
