"""TPL 配置对象."""

from dataclasses import dataclass

from .const import MAX_DEPTH
from .options import TplOption


@dataclass(frozen=True)
class TplConfig:
    """TPL 解码配置 (不可变).

    在 API 入口层创建, 然后传递给解码器内核.

    Attributes:
        flags: 解码选项标志 (IntFlag).
        max_depth: 嵌套对象/列表的最大深度.
    """

    flags: TplOption = TplOption.NONE
    max_depth: int = MAX_DEPTH

    @classmethod
    def from_params(
        cls,
        option: TplOption = TplOption.NONE,
        max_depth: int | None = None,
    ) -> "TplConfig":
        """从参数构建配置对象.

        Args:
            option: TplOption 枚举.
            max_depth: 最大嵌套深度, None 表示使用默认值.

        Returns:
            TplConfig: 配置对象.
        """
        if max_depth is not None and max_depth < 1:
            raise ValueError(f"max_depth must be positive, got {max_depth}")

        return cls(
            flags=option,
            max_depth=MAX_DEPTH if max_depth is None else max_depth,
        )

    @property
    def strict(self) -> bool:
        """文件头/数据段校验失败时是否抛出异常."""
        return bool(self.flags & TplOption.STRICT)

    @property
    def keep_raw_name(self) -> bool:
        """是否保留完整的原始工具名."""
        return bool(self.flags & TplOption.KEEP_RAW_NAME)
