"""TPL API模块.

提供用于 TPL 解码和 JSON 输出的高级接口 `decode`, `serialize`, `load`, `dump`.
"""

import json
import math
from typing import IO, Any

from .config import TplConfig
from .decoder import ToolPresetDecoder, locate_tool_section, validate_header
from .exceptions import TplInvalidHeaderError, TplSectionNotFoundError
from .log import logger
from .models import DecodeResult, Document, DocumentAdapter
from .options import TplOption
from .reader import DataReader


def _to_json_safe(obj: Any) -> Any:
    """递归将非有限浮点数转换为 None.

    - dict -> 值递归转换（键保持原样）
    - list/tuple -> 列表内元素递归转换
    - NaN/Infinity -> None (与 JSON 规范一致)
    - 其他类型 -> 原样返回
    """
    if isinstance(obj, dict):
        return {k: _to_json_safe(v) for k, v in obj.items()}
    if isinstance(obj, list | tuple):
        return [_to_json_safe(v) for v in obj]
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    return obj


def decode_result(
    data: bytes | bytearray | memoryview,
    option: TplOption = TplOption.NONE,
    config: TplConfig | None = None,
    suppress_log: bool = False,
) -> DecodeResult:
    """解码 TPL 数据, 返回带有效性标记的结果.

    Args:
        data: 完整的 TPL 文件内容.
        option: 解码选项.
        config: 完整配置, 指定时忽略 `option`.
        suppress_log: 是否抑制调试日志.

    Returns:
        DecodeResult: 文件头或数据段无效时 `valid` 为 False.

    Raises:
        TplInvalidHeaderError: 仅在 `TplOption.STRICT` 下, 文件头无效.
        TplSectionNotFoundError: 仅在 `TplOption.STRICT` 下, 缺少工具数据段.
        TplDecodeError: 工具数据格式错误或被截断.
    """
    cfg = config or TplConfig.from_params(option)

    try:
        validate_header(data)
        offset = locate_tool_section(data)
    except (TplInvalidHeaderError, TplSectionNotFoundError) as e:
        if cfg.strict:
            raise
        if not suppress_log:
            logger.debug("[decode] 不是有效的 TPL 数据: %s", e)
        return DecodeResult(valid=False, error=str(e))

    reader = DataReader(data, offset)
    tools = ToolPresetDecoder(reader, cfg).decode(suppress_log=suppress_log)
    return DecodeResult(valid=True, tools=tools)


def decode(
    data: bytes | bytearray | memoryview,
    option: TplOption = TplOption.NONE,
    config: TplConfig | None = None,
    suppress_log: bool = False,
) -> Document:
    """解码 TPL 数据.

    Args:
        data: 完整的 TPL 文件内容.
        option: 解码选项.
        config: 完整配置, 指定时忽略 `option`.
        suppress_log: 是否抑制调试日志.

    Returns:
        Document: 工具类型标签 -> 工具条目列表. 文件头或数据段无效时
        返回空字典 (`TplOption.STRICT` 下改为抛出异常).

    Examples:
        >>> tools = decode(Path("brushes.tpl").read_bytes())
        >>> tools["PbTl"][0].name
        'Soft Round'
    """
    return decode_result(data, option, config, suppress_log).tools


def serialize(document: Document | DecodeResult, indent: int = 2) -> str:
    """将解码结果序列化为 JSON 文本.

    键顺序与解码时的插入顺序一致.

    Args:
        document: `decode` 或 `decode_result` 的返回值.
        indent: 缩进空格数.

    Returns:
        str: JSON 文本.
    """
    if isinstance(document, DecodeResult):
        document = document.tools

    plain = _to_json_safe(DocumentAdapter.dump_python(document, warnings=False))
    return json.dumps(plain, indent=indent, ensure_ascii=False)


def load(
    fp: IO[bytes],
    option: TplOption = TplOption.NONE,
    config: TplConfig | None = None,
) -> Document:
    """从二进制文件对象读取并解码 TPL 数据."""
    return decode(fp.read(), option=option, config=config)


def dump(document: Document | DecodeResult, fp: IO[str], indent: int = 2) -> None:
    """将解码结果以 JSON 写入文本文件对象."""
    fp.write(serialize(document, indent=indent))


loads = decode
dumps = serialize
