"""TPL解码器实现.

该模块提供文件头/数据段定位函数, 以及把工具数据段解析为
按类型分组的属性树的 `ToolPresetDecoder`.

工具数据是一种没有公开文档的标签化格式: 每个属性由长度前缀的名称、
4 字节类型标签和对应的值组成. 某些复合字段的真实类型标签出现在更后面,
此时通过占位符扫描向前搜索已知标签来恢复.
"""

import contextlib
from collections.abc import Iterator
from typing import Any

from .config import TplConfig
from .const import (
    GRADIENT_NAME,
    GRADIENT_PROPERTY_COUNT,
    HEADER_RESERVED,
    HEADER_SIGNATURE,
    IDENTIFIER_LENGTH,
    MAX_CONTAINER_SIZE,
    MAX_LABEL_LENGTH,
    NULL_NAME,
    OBJECT_RESERVED,
    PHOTOSHOP_SIGNATURE,
    PLACEHOLDERS,
    TAG_BOOL,
    TAG_COMP,
    TAG_DOUBLE,
    TAG_ENUM,
    TAG_LIST,
    TAG_LONG,
    TAG_OBJECT,
    TAG_TEXT,
    TAG_UNIT_FLOAT,
    TOOL_PADDING,
    TOOL_SECTION_MARKER,
    TOOL_SECTION_SKIP,
    UNSUPPORTED_TAGS,
    VALUE_TAGS,
)
from .exceptions import (
    TplDecodeError,
    TplEndOfBufferError,
    TplInvalidHeaderError,
    TplPlaceholderScanError,
    TplRecursionError,
    TplSectionNotFoundError,
)
from .log import get_hexdump, logger
from .models import Document, Property, ToolRecord
from .reader import DataReader

_PLACEHOLDER_BYTES = tuple(p.encode("latin-1") for p in PLACEHOLDERS)

# 扫描到 "dou" 时需要再确认一个 "b" 才构成 "doub"
_DOUBLE_PREFIX = b"dou"


def validate_header(data: bytes | bytearray | memoryview) -> int:
    """校验 TPL 文件头.

    文件头为 `8BTP` + 8 个保留字节 + `8BIM`, 两个魔数均不区分大小写.

    Returns:
        文件头之后的偏移.

    Raises:
        TplInvalidHeaderError: 魔数不匹配或数据不足 16 字节.
    """
    reader = DataReader(data)
    try:
        signature = reader.read_bytes(4)
        if signature.lower() != HEADER_SIGNATURE:
            raise TplInvalidHeaderError(
                f"Invalid TPL signature: {signature!r}", offset=0
            )

        reader.skip(HEADER_RESERVED)

        signature = reader.read_bytes(4)
        if signature.lower() != PHOTOSHOP_SIGNATURE:
            raise TplInvalidHeaderError(
                f"Invalid Photoshop signature: {signature!r}", offset=reader.pos - 4
            )
    except TplEndOfBufferError as e:
        raise TplInvalidHeaderError(
            f"Data too short for a TPL header ({reader.length} bytes)",
            offset=e.offset,
        ) from e

    return reader.pos


def locate_tool_section(data: bytes | bytearray | memoryview) -> int:
    """定位工具数据段.

    只有最后一次出现的 `8BIMtptp` 标记才指向真正的工具数据,
    较早的出现可能只是元数据. 数据从标记起始处之后 16 字节开始
    (8 字节标记 + 8 字节未解析的长度/类型字段).

    Raises:
        TplSectionNotFoundError: 找不到标记, 或标记之后不足 16 字节.
    """
    if isinstance(data, memoryview):
        data = data.tobytes()

    pos = data.rfind(TOOL_SECTION_MARKER)
    if pos == -1:
        raise TplSectionNotFoundError(
            f"Tool data marker {TOOL_SECTION_MARKER!r} not found"
        )

    offset = pos + TOOL_SECTION_SKIP
    if offset > len(data):
        raise TplSectionNotFoundError(
            f"Tool data marker at {pos} is truncated "
            f"({len(data) - pos} of {TOOL_SECTION_SKIP} bytes)",
            offset=len(data),
        )
    return offset


class ToolPresetDecoder:
    """TPL工具数据段的解码器.

    从 reader 的当前位置开始, 逐个读取工具条目直到数据耗尽.
    """

    __slots__ = ("_config", "_depth", "_path", "_reader")

    _reader: DataReader
    _config: TplConfig
    _depth: int
    _path: list[str | int]

    def __init__(self, reader: DataReader, config: TplConfig | None = None):
        self._reader = reader
        self._config = config or TplConfig()
        self._depth = 0
        self._path = []

    def decode(self, suppress_log: bool = False) -> Document:
        """读取所有工具条目, 按工具类型分组."""
        if not suppress_log:
            logger.debug(
                "[ToolPresetDecoder] 开始解码, 偏移 %d, 共 %d 字节",
                self._reader.pos,
                self._reader.length,
            )

        try:
            tools = self._read_tools()
        except RecursionError as e:
            error = TplRecursionError(
                "Python recursion limit exceeded while decoding",
                offset=self._reader.pos,
            )
            if not suppress_log:
                logger.error("[ToolPresetDecoder] 解码错误: %s", error)
            raise error from e
        except TplDecodeError as e:
            if e.offset is None:
                e.offset = self._reader.pos
            if not suppress_log:
                logger.error("[ToolPresetDecoder] 解码错误: %s", e)
                logger.debug(get_hexdump(self._reader.data, e.offset))
            raise

        if not suppress_log:
            logger.debug(
                "[ToolPresetDecoder] 成功解码 %d 个工具",
                sum(len(records) for records in tools.values()),
            )
        return tools

    def _read_tools(self) -> Document:
        tools: Document = {}
        index = 0

        # 剩余不足 4 字节时不再有完整的工具条目 (含空数据段)
        while self._reader.remaining >= 4:
            with self._scope(index):
                raw_name = self.read_text()
                name = raw_name
                if not self._config.keep_raw_name:
                    name = raw_name.split("=")[-1]

                # 工具名和类型之间的填充, 含义未知
                self._reader.skip(TOOL_PADDING)

                tool_type = self.read_label().decode("latin-1").strip(" \t\r\n\x00")
                count = self._read_count()

                with self._scope(name):
                    properties = [self.read_property() for _ in range(count)]

            tools.setdefault(tool_type, []).append(
                ToolRecord(name=name, properties=properties)
            )
            index += 1

        return tools

    # --- 标签 / 属性 ---

    def read_label(self) -> bytes:
        """读取长度前缀的标签, 长度为 0 时标签固定为之后的 4 字节."""
        length = self._reader.read_u32()
        if length == 0:
            length = IDENTIFIER_LENGTH
        elif length > MAX_LABEL_LENGTH:
            raise TplDecodeError(
                f"Label length {length} exceeds max limit {MAX_LABEL_LENGTH}",
                offset=self._reader.pos - 4,
            )
        return self._reader.read_bytes(length)

    def read_property(self) -> Property:
        """读取单个属性.

        Returns:
            `{name: {"type": tag, "value": value}}`; 名称为 "null" 或
            类型无法解码时返回空字典.
        """
        raw_name = self.read_label().decode("latin-1")
        if raw_name == NULL_NAME:
            return {}

        tag = self._reader.read_ostype()
        entry = self.read_value(raw_name.strip(), tag)
        if entry is None:
            return {}

        name, tag, value = entry
        return {name: {"type": tag, "value": value}}

    def read_value(self, name: str, tag: str) -> tuple[str, str, Any] | None:
        """按类型标签分派解码.

        未知标签通过占位符扫描恢复出真实的名称和标签; 可识别但不支持的
        标签不消费数据并返回 None.

        Returns:
            (名称, 标签, 值), 或 None.
        """
        while tag not in VALUE_TAGS:
            if tag in UNSUPPORTED_TAGS:
                logger.debug(
                    "[ToolPresetDecoder] 跳过不支持的类型 %r (%s)", tag, name
                )
                return None
            name, tag = self.scan_placeholder(name + tag)

        with self._scope(name):
            value = self._read_tagged(name, tag)
        return name, tag, value

    def _read_tagged(self, name: str, tag: str) -> Any:
        reader = self._reader

        if tag == TAG_OBJECT:
            return self.read_object(name)
        if tag == TAG_LIST:
            return self.read_list()
        if tag == TAG_DOUBLE:
            return reader.read_double()
        if tag == TAG_UNIT_FLOAT:
            return self.read_unit_float()
        if tag == TAG_TEXT:
            return self.read_text()
        if tag == TAG_ENUM:
            return self.read_enum()
        if tag == TAG_LONG:
            return reader.read_u32()
        if tag == TAG_COMP:
            return reader.read_u64()
        if tag == TAG_BOOL:
            return reader.read_bool()

        raise TplDecodeError(f"Unknown type tag: {tag!r}", offset=reader.pos)

    def scan_placeholder(self, prefix: str) -> tuple[str, str]:
        """逐字节向前扫描, 直到累积的文本以某个已知标签结尾.

        扫描过的字节 (连同 prefix) 被当作下一步解码的属性名.

        Raises:
            TplPlaceholderScanError: 到达数据末尾仍未找到已知标签.
        """
        reader = self._reader
        start = reader.pos
        text = bytearray(prefix.encode("latin-1"))

        while not reader.eof:
            text.append(reader.read_u8())

            for placeholder in _PLACEHOLDER_BYTES:
                if not text.endswith(placeholder):
                    continue
                if placeholder == _DOUBLE_PREFIX:
                    # 不按固定 4 字节截断匹配文本: "dou" 之后必须紧跟 "b"
                    if reader.peek_bytes(1) != b"b":
                        break
                    reader.skip(1)
                    placeholder += b"b"
                    text.append(ord("b"))

                found = text[: -len(placeholder)].decode("latin-1")
                logger.debug(
                    "[ToolPresetDecoder] 占位符扫描: %d 字节后找到 %r",
                    reader.pos - start,
                    placeholder,
                )
                return found, placeholder.decode("latin-1")

        raise TplPlaceholderScanError(
            f"No known type tag found after {prefix!r} "
            f"(scanned {reader.pos - start} bytes to end of data)",
            offset=start,
        )

    # --- 复合类型 ---

    def read_object(self, name: str) -> list[Property]:
        """读取嵌套对象 (Objc) 的属性列表."""
        if name == GRADIENT_NAME:
            # 渐变描述符: 一个内嵌文本, 之后固定 4 个属性
            self.read_text()
            count = GRADIENT_PROPERTY_COUNT
        else:
            self._reader.skip(OBJECT_RESERVED)
            self.read_label()  # 类名
            count = self._read_count()

        with self._nested():
            return [self.read_property() for _ in range(count)]

    def read_list(self) -> list[Any]:
        """读取值列表 (VlLs).

        每个元素以其索引作为名称解码, 结果只保留 `{"type", "value"}` 部分.
        """
        reader = self._reader
        count = self._read_count()
        values: list[Any] = []

        with self._nested():
            for i in range(count):
                tag = reader.read_ostype()
                entry = self.read_value(str(i), tag)
                if entry is None:
                    values.append(None)
                else:
                    values.append({"type": entry[1], "value": entry[2]})

        return values

    # --- 基本类型 ---

    def read_text(self) -> str:
        """读取 UTF-16 文本.

        长度为 0 表示文本之前还嵌有一个属性: 回退 4 字节, 把它当作属性
        读完, 再重新读取长度. 新长度只有在之后 `length * 2` 字节中恰好有
        `length + 1` 个零字节时才被接受 (ASCII 字符的高字节加上结尾的
        00 00), 否则视为填充并继续.
        """
        reader = self._reader
        length = reader.read_u32()

        while length == 0:
            reader.seek(reader.pos - 4)
            with self._nested():
                self.read_property()

            length = reader.read_u32()
            if length and reader.peek_bytes(length * 2).count(0) != length + 1:
                length = 0

        if length > MAX_LABEL_LENGTH:
            raise TplDecodeError(
                f"Text length {length} exceeds max limit {MAX_LABEL_LENGTH}",
                offset=reader.pos - 4,
            )

        raw = reader.read_bytes(length * 2)
        return raw.decode("utf-16-be", errors="replace").replace("\x00", "")

    def read_enum(self) -> dict[str, str]:
        """读取枚举值, 两个长度为 0 时均按 4 处理."""
        reader = self._reader

        length = reader.read_u32() or IDENTIFIER_LENGTH
        class_id = reader.read_bytes(length).decode("latin-1")

        length = reader.read_u32() or IDENTIFIER_LENGTH
        value = reader.read_bytes(length).decode("latin-1")

        return {"classId": class_id, "value": value}

    def read_unit_float(self) -> dict[str, Any]:
        """读取带单位的浮点数."""
        unit = self._reader.read_ostype()
        value = self._reader.read_double()
        return {"unit": unit, "value": value}

    def _read_count(self) -> int:
        count = self._reader.read_u32()
        if count > MAX_CONTAINER_SIZE:
            raise TplDecodeError(
                f"Property count {count} exceeds max limit {MAX_CONTAINER_SIZE}",
                offset=self._reader.pos - 4,
            )
        return count

    # --- 上下文 ---

    @contextlib.contextmanager
    def _scope(self, key: str | int) -> Iterator[None]:
        """记录当前解码路径, 用于错误定位."""
        self._path.append(key)
        try:
            yield
        except TplDecodeError as e:
            if not e.loc:
                e.loc = list(self._path)
            raise
        finally:
            self._path.pop()

    @contextlib.contextmanager
    def _nested(self) -> Iterator[None]:
        if self._depth >= self._config.max_depth:
            raise TplRecursionError(
                f"Nesting depth exceeds limit {self._config.max_depth}",
                offset=self._reader.pos,
            )
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
