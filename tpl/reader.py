"""TPL二进制数据读取器.

`DataReader` 在不可变缓冲区上维护一个只前进的游标,
所有固定宽度的读取均为大端字节序.
"""

import struct
from typing import cast

from .exceptions import TplDecodeError, TplEndOfBufferError

# 预编译的结构体打包器,用于性能优化
_STRUCT_I = struct.Struct(">I")
_STRUCT_Q = struct.Struct(">Q")
_STRUCT_d = struct.Struct(">d")


class DataReader:
    """TPL二进制数据的零复制读取器.

    包装memoryview以提供流式读取功能,而无需
    不必要时复制数据.
    """

    __slots__ = ("_pos", "_view", "length")

    _view: memoryview
    _pos: int
    length: int

    def __init__(self, data: bytes | bytearray | memoryview, pos: int = 0):
        """初始化DataReader.

        Args:
            data: 要读取的二进制数据.
            pos: 初始游标位置.
        """
        self._view = memoryview(data)
        self.length = len(self._view)
        self._pos = 0
        self.seek(pos)

    @property
    def pos(self) -> int:
        """当前游标位置."""
        return self._pos

    @property
    def remaining(self) -> int:
        """游标之后剩余的字节数."""
        return self.length - self._pos

    @property
    def eof(self) -> bool:
        """检查是否到达流末尾."""
        return self._pos >= self.length

    @property
    def data(self) -> memoryview:
        """底层缓冲区 (只读视图)."""
        return self._view

    def seek(self, pos: int) -> None:
        """将游标移动到绝对位置."""
        if pos < 0 or pos > self.length:
            raise TplDecodeError(f"Cannot seek to {pos} (length {self.length})")
        self._pos = pos

    def _require(self, length: int, what: str) -> None:
        if self._pos + length > self.length:
            raise TplEndOfBufferError(
                f"Not enough data to read {what}: need {length} byte(s), "
                f"{self.remaining} left",
                offset=self._pos,
            )

    def read_bytes(self, length: int) -> bytes:
        """读取字节序列.

        Args:
            length: 要读取的字节数.

        Returns:
            包含数据的bytes.

        Raises:
            TplEndOfBufferError: 如果没有足够的数据可用.
        """
        if length < 0:
            raise TplDecodeError(f"Cannot read negative bytes: {length}")
        self._require(length, "bytes")

        start = self._pos
        self._pos += length
        return self._view[start : self._pos].tobytes()

    def peek_bytes(self, length: int) -> bytes:
        """查看之后的字节而不移动指针.

        与 `read_bytes` 不同, 数据不足时返回较短的切片而不抛出异常.
        """
        return self._view[self._pos : self._pos + max(length, 0)].tobytes()

    def skip(self, length: int) -> None:
        """跳过指定数量的字节."""
        if length < 0:
            raise TplDecodeError(f"Cannot skip negative bytes: {length}")
        self._require(length, "skip")
        self._pos += length

    def read_u8(self) -> int:
        """读取无符号8位整数."""
        self._require(1, "u8")
        val = self._view[self._pos]
        self._pos += 1
        return val

    def read_bool(self) -> bool:
        """读取1字节布尔值, 非零为 True."""
        return self.read_u8() != 0

    def read_u32(self) -> int:
        """读取无符号4字节整数."""
        self._require(4, "u32")
        val = _STRUCT_I.unpack_from(self._view, self._pos)[0]
        self._pos += 4
        return cast(int, val)

    def read_u64(self) -> int:
        """读取无符号8字节整数."""
        self._require(8, "u64")
        val = _STRUCT_Q.unpack_from(self._view, self._pos)[0]
        self._pos += 8
        return cast(int, val)

    def read_double(self) -> float:
        """读取8字节双精度浮点数."""
        self._require(8, "double")
        val = _STRUCT_d.unpack_from(self._view, self._pos)[0]
        self._pos += 8
        return cast(float, val)

    def read_ostype(self) -> str:
        """读取4字节类型标签 (OSType)."""
        self._require(4, "type tag")
        return self.read_bytes(4).decode("latin-1")
