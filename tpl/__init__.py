"""Photoshop 工具预设 (TPL) 解码库.

提供 TPL 文件解码(decode/load)和 JSON 输出(serialize/dump)功能.
"""

from .api import decode, decode_result, dump, dumps, load, loads, serialize
from .config import TplConfig
from .decoder import ToolPresetDecoder, locate_tool_section, validate_header
from .exceptions import (
    TplDecodeError,
    TplEndOfBufferError,
    TplError,
    TplInvalidHeaderError,
    TplPlaceholderScanError,
    TplRecursionError,
    TplSectionNotFoundError,
)
from .models import DecodeResult, Document, ToolRecord
from .options import TplOption
from .reader import DataReader

__version__ = "0.1.0"

__all__ = [
    "DataReader",
    "DecodeResult",
    "Document",
    "ToolPresetDecoder",
    "ToolRecord",
    "TplConfig",
    "TplDecodeError",
    "TplEndOfBufferError",
    "TplError",
    "TplInvalidHeaderError",
    "TplOption",
    "TplPlaceholderScanError",
    "TplRecursionError",
    "TplSectionNotFoundError",
    "__version__",
    "decode",
    "decode_result",
    "dump",
    "dumps",
    "load",
    "loads",
    "locate_tool_section",
    "serialize",
    "validate_header",
]
