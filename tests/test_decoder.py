"""测试 TPL 解码器.

覆盖 tpl.decoder 模块:
1. 文件头校验与工具段定位
2. 标签/属性读取 (null 属性, 不支持的类型)
3. 类型分派 (基本类型, 文本, 枚举, 列表, 嵌套对象)
4. 间接文本长度恢复
5. 占位符扫描
6. 深度限制与错误定位
7. 长度/数量上限与 Python 递归上限
"""

import pytest
from builders import (
    enum,
    f64,
    label,
    long_prop,
    objc,
    prop,
    text,
    tool,
    u32,
    u64,
    unit_float,
    value_list,
)

from tpl import TplConfig
from tpl.const import MAX_CONTAINER_SIZE, MAX_LABEL_LENGTH
from tpl.decoder import ToolPresetDecoder, locate_tool_section, validate_header
from tpl.exceptions import (
    TplDecodeError,
    TplEndOfBufferError,
    TplInvalidHeaderError,
    TplPlaceholderScanError,
    TplRecursionError,
    TplSectionNotFoundError,
)
from tpl.reader import DataReader


def make_decoder(data: bytes, max_depth: int | None = None) -> ToolPresetDecoder:
    """在数据起始处创建解码器."""
    config = TplConfig.from_params(max_depth=max_depth)
    return ToolPresetDecoder(DataReader(data), config)


# --- 文件头 / 工具段 ---


@pytest.mark.parametrize(
    ("signature", "photoshop"),
    [(b"8BTP", b"8BIM"), (b"8btp", b"8bim"), (b"8bTp", b"8BiM")],
)
def test_validate_header_case_insensitive(signature: bytes, photoshop: bytes) -> None:
    """两个魔数均不区分大小写, 返回文件头之后的偏移."""
    data = signature + b"\xaa" * 8 + photoshop + b"rest"

    assert validate_header(data) == 16


@pytest.mark.parametrize(
    "data",
    [
        b"8BPS" + b"\x00" * 8 + b"8BIM",
        b"8BTP" + b"\x00" * 8 + b"8BPS",
        b"8BTP" + b"\x00" * 8,
        b"",
    ],
)
def test_validate_header_invalid(data: bytes) -> None:
    """魔数不匹配或数据过短时应抛出 TplInvalidHeaderError."""
    with pytest.raises(TplInvalidHeaderError):
        validate_header(data)


def test_locate_tool_section_uses_last_marker() -> None:
    """存在多个标记时应选择最后一个."""
    data = bytearray(300)
    data[10:18] = b"8BIMtptp"
    data[200:208] = b"8BIMtptp"

    assert locate_tool_section(bytes(data)) == 216
    assert locate_tool_section(memoryview(data)) == 216


def test_locate_tool_section_truncated() -> None:
    """标记之后不足 8 字节时应抛出 TplSectionNotFoundError."""
    data = b"\x00" * 4 + b"8BIMtptp" + b"\x00" * 7

    with pytest.raises(TplSectionNotFoundError) as exc_info:
        locate_tool_section(data)

    assert exc_info.value.offset == len(data)
    # 恰好 16 字节时工具段为空但有效
    assert locate_tool_section(data + b"\x00") == len(data) + 1


def test_locate_tool_section_missing() -> None:
    """找不到标记时应抛出 TplSectionNotFoundError."""
    with pytest.raises(TplSectionNotFoundError):
        locate_tool_section(b"8BTP" + b"\x00" * 8 + b"8BIM8BIMtpt")


# --- 标签 / 属性 ---


def test_read_label_zero_length_is_four_bytes() -> None:
    """长度为 0 的标签固定读取之后的 4 字节."""
    decoder = make_decoder(u32(0) + b"Clr rest")

    assert decoder.read_label() == b"Clr "
    assert decoder._reader.pos == 8


def test_read_label_explicit_length() -> None:
    """非零长度的标签按长度读取."""
    decoder = make_decoder(label("brushPreset") + b"next")

    assert decoder.read_label() == b"brushPreset"
    assert decoder._reader.read_bytes(4) == b"next"


def test_read_property_long() -> None:
    """属性应包装为 {name: {type, value}}."""
    decoder = make_decoder(long_prop("Size", 42))

    assert decoder.read_property() == {"Size": {"type": "long", "value": 42}}
    assert decoder._reader.eof


def test_read_property_strips_name() -> None:
    """4 字节标识符中的空格会被去掉."""
    decoder = make_decoder(label("Md  ", short=True) + b"bool\x01")

    assert decoder.read_property() == {"Md": {"type": "bool", "value": True}}


def test_read_property_null_name() -> None:
    """名称为 "null" 的属性是空字典, 且不再消费任何数据."""
    decoder = make_decoder(label("null", short=True) + b"long")

    assert decoder.read_property() == {}
    assert decoder._reader.pos == 8


@pytest.mark.parametrize("tag", ["type", "GlbC", "obj ", "alis", "tdta"])
def test_read_property_unsupported_tag(tag: str) -> None:
    """不支持的类型返回空属性, 只消费名称和类型标签."""
    data = prop("Nm", tag, b"\x00\x00\x00\x05payload")
    decoder = make_decoder(data)

    assert decoder.read_property() == {}
    assert decoder._reader.pos == 4 + 2 + 4


# --- 基本类型 ---


@pytest.mark.parametrize(
    ("tag", "payload", "expected"),
    [
        ("doub", f64(0.1), 0.1),
        ("doub", f64(-1234.5678), -1234.5678),
        ("long", u32(0xFFFFFFFF), 0xFFFFFFFF),
        ("comp", u64(2**40 + 5), 2**40 + 5),
        ("bool", b"\x00", False),
        ("bool", b"\x02", True),
        ("UntF", unit_float("#Pxl", 12.5), {"unit": "#Pxl", "value": 12.5}),
        ("TEXT", text("Hello"), "Hello"),
        ("TEXT", text(""), ""),
        ("TEXT", text("画笔 ü"), "画笔 ü"),
        ("enum", enum("BlnM", "Nrml"), {"classId": "BlnM", "value": "Nrml"}),
        (
            "enum",
            enum("blendMode", "normal"),
            {"classId": "blendMode", "value": "normal"},
        ),
    ],
)
def test_read_value_primitives(tag: str, payload: bytes, expected: object) -> None:
    """各类型标签应分派到对应的解码器并消费全部数据."""
    decoder = make_decoder(payload)

    assert decoder.read_value("Nm", tag) == ("Nm", tag, expected)
    assert decoder._reader.eof


def test_read_enum_zero_lengths() -> None:
    """枚举的两个长度为 0 时均按 4 处理."""
    decoder = make_decoder(u32(0) + b"Ornt" + u32(0) + b"Hrzn")

    assert decoder.read_enum() == {"classId": "Ornt", "value": "Hrzn"}
    assert decoder._reader.eof


def test_read_text_strips_nul() -> None:
    """文本中的 NUL 字符会被去掉."""
    decoder = make_decoder(u32(4) + "A\x00B".encode("utf-16-be") + b"\x00\x00")

    assert decoder.read_text() == "AB"


# --- 间接文本长度 ---


def test_read_text_indirect_length() -> None:
    """长度为 0 时先读完内嵌属性, 再读取真实文本."""
    data = u32(0) + b"Nm  " + b"long" + u32(7) + text("Hi")
    decoder = make_decoder(data)

    assert decoder.read_text() == "Hi"
    assert decoder._reader.eof


def test_read_text_indirect_rejects_spurious_length() -> None:
    """零字节数不等于 length + 1 的长度被视为填充, 继续读取属性."""
    data = (
        u32(0)
        + b"AAAA"
        + b"bool\x01"
        # "Size" 的长度 4 看起来像文本长度, 但之后 8 字节中没有零字节
        + long_prop("Size", 9)
        + text("Ok")
    )
    decoder = make_decoder(data)

    assert decoder.read_text() == "Ok"
    assert decoder._reader.eof


# --- 复合类型 ---


def test_read_list() -> None:
    """列表元素只保留 {type, value}, 无法解码的元素为 None."""
    data = value_list(
        [
            ("long", u32(1)),
            ("TEXT", text("a")),
            ("tdta", b""),
            ("enum", enum("Ornt", "Vrtc")),
        ]
    )
    decoder = make_decoder(data)

    assert decoder.read_list() == [
        {"type": "long", "value": 1},
        {"type": "TEXT", "value": "a"},
        None,
        {"type": "enum", "value": {"classId": "Ornt", "value": "Vrtc"}},
    ]
    assert decoder._reader.eof


def test_read_empty_list() -> None:
    """空列表."""
    decoder = make_decoder(u32(0))
    assert decoder.read_list() == []


def test_read_object() -> None:
    """嵌套对象解码为按顺序排列的属性列表."""
    payload = objc(
        "Brsh",
        [
            prop("Dmtr", "UntF", unit_float("#Pxl", 30.0)),
            prop("Hrdn", "UntF", unit_float("#Prc", 0.0)),
            label("null", short=True),
        ],
    )
    decoder = make_decoder(prop("Brsh", "Objc", payload))

    assert decoder.read_property() == {
        "Brsh": {
            "type": "Objc",
            "value": [
                {"Dmtr": {"type": "UntF", "value": {"unit": "#Pxl", "value": 30.0}}},
                {"Hrdn": {"type": "UntF", "value": {"unit": "#Prc", "value": 0.0}}},
                {},
            ],
        }
    }
    assert decoder._reader.eof


def test_read_object_gradient() -> None:
    """Grad 对象先读一个文本, 之后固定 4 个属性, 没有属性数字段."""
    props = [
        prop("Nm  ", "TEXT", text("Custom")),
        prop("GrdF", "enum", enum("GrdF", "CstS")),
        prop("Intr", "doub", f64(4096.0)),
        prop("Clrs", "VlLs", value_list([("long", u32(3))])),
    ]
    payload = text("Gradient") + b"".join(props) + long_prop("Next", 1)
    decoder = make_decoder(prop("Grad", "Objc", payload))

    result = decoder.read_property()

    assert [list(p) for p in result["Grad"]["value"]] == [
        ["Nm"],
        ["GrdF"],
        ["Intr"],
        ["Clrs"],
    ]
    assert decoder.read_property() == {"Next": {"type": "long", "value": 1}}


def test_read_list_of_objects() -> None:
    """列表中的对象递归解码."""
    data = value_list(
        [
            ("Objc", objc("Pnt ", [prop("Hrzn", "doub", f64(1.0))])),
            ("Objc", objc("Pnt ", [prop("Hrzn", "doub", f64(2.0))])),
        ]
    )
    decoder = make_decoder(data)

    assert decoder.read_list() == [
        {"type": "Objc", "value": [{"Hrzn": {"type": "doub", "value": 1.0}}]},
        {"type": "Objc", "value": [{"Hrzn": {"type": "doub", "value": 2.0}}]},
    ]


# --- 占位符扫描 ---


def test_placeholder_scan_recovers_name_and_tag() -> None:
    """未知标签触发扫描, 扫过的字节并入属性名."""
    decoder = make_decoder(prop("Nm", "XXXX", b"yz" + b"long" + u32(5)))

    assert decoder.read_property() == {"NmXXXXyz": {"type": "long", "value": 5}}
    assert decoder._reader.eof


def test_placeholder_scan_double() -> None:
    """扫描到 "dou" 且其后为 "b" 时恢复为 doub 标签."""
    decoder = make_decoder(prop("Nm", "XXXX", b"ab" + b"doub" + f64(1.5)))

    assert decoder.read_property() == {"NmXXXXab": {"type": "doub", "value": 1.5}}
    assert decoder._reader.eof


def test_placeholder_scan_through_global_object() -> None:
    """GlbO 不是值类型, 扫描继续进行直到找到可解码的标签."""
    data = prop("Nm", "XXXX", b"GlbO" + b"q" + b"bool\x01")
    decoder = make_decoder(data)

    assert decoder.read_property() == {
        "NmXXXXGlbOq": {"type": "bool", "value": True}
    }


def test_placeholder_scan_to_unsupported_tag() -> None:
    """扫描结果为不支持的类型时返回空属性."""
    decoder = make_decoder(prop("Nm", "XXXX", b"z" + b"alis" + b"tail"))

    assert decoder.read_property() == {}
    assert decoder._reader.read_bytes(4) == b"tail"


def test_placeholder_scan_exhausted() -> None:
    """到达数据末尾仍未找到标签时应抛出 TplPlaceholderScanError."""
    decoder = make_decoder(prop("Nm", "XXXX", b"abcdou"))

    with pytest.raises(TplPlaceholderScanError) as exc_info:
        decoder.read_property()

    assert exc_info.value.offset == 4 + 2 + 4


# --- 深度限制 / 错误定位 ---


def _nested_objects(levels: int) -> bytes:
    if levels == 0:
        return long_prop("Leaf", 1)
    return prop("Obj ", "Objc", objc("Clss", [_nested_objects(levels - 1)]))


def test_depth_limit_allows_exact_depth() -> None:
    """嵌套深度等于限制时正常解码."""
    decoder = make_decoder(_nested_objects(2), max_depth=2)

    result = decoder.read_property()
    inner = result["Obj"]["value"][0]["Obj"]["value"][0]
    assert inner == {"Leaf": {"type": "long", "value": 1}}


def test_depth_limit_exceeded() -> None:
    """嵌套深度超过限制时应抛出 TplRecursionError."""
    decoder = make_decoder(_nested_objects(3), max_depth=2)

    with pytest.raises(TplRecursionError):
        decoder.read_property()


def test_decode_error_location() -> None:
    """解码错误应携带工具序号、工具名和属性路径."""
    data = tool("Default=MyBrush", "Brsh", [long_prop("Size", 42)])[:-2]
    decoder = make_decoder(data)

    with pytest.raises(TplEndOfBufferError) as exc_info:
        decoder.decode(suppress_log=True)

    assert exc_info.value.loc == [0, "MyBrush", "Size"]
    assert "(at 0.MyBrush.Size)" in str(exc_info.value)


def test_decode_multiple_tools() -> None:
    """工具按类型分组, 组内保持出现顺序."""
    data = (
        tool("A=one", "Brsh", [long_prop("Size", 1)])
        + tool("two", "Ersr", [])
        + tool("x=y=three", "Brsh", [])
    )
    decoder = make_decoder(data)

    tools = decoder.decode(suppress_log=True)

    assert list(tools) == ["Brsh", "Ersr"]
    assert [r.name for r in tools["Brsh"]] == ["one", "three"]
    assert tools["Ersr"][0].name == "two"
    assert tools["Ersr"][0].properties == []


def test_decode_stops_when_less_than_four_bytes_remain() -> None:
    """剩余不足 4 字节时停止读取工具."""
    data = tool("one", "Brsh", []) + b"\x00\x00\x00"
    decoder = make_decoder(data)

    tools = decoder.decode(suppress_log=True)

    assert [r.name for r in tools["Brsh"]] == ["one"]


def test_decode_empty_section() -> None:
    """没有任何工具条目时返回空文档."""
    decoder = make_decoder(b"\x00\x00\x00")

    assert decoder.decode(suppress_log=True) == {}


# --- 安全限制 ---


def test_label_length_limit() -> None:
    """标签长度超过上限时应抛出 TplDecodeError, offset 指向长度字段."""
    decoder = make_decoder(b"pad!" + u32(MAX_LABEL_LENGTH + 1) + b"Nm")
    decoder._reader.skip(4)

    with pytest.raises(TplDecodeError, match="Label length") as exc_info:
        decoder.read_label()

    assert exc_info.value.offset == 4


def test_text_length_limit() -> None:
    """文本长度超过上限时应抛出 TplDecodeError, 不尝试读取数据."""
    decoder = make_decoder(u32(MAX_LABEL_LENGTH + 1) + b"\x00A")

    with pytest.raises(TplDecodeError, match="Text length") as exc_info:
        decoder.read_text()

    assert exc_info.value.offset == 0
    assert not isinstance(exc_info.value, TplEndOfBufferError)


def test_list_size_limit() -> None:
    """列表元素数超过上限时应抛出 TplDecodeError."""
    decoder = make_decoder(u32(MAX_CONTAINER_SIZE + 1))

    with pytest.raises(TplDecodeError, match="exceeds max limit") as exc_info:
        decoder.read_list()

    assert exc_info.value.offset == 0


def test_object_property_count_limit() -> None:
    """对象属性数超过上限时应抛出 TplDecodeError."""
    data = (
        b"\x00\x00\x00\x01\x00\x00"
        + label("Clss", short=True)
        + u32(MAX_CONTAINER_SIZE + 1)
    )
    decoder = make_decoder(data)

    with pytest.raises(TplDecodeError, match="exceeds max limit") as exc_info:
        decoder.read_object("Obj")

    assert exc_info.value.offset == len(data) - 4


def test_python_recursion_limit_converted() -> None:
    """超出 Python 递归上限时转换为 TplRecursionError."""
    nested = long_prop("Leaf", 1)
    for _ in range(2000):
        nested = prop("Obj ", "Objc", objc("Clss", [nested]))

    data = tool("Deep", "Brsh", [nested])
    decoder = ToolPresetDecoder(DataReader(data), TplConfig(max_depth=10**6))

    with pytest.raises(TplRecursionError, match="recursion limit"):
        decoder.decode(suppress_log=True)
