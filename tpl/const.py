"""TPL格式常量.

该模块定义了 Photoshop 工具预设 (TPL) 文件中使用的魔数、类型标签和其他常量.
"""

# 文件头
HEADER_SIGNATURE = b"8btp"
HEADER_RESERVED = 8
PHOTOSHOP_SIGNATURE = b"8bim"

# 工具数据段: 标记 (8) + 未解析的长度/类型字段 (8)
TOOL_SECTION_MARKER = b"8BIMtptp"
TOOL_SECTION_SKIP = 16

# 工具名与工具类型之间的填充
TOOL_PADDING = 10

# 长度为 0 的标签/枚举字段表示固定 4 字节标识符
IDENTIFIER_LENGTH = 4

# Objc 中类名之前的保留字节
OBJECT_RESERVED = 6

NULL_NAME = "null"
GRADIENT_NAME = "Grad"
GRADIENT_PROPERTY_COUNT = 4

# 值类型标签
TAG_OBJECT = "Objc"
TAG_LIST = "VlLs"
TAG_DOUBLE = "doub"
TAG_UNIT_FLOAT = "UntF"
TAG_TEXT = "TEXT"
TAG_ENUM = "enum"
TAG_LONG = "long"
TAG_COMP = "comp"
TAG_BOOL = "bool"

VALUE_TAGS = frozenset(
    {
        TAG_OBJECT,
        TAG_LIST,
        TAG_DOUBLE,
        TAG_UNIT_FLOAT,
        TAG_TEXT,
        TAG_ENUM,
        TAG_LONG,
        TAG_COMP,
        TAG_BOOL,
    }
)

# 可识别但无法解码的标签: 不消费任何数据, 返回空属性
UNSUPPORTED_TAGS = frozenset({"type", "GlbC", "obj ", "alis", "tdta"})

# 占位符扫描的终止字面量 (顺序即匹配优先级)
PLACEHOLDERS = (
    "GlbO",
    "Objc",
    "VlLs",
    "dou",
    "UntF",
    "TEXT",
    "enum",
    "long",
    "comp",
    "bool",
    "type",
    "GlbC",
    "obj ",
    "alis",
    "tdta",
)

# 安全限制
MAX_DEPTH = 100
MAX_LABEL_LENGTH = 16 * 1024 * 1024  # 16MB
MAX_CONTAINER_SIZE = 10_000_000  # 1000万元素
