"""TPL命令行工具."""

import contextlib
import logging
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.text import Text
from rich.tree import Tree

from .api import decode_result, serialize
from .exceptions import TplError
from .log import logger
from .models import Document

# 流式读取配置
FILE_SIZE_THRESHOLD = 10 * 1024 * 1024  # 10MB
CHUNK_SIZE = 8 * 1024 * 1024  # 8MB

# 样式定义
STYLE_NAME = "bold blue"
STYLE_TYPE = "cyan"
STYLE_VALUE_STR = "green"
STYLE_VALUE_NUM = "magenta"


def _read_binary_file(file_path: Path, verbose: bool) -> bytes:
    """读取二进制文件,大文件使用分块以控制内存.

    Args:
        file_path: 文件路径.
        verbose: 是否显示详细信息.

    Returns:
        文件内容的bytes.
    """
    file_size = file_path.stat().st_size

    if file_size > FILE_SIZE_THRESHOLD:
        if verbose:
            click.echo(f"[DEBUG] 文件大小 {file_size} 字节,使用分块读取", err=True)

        chunks = []
        with open(file_path, "rb") as f:
            while chunk := f.read(CHUNK_SIZE):
                chunks.append(chunk)
        return b"".join(chunks)
    return file_path.read_bytes()


def _leaf_label(name: str, tag: str | None, value: Any) -> Text:
    if isinstance(value, str):
        value_str, value_style = value, STYLE_VALUE_STR
    elif isinstance(value, dict) and "classId" in value:
        value_str = f"{value['classId']}.{value['value']}"
        value_style = STYLE_VALUE_STR
    elif isinstance(value, dict) and "unit" in value:
        value_str = f"{value['value']} {value['unit']}"
        value_style = STYLE_VALUE_NUM
    else:
        value_str, value_style = str(value), STYLE_VALUE_NUM

    label = Text()
    label.append(f"{name} ", style=STYLE_NAME)
    if tag is not None:
        label.append(f"{tag}: ", style=STYLE_TYPE)
    label.append(value_str, style=value_style)
    return label


def _build_rich_tree(name: str, entry: dict[str, Any] | None, tree: Tree) -> None:
    """递归构建 Rich 树.

    Args:
        name: 属性名或列表索引.
        entry: `{"type": 标签, "value": 值}`, 无法解码的列表元素为 None.
        tree: 父级 Tree 对象.
    """
    if entry is None:
        tree.add(Text(f"{name} (empty)", style="dim"))
        return

    tag = entry["type"]
    value = entry["value"]

    if tag == "Objc":
        branch = tree.add(
            Text.assemble((f"{name} ", STYLE_NAME), ("Objc", "bold yellow"))
        )
        for prop in value:
            _add_property(prop, branch)
    elif tag == "VlLs":
        branch = tree.add(
            Text.assemble(
                (f"{name} ", STYLE_NAME), (f"VlLs ({len(value)})", STYLE_TYPE)
            )
        )
        for i, item in enumerate(value):
            _build_rich_tree(f"[{i}]", item, branch)
    else:
        tree.add(_leaf_label(name, tag, value))


def _add_property(prop: dict[str, Any], tree: Tree) -> None:
    if not prop:
        tree.add(Text("(null)", style="dim"))
        return
    for name, entry in prop.items():
        _build_rich_tree(name, entry, tree)


def _print_document_tree(document: Document, file: Any = None) -> None:
    """打印TPL文档树 (使用 Rich).

    Args:
        document: 解码结果.
        file: 输出文件对象,默认为stdout.
    """
    console = Console(file=file)
    root = Tree("TPL Root", style="bold white")

    for tool_type, records in document.items():
        type_branch = root.add(Text(tool_type, style="bold yellow"))
        for record in records:
            record_branch = type_branch.add(Text(record.name, style="bold"))
            for prop in record.properties:
                _add_property(prop, record_branch)

    console.print(root)


@contextlib.contextmanager
def _debug_logging(enabled: bool) -> Iterator[None]:
    """在命令执行期间把库日志输出到 stderr."""
    if not enabled:
        yield
        return

    handler = RichHandler(console=Console(stderr=True), show_path=False)
    previous_level = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    try:
        yield
    finally:
        logger.removeHandler(handler)
        logger.setLevel(previous_level)


@click.command(help="Photoshop 工具预设 (TPL) 解析工具")
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o",
    "--output",
    "output_file",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    default="output.json",
    show_default=True,
    help="将 JSON 结果保存到文件",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "tree"]),
    default="json",
    show_default=True,
    help="输出格式 (tree 直接输出到控制台)",
)
@click.option(
    "--stdout",
    "to_stdout",
    is_flag=True,
    help="将 JSON 输出到控制台而不是文件",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="显示详细的解码过程信息",
)
def cli(
    input_file: Path,
    output_file: Path,
    output_format: str,
    to_stdout: bool,
    verbose: bool,
) -> None:
    """TPL 解析命令行工具.

    Examples:
      # 解析并保存为 output.json
      tpl brushes.tpl

      # 指定输出文件
      tpl brushes.tpl -o brushes.json

      # 以 Tree 格式输出到控制台
      tpl brushes.tpl --format tree
    """
    data = _read_binary_file(input_file, verbose)
    if verbose:
        click.echo(f"[DEBUG] 数据大小: {len(data)} 字节", err=True)

    try:
        with _debug_logging(verbose):
            result = decode_result(data, suppress_log=not verbose)
    except TplError as e:
        if verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        raise click.ClickException(f"解码失败: {e}") from e

    if not result.valid:
        raise click.ClickException(f"不是有效的 TPL 文件: {result.error}")

    if output_format == "tree":
        _print_document_tree(result.tools)
        return

    output_text = serialize(result)

    if to_stdout:
        console = Console()
        console.print(Syntax(output_text, "json", theme="monokai", word_wrap=True))
        return

    output_file.write_text(output_text, encoding="utf-8")
    click.echo(f"结果已保存到: {output_file}")


def main() -> None:
    """入口函数."""
    cli()


if __name__ == "__main__":
    main()
