"""Wolai block to Markdown conversion.

Inverse of ``markdown_to_blocks``.  Blocks render in order and are joined
with a blank line, except that consecutive list items are joined with a
single newline so they stay one Markdown list.  List items are indented
by their ``depth``; other blocks are indented only when they were fetched
as children of another block.
"""

from __future__ import annotations

import logging

from .common import Block, BlockType, RichText, RichTextSpan, rich_text_parts

logger = logging.getLogger(__name__)

INDENT = "    "


def _wrap(text: str, marker: str, closing: str | None = None) -> str:
    """Wrap *text* in markers, keeping edge whitespace outside them."""
    core = text.strip()
    if not core:
        return text
    lead = text[: len(text) - len(text.lstrip())]
    trail = text[len(text.rstrip()):]
    return f"{lead}{marker}{core}{closing if closing is not None else marker}{trail}"


def span_to_markdown(span: RichTextSpan) -> str:
    """Render one styled span.

    Wrappers nest outward from the title: inline code, bold, italic,
    strikethrough, link.  Code goes innermost because a code span cannot
    contain other markup.
    """
    result = span.title
    if span.inline_code:
        result = _wrap(result, "`")
    if span.bold:
        result = _wrap(result, "**")
    if span.italic:
        result = _wrap(result, "*")
    if span.strikethrough:
        result = _wrap(result, "~~")
    if span.link:
        result = f"[{result}]({span.link})"
    return result


def rich_text_to_markdown(content: RichText | None) -> str:
    return "".join(
        part if isinstance(part, str) else span_to_markdown(part)
        for part in rich_text_parts(content)
    )


def _indent_lines(text: str, indent: str) -> str:
    return "\n".join(
        f"{indent}{line}" if line.strip() else line for line in text.split("\n")
    )


def block_to_markdown(block: Block) -> str:
    """Render a single block, indentation included."""
    kind = block.kind
    text = rich_text_to_markdown(block.content)

    if kind in (BlockType.BULLETED_ITEM, BlockType.NUMBERED_ITEM):
        marker = "-" if kind is BlockType.BULLETED_ITEM else "1."
        return f"{INDENT * block.depth}{marker} {text}"

    match kind:
        case BlockType.HEADING:
            level = min(max(block.level or 1, 1), 6)
            rendered = f"{'#' * level} {text}"
        case BlockType.TEXT:
            rendered = text
        case BlockType.QUOTE:
            rendered = "\n".join(f"> {line}" for line in text.split("\n"))
        case BlockType.CODE:
            code = block.plain_text()
            rendered = f"```{block.language or ''}\n{code}\n```"
        case BlockType.IMAGE:
            alt = text or "image"
            rendered = f"![{alt}]({block.url})" if block.url else f"*[image: {alt}]*"
        case BlockType.DIVIDER:
            rendered = "---"
        case BlockType.TABLE:
            rendered = text or "*[table]*"
        case BlockType.EQUATION:
            rendered = f"$$\n{text}\n$$"
        case BlockType.TOGGLE:
            rendered = f"<details>\n<summary>{text}</summary>\n\n</details>"
        case _:
            logger.warning("Unknown block type %r, rendering as text", block.type)
            rendered = text

    if block.is_child_block and block.depth and rendered:
        rendered = _indent_lines(rendered, INDENT * block.depth)
    return rendered


def blocks_to_markdown(blocks: list[Block], title: str | None = None) -> str:
    """Render *blocks* as a Markdown document, optionally headed by *title*."""
    out: list[str] = []
    if title:
        out.append(f"# {title}")

    previous_was_item = False
    for block in blocks:
        rendered = block_to_markdown(block)
        if not rendered:
            continue
        is_item = block.is_list_item
        if out:
            out.append("\n" if is_item and previous_was_item else "\n\n")
        out.append(rendered)
        previous_was_item = is_item

    return "".join(out).lstrip("\n").rstrip()
