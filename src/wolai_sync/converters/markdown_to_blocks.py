"""Markdown to Wolai block conversion using mistune AST parsing.

The body is parsed into mistune's AST and walked top-level token by
top-level token.  Lists are flattened: every list item becomes one block
tagged with its nesting ``depth``, and the items of a nested list follow
their parent item in document order (depth first).

Conversion never raises.  Tokens without a dedicated arm are demoted to a
``text`` block when they carry visible text and dropped otherwise.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import PurePosixPath
from typing import Any

import mistune

from .common import (
    Block,
    BlockType,
    RichText,
    RichTextSpan,
    normalize_rich_text,
    rich_text_parts,
    rich_text_plain,
)
from .frontmatter import split_front_matter

logger = logging.getLogger(__name__)

_parser = mistune.create_markdown(renderer="ast", plugins=["strikethrough"])

DEFAULT_CODE_LANGUAGE = "text"

TITLE_KEYS = ("title", "name", "标题")


@dataclass(frozen=True)
class _Style:
    """Styles accumulated while descending through inline tokens."""

    bold: bool = False
    italic: bool = False
    strikethrough: bool = False
    inline_code: bool = False
    link: str | None = None

    @property
    def is_plain(self) -> bool:
        return not (
            self.bold
            or self.italic
            or self.strikethrough
            or self.inline_code
            or self.link
        )

    def to_span(self, title: str) -> RichTextSpan:
        return RichTextSpan(
            title=title,
            bold=self.bold or None,
            italic=self.italic or None,
            strikethrough=self.strikethrough or None,
            inline_code=self.inline_code or None,
            link=self.link,
        )


_PLAIN = _Style()


@dataclass
class ParsedDocument:
    """Result of ``parse_document``."""

    front_matter: dict[str, Any]
    body: str
    blocks: list[Block] = field(default_factory=list)
    title: str = ""


# ---------------------------------------------------------------------------
# Inline content
# ---------------------------------------------------------------------------


def _collect_runs(
    tokens: list[dict[str, Any]], style: _Style, runs: list[tuple[str, _Style]]
) -> None:
    for token in tokens:
        token_type = token.get("type", "")
        children = token.get("children") or []
        match token_type:
            case "text":
                runs.append((token.get("raw", ""), style))
            case "strong":
                _collect_runs(children, replace(style, bold=True), runs)
            case "emphasis":
                _collect_runs(children, replace(style, italic=True), runs)
            case "strikethrough":
                _collect_runs(
                    children, replace(style, strikethrough=True), runs
                )
            case "codespan":
                runs.append(
                    (token.get("raw", ""), replace(style, inline_code=True))
                )
            case "link":
                url = (token.get("attrs") or {}).get("url") or None
                _collect_runs(children, replace(style, link=url), runs)
            case "softbreak" | "linebreak":
                runs.append(("\n", style))
            case "image":
                alt = _plain_inline(children)
                url = (token.get("attrs") or {}).get("url", "")
                runs.append((f"![{alt}]({url})", style))
            case "inline_html":
                runs.append((token.get("raw", ""), style))
            case _:
                logger.debug("Unhandled inline token %r, using its text", token_type)
                if children:
                    _collect_runs(children, style, runs)
                elif token.get("raw"):
                    runs.append((token["raw"], style))


def _plain_inline(tokens: list[dict[str, Any]]) -> str:
    runs: list[tuple[str, _Style]] = []
    _collect_runs(tokens, _PLAIN, runs)
    return "".join(text for text, _ in runs)


def _runs_to_parts(runs: list[tuple[str, _Style]]) -> list[str | RichTextSpan]:
    """Merge adjacent same-style runs and turn them into RichText parts."""
    merged: list[tuple[str, _Style]] = []
    for text, style in runs:
        if not text:
            continue
        # Styled whitespace carries no visible formatting
        if not style.is_plain and not text.strip():
            style = _PLAIN
        if merged and merged[-1][1] == style:
            merged[-1] = (merged[-1][0] + text, style)
        else:
            merged.append((text, style))

    return [
        text if style.is_plain else style.to_span(text)
        for text, style in merged
    ]


def inline_rich_text(tokens: list[dict[str, Any]]) -> RichText:
    """Reduce a list of inline tokens to RichText in normal form."""
    runs: list[tuple[str, _Style]] = []
    _collect_runs(tokens, _PLAIN, runs)
    return normalize_rich_text(_runs_to_parts(runs))


def _join_lines(parts_list: list[list[str | RichTextSpan]]) -> RichText:
    """Join several RichText part lists with newlines."""
    joined: list[str | RichTextSpan] = []
    for parts in parts_list:
        if not parts:
            continue
        if joined:
            joined.append("\n")
        joined.extend(parts)

    merged: list[str | RichTextSpan] = []
    for part in joined:
        if isinstance(part, str) and merged and isinstance(merged[-1], str):
            merged[-1] = merged[-1] + part
        else:
            merged.append(part)
    return normalize_rich_text(merged)


def _container_parts(token: dict[str, Any]) -> list[str | RichTextSpan]:
    """RichText parts of a block token nested inside a quote or list item."""
    token_type = token.get("type", "")
    children = token.get("children") or []
    match token_type:
        case "paragraph" | "block_text" | "heading":
            return rich_text_parts(inline_rich_text(children))
        case "block_code":
            return [token.get("raw", "").rstrip("\n")]
        case "block_quote" | "list" | "list_item":
            return rich_text_parts(
                _join_lines([_container_parts(child) for child in children])
            )
        case "blank_line" | "thematic_break":
            return []
        case _:
            raw = token.get("raw", "")
            return [raw.strip("\n")] if raw.strip() else []


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------


def _flatten_list(token: dict[str, Any], depth: int) -> list[Block]:
    ordered = bool((token.get("attrs") or {}).get("ordered"))
    block_type = (
        BlockType.NUMBERED_ITEM if ordered else BlockType.BULLETED_ITEM
    )

    blocks: list[Block] = []
    for item in token.get("children") or []:
        if item.get("type") != "list_item":
            continue
        own: list[list[str | RichTextSpan]] = []
        nested: list[dict[str, Any]] = []
        for child in item.get("children") or []:
            if child.get("type") == "list":
                nested.append(child)
            else:
                own.append(_container_parts(child))

        content = _join_lines(own)
        if rich_text_plain(content).strip():
            blocks.append(
                Block(type=block_type.value, content=content, depth=depth)
            )
        for sub_list in nested:
            blocks.extend(_flatten_list(sub_list, depth + 1))
    return blocks


def _token_to_blocks(token: dict[str, Any]) -> list[Block]:
    token_type = token.get("type", "")
    children = token.get("children") or []
    attrs = token.get("attrs") or {}

    match token_type:
        case "heading":
            return [
                Block(
                    type=BlockType.HEADING.value,
                    level=int(attrs.get("level", 1)),
                    content=inline_rich_text(children),
                )
            ]
        case "paragraph":
            content = inline_rich_text(children)
            if not rich_text_plain(content).strip():
                return []
            return [Block(type=BlockType.TEXT.value, content=content)]
        case "block_code":
            info = (attrs.get("info") or "").strip()
            language = info.split()[0] if info else DEFAULT_CODE_LANGUAGE
            return [
                Block(
                    type=BlockType.CODE.value,
                    content=token.get("raw", "").rstrip("\n"),
                    language=language,
                )
            ]
        case "block_quote":
            content = _join_lines([_container_parts(c) for c in children])
            return [Block(type=BlockType.QUOTE.value, content=content)]
        case "list":
            return _flatten_list(token, 0)
        case "blank_line":
            return []
        case "thematic_break" | "block_html":
            return _demote(token)
        case _:
            logger.warning("Unrecognised block token %r, demoting", token_type)
            return _demote(token)


def _demote(token: dict[str, Any]) -> list[Block]:
    """Turn a token without dedicated handling into a text block, or nothing."""
    content = normalize_rich_text(_container_parts(token))
    if not rich_text_plain(content).strip():
        return []
    return [Block(type=BlockType.TEXT.value, content=content)]


def parse_tokens(body: str) -> list[dict[str, Any]]:
    """Parse *body* into mistune's AST token list."""
    tokens = _parser(body)
    return tokens if isinstance(tokens, list) else []


def markdown_to_blocks(body: str) -> list[Block]:
    """Convert a Markdown body (no front-matter) into a flat block list."""
    try:
        tokens = parse_tokens(body)
    except Exception:
        logger.exception("Markdown parsing failed, keeping body as text")
        return [Block(type=BlockType.TEXT.value, content=body)] if body.strip() else []

    blocks: list[Block] = []
    for token in tokens:
        blocks.extend(_token_to_blocks(token))
    return blocks


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


def prettify_file_name(file_name: str) -> str:
    """``my-note_draft.md`` -> ``My Note Draft``."""
    stem = re.sub(r"\.md$", "", PurePosixPath(file_name).name)
    spaced = re.sub(r"[-_]", " ", stem)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), spaced)


def extract_title(front_matter: dict[str, Any], file_name: str) -> str:
    """Pick a title from front-matter keys, falling back to the file name."""
    for key in TITLE_KEYS:
        value = front_matter.get(key)
        if value:
            return str(value)
    return prettify_file_name(file_name)


def parse_document(text: str, file_name: str = "") -> ParsedDocument:
    """Split front-matter, convert the body, and settle on a title.

    A leading level-1 heading is used as the title when front-matter does
    not name one, and is removed from ``blocks`` whenever it matches the
    title, since rendering back with that title emits it again.
    """
    front_matter, body = split_front_matter(text)
    blocks = markdown_to_blocks(body)

    title = ""
    for key in TITLE_KEYS:
        if front_matter.get(key):
            title = str(front_matter[key])
            break

    first = blocks[0] if blocks else None
    leading_h1 = (
        first is not None
        and first.kind is BlockType.HEADING
        and (first.level or 1) == 1
    )
    if leading_h1:
        heading_text = first.plain_text().strip()
        if not title:
            title = heading_text
        if heading_text == title:
            blocks = blocks[1:]

    if not title:
        title = prettify_file_name(file_name) if file_name else ""

    return ParsedDocument(
        front_matter=front_matter, body=body, blocks=blocks, title=title
    )
