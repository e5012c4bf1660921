"""Shared content model for Markdown <-> Wolai block conversion.

RichText normal form
--------------------
Inline content is either a plain string, a single styled span, or an
ordered list mixing the two.  ``normalize_rich_text()`` collapses an
empty list to ``""`` and a one-element list holding a plain string to
that string.  Every producer in this package returns normal form.

Blocks
------
``Block`` mirrors the Wolai block payload.  The raw wire ``type`` string
is kept so blocks of unknown types survive an inbound round trip;
``Block.kind`` resolves it against the closed ``BlockType`` set.
``depth`` and ``is_child_block`` are local annotations used for list
flattening and inbound child expansion.  They never go over the wire.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, Field, field_validator

# =============================================================================
# Rich text
# =============================================================================


class RichTextSpan(BaseModel):
    """One styled run of inline text."""

    title: str = ""
    type: str | None = None
    bold: bool | None = None
    italic: bool | None = None
    underline: bool | None = None
    highlight: bool | None = None
    strikethrough: bool | None = None
    inline_code: bool | None = None
    front_color: str | None = None
    back_color: str | None = None
    link: str | None = None

    model_config = {"extra": "ignore"}


RichText = Union[str, RichTextSpan, list[Union[str, RichTextSpan]]]


def normalize_rich_text(parts: list[str | RichTextSpan]) -> RichText:
    """Return *parts* in RichText normal form."""
    if not parts:
        return ""
    if len(parts) == 1 and isinstance(parts[0], str):
        return parts[0]
    return list(parts)


def rich_text_parts(content: RichText | None) -> list[str | RichTextSpan]:
    """Flatten any RichText form into a list of parts."""
    if content is None:
        return []
    if isinstance(content, (str, RichTextSpan)):
        return [content]
    return list(content)


def rich_text_plain(content: RichText | None) -> str:
    """Concatenate the plain text of *content*, dropping all styling."""
    return "".join(
        part if isinstance(part, str) else part.title
        for part in rich_text_parts(content)
    )


def rich_text_payload(content: RichText) -> Any:
    """Serialise *content* into the Wolai ``CreateRichText`` JSON shape."""
    if isinstance(content, str):
        return content
    if isinstance(content, RichTextSpan):
        return content.model_dump(exclude_none=True)
    return [
        part
        if isinstance(part, str)
        else part.model_dump(exclude_none=True)
        for part in content
    ]


# =============================================================================
# Blocks
# =============================================================================


class BlockType(str, Enum):
    """Closed set of block kinds understood by the converters."""

    HEADING = "heading"
    TEXT = "text"
    QUOTE = "quote"
    CODE = "code"
    BULLETED_ITEM = "bull_list"
    NUMBERED_ITEM = "enum_list"
    IMAGE = "image"
    DIVIDER = "divider"
    TABLE = "table"
    EQUATION = "equation"
    TOGGLE = "toggle"


# Alternative names seen in inbound payloads
_TYPE_ALIASES: dict[str, BlockType] = {
    "blockquote": BlockType.QUOTE,
    "unordered_list": BlockType.BULLETED_ITEM,
    "ordered_list": BlockType.NUMBERED_ITEM,
    "separator": BlockType.DIVIDER,
}

LIST_KINDS: frozenset[BlockType] = frozenset(
    {BlockType.BULLETED_ITEM, BlockType.NUMBERED_ITEM}
)


def resolve_block_type(raw: str) -> BlockType | None:
    """Map a wire type name to ``BlockType``, or ``None`` if unknown."""
    if raw in _TYPE_ALIASES:
        return _TYPE_ALIASES[raw]
    try:
        return BlockType(raw)
    except ValueError:
        return None


class BlockChildren(BaseModel):
    """Reference to a block's children as returned by the block API."""

    ids: list[str] = Field(default_factory=list)
    api_url: str | None = None

    model_config = {"extra": "ignore"}


class Block(BaseModel):
    """One structural unit of content.

    Attributes:
        type: Wire type name (see ``BlockType``); unknown names are kept.
        content: Inline content in RichText form.
        level: Heading level (clamped to 1-6 when rendered).
        language: Code block language.
        url: Image source (inbound only).
        id: Remote block id (inbound only).
        children: Remote child reference (inbound only).
        depth: Nesting depth; list depth outbound, child depth inbound.
        is_child_block: True for blocks fetched as another block's child.
    """

    type: str
    content: RichText = ""
    level: int | None = None
    language: str | None = None
    url: str | None = None
    id: str | None = None
    children: BlockChildren | None = None
    depth: int = Field(default=0, ge=0)
    is_child_block: bool = False

    model_config = {"extra": "ignore"}

    @field_validator("content", mode="before")
    @classmethod
    def none_content_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def kind(self) -> BlockType | None:
        return resolve_block_type(self.type)

    @property
    def is_list_item(self) -> bool:
        return self.kind in LIST_KINDS

    @property
    def has_children(self) -> bool:
        return bool(self.children and self.children.ids)

    def plain_text(self) -> str:
        return rich_text_plain(self.content)

    def to_payload(self) -> dict[str, Any]:
        """Return the create-blocks JSON body for this block."""
        payload: dict[str, Any] = {
            "type": self.type,
            "content": rich_text_payload(self.content),
        }
        if self.level is not None:
            payload["level"] = self.level
        if self.language is not None:
            payload["language"] = self.language
        return payload


# =============================================================================
# Change-detection fingerprint
# =============================================================================


def content_hash(text: str) -> str:
    """Fast non-cryptographic fingerprint of *text*.

    32-bit ``h = h * 31 + unit`` over UTF-16 code units, reported as the
    lowercase hex of its absolute signed value.  Only used to notice
    changes, never for integrity.

    Examples:
        >>> content_hash("")
        '0'
        >>> content_hash("a")
        '61'
    """
    h = 0
    raw = text.encode("utf-16-le", errors="surrogatepass")
    for i in range(0, len(raw), 2):
        unit = raw[i] | (raw[i + 1] << 8)
        h = ((h << 5) - h + unit) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 0x100000000
    return format(abs(h), "x")
