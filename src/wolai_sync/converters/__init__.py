"""Format conversion between Markdown documents and Wolai blocks."""

from .blocks_to_markdown import blocks_to_markdown, rich_text_to_markdown
from .common import (
    Block,
    BlockChildren,
    BlockType,
    RichText,
    RichTextSpan,
    content_hash,
    normalize_rich_text,
    rich_text_plain,
)
from .frontmatter import (
    SyncInfo,
    SyncStatus,
    get_sync_info,
    needs_sync,
    split_front_matter,
    stringify,
    update_sync_status,
)
from .markdown_to_blocks import (
    ParsedDocument,
    extract_title,
    markdown_to_blocks,
    parse_document,
    prettify_file_name,
)

__all__ = [
    "Block",
    "BlockChildren",
    "BlockType",
    "ParsedDocument",
    "RichText",
    "RichTextSpan",
    "SyncInfo",
    "SyncStatus",
    "blocks_to_markdown",
    "content_hash",
    "extract_title",
    "get_sync_info",
    "markdown_to_blocks",
    "needs_sync",
    "normalize_rich_text",
    "parse_document",
    "prettify_file_name",
    "rich_text_plain",
    "rich_text_to_markdown",
    "split_front_matter",
    "stringify",
    "update_sync_status",
]
