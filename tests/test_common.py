"""Tests for the shared block model, RichText helpers, and content hash."""

import pytest

from wolai_sync.converters.common import (
    Block,
    BlockType,
    RichTextSpan,
    content_hash,
    normalize_rich_text,
    resolve_block_type,
    rich_text_payload,
    rich_text_plain,
)


class TestContentHash:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("", "0"),
            ("a", "61"),
            ("ab", "c21"),
            ("hello", "5e918d2"),
        ],
    )
    def test_known_values(self, text, expected):
        assert content_hash(text) == expected

    def test_signed_overflow_uses_absolute_value(self):
        # Hashes to the most negative 32-bit value
        assert content_hash("polygenelubricants") == "80000000"

    def test_non_bmp_hashes_as_surrogate_pair(self):
        # U+1F600 is D83D DE00 in UTF-16
        expected = format(0xD83D * 31 + 0xDE00, "x")
        assert content_hash("\U0001F600") == expected

    def test_changes_with_content(self):
        assert content_hash("note v1") != content_hash("note v2")


class TestRichText:
    def test_normal_form(self):
        span = RichTextSpan(title="x", bold=True)
        assert normalize_rich_text([]) == ""
        assert normalize_rich_text(["x"]) == "x"
        assert normalize_rich_text([span]) == [span]
        assert normalize_rich_text(["a", span]) == ["a", span]

    def test_plain_text(self):
        content = ["a ", RichTextSpan(title="b", bold=True)]
        assert rich_text_plain(content) == "a b"
        assert rich_text_plain(None) == ""

    def test_payload_omits_unset_styles(self):
        content = ["a", RichTextSpan(title="b", bold=True)]
        assert rich_text_payload(content) == ["a", {"title": "b", "bold": True}]
        assert rich_text_payload("s") == "s"

    def test_span_ignores_unknown_fields(self):
        span = RichTextSpan.model_validate({"title": "t", "mystery": 1})
        assert span.title == "t"


class TestBlock:
    def test_type_resolution(self):
        assert resolve_block_type("heading") is BlockType.HEADING
        assert resolve_block_type("blockquote") is BlockType.QUOTE
        assert resolve_block_type("ordered_list") is BlockType.NUMBERED_ITEM
        assert resolve_block_type("callout") is None

    def test_unknown_type_kept(self):
        block = Block(type="callout", content="x")
        assert block.type == "callout"
        assert block.kind is None
        assert not block.is_list_item

    def test_none_content_becomes_empty(self):
        assert Block.model_validate({"type": "text", "content": None}).content == ""

    def test_inbound_payload_with_children(self):
        block = Block.model_validate(
            {
                "id": "b1",
                "type": "bull_list",
                "content": [{"title": "item", "bold": True}],
                "children": {"ids": ["c1"], "api_url": "/blocks/b1/children"},
                "parent_id": "p",
            }
        )
        assert block.has_children
        assert block.is_list_item
        assert block.plain_text() == "item"

    def test_no_children(self):
        assert not Block(type="text").has_children
        assert not Block.model_validate({"type": "text", "children": {"ids": []}}).has_children

    def test_negative_depth_rejected(self):
        with pytest.raises(ValueError):
            Block(type="text", depth=-1)

    def test_payload_excludes_local_annotations(self):
        block = Block(type="bull_list", content="a", depth=2, is_child_block=True, id="x")
        assert block.to_payload() == {"type": "bull_list", "content": "a"}

    def test_payload_heading_and_code(self):
        assert Block(type="heading", level=2, content="h").to_payload() == {
            "type": "heading",
            "content": "h",
            "level": 2,
        }
        assert Block(type="code", language="text", content="c").to_payload() == {
            "type": "code",
            "content": "c",
            "language": "text",
        }
