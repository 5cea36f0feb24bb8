"""Unit tests for models.py"""

import pytest
from pydantic import ValidationError

from newsletter_studio.models import (
    ArticleContent,
    Block,
    BlockStyle,
    BlockType,
    Document,
    GlobalStyles,
    HighlightedMetricSection,
    Metadata,
    RawContent,
)


def test_block_content_is_typed_by_block_type():
    block = Block(id="a", type="article", content={"title": "Hello"})
    assert isinstance(block.content, ArticleContent)
    assert block.content_map() == {"title": "Hello"}


def test_block_type_enum_is_stored_as_text():
    block = Block(id="a", type=BlockType.TEXT)
    assert block.type == "text"
    assert block.is_known


def test_block_content_rejects_unknown_fields():
    with pytest.raises(ValidationError):
        Block(id="a", type="metric", content={"value": "3", "colour": "red"})


def test_unknown_block_type_keeps_raw_content():
    """Blocks from a newer editor survive with their content untouched."""
    block = Block(id="a", type="poll", content={"question": "Tea?", "options": 2})
    assert isinstance(block.content, RawContent)
    assert not block.is_known
    assert block.content_map() == {"question": "Tea?", "options": 2}


def test_block_without_content_gets_empty_model():
    block = Block(id="a", type="button")
    assert block.content_map() == {}


def test_style_rejects_unknown_fields():
    with pytest.raises(ValidationError):
        BlockStyle(margin="4px")


def test_style_merge_overrides_and_clears():
    style = BlockStyle(background_color="#fff", padding="8px")
    merged = style.merged({"padding": "16px", "background_color": None, "text_align": "center"})
    assert merged.model_dump(exclude_none=True) == {"padding": "16px", "text_align": "center"}
    assert style.padding == "8px"


def test_global_styles_follow_template_variant():
    radar = GlobalStyles.for_variant("radar")
    standard = GlobalStyles.for_variant("standard")
    assert (radar.primary_color, radar.secondary_color) == ("#0f172a", "#64748b")
    assert (standard.primary_color, standard.secondary_color) == ("#1a237e", "#283593")
    assert radar.accent_color == standard.accent_color == "#e65100"
    assert standard.max_width == "680px"


def test_global_styles_merge_ignores_none():
    styles = GlobalStyles().merged({"accent_color": "#ff0000", "font_family": None})
    assert styles.accent_color == "#ff0000"
    assert styles.font_family == "system-ui, -apple-system, sans-serif"


def test_metadata_is_frozen():
    metadata = Metadata(sequence_number=3)
    with pytest.raises(ValidationError):
        metadata.sequence_number = 4


def test_metadata_rejects_unknown_variant():
    with pytest.raises(ValidationError):
        Metadata(template_variant="weekly")


def test_document_rejects_duplicate_ids():
    with pytest.raises(ValidationError, match="Duplicate block id"):
        Document(blocks=[Block(id="a", type="text"), Block(id="a", type="text")])


def test_document_sorted_blocks_and_lookup():
    document = Document(blocks=[
        Block(id="late", type="text", order=2),
        Block(id="early", type="text", order=0),
    ])
    assert [b.id for b in document.sorted_blocks()] == ["early", "late"]
    assert document.find("late").order == 2
    assert document.find("missing") is None
    assert document.max_order() == 2
    assert Document().max_order() == -1


def test_document_survives_json_round_trip():
    document = Document(blocks=[
        Block(id="a", type="metric", content={"value": "3"}, style={"padding": "4px"}, order=0),
        Block(id="b", type="poll", content={"question": "Tea?"}, order=1),
    ])
    restored = Document.model_validate_json(document.model_dump_json())
    assert restored.find("a").content_map() == {"value": "3"}
    assert restored.find("a").style_map() == {"padding": "4px"}
    assert restored.find("b").content_map() == {"question": "Tea?"}


def test_metric_value_accepts_numbers():
    assert HighlightedMetricSection(value=73).value == "73"
    assert HighlightedMetricSection(value=2.5).value == "2.5"
