"""Unit tests for registry.py"""

import pytest

from newsletter_studio.fields import RenderContext, resolve_style
from newsletter_studio.models import Block, BlockStyle, BlockType, Document, content_model
from newsletter_studio.registry import (
    DEFAULT_DEFINITIONS,
    BlockDefinition,
    BlockRegistry,
    UnknownBlockTypeError,
)


@pytest.fixture(name="registry")
def fixture_registry():
    return BlockRegistry.default()


def test_default_registry_covers_every_block_type(registry):
    """Every BlockType has exactly one definition."""
    assert set(registry.types) == {t.value for t in BlockType}
    assert len(registry) == len(BlockType)


def test_default_content_fits_content_models():
    """Default content and style validate against the typed models."""
    for definition in DEFAULT_DEFINITIONS:
        content_model(definition.type).model_validate(definition.default_content)
        Block(id="x", type=definition.type, content=definition.default_content, style=definition.default_style)


def test_lookup_accepts_enum_and_string(registry):
    assert registry.lookup(BlockType.ARTICLE) is registry.lookup("article")
    assert BlockType.ARTICLE in registry
    assert "poll" not in registry


def test_lookup_unknown_type_raises(registry):
    """An unregistered type is a caller error, reported as a KeyError subclass."""
    with pytest.raises(UnknownBlockTypeError) as excinfo:
        registry.lookup("poll")
    assert isinstance(excinfo.value, KeyError)
    assert excinfo.value.block_type == "poll"
    assert str(excinfo.value) == "Unknown block type: poll"


def test_instantiate_unknown_type_raises(registry):
    with pytest.raises(UnknownBlockTypeError):
        registry.instantiate("poll")


def test_instantiate_orders_after_existing_blocks(registry):
    existing = [
        Block(id="a", type="text", order=0),
        Block(id="b", type="text", order=4),
    ]
    block = registry.instantiate("button", existing)
    assert block.order == 5
    assert block.type == "button"
    assert block.content.text == "Read more"


def test_instantiate_into_empty_document_starts_at_zero(registry):
    assert registry.instantiate("text").order == 0


def test_instantiate_assigns_fresh_ids(registry):
    first = registry.instantiate("text")
    second = registry.instantiate("text")
    assert first.id != second.id
    assert first.id.startswith("block_")


def test_instantiate_deep_copies_defaults(registry):
    """Editing an instantiated block never leaks into the definition."""
    block = registry.instantiate("article", id_factory=lambda: "fixed")
    block.content.title = "Changed"
    block.style.padding = "0px"

    definition = registry.lookup("article")
    assert block.id == "fixed"
    assert definition.default_content["title"] == "Article title"
    assert definition.default_style["padding"] == "20px"


def test_registry_table_is_read_only(registry):
    with pytest.raises(TypeError):
        registry._definitions["poll"] = registry.lookup("text")


def test_duplicate_definitions_rejected():
    text = BlockDefinition(type="text", label="Text", description="", icon="T")
    with pytest.raises(ValueError, match="Duplicate block definition"):
        BlockRegistry([text, text])


def test_palette_groups_in_catalog_order(registry):
    palette = registry.palette()
    assert list(palette) == ["content", "media", "layout"]
    assert [d.type for d in palette["content"]] == ["header", "edito", "article", "tech", "metric", "agenda"]
    assert [d.type for d in palette["media"]] == ["image", "separator", "button"]
    assert [d.type for d in palette["layout"]] == ["footer", "text"]


def test_default_styles_match_render_defaults(registry, config):
    """A block keeps its look when a default style field is cleared."""
    for definition in registry:
        block = registry.instantiate(definition.type)
        ctx = RenderContext(document=Document(blocks=[block]), config=config)
        bare = block.model_copy(update={"style": BlockStyle()})
        assert definition.default_style.items() <= resolve_style(bare, ctx).items(), definition.type
