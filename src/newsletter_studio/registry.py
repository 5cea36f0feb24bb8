import copy
import logging
import uuid
from collections.abc import Callable, Iterable
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .models import Block, BlockType

logger = logging.getLogger(__name__)

PALETTE_GROUPS = ("content", "media", "layout")


class UnknownBlockTypeError(KeyError):
    """Raised when a block is requested for a type absent from the registry."""

    def __init__(self, block_type: str):
        super().__init__(block_type)
        self.block_type = block_type

    def __str__(self) -> str:
        return f"Unknown block type: {self.block_type}"


class BlockDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    label: str
    description: str
    icon: str
    group: str = "content"
    default_content: dict[str, Any] = Field(default_factory=dict)
    default_style: dict[str, Any] = Field(default_factory=dict)


def new_block_id() -> str:
    return f"block_{uuid.uuid4().hex[:12]}"


# Colours that follow the document's global styles are left unset.
DEFAULT_DEFINITIONS: tuple[BlockDefinition, ...] = (
    BlockDefinition(
        type=BlockType.HEADER.value,
        label="Header",
        description="Masthead with title and issue number",
        icon="📰",
        group="content",
        default_content={"title": "", "subtitle": "", "show_logo": True},
        default_style={"text_color": "#ffffff", "padding": "24px"},
    ),
    BlockDefinition(
        type=BlockType.EDITO.value,
        label="Editorial",
        description="Editorial introduction",
        icon="📝",
        group="content",
        default_content={"text": "Your editorial here...", "author": ""},
        default_style={"background_color": "#ffffff", "padding": "24px"},
    ),
    BlockDefinition(
        type=BlockType.ARTICLE.value,
        label="Article",
        description="Article with title, reason and impact",
        icon="📰",
        group="content",
        default_content={
            "title": "Article title",
            "reason": "Why it matters...",
            "impact": "Concrete impact...",
            "image_url": "",
        },
        default_style={
            "background_color": "#fff8f0",
            "padding": "20px",
            "border_radius": "12px",
        },
    ),
    BlockDefinition(
        type=BlockType.TECH.value,
        label="Tech trend",
        description="Technology watch",
        icon="🔬",
        group="content",
        default_content={
            "title": "Tech trend",
            "body": "Content...",
            "institution_link": "What it means for us...",
            "image_url": "",
        },
        default_style={"background_color": "#e3f2fd", "padding": "24px", "border_radius": "12px"},
    ),
    BlockDefinition(
        type=BlockType.METRIC.value,
        label="Key figure",
        description="Highlighted metric",
        icon="📊",
        group="content",
        default_content={"value": "100", "unit": "%", "context": "What this figure measures..."},
        default_style={
            "text_color": "#ffffff",
            "padding": "48px",
            "text_align": "center",
        },
    ),
    BlockDefinition(
        type=BlockType.AGENDA.value,
        label="Agenda",
        description="Upcoming events",
        icon="📅",
        group="content",
        default_content={"items": "[]"},
        default_style={"background_color": "#f3e5f5", "padding": "24px", "border_radius": "12px"},
    ),
    BlockDefinition(
        type=BlockType.IMAGE.value,
        label="Image",
        description="Free-standing image",
        icon="🖼️",
        group="media",
        default_content={"url": "", "alt": "Image description", "caption": ""},
        default_style={"padding": "0px", "border_radius": "8px"},
    ),
    BlockDefinition(
        type=BlockType.SEPARATOR.value,
        label="Separator",
        description="Horizontal rule",
        icon="➖",
        group="media",
        default_content={"variant": "line"},
        default_style={"padding": "16px", "border_color": "#e5e7eb"},
    ),
    BlockDefinition(
        type=BlockType.BUTTON.value,
        label="Button",
        description="Call-to-action button",
        icon="🔗",
        group="media",
        default_content={"text": "Read more", "url": "#", "variant": "primary"},
        default_style={
            "text_color": "#ffffff",
            "padding": "12px 24px",
            "border_radius": "8px",
            "text_align": "center",
        },
    ),
    BlockDefinition(
        type=BlockType.FOOTER.value,
        label="Footer",
        description="Contact details and unsubscribe link",
        icon="📋",
        group="layout",
        default_content={"address": "", "phone": "", "email": "", "unsubscribe_text": ""},
        default_style={
            "background_color": "#f5f5f5",
            "text_color": "#6b7280",
            "padding": "32px",
            "text_align": "center",
        },
    ),
    BlockDefinition(
        type=BlockType.TEXT.value,
        label="Free text",
        description="Text paragraph",
        icon="📝",
        group="layout",
        default_content={"text": "Your text here..."},
        default_style={"background_color": "transparent", "padding": "16px", "font_size": "14px"},
    ),
)


class BlockRegistry:
    """Immutable catalog of block definitions, keyed by block type."""

    def __init__(self, definitions: Iterable[BlockDefinition]):
        table: dict[str, BlockDefinition] = {}
        for definition in definitions:
            if definition.type in table:
                raise ValueError(f"Duplicate block definition: {definition.type}")
            table[definition.type] = definition
        self._definitions = MappingProxyType(table)

    @classmethod
    def default(cls) -> "BlockRegistry":
        return cls(DEFAULT_DEFINITIONS)

    @property
    def types(self) -> tuple[str, ...]:
        return tuple(self._definitions)

    def __contains__(self, block_type: object) -> bool:
        if isinstance(block_type, BlockType):
            block_type = block_type.value
        return block_type in self._definitions

    def __iter__(self):
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def lookup(self, block_type: str | BlockType) -> BlockDefinition:
        key = block_type.value if isinstance(block_type, BlockType) else block_type
        try:
            return self._definitions[key]
        except KeyError:
            raise UnknownBlockTypeError(key) from None

    def instantiate(
        self,
        block_type: str | BlockType,
        blocks: Iterable[Block] = (),
        id_factory: Callable[[], str] = new_block_id,
    ) -> Block:
        """Create a block from its definition, ordered after every block in ``blocks``."""
        definition = self.lookup(block_type)
        max_order = max((b.order for b in blocks), default=-1)
        return Block(
            id=id_factory(),
            type=definition.type,
            content=copy.deepcopy(definition.default_content),
            style=copy.deepcopy(definition.default_style),
            order=max_order + 1,
        )

    def palette(self) -> dict[str, list[BlockDefinition]]:
        """Definitions grouped for the block palette, in catalog order."""
        groups: dict[str, list[BlockDefinition]] = {g: [] for g in PALETTE_GROUPS}
        for definition in self._definitions.values():
            groups.setdefault(definition.group, []).append(definition)
        return groups
