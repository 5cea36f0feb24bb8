from datetime import date
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator


class BlockType(str, Enum):
    HEADER = "header"
    EDITO = "edito"
    ARTICLE = "article"
    TECH = "tech"
    METRIC = "metric"
    AGENDA = "agenda"
    IMAGE = "image"
    SEPARATOR = "separator"
    BUTTON = "button"
    FOOTER = "footer"
    TEXT = "text"


class TemplateVariant(str, Enum):
    STANDARD = "standard"
    RADAR = "radar"


class CalendarCategory(str, Enum):
    EVENT = "event"
    CALL_FOR_PROJECTS = "call_for_projects"
    ROLLOUT = "rollout"
    DECISION = "decision"


# ---------------------------------------------------------------------------
# Content schema (external, persisted form)
# ---------------------------------------------------------------------------

class HeaderSection(BaseModel):
    image_url: str | None = None
    image_alt: str | None = None


class EditoSection(BaseModel):
    text: str = ""
    ai_generated: bool = False


class ArticleItem(BaseModel):
    title: str = ""
    reason: str = ""
    impact: str = ""
    image_url: str | None = None
    image_alt: str | None = None
    source_id: str | None = None


class TechTrendSection(BaseModel):
    title: str = ""
    body: str = ""
    institution_link: str = ""
    image_url: str | None = None
    image_alt: str | None = None


class ExplainerSection(BaseModel):
    title: str = ""
    body: str = ""


class HighlightedMetricSection(BaseModel):
    value: str = ""
    unit: str = ""
    context: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def _number_as_text(cls, value: Any) -> Any:
        # Generated drafts sometimes carry the figure as a JSON number.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class CalendarItem(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    category: CalendarCategory = Field(default=CalendarCategory.EVENT, validate_default=True)
    title: str = ""
    date: str | None = None


class ContentSchema(BaseModel):
    """Section-based newsletter content as persisted and generated upstream.

    Every section is independently optional.
    """

    header: HeaderSection | None = None
    edito: EditoSection | None = None
    articles: list[ArticleItem] | None = None
    tech_trend: TechTrendSection | None = None
    explainer: ExplainerSection | None = None
    highlighted_metric: HighlightedMetricSection | None = None
    calendar: list[CalendarItem] | None = None


# ---------------------------------------------------------------------------
# Block content variants
# ---------------------------------------------------------------------------

class BlockContent(BaseModel):
    model_config = ConfigDict(extra="forbid")


class HeaderContent(BlockContent):
    title: str | None = None
    subtitle: str | None = None
    show_logo: bool | None = None
    sequence_number: int | None = None
    image_url: str | None = None
    image_alt: str | None = None


class EditoContent(BlockContent):
    text: str | None = None
    author: str | None = None
    ai_generated: bool | None = None


class ArticleContent(BlockContent):
    title: str | None = None
    reason: str | None = None
    impact: str | None = None
    image_url: str | None = None
    image_alt: str | None = None
    source_id: str | None = None
    index: int | None = None


class TechContent(BlockContent):
    title: str | None = None
    body: str | None = None
    institution_link: str | None = None
    image_url: str | None = None
    image_alt: str | None = None


class MetricContent(BlockContent):
    value: str | None = None
    unit: str | None = None
    context: str | None = None


class AgendaContent(BlockContent):
    items: str | None = None  # JSON-serialized list of calendar items


class ImageContent(BlockContent):
    url: str | None = None
    alt: str | None = None
    caption: str | None = None


class SeparatorContent(BlockContent):
    variant: str | None = None


class ButtonContent(BlockContent):
    text: str | None = None
    url: str | None = None
    variant: str | None = None


class FooterContent(BlockContent):
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    unsubscribe_text: str | None = None


class TextContent(BlockContent):
    text: str | None = None
    title: str | None = None
    section_type: str | None = None


class RawContent(BaseModel):
    """Content of a block whose type this package does not know."""

    model_config = ConfigDict(extra="allow")


CONTENT_MODELS: dict[str, type[BlockContent]] = {
    BlockType.HEADER.value: HeaderContent,
    BlockType.EDITO.value: EditoContent,
    BlockType.ARTICLE.value: ArticleContent,
    BlockType.TECH.value: TechContent,
    BlockType.METRIC.value: MetricContent,
    BlockType.AGENDA.value: AgendaContent,
    BlockType.IMAGE.value: ImageContent,
    BlockType.SEPARATOR.value: SeparatorContent,
    BlockType.BUTTON.value: ButtonContent,
    BlockType.FOOTER.value: FooterContent,
    BlockType.TEXT.value: TextContent,
}


def content_model(block_type: str) -> type[BaseModel]:
    """Content model for a block type; unknown types get the raw variant."""
    return CONTENT_MODELS.get(block_type, RawContent)


def is_known_type(block_type: str) -> bool:
    return block_type in CONTENT_MODELS


# ---------------------------------------------------------------------------
# Document model
# ---------------------------------------------------------------------------

class BlockStyle(BaseModel):
    model_config = ConfigDict(extra="forbid")

    background_color: str | None = None
    padding: str | None = None
    text_color: str | None = None
    border_radius: str | None = None
    border_color: str | None = None
    font_size: str | None = None
    text_align: Literal["left", "center", "right"] | None = None

    def merged(self, patch: dict[str, Any]) -> "BlockStyle":
        """Shallow merge; a None value in the patch clears the field."""
        data = self.model_dump(exclude_none=True)
        data.update(patch)
        return BlockStyle.model_validate(data)


class Block(BaseModel):
    id: str
    type: str
    content: Any = Field(default_factory=dict, validate_default=True)
    style: BlockStyle = Field(default_factory=BlockStyle)
    order: int = 0

    @field_validator("type", mode="before")
    @classmethod
    def _enum_as_text(cls, value: Any) -> Any:
        return value.value if isinstance(value, BlockType) else value

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_content(cls, value: Any, info: ValidationInfo) -> BaseModel:
        model = content_model(info.data.get("type", ""))
        if isinstance(value, model):
            return value
        if isinstance(value, BaseModel):
            value = value.model_dump(exclude_none=True)
        return model.model_validate(value or {})

    @property
    def is_known(self) -> bool:
        return is_known_type(self.type)

    def content_map(self) -> dict[str, Any]:
        return self.content.model_dump(exclude_none=True)

    def style_map(self) -> dict[str, Any]:
        return self.style.model_dump(exclude_none=True)


class GlobalStyles(BaseModel):
    model_config = ConfigDict(extra="forbid")

    primary_color: str = "#1a237e"
    secondary_color: str = "#283593"
    accent_color: str = "#e65100"
    font_family: str = "system-ui, -apple-system, sans-serif"
    max_width: str = "680px"
    background_color: str = "#ffffff"

    @classmethod
    def for_variant(cls, variant: str) -> "GlobalStyles":
        if variant == TemplateVariant.RADAR.value:
            return cls(primary_color="#0f172a", secondary_color="#64748b")
        return cls()

    def merged(self, patch: dict[str, Any]) -> "GlobalStyles":
        data = self.model_dump()
        data.update({k: v for k, v in patch.items() if v is not None})
        return GlobalStyles.model_validate(data)


class Metadata(BaseModel):
    """Provenance of a document. Never changed by block operations."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    document_id: str = ""
    template_variant: TemplateVariant = Field(default=TemplateVariant.STANDARD, validate_default=True)
    sequence_number: int = 1
    period_start: date | None = None
    period_end: date | None = None


class Document(BaseModel):
    blocks: list[Block] = Field(default_factory=list)
    global_styles: GlobalStyles = Field(default_factory=GlobalStyles)
    metadata: Metadata = Field(default_factory=Metadata)

    @model_validator(mode="after")
    def _unique_ids(self) -> "Document":
        seen: set[str] = set()
        for block in self.blocks:
            if block.id in seen:
                raise ValueError(f"Duplicate block id: {block.id}")
            seen.add(block.id)
        return self

    def sorted_blocks(self) -> list[Block]:
        return sorted(self.blocks, key=lambda b: b.order)

    def find(self, block_id: str) -> Block | None:
        return next((b for b in self.blocks if b.id == block_id), None)

    def max_order(self) -> int:
        return max((b.order for b in self.blocks), default=-1)
