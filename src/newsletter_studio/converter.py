import json
import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from .config import Settings, settings as default_settings
from .models import (
    ArticleItem,
    Block,
    BlockType,
    CalendarItem,
    ContentSchema,
    Document,
    EditoSection,
    ExplainerSection,
    GlobalStyles,
    HeaderSection,
    HighlightedMetricSection,
    Metadata,
    TechTrendSection,
)
from .registry import new_block_id

logger = logging.getLogger(__name__)

EXPLAINER_SECTION = "explainer"


# ---------------------------------------------------------------------------
# Calendar items (serialized inside agenda blocks)
# ---------------------------------------------------------------------------

def parse_calendar_items(raw: Any) -> list[CalendarItem]:
    """Parse the serialized agenda item list.

    Invalid JSON or anything that is not a list gives an empty list; entries
    that do not validate as calendar items are dropped.
    """
    if not raw:
        return []
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except (ValueError, RecursionError):
            logger.debug("Unparseable agenda items, treating as empty")
            return []
    else:
        data = raw
    if not isinstance(data, list):
        logger.debug(f"Agenda items are not a list ({type(data).__name__}), treating as empty")
        return []

    items = []
    for entry in data:
        try:
            items.append(CalendarItem.model_validate(entry))
        except ValidationError:
            logger.debug(f"Dropping invalid agenda item: {entry!r}")
    return items


def dump_calendar_items(items: list[CalendarItem]) -> str:
    return json.dumps(
        [item.model_dump(exclude_none=True) for item in items],
        ensure_ascii=False,
    )


# ---------------------------------------------------------------------------
# Schema -> Document
# ---------------------------------------------------------------------------

def new_document(metadata: Metadata | None = None) -> Document:
    """An empty document styled for the metadata's template variant."""
    metadata = metadata or Metadata()
    return Document(
        blocks=[],
        global_styles=GlobalStyles.for_variant(metadata.template_variant),
        metadata=metadata,
    )


def schema_to_document(
    schema: ContentSchema | dict,
    metadata: Metadata | None = None,
    config: Settings | None = None,
    id_factory: Callable[[], str] = new_block_id,
) -> Document:
    """Build an editable block document from the content schema.

    Sections are emitted in a fixed order; absent or empty sections emit no
    block. Header and footer blocks are always present.
    """
    if not isinstance(schema, ContentSchema):
        schema = ContentSchema.model_validate(schema or {})
    metadata = metadata or Metadata()
    config = config or default_settings
    global_styles = GlobalStyles.for_variant(metadata.template_variant)

    emitted: list[tuple[BlockType, dict, dict]] = []

    header = schema.header or HeaderSection()
    emitted.append((
        BlockType.HEADER,
        {
            "title": config.variant_title(metadata.template_variant),
            "subtitle": config.newsletter_subtitle,
            "show_logo": True,
            "sequence_number": metadata.sequence_number,
            "image_url": header.image_url or "",
            "image_alt": header.image_alt or "",
        },
        {"background_color": global_styles.primary_color, "text_color": "#ffffff", "padding": "24px"},
    ))

    if schema.edito and schema.edito.text:
        emitted.append((
            BlockType.EDITO,
            {
                "text": schema.edito.text,
                "author": config.editorial_author,
                "ai_generated": schema.edito.ai_generated,
            },
            {"background_color": "#ffffff", "padding": "24px", "border_color": global_styles.accent_color},
        ))

    for index, article in enumerate(schema.articles or [], start=1):
        emitted.append((
            BlockType.ARTICLE,
            {
                "title": article.title,
                "reason": article.reason,
                "impact": article.impact,
                "image_url": article.image_url or "",
                "image_alt": article.image_alt or "",
                "source_id": article.source_id or "",
                "index": index,
            },
            {
                "background_color": "#fff8f0",
                "padding": "20px",
                "border_radius": "12px",
                "border_color": global_styles.accent_color,
            },
        ))

    if schema.tech_trend and schema.tech_trend.title:
        trend = schema.tech_trend
        emitted.append((
            BlockType.TECH,
            {
                "title": trend.title,
                "body": trend.body,
                "institution_link": trend.institution_link,
                "image_url": trend.image_url or "",
                "image_alt": trend.image_alt or "",
            },
            {"background_color": "#e3f2fd", "padding": "24px", "border_radius": "12px"},
        ))

    if schema.explainer and schema.explainer.title:
        emitted.append((
            BlockType.TEXT,
            {
                "section_type": EXPLAINER_SECTION,
                "title": schema.explainer.title,
                "text": schema.explainer.body,
            },
            {"background_color": "#fffde7", "padding": "24px", "border_radius": "12px"},
        ))

    if schema.highlighted_metric and schema.highlighted_metric.value:
        metric = schema.highlighted_metric
        emitted.append((
            BlockType.METRIC,
            {"value": metric.value, "unit": metric.unit, "context": metric.context},
            {
                "background_color": global_styles.primary_color,
                "text_color": "#ffffff",
                "padding": "48px",
                "text_align": "center",
            },
        ))

    if schema.calendar:
        emitted.append((
            BlockType.AGENDA,
            {"items": dump_calendar_items(schema.calendar)},
            {"background_color": "#f3e5f5", "padding": "24px", "border_radius": "12px"},
        ))

    emitted.append((
        BlockType.FOOTER,
        {
            "address": config.footer_address,
            "email": config.footer_email,
            "unsubscribe_text": config.unsubscribe_text,
        },
        {
            "background_color": "#f5f5f5",
            "text_color": "#6b7280",
            "padding": "32px",
            "text_align": "center",
        },
    ))

    blocks = [
        Block(id=id_factory(), type=block_type.value, content=content, style=style, order=order)
        for order, (block_type, content, style) in enumerate(emitted)
    ]
    logger.debug(f"Converted schema into {len(blocks)} blocks")
    return Document(blocks=blocks, global_styles=global_styles, metadata=metadata)


# ---------------------------------------------------------------------------
# Document -> Schema
# ---------------------------------------------------------------------------

def document_to_schema(document: Document) -> ContentSchema:
    """Collect the schema sections back out of the document's blocks.

    Blocks are read in ``order``. Blocks without a schema counterpart (image,
    separator, button, footer, free text) and unknown types are skipped.
    """
    header = HeaderSection()
    edito = EditoSection()
    articles: list[ArticleItem] = []
    tech_trend = TechTrendSection()
    explainer = ExplainerSection()
    metric = HighlightedMetricSection()
    calendar: list[CalendarItem] = []

    for block in document.sorted_blocks():
        c = block.content_map()
        if block.type == BlockType.HEADER.value:
            if c.get("image_url"):
                header = HeaderSection(image_url=c["image_url"], image_alt=c.get("image_alt") or "")
        elif block.type == BlockType.EDITO.value:
            edito = EditoSection(text=c.get("text") or "", ai_generated=bool(c.get("ai_generated")))
        elif block.type == BlockType.ARTICLE.value:
            articles.append(ArticleItem(
                title=c.get("title") or "",
                reason=c.get("reason") or "",
                impact=c.get("impact") or "",
                image_url=c.get("image_url") or None,
                image_alt=c.get("image_alt") or None,
                source_id=c.get("source_id") or None,
            ))
        elif block.type == BlockType.TECH.value:
            tech_trend = TechTrendSection(
                title=c.get("title") or "",
                body=c.get("body") or "",
                institution_link=c.get("institution_link") or "",
                image_url=c.get("image_url") or None,
                image_alt=c.get("image_alt") or None,
            )
        elif block.type == BlockType.TEXT.value:
            if c.get("section_type") == EXPLAINER_SECTION:
                explainer = ExplainerSection(title=c.get("title") or "", body=c.get("text") or "")
        elif block.type == BlockType.METRIC.value:
            metric = HighlightedMetricSection(
                value=c.get("value") or "",
                unit=c.get("unit") or "",
                context=c.get("context") or "",
            )
        elif block.type == BlockType.AGENDA.value:
            calendar.extend(parse_calendar_items(c.get("items")))

    return normalize_schema(ContentSchema(
        header=header,
        edito=edito,
        articles=articles,
        tech_trend=tech_trend,
        explainer=explainer,
        highlighted_metric=metric,
        calendar=calendar,
    ))


def normalize_schema(schema: ContentSchema | dict) -> ContentSchema:
    """Canonical form of a schema: every section present, empty when absent.

    A section whose key field is empty (edito text, tech trend title, explainer
    title, metric value, header image URL) is the same as an absent one, and
    empty optional strings become None.
    """
    if not isinstance(schema, ContentSchema):
        schema = ContentSchema.model_validate(schema or {})

    header = HeaderSection()
    if schema.header and schema.header.image_url:
        header = HeaderSection(image_url=schema.header.image_url, image_alt=schema.header.image_alt or None)

    edito = EditoSection()
    if schema.edito and schema.edito.text:
        edito = EditoSection(text=schema.edito.text, ai_generated=schema.edito.ai_generated)

    articles = [
        ArticleItem(
            title=a.title,
            reason=a.reason,
            impact=a.impact,
            image_url=a.image_url or None,
            image_alt=a.image_alt or None,
            source_id=a.source_id or None,
        )
        for a in schema.articles or []
    ]

    tech_trend = TechTrendSection()
    if schema.tech_trend and schema.tech_trend.title:
        t = schema.tech_trend
        tech_trend = TechTrendSection(
            title=t.title,
            body=t.body,
            institution_link=t.institution_link,
            image_url=t.image_url or None,
            image_alt=t.image_alt or None,
        )

    explainer = ExplainerSection()
    if schema.explainer and schema.explainer.title:
        explainer = schema.explainer.model_copy()

    metric = HighlightedMetricSection()
    if schema.highlighted_metric and schema.highlighted_metric.value:
        metric = schema.highlighted_metric.model_copy()

    calendar = [
        CalendarItem(category=item.category, title=item.title, date=item.date or None)
        for item in schema.calendar or []
    ]

    return ContentSchema(
        header=header,
        edito=edito,
        articles=articles,
        tech_trend=tech_trend,
        explainer=explainer,
        highlighted_metric=metric,
        calendar=calendar,
    )
