"""Default-on-absent field resolution shared by the compiler and the preview.

Both renderers read every content and style value through ``resolve_block``,
so a block that leaves a field unset renders the same fallback in the email
and on the canvas.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .config import Settings
from .converter import EXPLAINER_SECTION, parse_calendar_items
from .models import Block, BlockType, Document
from .sanitize import safe_url, sanitize_rich_text


@dataclass(frozen=True)
class RenderContext:
    document: Document
    config: Settings

    @property
    def global_styles(self):
        return self.document.global_styles

    @property
    def metadata(self):
        return self.document.metadata


Default = Any  # a literal value or a callable taking the RenderContext


def _global(name: str) -> Callable[[RenderContext], str]:
    return lambda ctx: getattr(ctx.global_styles, name)


def _setting(name: str) -> Callable[[RenderContext], Any]:
    return lambda ctx: getattr(ctx.config, name)


def _variant_title(ctx: RenderContext) -> str:
    return ctx.config.variant_title(ctx.metadata.template_variant)


def _sequence_number(ctx: RenderContext) -> int:
    return ctx.metadata.sequence_number


CONTENT_DEFAULTS: dict[str, dict[str, Default]] = {
    BlockType.HEADER.value: {
        "title": _variant_title,
        "subtitle": _setting("newsletter_subtitle"),
        "show_logo": True,
        "sequence_number": _sequence_number,
        "image_url": "",
        "image_alt": "",
    },
    BlockType.EDITO.value: {"text": "", "author": _setting("editorial_author"), "ai_generated": False},
    BlockType.ARTICLE.value: {
        "title": "",
        "reason": "",
        "impact": "",
        "image_url": "",
        "image_alt": "",
        "source_id": "",
        "index": 1,
    },
    BlockType.TECH.value: {
        "title": "",
        "body": "",
        "institution_link": "",
        "image_url": "",
        "image_alt": "",
    },
    BlockType.METRIC.value: {"value": "", "unit": "", "context": ""},
    BlockType.AGENDA.value: {"items": "[]"},
    BlockType.IMAGE.value: {"url": "", "alt": "", "caption": ""},
    BlockType.SEPARATOR.value: {"variant": "line"},
    BlockType.BUTTON.value: {"text": "Read more", "url": "#", "variant": "primary"},
    BlockType.FOOTER.value: {
        "address": _setting("footer_address"),
        "phone": "",
        "email": _setting("footer_email"),
        "unsubscribe_text": _setting("unsubscribe_text"),
    },
    BlockType.TEXT.value: {"text": "", "title": "", "section_type": ""},
}

STYLE_DEFAULTS: dict[str, dict[str, Default]] = {
    BlockType.HEADER.value: {
        "background_color": _global("primary_color"),
        "text_color": "#ffffff",
        "padding": "24px",
    },
    BlockType.EDITO.value: {
        "background_color": "#ffffff",
        "padding": "24px",
        "border_color": _global("accent_color"),
    },
    BlockType.ARTICLE.value: {
        "background_color": "#fff8f0",
        "padding": "20px",
        "border_radius": "12px",
        "border_color": _global("accent_color"),
    },
    BlockType.TECH.value: {
        "background_color": "#e3f2fd",
        "padding": "24px",
        "border_radius": "12px",
    },
    BlockType.METRIC.value: {
        "background_color": _global("primary_color"),
        "text_color": "#ffffff",
        "padding": "48px",
        "text_align": "center",
    },
    BlockType.AGENDA.value: {
        "background_color": "#f3e5f5",
        "padding": "24px",
        "border_radius": "12px",
    },
    BlockType.IMAGE.value: {"padding": "0px", "border_radius": "8px"},
    BlockType.SEPARATOR.value: {"padding": "16px", "border_color": "#e5e7eb"},
    BlockType.BUTTON.value: {
        "background_color": _global("accent_color"),
        "text_color": "#ffffff",
        "padding": "12px 24px",
        "border_radius": "8px",
        "text_align": "center",
    },
    BlockType.FOOTER.value: {
        "background_color": "#f5f5f5",
        "text_color": "#6b7280",
        "padding": "32px",
        "text_align": "center",
    },
    BlockType.TEXT.value: {
        "background_color": "transparent",
        "text_color": "#374151",
        "padding": "16px",
        "font_size": "14px",
        "text_align": "left",
    },
}

EXPLAINER_STYLE_DEFAULTS: dict[str, Default] = {
    "background_color": "#fffde7",
    "padding": "24px",
    "border_radius": "12px",
}

SECTION_LABELS = {
    "edito": "Editorial",
    "tech": "Technology",
    "institution_link": "What it means for us:",
    "reason": "Why:",
    "explainer": "In 2 Minutes",
    "metric": "Key Figure",
    "agenda": "Coming Up",
    "agenda_empty": "Nothing scheduled",
}

AGENDA_CATEGORIES = {
    "event": {"icon": "📆", "color": "#8b5cf6", "label": "Event"},
    "call_for_projects": {"icon": "📢", "color": "#10b981", "label": "Call for projects"},
    "rollout": {"icon": "🚀", "color": "#3b82f6", "label": "Rollout"},
    "decision": {"icon": "⚖️", "color": "#f59e0b", "label": "Decision"},
}
AGENDA_FALLBACK = {"icon": "📌", "color": "#9ca3af", "label": ""}

URL_FIELDS = {"image_url", "url"}


@dataclass
class ResolvedBlock:
    id: str
    type: str
    order: int
    content: dict[str, Any] = field(default_factory=dict)
    style: dict[str, Any] = field(default_factory=dict)
    known: bool = True


def _is_absent(value: Any) -> bool:
    return value is None or value == ""


def _apply(defaults: dict[str, Default], values: dict[str, Any], ctx: RenderContext) -> dict[str, Any]:
    resolved = dict(values)
    for name, default in defaults.items():
        if _is_absent(resolved.get(name)):
            resolved[name] = default(ctx) if callable(default) else default
    return resolved


def resolve_style(block: Block, ctx: RenderContext) -> dict[str, Any]:
    defaults = STYLE_DEFAULTS.get(block.type, {})
    if block.type == BlockType.TEXT.value and block.content_map().get("section_type") == EXPLAINER_SECTION:
        defaults = EXPLAINER_STYLE_DEFAULTS
    return _apply(defaults, block.style_map(), ctx)


def resolve_content(block: Block, ctx: RenderContext) -> dict[str, Any]:
    content = _apply(CONTENT_DEFAULTS.get(block.type, {}), block.content_map(), ctx)

    for name in URL_FIELDS & content.keys():
        # A missing image stays missing; a missing link points nowhere.
        fallback = "" if name == "image_url" or block.type == BlockType.IMAGE.value else "#"
        url = safe_url(content[name], fallback=fallback)
        content[name] = "" if fallback == "" and url == "#" else url

    if block.type == BlockType.HEADER.value:
        start = ctx.metadata.period_start
        content["date"] = start.strftime("%B %d, %Y") if start else ""
    elif block.type == BlockType.EDITO.value:
        content["text_html"] = sanitize_rich_text(content["text"])
    elif block.type == BlockType.AGENDA.value:
        content["entries"] = [
            {
                "title": item.title,
                "date": item.date or "",
                "category": item.category,
                **AGENDA_CATEGORIES.get(item.category, AGENDA_FALLBACK),
            }
            for item in parse_calendar_items(content["items"])
        ]
    elif block.type == BlockType.TEXT.value:
        content["is_explainer"] = content["section_type"] == EXPLAINER_SECTION
    return content


def resolve_block(block: Block, ctx: RenderContext) -> ResolvedBlock:
    """Resolve every content and style field of a block to its rendered value."""
    if not block.is_known:
        return ResolvedBlock(
            id=block.id,
            type=block.type,
            order=block.order,
            content=block.content_map(),
            style=block.style_map(),
            known=False,
        )
    return ResolvedBlock(
        id=block.id,
        type=block.type,
        order=block.order,
        content=resolve_content(block, ctx),
        style=resolve_style(block, ctx),
    )
