"""Compile a block document into a self-contained, email-safe HTML page.

Every block type has a Jinja2 partial under ``templates/blocks``. The
partials are rendered one by one and the resulting rows are placed inside
``templates/document.html``. The preview renderer reuses the same dispatch
with ``preview=True``, which switches on the editing affordances.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader
from markupsafe import Markup

from .config import Settings, settings as default_settings
from .fields import SECTION_LABELS, RenderContext, ResolvedBlock, resolve_block
from .models import Document
from .sanitize import safe_url

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

NO_MARKUP = Markup("")


def _bgcolor(value: Any) -> Markup:
    """Legacy ``bgcolor`` attribute for clients that ignore inline CSS."""
    if not value or value == "transparent":
        return NO_MARKUP
    return Markup(' bgcolor="{}"').format(value)


def _nl2br(value: Any) -> Markup:
    return Markup("<br>").join(str(value or "").splitlines())


def _no_edit(name: str) -> Markup:
    return NO_MARKUP


def _build_environment() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["nl2br"] = _nl2br
    env.globals["bgcolor"] = _bgcolor
    return env


# Built once; rendering keeps no state in the environment.
env = _build_environment()


def document_title(document: Document, config: Settings) -> str:
    title = config.variant_title(document.metadata.template_variant)
    return f"{title} #{document.metadata.sequence_number}"


def render_block(
    block: ResolvedBlock,
    ctx: RenderContext,
    preview: bool = False,
    edit: Callable[[str], Markup] = _no_edit,
) -> Markup:
    """Render the table rows for one resolved block."""
    template = env.get_template(f"blocks/{block.type}.html")
    html = template.render(
        c=block.content,
        s=block.style,
        gs=ctx.global_styles,
        labels=SECTION_LABELS,
        organization=ctx.config.organization_name,
        unsubscribe_url=safe_url(ctx.config.unsubscribe_url),
        preview=preview,
        edit=edit,
    )
    return Markup(html)


def render_page(document: Document, config: Settings, items: list[dict[str, Any]], preview: bool) -> str:
    template = env.get_template("document.html")
    return template.render(
        lang=config.html_lang,
        title=document_title(document, config),
        gs=document.global_styles,
        items=items,
        preview=preview,
    )


def compile_document(document: Document, config: Settings | None = None) -> str:
    """Compile the document to a complete HTML email.

    Blocks are emitted in ascending ``order``; blocks of an unknown type are
    left out.
    """
    config = config or default_settings
    ctx = RenderContext(document=document, config=config)

    items = []
    for block in document.sorted_blocks():
        resolved = resolve_block(block, ctx)
        if not resolved.known:
            logger.debug(f"Skipping block {block.id} of unknown type {block.type!r}")
            continue
        rows = render_block(resolved, ctx)
        if rows.strip():
            items.append({"id": resolved.id, "type": resolved.type, "html": rows})

    html = render_page(document, config, items, preview=False)
    logger.debug(f"Compiled document with {len(items)} blocks ({len(html)} chars)")
    return html
