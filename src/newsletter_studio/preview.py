import logging

from bs4 import BeautifulSoup
from markupsafe import Markup

from .compiler import env, render_block, render_page
from .config import Settings, settings as default_settings
from .fields import RenderContext, resolve_block
from .models import Document
from .registry import BlockRegistry

logger = logging.getLogger(__name__)

AFFORDANCE_CLASS = "studio-affordance"
BLOCK_CLASS = "studio-block"
EDIT_ATTRS = ("data-field", "contenteditable")


def _edit(name: str) -> Markup:
    return Markup(' data-field="{}" contenteditable="true"').format(name)


def render_preview(
    document: Document,
    selected_id: str | None = None,
    config: Settings | None = None,
    registry: BlockRegistry | None = None,
) -> str:
    """Render the editing canvas.

    The markup is the compiled email plus affordances: a wrapper per block,
    a toolbar row, inline-edit markers and placeholders. ``strip_affordances``
    removes them again.
    """
    config = config or default_settings
    registry = registry or BlockRegistry.default()
    ctx = RenderContext(document=document, config=config)
    toolbar = env.get_template("preview/toolbar.html")
    unknown = env.get_template("preview/unknown.html")

    blocks = document.sorted_blocks()
    items = []
    for position, block in enumerate(blocks):
        resolved = resolve_block(block, ctx)
        if resolved.known:
            html = render_block(resolved, ctx, preview=True, edit=_edit)
            label = registry.lookup(block.type).label if block.type in registry else block.type
        else:
            logger.debug(f"Placeholder for block {block.id} of unknown type {block.type!r}")
            html = Markup(unknown.render(block_type=block.type))
            label = block.type
        items.append({
            "id": block.id,
            "type": block.type,
            "selected": block.id == selected_id,
            "html": html,
            "toolbar": Markup(toolbar.render(
                block_id=block.id,
                label=label,
                first=position == 0,
                last=position == len(blocks) - 1,
            )),
        })

    return render_page(document, config, items, preview=True)


def strip_affordances(html: str) -> str:
    """Remove every preview-only element and attribute from canvas markup."""
    soup = BeautifulSoup(html, "html.parser")
    for node in soup.select(f".{AFFORDANCE_CLASS}"):
        node.decompose()
    for wrapper in soup.select(f".{BLOCK_CLASS}"):
        wrapper.unwrap()
    for tag in soup.find_all(True):
        for attr in EDIT_ATTRS:
            if attr in tag.attrs:
                del tag.attrs[attr]
    # Markup as written; no charset rewriting in <meta>
    return soup.decode(eventual_encoding=None)
