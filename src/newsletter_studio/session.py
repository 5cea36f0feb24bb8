import logging
from collections.abc import Callable
from typing import Any

from .compiler import compile_document
from .config import Settings, settings as default_settings
from .converter import document_to_schema, new_document, schema_to_document
from .drag import CANVAS_TARGET, DragAction, DragController, DragPhase, DragSource
from .models import Block, ContentSchema, Document, Metadata, content_model
from .preview import render_preview
from .registry import BlockRegistry, new_block_id
from .storage import SavePayload, SaveResult, SaveTarget

logger = logging.getLogger(__name__)

DIRECTIONS = ("up", "down")


def renumber(blocks: list[Block]) -> list[Block]:
    """Give blocks (already in visual sequence) the orders 0..n-1."""
    return [
        block if block.order == position else block.model_copy(update={"order": position})
        for position, block in enumerate(blocks)
    ]


class EditorSession:
    """Owns one document while it is being edited.

    Every command returns the resulting document. Commands naming a block id
    that is not in the document do nothing.
    """

    def __init__(
        self,
        document: Document | None = None,
        registry: BlockRegistry | None = None,
        config: Settings | None = None,
        id_factory: Callable[[], str] = new_block_id,
    ):
        self.registry = registry or BlockRegistry.default()
        self.config = config or default_settings
        self.id_factory = id_factory
        self.drag = DragController(threshold=self.config.drag_threshold_px)
        self._selected_id: str | None = None
        self.load(document or new_document())

    @classmethod
    def from_schema(
        cls,
        schema: ContentSchema | dict,
        metadata: Metadata | None = None,
        registry: BlockRegistry | None = None,
        config: Settings | None = None,
        id_factory: Callable[[], str] = new_block_id,
    ) -> "EditorSession":
        config = config or default_settings
        document = schema_to_document(schema, metadata, config=config, id_factory=id_factory)
        return cls(document, registry=registry, config=config, id_factory=id_factory)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def document(self) -> Document:
        return self._document

    @property
    def checkpoint(self) -> Document:
        return self._checkpoint

    @property
    def selected_id(self) -> str | None:
        return self._selected_id

    @property
    def selected_block(self) -> Block | None:
        if self._selected_id is None:
            return None
        return self._document.find(self._selected_id)

    @property
    def has_changes(self) -> bool:
        return self._has_changes

    @property
    def drag_phase(self) -> DragPhase:
        return self.drag.phase

    def sorted_blocks(self) -> list[Block]:
        return self._document.sorted_blocks()

    def schema(self) -> ContentSchema:
        return document_to_schema(self._document)

    def compile(self) -> str:
        return compile_document(self._document, self.config)

    def preview(self) -> str:
        return render_preview(self._document, self._selected_id, self.config, self.registry)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self, document: Document) -> Document:
        """Start editing ``document``; it becomes the revert checkpoint."""
        document = document.model_copy(update={"blocks": renumber(document.sorted_blocks())})
        self._document = document
        self._checkpoint = document
        self._selected_id = None
        self._has_changes = False
        self.drag.reset()
        logger.debug(f"Loaded document {document.metadata.document_id!r} with {len(document.blocks)} blocks")
        return document

    def revert(self) -> Document:
        self._document = self._checkpoint
        self._selected_id = None
        self._has_changes = False
        self.drag.reset()
        logger.info("Reverted to last loaded state")
        return self._document

    async def save(self, target: SaveTarget) -> SaveResult:
        """Hand the schema and compiled HTML to ``target``.

        On failure the document, the checkpoint and the change flag are left
        as they were. On success the saved document becomes the checkpoint.
        """
        snapshot = self._document
        try:
            payload = SavePayload(
                document_id=snapshot.metadata.document_id,
                sequence_number=snapshot.metadata.sequence_number,
                content=document_to_schema(snapshot),
                html=compile_document(snapshot, self.config),
            )
            location = await target.save(payload)
        except Exception as exc:
            logger.exception(f"Failed to save document {snapshot.metadata.document_id!r}")
            return SaveResult(ok=False, error=str(exc))

        self._checkpoint = snapshot
        self._has_changes = self._document is not snapshot
        logger.info(f"Document {snapshot.metadata.document_id!r} saved to {location}")
        return SaveResult(ok=True, location=location)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _commit(self, blocks: list[Block] | None = None, **update: Any) -> Document:
        if blocks is not None:
            update["blocks"] = blocks
        self._document = self._document.model_copy(update=update)
        self._has_changes = True
        return self._document

    def _missing(self, command: str, block_id: str) -> Document:
        logger.debug(f"{command}: no block {block_id!r}, ignoring")
        return self._document

    def add(self, block_type: str) -> Document:
        """Append a new block of ``block_type`` and select it."""
        block = self.registry.instantiate(block_type, self._document.blocks, id_factory=self.id_factory)
        document = self._commit([*self._document.blocks, block])
        self._selected_id = block.id
        logger.info(f"Added {block.type} block {block.id}")
        return document

    def update(self, block_id: str, content: dict[str, Any]) -> Document:
        """Replace the block's whole content map."""
        block = self._document.find(block_id)
        if block is None:
            return self._missing("update", block_id)
        validated = content_model(block.type).model_validate(content)
        replaced = Block(id=block.id, type=block.type, content=validated, style=block.style, order=block.order)
        return self._commit([replaced if b.id == block_id else b for b in self._document.blocks])

    def update_style(self, block_id: str, patch: dict[str, Any]) -> Document:
        block = self._document.find(block_id)
        if block is None:
            return self._missing("update_style", block_id)
        styled = block.model_copy(update={"style": block.style.merged(patch)})
        return self._commit([styled if b.id == block_id else b for b in self._document.blocks])

    def update_global_styles(self, patch: dict[str, Any]) -> Document:
        return self._commit(global_styles=self._document.global_styles.merged(patch))

    def delete(self, block_id: str) -> Document:
        if self._document.find(block_id) is None:
            return self._missing("delete", block_id)
        survivors = [b for b in self.sorted_blocks() if b.id != block_id]
        if self._selected_id == block_id:
            self._selected_id = None
        if self.drag.source is not None and self.drag.source.ref == block_id:
            self.drag.cancel()
        logger.info(f"Deleted block {block_id}")
        return self._commit(renumber(survivors))

    def duplicate(self, block_id: str) -> Document:
        """Clone the block to the end of the document and select the clone."""
        block = self._document.find(block_id)
        if block is None:
            return self._missing("duplicate", block_id)
        clone = Block(
            id=self.id_factory(),
            type=block.type,
            content=block.content.model_copy(deep=True),
            style=block.style.model_copy(),
            order=self._document.max_order() + 1,
        )
        document = self._commit([*self._document.blocks, clone])
        self._selected_id = clone.id
        logger.info(f"Duplicated block {block_id} as {clone.id}")
        return document

    def move(self, block_id: str, direction: str) -> Document:
        """Swap the block with its neighbour; nothing happens at either end."""
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown direction {direction!r}, expected one of {DIRECTIONS}")
        ordered = self.sorted_blocks()
        index = next((i for i, b in enumerate(ordered) if b.id == block_id), None)
        if index is None:
            return self._missing("move", block_id)
        other = index - 1 if direction == "up" else index + 1
        if other < 0 or other >= len(ordered):
            logger.debug(f"move: block {block_id} already at the {'top' if direction == 'up' else 'bottom'}")
            return self._document
        ordered[index], ordered[other] = ordered[other], ordered[index]
        return self._commit(renumber(ordered))

    def reorder(self, block_id: str, target_id: str) -> Document:
        """Move the block to the position currently held by ``target_id``."""
        ordered = self.sorted_blocks()
        ids = [b.id for b in ordered]
        if block_id not in ids:
            return self._missing("reorder", block_id)
        if target_id not in ids:
            return self._missing("reorder", target_id)
        if block_id == target_id:
            return self._document
        block = ordered.pop(ids.index(block_id))
        ordered.insert(ids.index(target_id), block)
        logger.debug(f"Reordered block {block_id} to position {ids.index(target_id)}")
        return self._commit(renumber(ordered))

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, block_id: str) -> Document:
        if self._document.find(block_id) is None:
            return self._missing("select", block_id)
        self._selected_id = block_id
        return self._document

    def deselect(self) -> Document:
        self._selected_id = None
        return self._document

    # ------------------------------------------------------------------
    # Drag and drop
    # ------------------------------------------------------------------

    def drag_start(self, source: DragSource, x: float, y: float) -> Document:
        if source.is_block:
            if self._document.find(source.ref) is None:
                return self._missing("drag_start", source.ref)
            self._selected_id = source.ref
        else:
            self.registry.lookup(source.ref)
        self.drag.start(source, x, y)
        return self._document

    def drag_move(self, x: float, y: float) -> Document:
        self.drag.move(x, y)
        return self._document

    def drag_end(self, target: str | None = None) -> Document:
        if target is not None and target != CANVAS_TARGET and self._document.find(target) is None:
            logger.debug(f"drag_end: {target!r} is not a drop target")
            target = None

        outcome = self.drag.end(target)
        if outcome.action == DragAction.SELECT:
            return self.select(outcome.source.ref)
        if outcome.action == DragAction.ADD:
            return self.add(outcome.source.ref)
        if outcome.action == DragAction.REORDER:
            return self.reorder(outcome.source.ref, outcome.target)
        return self._document

    def drag_cancel(self) -> Document:
        self.drag.cancel()
        return self._document
