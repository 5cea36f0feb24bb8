"""Pointer-gesture state machine for the canvas.

The controller knows nothing about pointer libraries or the document. It is
fed three events (``start``, ``move``, ``end``) and reports what the gesture
amounted to; the editor session applies the outcome.

    IDLE -> ARMED -> DRAGGING -> DROPPED | CANCELLED

A release while still ARMED is a click.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

CANVAS_TARGET = "canvas"


class DragPhase(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    DRAGGING = "dragging"
    DROPPED = "dropped"
    CANCELLED = "cancelled"


class DragAction(str, Enum):
    NONE = "none"
    SELECT = "select"
    ADD = "add"
    REORDER = "reorder"


@dataclass(frozen=True)
class DragSource:
    kind: str  # "block" or "palette"
    ref: str  # block id, or block type for palette entries

    @classmethod
    def block(cls, block_id: str) -> "DragSource":
        return cls(kind="block", ref=block_id)

    @classmethod
    def palette(cls, block_type: str) -> "DragSource":
        return cls(kind="palette", ref=block_type)

    @property
    def is_block(self) -> bool:
        return self.kind == "block"


@dataclass(frozen=True)
class DragOutcome:
    phase: DragPhase
    action: DragAction = DragAction.NONE
    source: DragSource | None = None
    target: str | None = None


ACTIVE_PHASES = (DragPhase.ARMED, DragPhase.DRAGGING)


class DragController:
    def __init__(self, threshold: float = 8.0):
        if threshold < 0:
            raise ValueError("Drag threshold must not be negative")
        self.threshold = threshold
        self.phase = DragPhase.IDLE
        self.source: DragSource | None = None
        self._origin: tuple[float, float] = (0.0, 0.0)

    @property
    def active(self) -> bool:
        return self.phase in ACTIVE_PHASES

    def start(self, source: DragSource, x: float, y: float) -> DragPhase:
        """Arm a gesture at the pointer-down position."""
        if self.active:
            logger.debug(f"Ignoring drag start from {source}, a gesture is already {self.phase.value}")
            return self.phase
        self.phase = DragPhase.ARMED
        self.source = source
        self._origin = (x, y)
        return self.phase

    def move(self, x: float, y: float) -> DragPhase:
        if self.phase == DragPhase.ARMED:
            distance = math.hypot(x - self._origin[0], y - self._origin[1])
            if distance >= self.threshold:
                self.phase = DragPhase.DRAGGING
                logger.debug(f"Dragging {self.source} after {distance:.1f}px")
        return self.phase

    def end(self, target: str | None = None) -> DragOutcome:
        """Release the pointer over ``target`` (a block id, ``CANVAS_TARGET`` or None)."""
        source = self.source
        if self.phase == DragPhase.ARMED:
            action = DragAction.SELECT if source.is_block else DragAction.ADD
            self._reset(DragPhase.IDLE)
            return DragOutcome(phase=DragPhase.IDLE, action=action, source=source)

        if self.phase != DragPhase.DRAGGING:
            return DragOutcome(phase=self.phase)

        if target is None or (source.is_block and target == CANVAS_TARGET):
            return self.cancel()

        action = DragAction.REORDER if source.is_block else DragAction.ADD
        self._reset(DragPhase.DROPPED)
        return DragOutcome(phase=DragPhase.DROPPED, action=action, source=source, target=target)

    def cancel(self) -> DragOutcome:
        source = self.source
        if not self.active:
            return DragOutcome(phase=self.phase)
        self._reset(DragPhase.CANCELLED)
        logger.debug(f"Drag of {source} cancelled")
        return DragOutcome(phase=DragPhase.CANCELLED, source=source)

    def reset(self) -> None:
        self._reset(DragPhase.IDLE)

    def _reset(self, phase: DragPhase) -> None:
        self.phase = phase
        self.source = None
        self._origin = (0.0, 0.0)
