"""
In-memory store of pending annotations.

Nothing here is ever written to disk: the store lives exactly as long as
the editing session that owns it.
"""
import logging
import uuid
from collections import deque
from dataclasses import fields, replace
from typing import Deque, Dict, Iterable, List, Optional, Tuple

from PyQt5.QtCore import QObject, pyqtSignal

from .models import (
    IMMUTABLE_FIELDS,
    Annotation,
    DrawAnnotation,
    FontWeight,
    ImageAnnotation,
    SignaturePlacement,
    StrokeKind,
    TextAnnotation,
)

logger = logging.getLogger(__name__)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


class AnnotationStore(QObject):
    """Per-session collection of annotations with undo/redo support."""

    # Signals
    annotations_changed = pyqtSignal()  # Emitted after every mutation

    def __init__(self, history_size: int = 50, parent: QObject = None):
        super().__init__(parent)
        # Insertion order doubles as z-order: later entries paint on top
        self._annotations: List[Annotation] = []
        # Annotations are never mutated in place, so snapshots share them
        self._undo_states: Deque[List[Annotation]] = deque(maxlen=history_size)
        self._redo_states: List[List[Annotation]] = []
        self._batch_depth = 0

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def add_text(self, page_index: int, x: float, y: float, text: str,
                 font_size: float = 16.0, color: Tuple[int, int, int] = (0, 0, 0),
                 font_weight: FontWeight = FontWeight.NORMAL,
                 font_family: str = "Helvetica") -> str:
        """
        Add a text annotation.

        Returns:
            Id of the new annotation
        """
        annotation = TextAnnotation(
            id=_new_id("text"), page_index=page_index, x=x, y=y, text=text,
            font_size=font_size, color=tuple(color), font_weight=font_weight,
            font_family=font_family,
        )
        return self._add(annotation)

    def add_drawing(self, page_index: int, points: Iterable[Tuple[float, float]],
                    color: Tuple[int, int, int] = (0, 0, 0), stroke_width: float = 3.0,
                    stroke_kind: StrokeKind = StrokeKind.PEN) -> str:
        """
        Add a finished stroke.

        Raises:
            ValueError: If the stroke has fewer than two points
        """
        points = tuple(points)
        if len(points) < 2:
            raise ValueError("A stroke needs at least two points")
        annotation = DrawAnnotation(
            id=_new_id("draw"), page_index=page_index, points=points,
            color=tuple(color), stroke_width=stroke_width, stroke_kind=stroke_kind,
        )
        return self._add(annotation)

    def add_image(self, page_index: int, x: float, y: float, width: float,
                  height: float, image_data: bytes) -> str:
        annotation = ImageAnnotation(
            id=_new_id("image"), page_index=page_index, x=x, y=y,
            width=width, height=height, image_data=bytes(image_data),
        )
        return self._add(annotation)

    def add_signature(self, page_index: int, x: float, y: float, width: float,
                      height: float, image_data: bytes) -> str:
        annotation = SignaturePlacement(
            id=_new_id("signature"), page_index=page_index, x=x, y=y,
            width=width, height=height, image_data=bytes(image_data),
        )
        return self._add(annotation)

    def add(self, annotation: Annotation) -> str:
        """Add a pre-built annotation, e.g. a fractional signature placement."""
        if self.get(annotation.id) is not None:
            raise ValueError(f"Duplicate annotation id: {annotation.id}")
        return self._add(annotation)

    def _add(self, annotation: Annotation) -> str:
        self._push_history()
        self._annotations.append(annotation)
        logger.debug("Added %s annotation %s on page %d",
                     annotation.kind.value, annotation.id, annotation.page_index)
        self._notify()
        return annotation.id

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def update(self, annotation_id: str, **changes) -> Annotation:
        """
        Swap in a copy of an annotation with some fields changed.

        The annotation keeps its position in the z-order.

        Args:
            annotation_id: Id of the annotation to update
            **changes: Field values to set

        Returns:
            The updated annotation

        Raises:
            KeyError: If no annotation has this id
            ValueError: If a field is unknown or may not change
        """
        index = self._index_of(annotation_id)
        current = self._annotations[index]

        known = {f.name for f in fields(current)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown fields for {current.kind.value}: {sorted(unknown)}")
        frozen = set(changes) & IMMUTABLE_FIELDS[current.kind]
        if frozen:
            raise ValueError(f"Fields cannot change after creation: {sorted(frozen)}")

        if "color" in changes:
            changes["color"] = tuple(changes["color"])

        self._push_history()
        updated = replace(current, **changes)
        self._annotations[index] = updated
        self._notify()
        return updated

    def remove(self, annotation_id: str) -> bool:
        """
        Remove an annotation.

        Returns:
            True if annotation was found and removed
        """
        try:
            index = self._index_of(annotation_id)
        except KeyError:
            return False
        self._push_history()
        removed = self._annotations.pop(index)
        logger.debug("Removed %s annotation %s", removed.kind.value, removed.id)
        self._notify()
        return True

    def clear(self) -> None:
        """Drop every annotation and the undo history."""
        self._annotations.clear()
        self._undo_states.clear()
        self._redo_states.clear()
        self._notify()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, annotation_id: str) -> Optional[Annotation]:
        for ann in self._annotations:
            if ann.id == annotation_id:
                return ann
        return None

    def list_for_page(self, page_index: int) -> List[Annotation]:
        """
        Get all annotations for a page, bottom-most first.

        Args:
            page_index: 0-based page index
        """
        return [ann for ann in self._annotations if ann.page_index == page_index]

    def by_page(self) -> Dict[int, List[Annotation]]:
        """Group all annotations by page, preserving z-order within each page."""
        grouped: Dict[int, List[Annotation]] = {}
        for ann in self._annotations:
            grouped.setdefault(ann.page_index, []).append(ann)
        return grouped

    def all(self) -> List[Annotation]:
        return list(self._annotations)

    def count(self) -> int:
        return len(self._annotations)

    def __len__(self):
        return len(self._annotations)

    def _index_of(self, annotation_id: str) -> int:
        for index, ann in enumerate(self._annotations):
            if ann.id == annotation_id:
                return index
        raise KeyError(annotation_id)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def begin_batch(self) -> None:
        """
        Group the following mutations into a single undo step.

        Used while dragging so one drag is undone at once.
        """
        if self._batch_depth == 0:
            self._record_state()
        self._batch_depth += 1

    def end_batch(self) -> None:
        if self._batch_depth > 0:
            self._batch_depth -= 1

    def _push_history(self) -> None:
        if self._batch_depth == 0:
            self._record_state()

    def _record_state(self) -> None:
        self._undo_states.append(list(self._annotations))
        # A new action invalidates anything that was undone
        self._redo_states.clear()

    def undo(self) -> bool:
        """
        Perform undo operation.

        Returns:
            True if undo was successful
        """
        if not self._undo_states:
            return False
        self._redo_states.append(self._annotations)
        self._annotations = self._undo_states.pop()
        self._notify()
        return True

    def redo(self) -> bool:
        """
        Perform redo operation.

        Returns:
            True if redo was successful
        """
        if not self._redo_states:
            return False
        self._undo_states.append(self._annotations)
        self._annotations = self._redo_states.pop()
        self._notify()
        return True

    def can_undo(self) -> bool:
        return bool(self._undo_states)

    def can_redo(self) -> bool:
        return bool(self._redo_states)

    def _notify(self) -> None:
        self.annotations_changed.emit()
