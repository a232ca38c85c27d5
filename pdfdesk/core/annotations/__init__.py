"""
Annotation system: pending edits layered over a PDF before export.
"""
from .models import (
    Annotation,
    AnnotationKind,
    DrawAnnotation,
    FontWeight,
    ImageAnnotation,
    SignaturePlacement,
    StrokeKind,
    TextAnnotation,
)
from .store import AnnotationStore

__all__ = [
    "Annotation",
    "AnnotationKind",
    "AnnotationStore",
    "DrawAnnotation",
    "FontWeight",
    "ImageAnnotation",
    "SignaturePlacement",
    "StrokeKind",
    "TextAnnotation",
]
