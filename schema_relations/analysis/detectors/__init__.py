"""Per-kind relationship detectors.

Each detector is a plain function `(table, context) -> [RelationshipCandidate]`
over the read-only catalog. DETECTORS fixes the order they run in; the
coordinator relies on it for deterministic output.
"""

from typing import Callable, List, Tuple

from schema_relations.analysis.detectors.base import DetectionContext, make_inverse
from schema_relations.analysis.detectors.belongs_to import detect_belongs_to
from schema_relations.analysis.detectors.belongs_to_many import detect_belongs_to_many, is_strict_pivot
from schema_relations.analysis.detectors.has_one_or_many import detect_has_many, detect_has_one
from schema_relations.analysis.detectors.morph_one_or_many import detect_morph_many, detect_morph_one
from schema_relations.analysis.detectors.morph_to import detect_morph_to
from schema_relations.analysis.models import RelationshipCandidate, RelationshipKind
from schema_relations.database.models import Table

Detector = Callable[[Table, DetectionContext], List[RelationshipCandidate]]

DETECTORS: Tuple[Tuple[RelationshipKind, Detector], ...] = (
    (RelationshipKind.BELONGS_TO, detect_belongs_to),
    (RelationshipKind.HAS_ONE, detect_has_one),
    (RelationshipKind.HAS_MANY, detect_has_many),
    (RelationshipKind.BELONGS_TO_MANY, detect_belongs_to_many),
    (RelationshipKind.MORPH_TO, detect_morph_to),
    (RelationshipKind.MORPH_ONE, detect_morph_one),
    (RelationshipKind.MORPH_MANY, detect_morph_many),
)

__all__ = [
    "DETECTORS",
    "DetectionContext",
    "Detector",
    "detect_belongs_to",
    "detect_belongs_to_many",
    "detect_has_many",
    "detect_has_one",
    "detect_morph_many",
    "detect_morph_one",
    "detect_morph_to",
    "is_strict_pivot",
    "make_inverse",
]
