from dataclasses import dataclass
from typing import Iterable, List, Mapping, Union

from ..proctoring.catalog import Severity, ViolationType
from .dispatcher import ViolationCandidate

PERSON_LABEL = "person"
PHONE_LABEL = "cell phone"
BOOK_LABEL = "book"
LAPTOP_LABEL = "laptop"


@dataclass(frozen=True)
class Prediction:
    label: str
    confidence: float

    @classmethod
    def from_mapping(cls, data: Mapping) -> "Prediction":
        """Accepts ``label``/``confidence`` or COCO-SSD style ``class``/``score`` keys"""
        label = data.get("label", data.get("class"))
        confidence = data.get("confidence", data.get("score", 0.0))
        return cls(label=str(label), confidence=float(confidence))


@dataclass
class DetectionPolicy:
    """Maps one frame's predictions to violation candidates.

    Face checks (none / several) are mutually exclusive; phone, laptop and
    book fire independently, at most once each per frame.
    """
    person_confidence: float = 0.5
    object_confidence: float = 0.4

    def _seen(self, predictions: List[Prediction], label: str) -> bool:
        return any(p.label == label and p.confidence > self.object_confidence for p in predictions)

    def evaluate(self, predictions: Iterable[Union[Prediction, Mapping]]) -> List[ViolationCandidate]:
        predictions = [p if isinstance(p, Prediction) else Prediction.from_mapping(p) for p in predictions]
        candidates = []

        face_count = sum(
            1 for p in predictions
            if p.label == PERSON_LABEL and p.confidence > self.person_confidence
        )
        if face_count == 0:
            candidates.append(ViolationCandidate(
                ViolationType.NO_FACE, Severity.MEDIUM, "No face detected in frame"
            ))
        elif face_count > 1:
            candidates.append(ViolationCandidate(
                ViolationType.MULTIPLE_FACES, Severity.HIGH, f"{face_count} faces detected in frame"
            ))

        if self._seen(predictions, PHONE_LABEL):
            candidates.append(ViolationCandidate(
                ViolationType.CELL_PHONE, Severity.CRITICAL, "Cell phone detected in frame"
            ))

        # laptop before book: both map to prohibited_object and the cooldown keeps the first
        if self._seen(predictions, LAPTOP_LABEL):
            candidates.append(ViolationCandidate(
                ViolationType.PROHIBITED_OBJECT, Severity.HIGH, "Laptop detected in frame"
            ))

        if self._seen(predictions, BOOK_LABEL):
            candidates.append(ViolationCandidate(
                ViolationType.PROHIBITED_OBJECT, Severity.MEDIUM, "Book detected in frame"
            ))

        return candidates
