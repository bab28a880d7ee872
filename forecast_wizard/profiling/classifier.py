"""
Column type inference for uploaded CSV data.

Rules are checked in a fixed order and the first match wins:
date, numeric (with binary / small-integer-code refinements),
categorical, then text.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence

from forecast_wizard.exceptions import PreconditionError
from forecast_wizard.profiling.dates import get_date_parser
from forecast_wizard.profiling.values import (
    BOOLEAN_VOCABULARIES,
    RawValue,
    coerce_boolean,
    coerce_number,
    is_digit_string,
)
from forecast_wizard.utils.logging_utils import log_io

logger = logging.getLogger(__name__)


class ColumnType(str, Enum):
    DATE = "date"
    NUMERIC = "numeric"
    BINARY = "binary"
    CATEGORICAL = "categorical"
    TEXT = "text"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> 'ColumnType':
        if isinstance(value, ColumnType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise PreconditionError(f"Invalid column type: {value!r}")


@dataclass
class ColumnClassification:
    """Inferred type of one column plus the evidence behind it."""

    name: str
    type: ColumnType
    confidence: float
    sample_values: List[str] = field(default_factory=list)
    null_count: int = 0
    unique_count: int = 0
    reasons: List[str] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type': self.type.value,
            'confidence': self.confidence,
            'sampleValues': list(self.sample_values),
            'nullCount': self.null_count,
            'uniqueCount': self.unique_count,
            'reasoning': '; '.join(self.reasons),
            'issues': list(self.issues),
            'warnings': list(self.warnings),
            'suggestions': list(self.suggestions),
        }


class ColumnClassifier:
    """
    Infers a semantic type for a column from a sample of its raw values.
    """

    DATE_NAME_HINTS = (
        'date', 'time', 'timestamp', 'created', 'updated', 'modified',
        'month', 'day', 'year',
    )

    DATE_SAMPLE_SIZE = 10
    DATE_RATIO = 0.7
    NUMERIC_RATIO = 0.9
    MAX_SAMPLE_SIZE = 100

    CODE_MAX_UNIQUE = 10
    CODE_MAX_RANGE = 20

    CATEGORICAL_MAX_UNIQUE_RATIO = 0.5
    CATEGORICAL_MIN_SAMPLE = 5

    CONFIDENCE = {
        'date_hinted': 0.95,
        'date': 0.85,
        'binary': 0.9,
        'numeric': 0.85,
        'code': 0.8,
        'categorical': 0.7,
        'text': 0.5,
    }

    def __init__(self, max_sample_size: int = MAX_SAMPLE_SIZE):
        self.max_sample_size = max_sample_size
        self.date_parser = get_date_parser()

    @log_io
    def classify(self, column_name: str, values: Sequence[Any]) -> ColumnClassification:
        """
        Classify a column.

        Args:
            column_name: Header of the column
            values: Raw cells in row order; nulls/empties are counted, not analyzed

        Returns:
            ColumnClassification with type, confidence and reasons
        """
        wrapped = [RawValue.of(v) for v in values]
        present = [v for v in wrapped if not v.is_null]
        null_count = len(wrapped) - len(present)
        sample = present[:self.max_sample_size]

        result = ColumnClassification(
            name=column_name,
            type=ColumnType.UNKNOWN,
            confidence=0.0,
            sample_values=[v.as_text() for v in sample[:5]],
            null_count=null_count,
            unique_count=len({v.as_text().lower() for v in present}),
        )

        if not sample:
            result.reasons.append('All values are empty')
            return result

        for rule in (self._check_date, self._check_numeric, self._check_categorical):
            if rule(column_name, sample, result):
                return result

        result.type = ColumnType.TEXT
        result.confidence = self.CONFIDENCE['text']
        result.reasons.append('Default to text based on content analysis')
        return result

    def _check_date(self, column_name: str, sample: List[RawValue], result: ColumnClassification) -> bool:
        name_lower = column_name.lower()
        hint = next((h for h in self.DATE_NAME_HINTS if h in name_lower), None)

        head = sample[:self.DATE_SAMPLE_SIZE]
        parsed = sum(
            1 for v in head
            if not is_digit_string(v) and self.date_parser.parse(v) is not None
        )
        ratio = parsed / len(head)

        if hint is None and ratio < self.DATE_RATIO:
            return False

        result.type = ColumnType.DATE
        if hint is not None:
            result.confidence = self.CONFIDENCE['date_hinted']
            result.reasons.append(f"Column name contains '{hint}'")
        else:
            result.confidence = self.CONFIDENCE['date']
        result.reasons.append(f"{ratio * 100:.1f}% of sampled values are valid dates")
        return True

    def _check_numeric(self, column_name: str, sample: List[RawValue], result: ColumnClassification) -> bool:
        numbers = []
        for v in sample:
            number = coerce_number(v)
            if number is None:
                number = coerce_boolean(v)
            if number is not None:
                numbers.append(number)

        ratio = len(numbers) / len(sample)
        if ratio < self.NUMERIC_RATIO:
            return False

        tokens = {v.as_text().lower() for v in sample}
        if len(tokens) <= 2 and (
            any(tokens <= vocab for vocab in BOOLEAN_VOCABULARIES)
            or set(numbers) <= {0.0, 1.0}
        ):
            result.type = ColumnType.BINARY
            result.confidence = self.CONFIDENCE['binary']
            result.reasons.append(f"Only binary values observed: {sorted(tokens)}")
            return True

        distinct = set(numbers)
        if (
            all(n.is_integer() for n in numbers)
            and len(distinct) <= self.CODE_MAX_UNIQUE
            and max(distinct) - min(distinct) <= self.CODE_MAX_RANGE
        ):
            result.type = ColumnType.CATEGORICAL
            result.confidence = self.CONFIDENCE['code']
            result.reasons.append(
                f"{len(distinct)} distinct small integers within a range of "
                f"{max(distinct) - min(distinct):.0f} look like category codes"
            )
            return True

        result.type = ColumnType.NUMERIC
        result.confidence = self.CONFIDENCE['numeric']
        result.reasons.append(f"{ratio * 100:.1f}% of values are numeric")
        integers = sum(1 for n in numbers if n.is_integer())
        if integers > (len(numbers) - integers) * 2:
            result.reasons.append('Mostly integers')
        elif integers < len(numbers) - integers:
            result.reasons.append('Contains decimal values')
        return True

    def _check_categorical(self, column_name: str, sample: List[RawValue], result: ColumnClassification) -> bool:
        unique = len({v.as_text().lower() for v in sample})
        unique_ratio = unique / len(sample)
        if not (
            unique_ratio < self.CATEGORICAL_MAX_UNIQUE_RATIO
            and unique > 1
            and len(sample) >= self.CATEGORICAL_MIN_SAMPLE
        ):
            return False
        result.type = ColumnType.CATEGORICAL
        result.confidence = self.CONFIDENCE['categorical']
        result.reasons.append(f"Low unique ratio ({unique_ratio * 100:.1f}%) suggests categories")
        return True


def classify_column(column_name: str, values: Sequence[Any]) -> ColumnClassification:
    return ColumnClassifier().classify(column_name, values)


@dataclass(frozen=True)
class ClassificationOverlay:
    """
    Auto-detected column types plus user overrides.

    Both maps are read-only; updates return a new overlay. User overrides
    always win over auto-detection on read.
    """

    auto_classified: Mapping[str, ColumnType] = field(default_factory=lambda: MappingProxyType({}))
    user_classified: Mapping[str, ColumnType] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def create(
        cls,
        auto_classified: Optional[Mapping[str, Any]] = None,
        user_classified: Optional[Mapping[str, Any]] = None,
    ) -> 'ClassificationOverlay':
        return cls(
            auto_classified=_frozen_types(auto_classified),
            user_classified=_frozen_types(user_classified),
        )

    @classmethod
    def from_classifications(cls, classifications: Sequence[ColumnClassification]) -> 'ClassificationOverlay':
        return cls.create(auto_classified={c.name: c.type for c in classifications})

    def with_auto(self, classifications: Mapping[str, Any]) -> 'ClassificationOverlay':
        merged = dict(self.auto_classified)
        merged.update(classifications)
        return replace(self, auto_classified=_frozen_types(merged))

    def with_override(self, column: str, column_type: Any) -> 'ClassificationOverlay':
        merged = dict(self.user_classified)
        merged[column] = column_type
        return replace(self, user_classified=_frozen_types(merged))

    def without_override(self, column: str) -> 'ClassificationOverlay':
        merged = {k: v for k, v in self.user_classified.items() if k != column}
        return replace(self, user_classified=_frozen_types(merged))

    def effective_type(self, column: str, inferred: Optional[ColumnType] = None) -> Optional[ColumnType]:
        if column in self.user_classified:
            return self.user_classified[column]
        if column in self.auto_classified:
            return self.auto_classified[column]
        return inferred


def _frozen_types(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, ColumnType]:
    return MappingProxyType({k: ColumnType.parse(v) for k, v in (mapping or {}).items()})
