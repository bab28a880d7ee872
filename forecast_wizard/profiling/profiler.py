"""
Dataset profiler for the upload step.

Classifies every column, runs the quality checks under the effective
type (user override first), and adds file-level warnings.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from forecast_wizard.exceptions import PreconditionError
from forecast_wizard.profiling.classifier import (
    ClassificationOverlay,
    ColumnClassification,
    ColumnClassifier,
    ColumnType,
)
from forecast_wizard.profiling.quality import ColumnQualityAnalyzer, QualityReport
from forecast_wizard.utils.logging_utils import log_io

logger = logging.getLogger(__name__)


@dataclass
class ColumnProfile:
    classification: ColumnClassification
    quality: QualityReport
    effective_type: ColumnType

    @property
    def excluded(self) -> bool:
        return self.quality.excluded

    def to_dict(self) -> Dict[str, Any]:
        data = self.classification.to_dict()
        data.update({
            'effectiveType': self.effective_type.value,
            'stats': dict(self.quality.stats),
            'excluded': self.excluded,
        })
        return data


@dataclass
class DatasetProfile:
    """Column-by-column profile of an uploaded dataset."""
    row_count: int
    columns: List[str]
    column_profiles: Dict[str, ColumnProfile]
    overlay: ClassificationOverlay
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return any(not p.excluded for p in self.column_profiles.values())

    def columns_of_type(self, column_type: ColumnType) -> List[str]:
        return [
            name for name in self.columns
            if self.column_profiles[name].effective_type is column_type
            and not self.column_profiles[name].excluded
        ]

    def summary(self) -> Dict[str, int]:
        return {
            'totalRows': self.row_count,
            'totalColumns': len(self.columns),
            'numericColumns': len(self.columns_of_type(ColumnType.NUMERIC)),
            'dateColumns': len(self.columns_of_type(ColumnType.DATE)),
            'binaryColumns': len(self.columns_of_type(ColumnType.BINARY)),
            'categoricalColumns': len(self.columns_of_type(ColumnType.CATEGORICAL)),
            'textColumns': len(self.columns_of_type(ColumnType.TEXT)),
            'excludedColumns': sum(1 for p in self.column_profiles.values() if p.excluded),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'isValid': self.is_valid,
            'warnings': list(self.warnings),
            'columnAnalysis': {name: p.to_dict() for name, p in self.column_profiles.items()},
            'autoClassified': {k: v.value for k, v in self.overlay.auto_classified.items()},
            'userClassified': {k: v.value for k, v in self.overlay.user_classified.items()},
            'summary': self.summary(),
        }


def collect_columns(rows: Sequence[Mapping[str, Any]]) -> List[str]:
    """Column names in first-seen order across all rows."""
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row.keys():
            seen.setdefault(key, None)
    return list(seen)


class DatasetProfiler:
    """Runs classification and quality analysis over every column."""

    LOW_CONFIDENCE = 0.7
    MIN_ROWS = 30
    FEW_UNIQUE_NUMERIC = 5

    def __init__(
        self,
        classifier: Optional[ColumnClassifier] = None,
        analyzer: Optional[ColumnQualityAnalyzer] = None,
    ):
        self.classifier = classifier or ColumnClassifier()
        self.analyzer = analyzer or ColumnQualityAnalyzer()

    @log_io(log_result=False)
    def profile(
        self,
        rows: Sequence[Mapping[str, Any]],
        user_classified: Optional[Mapping[str, Any]] = None,
    ) -> DatasetProfile:
        if not rows:
            raise PreconditionError("No data provided")

        columns = collect_columns(rows)
        logger.info(f"📊 Profiling data: {len(rows)} rows, {len(columns)} columns")

        classifications = {
            name: self.classifier.classify(name, [row.get(name) for row in rows])
            for name in columns
        }
        overlay = ClassificationOverlay.from_classifications(list(classifications.values()))
        if user_classified:
            for name, column_type in user_classified.items():
                overlay = overlay.with_override(name, column_type)

        profiles = {}
        for name in columns:
            classification = classifications[name]
            effective = overlay.effective_type(name, classification.type)
            quality = self.analyzer.analyze(name, [row.get(name) for row in rows], effective)

            classification.issues.extend(quality.issues)
            classification.warnings.extend(quality.warnings)
            classification.suggestions.extend(quality.suggestions)
            if classification.confidence < self.LOW_CONFIDENCE:
                classification.warnings.append(
                    f"Low confidence ({classification.confidence * 100:.0f}%) in type detection"
                )
            if effective is ColumnType.NUMERIC and classification.unique_count < self.FEW_UNIQUE_NUMERIC:
                classification.suggestions.append('Consider if this should be categorical instead')

            profiles[name] = ColumnProfile(classification, quality, effective)
            logger.debug(
                f"Column '{name}': {classification.type.value} "
                f"(effective={effective.value}, confidence={classification.confidence})"
            )

        profile = DatasetProfile(
            row_count=len(rows),
            columns=columns,
            column_profiles=profiles,
            overlay=overlay,
        )
        self._add_file_warnings(profile)

        excluded = [n for n, p in profiles.items() if p.excluded]
        if excluded:
            logger.warning(f"Columns excluded for lack of usable values: {excluded}")
        logger.info(f"Profile summary: {profile.summary()}")
        return profile

    def _add_file_warnings(self, profile: DatasetProfile):
        if not profile.columns_of_type(ColumnType.NUMERIC):
            profile.warnings.append(
                'No numeric columns detected - ensure you have quantitative data'
            )
        if not profile.columns_of_type(ColumnType.DATE):
            profile.warnings.append(
                'No date columns detected - time series forecasting requires date information'
            )
        if profile.row_count < self.MIN_ROWS:
            profile.warnings.append(
                'Dataset is quite small - consider having more historical data for better predictions'
            )


def profile_dataset(
    rows: Sequence[Mapping[str, Any]],
    user_classified: Optional[Mapping[str, Any]] = None,
) -> DatasetProfile:
    return DatasetProfiler().profile(rows, user_classified=user_classified)
