# Profiling - dates, column classification and quality checks for uploads
from .values import RawValue, ValueKind, coerce_number
from .dates import DateParser, Frequency, parse_date, detect_date_granularity
from .classifier import ColumnType, ColumnClassification, ColumnClassifier, ClassificationOverlay
from .quality import ColumnQualityAnalyzer, QualityReport
from .profiler import DatasetProfiler, DatasetProfile, profile_dataset

__all__ = [
    'RawValue',
    'ValueKind',
    'coerce_number',
    'DateParser',
    'Frequency',
    'parse_date',
    'detect_date_granularity',
    'ColumnType',
    'ColumnClassification',
    'ColumnClassifier',
    'ClassificationOverlay',
    'ColumnQualityAnalyzer',
    'QualityReport',
    'DatasetProfiler',
    'DatasetProfile',
    'profile_dataset',
]
