# Repair - gap filling/removal and per-period aggregation
from .gaps import GapRepairer, RepairResult, repair_gaps
from .aggregation import (
    AggregationResult,
    Aggregator,
    aggregate,
    analyze_aggregation_impact,
)
from .pipeline import TrainingData, prepare_training_rows

__all__ = [
    'GapRepairer',
    'RepairResult',
    'repair_gaps',
    'AggregationResult',
    'Aggregator',
    'aggregate',
    'analyze_aggregation_impact',
    'TrainingData',
    'prepare_training_rows',
]
