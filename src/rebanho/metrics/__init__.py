"""Metrics module - GMD, predictions, DEP and herd KPIs."""

from rebanho.metrics.dep import (
    DEPReport,
    DEPValues,
    HerdBaseline,
    Recommendation,
    calculate_accuracy,
    calculate_animal_dep,
    calculate_herd_baselines,
    calculate_percentile,
    cull_animals,
    elite_animals,
    rank_by_dep,
)
from rebanho.metrics.growth import (
    GainMetrics,
    GMDRank,
    GrowthBand,
    age_in_months,
    animal_gain_metrics,
    auto_classify_weighing_types,
    average_gmd,
    calculate_gain_metrics,
    classify_gmd,
    rank_by_gmd,
)
from rebanho.metrics.prediction import (
    DatePrediction,
    PredictionStatus,
    SlaughterPrediction,
    WeightPrediction,
    batch_predict_weights,
    predict_animal_slaughter_date,
    predict_date_for_weight,
    predict_slaughter_date,
    predict_weight,
)
from rebanho.metrics.reference import (
    filter_by_reference_period,
    is_in_reference_period,
    reference_period_stats,
)
from rebanho.metrics.service import (
    AnimalDerivedData,
    AnimalIndices,
    AnimalMetricsService,
    KPIResult,
    PregnancySource,
    ReproductiveData,
    create_metrics_service,
)

__all__ = [
    "GainMetrics",
    "GMDRank",
    "GrowthBand",
    "age_in_months",
    "animal_gain_metrics",
    "auto_classify_weighing_types",
    "average_gmd",
    "calculate_gain_metrics",
    "classify_gmd",
    "rank_by_gmd",
    "DatePrediction",
    "PredictionStatus",
    "SlaughterPrediction",
    "WeightPrediction",
    "batch_predict_weights",
    "predict_animal_slaughter_date",
    "predict_date_for_weight",
    "predict_slaughter_date",
    "predict_weight",
    "DEPReport",
    "DEPValues",
    "HerdBaseline",
    "Recommendation",
    "calculate_accuracy",
    "calculate_animal_dep",
    "calculate_herd_baselines",
    "calculate_percentile",
    "cull_animals",
    "elite_animals",
    "rank_by_dep",
    "filter_by_reference_period",
    "is_in_reference_period",
    "reference_period_stats",
    "AnimalDerivedData",
    "AnimalIndices",
    "AnimalMetricsService",
    "KPIResult",
    "PregnancySource",
    "ReproductiveData",
    "create_metrics_service",
]
