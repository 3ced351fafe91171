from src.fairness.config import DEFAULT_FAIRNESS_THRESHOLDS, FairnessThresholds
from src.fairness.metrics import ScenarioFairnessMetrics, evaluate_fairness
from src.fairness.report import (
    FairnessCheckResult,
    FairnessNarrative,
    FairnessStat,
    FairnessSummary,
    ScenarioMetricsReport,
    build_fairness_narrative,
    evaluate_fairness_checks,
    reports_to_frame,
    run_fairness_samples,
    summarize_reports,
)

__all__ = [
    "DEFAULT_FAIRNESS_THRESHOLDS",
    "FairnessCheckResult",
    "FairnessNarrative",
    "FairnessStat",
    "FairnessSummary",
    "FairnessThresholds",
    "ScenarioFairnessMetrics",
    "ScenarioMetricsReport",
    "build_fairness_narrative",
    "evaluate_fairness",
    "evaluate_fairness_checks",
    "reports_to_frame",
    "run_fairness_samples",
    "summarize_reports",
]
