"""Run a multi-seed fairness sample and print the report.

Usage:
    python -m src.fairness.run_report [sample_size] [start_seed] [csv_path]

Examples:
    python -m src.fairness.run_report 200
    python -m src.fairness.run_report 1000 1 reports/fairness.csv

Exits with status 1 when any check fails.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from src.fairness.config import DEFAULT_SAMPLE_SIZE, DEFAULT_START_SEED
from src.fairness.raw_metrics import raw_metric_frame
from src.fairness.report import (
    build_fairness_narrative,
    reports_to_frame,
    run_fairness_samples,
)
from src.logging_config import setup_logging

logger = logging.getLogger(__name__)


def run_report(
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    start_seed: int = DEFAULT_START_SEED,
    csv_path: Optional[Path] = None,
) -> bool:
    """Sample, print the raw table and narrative, and optionally export CSV.

    Returns:
        True when every fairness check passed.
    """
    logger.info("Sampling %d seeds starting at %d", sample_size, start_seed)
    reports, summary = run_fairness_samples(sample_size, start_seed)

    table = raw_metric_frame(summary)
    print(table[["metric", "display", "seed"]].to_string(index=False))
    print()

    narrative = build_fairness_narrative(summary)
    for line in narrative.lines:
        print(line)

    if csv_path is not None:
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        reports_to_frame(reports).to_csv(csv_path, index=False)
        logger.info("Per-seed metrics written to %s", csv_path)

    failed = [c.label for c in narrative.checks if not c.passed]
    if failed:
        logger.warning("%d check(s) failed: %s", len(failed), ", ".join(failed))
    return not failed


if __name__ == "__main__":
    setup_logging()

    try:
        sample_size = int(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_SAMPLE_SIZE
        start_seed = int(sys.argv[2]) if len(sys.argv) > 2 else DEFAULT_START_SEED
        csv_path = Path(sys.argv[3]) if len(sys.argv) > 3 else None
        passed = run_report(sample_size, start_seed, csv_path)
    except Exception:
        logger.exception("Fairness report failed")
        sys.exit(1)

    sys.exit(0 if passed else 1)
