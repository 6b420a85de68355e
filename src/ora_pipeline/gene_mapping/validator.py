"""Quality gates for identifier mapping.

Mapping gaps never abort a run. The validator grades the mapping rate for
the run log and writes the unmapped identifiers out for manual curation.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from ora_pipeline.config.schema import MappingConfig
from ora_pipeline.gene_mapping.mapper import MappingReport

logger = logging.getLogger(__name__)

# Unmapped IDs shown inline in log messages
PREVIEW_SIZE = 10


@dataclass
class ValidationResult:
    """Graded mapping outcome.

    Attributes:
        grade: "PASSED", "WARNING" or "FAILED"
        messages: Lines for the run log, grade line first
        success_rate: Fraction of input identifiers that resolved
    """
    grade: str
    messages: list[str] = field(default_factory=list)
    success_rate: float = 0.0

    @property
    def passed(self) -> bool:
        return self.grade != "FAILED"


class MappingValidator:
    """Grades a MappingReport: FAILED below min_success_rate, WARNING below
    warn_threshold, PASSED otherwise."""

    def __init__(self, min_success_rate: float = 0.5, warn_threshold: float = 0.9):
        self.min_success_rate = min_success_rate
        self.warn_threshold = warn_threshold

    @classmethod
    def from_config(cls, config: MappingConfig) -> "MappingValidator":
        return cls(
            min_success_rate=config.min_success_rate,
            warn_threshold=config.warn_threshold,
        )

    def grade(self, rate: float) -> str:
        if rate < self.min_success_rate:
            return "FAILED"
        if rate < self.warn_threshold:
            return "WARNING"
        return "PASSED"

    def validate(self, report: MappingReport) -> ValidationResult:
        rate = report.success_rate
        grade = self.grade(rate)
        resolved = report.total_ids - report.unmapped_count

        if grade == "FAILED":
            messages = [
                f"FAILED: {rate:.1%} of identifiers mapped, "
                f"minimum is {self.min_success_rate:.1%}",
                f"{report.unmapped_count} unmapped, e.g. "
                f"{report.unmapped_ids[:PREVIEW_SIZE]}; add them to the "
                f"manual override table or fix the input",
            ]
        elif grade == "WARNING":
            messages = [
                f"WARNING: {rate:.1%} of identifiers mapped, "
                f"expected at least {self.warn_threshold:.1%}",
                f"{report.unmapped_count} unmapped identifiers are listed "
                f"in the unmapped ID file",
            ]
        else:
            messages = [
                f"PASSED: {resolved}/{report.total_ids} identifiers mapped ({rate:.1%})"
            ]

        if report.via_override:
            messages.append(f"Resolved via manual override: {report.via_override}")
        if report.duplicate_ids:
            messages.append(
                f"{len(report.duplicate_ids)} identifiers mapped to a gene "
                f"already in the list: {report.duplicate_ids[:PREVIEW_SIZE]}"
            )

        logger.info(f"Mapping validation: {grade} ({rate:.1%})")
        return ValidationResult(grade=grade, messages=messages, success_rate=rate)

    def save_unmapped_report(self, report: MappingReport, output_path: Path) -> None:
        """Write unmapped identifiers one per line under a '#' header.

        Args:
            report: MappingReport from GeneMapper.map
            output_path: Destination text file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        header = [
            "Identifiers with no canonical gene ID",
            f"written {datetime.now():%Y-%m-%d %H:%M:%S}",
            f"{report.unmapped_count} of {report.total_ids} unmapped "
            f"({report.success_rate:.1%} mapped)",
        ]
        lines = [f"# {line}" for line in header] + list(report.unmapped_ids)
        output_path.write_text("\n".join(lines) + "\n")

        logger.info(
            f"Wrote {report.unmapped_count} unmapped identifiers to {output_path}"
        )
