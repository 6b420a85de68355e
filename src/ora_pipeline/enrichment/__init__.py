"""Enrichment engine: hypergeometric ORA with per-library FDR correction."""

from ora_pipeline.enrichment.engine import enrich
from ora_pipeline.enrichment.models import (
    RESULT_COLUMNS,
    AnnotatedResult,
    EnrichmentResult,
)
from ora_pipeline.enrichment.runner import LibraryJob, run_enrichment_jobs
from ora_pipeline.enrichment.stats import (
    benjamini_hochberg,
    estimate_pi0,
    hypergeometric_sf,
    storey_qvalues,
)

__all__ = [
    "enrich",
    "EnrichmentResult",
    "AnnotatedResult",
    "RESULT_COLUMNS",
    "LibraryJob",
    "run_enrichment_jobs",
    "hypergeometric_sf",
    "benjamini_hochberg",
    "estimate_pi0",
    "storey_qvalues",
]
