"""Aggregation of per-library enrichment results and run metadata."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass, field
from types import MappingProxyType

import polars as pl
import structlog

from ora_pipeline.config.schema import Thresholds
from ora_pipeline.enrichment.models import (
    RESULT_COLUMNS,
    AnnotatedResult,
    EnrichmentResult,
)
from ora_pipeline.gene_mapping.provider import AnnotationProvider, CanonicalID

logger = structlog.get_logger()

RESULT_SCHEMA = {
    "term_id": pl.Utf8,
    "description": pl.Utf8,
    "gene_ratio": pl.Utf8,
    "bg_ratio": pl.Utf8,
    "p_value": pl.Float64,
    "p_adjust": pl.Float64,
    "q_value": pl.Float64,
    "gene_ids": pl.Utf8,
    "gene_symbols": pl.Utf8,
    "count": pl.Int64,
}

# Separator for gene lists inside one table cell
GENE_SEPARATOR = "/"


@dataclass
class RunMetadata:
    """Run-level facts recorded next to the results.

    Attributes:
        input_count: Distinct raw identifiers after normalization
        mapped_count: Distinct canonical IDs in the query
        unmapped_ids: Raw identifiers that could not be mapped
        universe_size: Background universe size used by every library
        cutoffs: Library tag -> {"p_cutoff", "q_cutoff"}
    """
    input_count: int
    mapped_count: int
    unmapped_ids: list[str] = field(default_factory=list)
    universe_size: int = 0
    cutoffs: dict[str, dict[str, float]] = field(default_factory=dict)

    @property
    def unmapped_count(self) -> int:
        return len(self.unmapped_ids)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["unmapped_count"] = self.unmapped_count
        return data


def attach_symbols(
    results: Iterable[EnrichmentResult],
    id_to_symbol: Mapping[CanonicalID, str],
) -> list[AnnotatedResult]:
    """Join gene symbols onto enrichment rows without modifying them.

    Args:
        results: Enrichment rows
        id_to_symbol: Canonical ID -> symbol; missing IDs get ""

    Returns:
        New AnnotatedResult rows in the same order
    """
    return [
        AnnotatedResult(
            **row.model_dump(exclude={"gene_ratio", "bg_ratio"}),
            gene_symbols=tuple(id_to_symbol.get(gene_id, "") or "" for gene_id in row.gene_ids),
        )
        for row in results
    ]


def to_frame(rows: Sequence[EnrichmentResult]) -> pl.DataFrame:
    """Tabulate rows in output column order.

    Gene ID and symbol lists are joined with "/". Rows without symbols
    get an empty gene_symbols cell. Empty input gives an empty frame with
    the full schema.
    """
    records = []
    for row in rows:
        symbols = getattr(row, "gene_symbols", ())
        records.append({
            "term_id": row.term_id,
            "description": row.description,
            "gene_ratio": row.gene_ratio,
            "bg_ratio": row.bg_ratio,
            "p_value": row.p_value,
            "p_adjust": row.p_adjust,
            "q_value": row.q_value,
            "gene_ids": GENE_SEPARATOR.join(row.gene_ids),
            "gene_symbols": GENE_SEPARATOR.join(symbols),
            "count": row.count,
        })
    return pl.DataFrame(records, schema=RESULT_SCHEMA).select(RESULT_COLUMNS)


class ResultAggregator:
    """Holds per-library results and run metadata for output stages.

    Results are stored as tuples and never modified; symbol annotation
    produces new rows.
    """

    def __init__(self, metadata: RunMetadata):
        self.metadata = metadata
        self._results: dict[str, tuple[EnrichmentResult, ...]] = {}

    def add(
        self,
        tag: str,
        results: Iterable[EnrichmentResult],
        cutoffs: Thresholds,
    ) -> None:
        """Store the results of one library.

        Raises:
            ValueError: If the tag was already added
        """
        if tag in self._results:
            raise ValueError(f"Results for library '{tag}' already added")
        self._results[tag] = tuple(results)
        self.metadata.cutoffs[tag] = {
            "p_cutoff": cutoffs.p_cutoff,
            "q_cutoff": cutoffs.q_cutoff,
        }

    @property
    def results(self) -> Mapping[str, tuple[EnrichmentResult, ...]]:
        return MappingProxyType(self._results)

    @property
    def tags(self) -> list[str]:
        return list(self._results)

    def all_gene_ids(self) -> list[CanonicalID]:
        """Distinct matched canonical IDs across all libraries, sorted."""
        ids: set[CanonicalID] = set()
        for rows in self._results.values():
            for row in rows:
                ids.update(row.gene_ids)
        return sorted(ids)

    def annotate(
        self,
        provider: AnnotationProvider,
    ) -> dict[str, list[AnnotatedResult]]:
        """Annotate every library's rows with symbols from one provider call."""
        gene_ids = self.all_gene_ids()
        id_to_symbol = provider.symbols_for(gene_ids) if gene_ids else {}

        logger.info(
            "symbols_attached",
            gene_ids=len(gene_ids),
            with_symbol=len(id_to_symbol),
        )
        return {
            tag: attach_symbols(rows, id_to_symbol)
            for tag, rows in self._results.items()
        }

    def summary(self) -> dict:
        """Run metadata plus significant term counts per library."""
        return {
            **self.metadata.to_dict(),
            "significant_terms": {tag: len(rows) for tag, rows in self._results.items()},
        }
