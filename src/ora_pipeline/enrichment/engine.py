"""Over-representation analysis of one query against one gene-set library."""

from collections.abc import Iterable

import structlog

from ora_pipeline.enrichment.models import EnrichmentResult
from ora_pipeline.enrichment.stats import (
    benjamini_hochberg,
    hypergeometric_sf,
    storey_qvalues,
)
from ora_pipeline.errors import ConfigurationError
from ora_pipeline.libraries.models import GeneSetLibrary

logger = structlog.get_logger()


def validate_cutoff(name: str, value: float) -> None:
    """Cutoffs must lie in (0, 1]."""
    if not 0.0 < value <= 1.0:
        raise ConfigurationError(f"{name} must be in (0, 1], got {value}", stage="enrichment")


def enrich(
    query: Iterable[str],
    library: GeneSetLibrary,
    universe_size: int,
    p_cutoff: float = 0.05,
    q_cutoff: float = 0.2,
    min_size: int | None = None,
    max_size: int | None = None,
) -> list[EnrichmentResult]:
    """Run the hypergeometric over-representation test across a library.

    Every term with at least one query gene is tested; the raw p-values of
    all tested terms form one correction batch for BH adjustment and Storey
    q-values. Rows pass when p_value <= p_cutoff and both p_adjust and
    q_value are <= q_cutoff.

    Args:
        query: Canonical IDs of the hit genes (duplicates ignored)
        library: Gene-set library to test against
        universe_size: Background universe size N
        p_cutoff: Raw p-value cutoff in (0, 1]
        q_cutoff: Adjusted p-value / q-value cutoff in (0, 1]
        min_size: Skip terms with fewer members (optional)
        max_size: Skip terms with more members (optional)

    Returns:
        Retained rows sorted by (p_adjust, p_value, term_id). Empty when the
        query is empty or no term overlaps it.

    Raises:
        ConfigurationError: On invalid cutoffs, universe_size < len(query), or
            a tested term larger than universe_size
    """
    query_set = frozenset(str(g) for g in query)
    query_size = len(query_set)

    validate_cutoff("p_cutoff", p_cutoff)
    validate_cutoff("q_cutoff", q_cutoff)
    if universe_size < query_size:
        raise ConfigurationError(
            f"Universe size {universe_size} is smaller than query size {query_size}",
            stage="enrichment",
            library=library.name,
        )

    if not query_set:
        logger.info("enrich_empty_query", library=library.name)
        return []

    tested = []
    for term in library:
        if min_size is not None and term.size < min_size:
            continue
        if max_size is not None and term.size > max_size:
            continue
        hits = query_set & term.members
        if not hits:
            continue
        if term.size > universe_size:
            raise ConfigurationError(
                f"Term {term.term_id} has {term.size} genes, more than the "
                f"universe size {universe_size}",
                stage="enrichment",
                library=library.name,
            )
        p_value = hypergeometric_sf(len(hits), universe_size, term.size, query_size)
        tested.append((term, tuple(sorted(hits)), p_value))

    if not tested:
        logger.info("enrich_no_overlap", library=library.name, terms=len(library))
        return []

    raw = [p for _, _, p in tested]
    adjusted = benjamini_hochberg(raw)
    qvalues = storey_qvalues(raw)

    results = [
        EnrichmentResult(
            term_id=term.term_id,
            description=term.description,
            count=len(hits),
            set_size=term.size,
            query_size=query_size,
            universe_size=universe_size,
            p_value=p_value,
            p_adjust=float(p_adj),
            q_value=float(q),
            gene_ids=hits,
        )
        for (term, hits, p_value), p_adj, q in zip(tested, adjusted, qvalues)
        if p_value <= p_cutoff and p_adj <= q_cutoff and q <= q_cutoff
    ]
    results.sort(key=lambda r: (r.p_adjust, r.p_value, r.term_id))

    logger.info(
        "enrich_complete",
        library=library.name,
        terms=len(library),
        tested=len(tested),
        significant=len(results),
        query_size=query_size,
        universe_size=universe_size,
    )
    return results
