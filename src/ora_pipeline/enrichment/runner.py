"""Run the enrichment engine over several libraries.

Each library is an independent (query, library, cutoffs) invocation with its
own correction batch. Invocations share only read-only inputs, so they can
run in a thread pool with results identical to a sequential run.
"""

from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import structlog

from ora_pipeline.enrichment.engine import enrich
from ora_pipeline.enrichment.models import EnrichmentResult
from ora_pipeline.errors import OraPipelineError
from ora_pipeline.libraries.models import GeneSetLibrary

logger = structlog.get_logger()


@dataclass(frozen=True)
class LibraryJob:
    """One enrichment invocation.

    Attributes:
        tag: Library tag used for results and output files
        library: Gene-set library (a focused panel is a pre-filtered library)
        p_cutoff: Raw p-value cutoff
        q_cutoff: Adjusted p-value / q-value cutoff
        min_size: Optional minimum term size
        max_size: Optional maximum term size
    """
    tag: str
    library: GeneSetLibrary
    p_cutoff: float = 0.05
    q_cutoff: float = 0.2
    min_size: int | None = None
    max_size: int | None = None


def run_job(
    job: LibraryJob,
    query: frozenset[str],
    universe_size: int,
) -> list[EnrichmentResult]:
    """Run one job, attaching the library tag to any pipeline error."""
    try:
        return enrich(
            query,
            job.library,
            universe_size,
            p_cutoff=job.p_cutoff,
            q_cutoff=job.q_cutoff,
            min_size=job.min_size,
            max_size=job.max_size,
        )
    except OraPipelineError as e:
        raise e.with_context(stage="enrichment", library=job.tag) from e


def run_enrichment_jobs(
    query: Iterable[str],
    jobs: Sequence[LibraryJob],
    universe_size: int,
    max_workers: int = 1,
) -> dict[str, list[EnrichmentResult]]:
    """Enrich the query against every job's library.

    Args:
        query: Canonical IDs of the hit genes
        jobs: Library jobs; tags must be unique
        universe_size: Background universe size shared by all jobs
        max_workers: Thread count; 1 runs sequentially

    Returns:
        Tag -> results, in job order

    Raises:
        ValueError: If job tags are not unique
        OraPipelineError: First failing job's error, with library context
    """
    tags = [job.tag for job in jobs]
    if len(set(tags)) != len(tags):
        raise ValueError(f"Library job tags must be unique: {tags}")

    query_set = frozenset(str(g) for g in query)

    logger.info(
        "enrichment_jobs_start",
        libraries=len(jobs),
        query_size=len(query_set),
        universe_size=universe_size,
        max_workers=max_workers,
    )

    if max_workers <= 1 or len(jobs) <= 1:
        results = {job.tag: run_job(job, query_set, universe_size) for job in jobs}
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                job.tag: executor.submit(run_job, job, query_set, universe_size)
                for job in jobs
            }
            # Collect in job order so the first failing job (by order) is raised
            results = {tag: future.result() for tag, future in futures.items()}

    logger.info(
        "enrichment_jobs_complete",
        significant={tag: len(rows) for tag, rows in results.items()},
    )
    return results
