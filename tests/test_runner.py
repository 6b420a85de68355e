"""Tests for running the enrichment engine across several libraries."""

import pytest

from ora_pipeline.enrichment import LibraryJob, enrich, run_enrichment_jobs
from ora_pipeline.errors import ConfigurationError
from ora_pipeline.libraries import GeneSetLibrary

UNIVERSE_SIZE = 500
QUERY = [str(i) for i in range(1, 21)]


def make_library(name, offset):
    """Library whose terms overlap the query to a varying degree."""
    return GeneSetLibrary.from_dict(
        name,
        {
            f"{name.upper()}_{j}": [str(i) for i in range(1, 1 + j)]
            + [str(i) for i in range(offset + 100 * j, offset + 100 * j + 15)]
            for j in range(1, 8)
        },
    )


@pytest.fixture
def jobs():
    return [
        LibraryJob(tag="go_bp", library=make_library("go_bp", 1000), p_cutoff=1.0, q_cutoff=1.0),
        LibraryJob(tag="kegg", library=make_library("kegg", 2000), p_cutoff=0.05, q_cutoff=0.2),
        LibraryJob(tag="reactome", library=make_library("reactome", 3000), min_size=18),
    ]


def test_runs_every_job_in_order(jobs):
    results = run_enrichment_jobs(QUERY, jobs, UNIVERSE_SIZE)

    assert list(results) == ["go_bp", "kegg", "reactome"]
    assert len(results["go_bp"]) == 7


def test_parallel_matches_sequential(jobs):
    sequential = run_enrichment_jobs(QUERY, jobs, UNIVERSE_SIZE, max_workers=1)
    parallel = run_enrichment_jobs(QUERY, jobs, UNIVERSE_SIZE, max_workers=3)

    assert sequential == parallel


def test_libraries_are_independent(jobs):
    """A library's result does not depend on which other libraries run."""
    together = run_enrichment_jobs(QUERY, jobs, UNIVERSE_SIZE, max_workers=2)

    for job in jobs:
        alone = enrich(
            QUERY,
            job.library,
            UNIVERSE_SIZE,
            p_cutoff=job.p_cutoff,
            q_cutoff=job.q_cutoff,
            min_size=job.min_size,
            max_size=job.max_size,
        )
        assert together[job.tag] == alone


def test_job_cutoffs_apply_per_library(jobs):
    results = run_enrichment_jobs(QUERY, jobs, UNIVERSE_SIZE)

    assert all(row.p_value <= 0.05 for row in results["kegg"])
    assert all(
        row.term_id not in {"REACTOME_1", "REACTOME_2"}
        for row in results["reactome"]
    )


def test_duplicate_tags_rejected(jobs):
    with pytest.raises(ValueError, match="unique"):
        run_enrichment_jobs(QUERY, jobs + [jobs[0]], UNIVERSE_SIZE)


def test_error_carries_library_context(jobs):
    bad = LibraryJob(tag="broken", library=jobs[0].library, p_cutoff=0.0)

    with pytest.raises(ConfigurationError) as exc_info:
        run_enrichment_jobs(QUERY, [jobs[1], bad], UNIVERSE_SIZE, max_workers=2)

    assert exc_info.value.library == "broken"
    assert exc_info.value.stage == "enrichment"
    assert "library=broken" in str(exc_info.value)


def test_empty_query_gives_empty_results(jobs):
    results = run_enrichment_jobs([], jobs, UNIVERSE_SIZE)

    assert results == {"go_bp": [], "kegg": [], "reactome": []}
