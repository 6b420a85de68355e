"""Allocation of fresh, dated run directories."""

import logging
from datetime import date
from pathlib import Path

logger = logging.getLogger(__name__)

# Upper bound on same-day runs before giving up
MAX_RUNS_PER_DAY = 10_000


def allocate_run_directory(
    base_dir: Path | str,
    run_date: date | None = None,
) -> Path:
    """
    Create a new run directory named {YYYY-MM-DD}_{n}.

    n is the smallest integer >= 1 whose directory does not exist yet.
    Creation uses mkdir(exist_ok=False), so concurrent runs never share a
    directory and earlier output is never overwritten.

    Args:
        base_dir: Parent directory (created if missing)
        run_date: Date used in the name (default: today)

    Returns:
        Path to the newly created directory

    Raises:
        RuntimeError: If MAX_RUNS_PER_DAY directories already exist for the date
    """
    base_dir = Path(base_dir)
    base_dir.mkdir(parents=True, exist_ok=True)
    run_date = run_date or date.today()

    for n in range(1, MAX_RUNS_PER_DAY + 1):
        candidate = base_dir / f"{run_date.isoformat()}_{n}"
        try:
            candidate.mkdir(exist_ok=False)
        except FileExistsError:
            continue
        logger.info(f"Allocated run directory {candidate}")
        return candidate

    raise RuntimeError(
        f"No free run directory for {run_date.isoformat()} in {base_dir}"
    )
