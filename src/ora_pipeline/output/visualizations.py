"""Bar charts of top enriched terms per library."""

import logging
from collections.abc import Sequence
from pathlib import Path

import matplotlib
import polars as pl

# Use Agg backend (non-interactive, safe for headless/CLI use)
matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import seaborn as sns  # noqa: E402

from ora_pipeline.enrichment.models import EnrichmentResult  # noqa: E402
from ora_pipeline.results import to_frame  # noqa: E402

logger = logging.getLogger(__name__)

# Smallest p_adjust drawn, keeps -log10 finite
MIN_P_ADJUST = 1e-300


def plot_top_terms(
    rows: Sequence[EnrichmentResult],
    output_path: Path,
    top_n: int = 15,
    title: str | None = None,
) -> Path:
    """
    Create horizontal bar chart of -log10(p_adjust) for the top terms.

    Args:
        rows: Enrichment rows sorted by p_adjust (must be non-empty)
        output_path: Path where PNG will be saved
        top_n: Number of terms to show
        title: Plot title

    Returns:
        Path to the saved PNG file

    Raises:
        ValueError: If rows is empty
    """
    if not rows:
        raise ValueError("No enrichment rows to plot")

    top = to_frame(rows[:top_n]).with_columns(
        pl.when(pl.col("description").str.len_chars() > 60)
        .then(pl.col("description").str.slice(0, 57) + "...")
        .otherwise(pl.col("description"))
        .alias("label"),
        (-pl.col("p_adjust").clip(lower_bound=MIN_P_ADJUST).log10()).alias("score"),
    )

    # Convert to pandas for seaborn
    pdf = top.to_pandas()

    sns.set_theme(style="whitegrid", context="paper")

    fig, ax = plt.subplots(figsize=(10, max(3, 0.4 * top.height + 1)))

    sns.barplot(
        data=pdf,
        x="score",
        y="label",
        hue="count",
        palette="viridis",
        dodge=False,
        ax=ax,
        legend=False,
    )

    ax.set_xlabel("-log10(adjusted p-value)")
    ax.set_ylabel("")
    ax.set_title(title or "Top Enriched Terms")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=300, bbox_inches="tight")

    # Close figure to prevent memory leak
    plt.close(fig)

    logger.info(f"Saved top terms plot to {output_path}")
    return output_path


def generate_library_plots(
    results: dict[str, Sequence[EnrichmentResult]],
    output_dir: Path,
    top_n: int = 15,
) -> dict[str, Path]:
    """
    Generate one bar chart per library with results.

    Libraries with no significant terms are skipped; their tables are still
    written by the writer stage.

    Args:
        results: Library tag -> enrichment rows
        output_dir: Directory where plots will be saved
        top_n: Number of terms per chart

    Returns:
        Dictionary mapping library tag to plot path
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    plots = {}
    for tag, rows in results.items():
        if not rows:
            logger.info(f"No significant terms for {tag}; skipping plot")
            continue
        try:
            plots[tag] = plot_top_terms(
                rows,
                output_dir / f"{tag}_top_terms.png",
                top_n=top_n,
                title=f"{tag}: top enriched terms",
            )
        except Exception as e:
            logger.warning(f"Failed to create plot for {tag}: {e}")

    logger.info(f"Generated {len(plots)} plots in {output_dir}")
    return plots
