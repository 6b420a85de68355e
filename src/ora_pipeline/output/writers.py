"""Dual-format TSV+Parquet writer for enrichment tables with provenance sidecar."""

from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

import polars as pl
import yaml

from ora_pipeline.enrichment.models import EnrichmentResult
from ora_pipeline.results import ResultAggregator, to_frame


def write_enrichment_table(
    rows: Sequence[EnrichmentResult],
    output_dir: Path,
    tag: str,
    cutoffs: dict | None = None,
) -> dict:
    """
    Write one library's enrichment rows to TSV and Parquet with a YAML sidecar.

    The table is always written, with headers only when rows is empty.

    Args:
        rows: Enrichment rows (annotated or not), already sorted
        output_dir: Directory to write output files (created if doesn't exist)
        tag: Library tag used as the filename base
        cutoffs: Cutoffs recorded in the sidecar

    Returns:
        Dictionary with output file paths:
        {
            "tsv": Path to TSV file,
            "parquet": Path to Parquet file,
            "provenance": Path to YAML provenance sidecar
        }

    Notes:
        - Row order is preserved (p_adjust, p_value, term_id ascending)
        - Gene lists are "/"-joined strings in both formats
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    df = to_frame(rows)

    tsv_path = output_dir / f"{tag}.tsv"
    parquet_path = output_dir / f"{tag}.parquet"
    provenance_path = output_dir / f"{tag}.provenance.yaml"

    df.write_csv(tsv_path, separator="\t", include_header=True)
    df.write_parquet(parquet_path, compression="snappy", use_pyarrow=True)

    provenance = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "library": tag,
        "output_files": [tsv_path.name, parquet_path.name],
        "statistics": {
            "significant_terms": df.height,
            "min_p_adjust": df["p_adjust"].min() if df.height else None,
        },
        "cutoffs": cutoffs or {},
        "column_count": len(df.columns),
        "column_names": df.columns,
    }

    with open(provenance_path, "w") as f:
        yaml.dump(provenance, f, default_flow_style=False, sort_keys=False)

    return {
        "tsv": tsv_path,
        "parquet": parquet_path,
        "provenance": provenance_path,
    }


def write_run_summary(aggregator: ResultAggregator, output_dir: Path) -> Path:
    """
    Write run_summary.yaml with mapping counts, universe and per-library stats.

    Args:
        aggregator: Aggregator holding results and run metadata
        output_dir: Run directory

    Returns:
        Path to the summary file
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    summary_path = output_dir / "run_summary.yaml"

    summary = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        **aggregator.summary(),
    }

    with open(summary_path, "w") as f:
        yaml.dump(summary, f, default_flow_style=False, sort_keys=False)

    return summary_path


def read_enrichment_table(path: Path) -> pl.DataFrame:
    """Read a TSV written by write_enrichment_table."""
    return pl.read_csv(
        path,
        separator="\t",
        schema_overrides={"gene_ids": pl.Utf8, "gene_symbols": pl.Utf8},
    )
