"""Output generation: dated run directories, dual-format tables, and charts."""

from ora_pipeline.output.run_dir import allocate_run_directory
from ora_pipeline.output.visualizations import generate_library_plots, plot_top_terms
from ora_pipeline.output.writers import (
    read_enrichment_table,
    write_enrichment_table,
    write_run_summary,
)

__all__ = [
    "allocate_run_directory",
    "write_enrichment_table",
    "write_run_summary",
    "read_enrichment_table",
    "generate_library_plots",
    "plot_top_terms",
]
