"""ora-pipeline: over-representation analysis of hit genes across gene-set libraries."""

__version__ = "0.1.0"
