"""Gene identifier mapping module.

Provides annotation providers, identifier classification and mapping,
universe definition, and mapping quality gates.
"""

from ora_pipeline.gene_mapping.mapper import (
    GeneMapper,
    IdentifierClass,
    MappingOutcome,
    MappingReport,
    classify_identifier,
)
from ora_pipeline.gene_mapping.provider import (
    AnnotationProvider,
    CanonicalID,
    MyGeneAnnotationProvider,
    TableAnnotationProvider,
    build_provider,
)
from ora_pipeline.gene_mapping.universe import (
    GeneUniverse,
    check_universe_size,
    fetch_protein_coding_genes,
    resolve_universe_size,
    universe_from_libraries,
)
from ora_pipeline.gene_mapping.validator import (
    MappingValidator,
    ValidationResult,
)

__all__ = [
    "AnnotationProvider",
    "CanonicalID",
    "TableAnnotationProvider",
    "MyGeneAnnotationProvider",
    "build_provider",
    "GeneMapper",
    "IdentifierClass",
    "MappingOutcome",
    "MappingReport",
    "classify_identifier",
    "GeneUniverse",
    "check_universe_size",
    "fetch_protein_coding_genes",
    "resolve_universe_size",
    "universe_from_libraries",
    "MappingValidator",
    "ValidationResult",
]
