"""Gene-set libraries: immutable term -> members mappings and GMT loading."""

from ora_pipeline.libraries.load import load_gmt, load_library, parse_gmt
from ora_pipeline.libraries.models import GeneSetLibrary, GeneSetTerm

__all__ = [
    "GeneSetLibrary",
    "GeneSetTerm",
    "load_gmt",
    "load_library",
    "parse_gmt",
]
