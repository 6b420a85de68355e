"""Background universe definition.

The universe size N is shared by every library in a run. It is either set
explicitly, taken from the union of library members, or fetched as the
protein-coding genes of the species via mygene.
"""

import logging
from collections.abc import Iterable
from typing import TypeAlias

import mygene

from ora_pipeline.config.schema import UniverseConfig
from ora_pipeline.errors import ConfigurationError
from ora_pipeline.libraries.models import GeneSetLibrary

# Type alias for gene universe lists
GeneUniverse: TypeAlias = list[str]

logger = logging.getLogger(__name__)


def fetch_protein_coding_genes(species: int = 10090) -> GeneUniverse:
    """Fetch the Entrez IDs of all protein-coding genes of a species.

    Args:
        species: NCBI taxonomy ID (default: 10090, mouse)

    Returns:
        Sorted, deduplicated list of Entrez gene IDs as strings
    """
    logger.info(
        f"Querying mygene for type_of_gene:protein-coding (species={species})"
    )

    mg = mygene.MyGeneInfo()
    results = list(mg.query(
        'type_of_gene:"protein-coding"',
        species=species,
        fields='entrezgene',
        fetch_all=True,
    ))

    logger.info(f"Retrieved {len(results)} results from mygene")

    gene_ids: set[str] = set()
    for hit in results:
        entrez = hit.get('entrezgene')
        if entrez is not None:
            gene_ids.add(str(entrez))

    sorted_genes = sorted(gene_ids)
    logger.info(f"Extracted {len(sorted_genes)} unique protein-coding Entrez IDs")

    return sorted_genes


def universe_from_libraries(member_sets: Iterable[Iterable[str]]) -> GeneUniverse:
    """Union of all library members, sorted.

    Args:
        member_sets: Member collections (one per term, across libraries)

    Returns:
        Sorted list of distinct canonical IDs
    """
    universe: set[str] = set()
    for members in member_sets:
        universe.update(members)
    return sorted(universe)


def check_universe_size(universe_size: int, query_size: int) -> None:
    """Reject universes smaller than the query.

    Raises:
        ConfigurationError: If universe_size < query_size or universe_size < 1
    """
    if universe_size < 1:
        raise ConfigurationError(
            f"Universe size must be positive, got {universe_size}",
            stage="universe",
        )
    if universe_size < query_size:
        raise ConfigurationError(
            f"Universe size {universe_size} is smaller than query size {query_size}",
            stage="universe",
        )


def resolve_universe_size(
    config: UniverseConfig,
    libraries: Iterable[GeneSetLibrary],
    species: int = 10090,
) -> int:
    """Universe size for a run.

    An explicit size wins. Otherwise the configured source decides: the
    union of members of the libraries passed in, or the species'
    protein-coding genes.
    """
    if config.size is not None:
        logger.info(f"Using configured universe size {config.size}")
        return config.size
    if config.source == "protein_coding":
        return len(fetch_protein_coding_genes(species))
    size = len(universe_from_libraries(
        term.members for library in libraries for term in library
    ))
    logger.info(f"Universe from library members: {size} genes")
    return size
