"""Data models for enrichment results."""

from pydantic import BaseModel, ConfigDict, computed_field

# Column order of per-library output tables
RESULT_COLUMNS = [
    "term_id",
    "description",
    "gene_ratio",
    "bg_ratio",
    "p_value",
    "p_adjust",
    "q_value",
    "gene_ids",
    "gene_symbols",
    "count",
]


class EnrichmentResult(BaseModel):
    """Enrichment statistics for one tested term.

    Attributes:
        term_id: Term identifier
        description: Term description
        count: Query genes annotated to the term (k)
        set_size: Genes annotated to the term (|T|)
        query_size: Genes in the query (n)
        universe_size: Background universe size (N)
        p_value: Hypergeometric upper-tail p-value
        p_adjust: Benjamini-Hochberg adjusted p-value (>= p_value)
        q_value: Storey q-value from the same correction batch
        gene_ids: Matched canonical IDs, sorted
    """

    model_config = ConfigDict(frozen=True)

    term_id: str
    description: str
    count: int
    set_size: int
    query_size: int
    universe_size: int
    p_value: float
    p_adjust: float
    q_value: float
    gene_ids: tuple[str, ...]

    @computed_field
    @property
    def gene_ratio(self) -> str:
        return f"{self.count}/{self.query_size}"

    @computed_field
    @property
    def bg_ratio(self) -> str:
        return f"{self.set_size}/{self.universe_size}"


class AnnotatedResult(EnrichmentResult):
    """EnrichmentResult joined with gene symbols.

    gene_symbols is parallel to gene_ids; IDs without a known symbol
    have an empty string.
    """

    gene_symbols: tuple[str, ...]
