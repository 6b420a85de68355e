"""Annotation providers: the lookup capability behind identifier mapping.

The mapper and aggregator only depend on AnnotationProvider. Two backends
are provided: an in-memory table (local annotation dump or test fixture) and
mygene.info batch queries.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, TypeAlias

import mygene
import polars as pl
from requests.exceptions import ConnectionError, HTTPError, Timeout
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ora_pipeline.config.schema import AnnotationConfig
from ora_pipeline.errors import ConfigurationError

# Canonical gene identifier (NCBI Entrez Gene ID by default)
CanonicalID: TypeAlias = str

logger = logging.getLogger(__name__)


class AnnotationProvider(ABC):
    """Read-only lookup of canonical gene IDs and symbols.

    Implementations must be safe to query concurrently and must return at
    most one canonical ID per query string.
    """

    @abstractmethod
    def resolve_by_symbol(self, batch: Sequence[str]) -> dict[str, CanonicalID]:
        """Resolve gene symbols. Unresolved symbols are absent from the result."""

    @abstractmethod
    def resolve_by_accession(self, batch: Sequence[str]) -> dict[str, CanonicalID]:
        """Resolve database accessions (Entrez, Ensembl, RefSeq, UniProt)."""

    @abstractmethod
    def symbol_for(self, gene_id: CanonicalID) -> str | None:
        """Return the official symbol of a canonical ID, or None."""

    def symbols_for(self, gene_ids: Iterable[CanonicalID]) -> dict[CanonicalID, str]:
        """Batch symbol lookup; IDs without a symbol are omitted."""
        symbols = {}
        for gene_id in gene_ids:
            symbol = self.symbol_for(gene_id)
            if symbol:
                symbols[gene_id] = symbol
        return symbols


class TableAnnotationProvider(AnnotationProvider):
    """Annotation provider backed by an in-memory table.

    Expected columns:
    - gene_id: canonical ID (cast to string)
    - symbol: official gene symbol
    - accession (optional): one external accession per row
    - aliases (optional): "|"-separated synonyms

    A gene may span several rows (one per accession). On ties the first row
    wins. Symbol lookup tries exact match, then case-insensitive match, then
    aliases.
    """

    REQUIRED_COLUMNS = ("gene_id", "symbol")

    def __init__(self, table: pl.DataFrame):
        missing = [c for c in self.REQUIRED_COLUMNS if c not in table.columns]
        if missing:
            raise ConfigurationError(
                f"Annotation table missing columns: {', '.join(missing)}",
                stage="annotation",
            )

        table = table.with_columns(
            pl.col("gene_id").cast(pl.Utf8),
            pl.col("symbol").cast(pl.Utf8),
        )

        self._by_symbol: dict[str, CanonicalID] = {}
        self._by_symbol_ci: dict[str, CanonicalID] = {}
        self._by_alias: dict[str, CanonicalID] = {}
        self._by_accession: dict[str, CanonicalID] = {}
        self._symbols: dict[CanonicalID, str] = {}

        has_accession = "accession" in table.columns
        has_aliases = "aliases" in table.columns

        for row in table.iter_rows(named=True):
            gene_id = row["gene_id"]
            symbol = row["symbol"]
            if not gene_id:
                continue

            # Canonical IDs resolve to themselves as accessions
            self._by_accession.setdefault(gene_id, gene_id)

            if symbol:
                self._symbols.setdefault(gene_id, symbol)
                self._by_symbol.setdefault(symbol, gene_id)
                self._by_symbol_ci.setdefault(symbol.upper(), gene_id)

            if has_accession and row["accession"]:
                accession = str(row["accession"]).strip()
                self._by_accession.setdefault(accession, gene_id)
                # Versioned accessions (ENSMUSG...1) also match unversioned
                self._by_accession.setdefault(accession.split(".")[0], gene_id)

            if has_aliases and row["aliases"]:
                for alias in str(row["aliases"]).split("|"):
                    alias = alias.strip()
                    if alias:
                        self._by_alias.setdefault(alias.upper(), gene_id)

        logger.info(
            f"Loaded annotation table: {len(self._symbols)} genes, "
            f"{len(self._by_accession)} accessions, {len(self._by_alias)} aliases"
        )

    @classmethod
    def from_tsv(cls, path: Path | str) -> "TableAnnotationProvider":
        """Load an annotation table from a tab-separated file."""
        path = Path(path)
        if not path.is_file():
            raise ConfigurationError(
                f"Annotation table not found: {path}",
                stage="annotation",
            )
        table = pl.read_csv(path, separator="\t", infer_schema_length=0)
        return cls(table)

    def resolve_by_symbol(self, batch: Sequence[str]) -> dict[str, CanonicalID]:
        resolved = {}
        for query in batch:
            gene_id = (
                self._by_symbol.get(query)
                or self._by_symbol_ci.get(query.upper())
                or self._by_alias.get(query.upper())
            )
            if gene_id:
                resolved[query] = gene_id
        return resolved

    def resolve_by_accession(self, batch: Sequence[str]) -> dict[str, CanonicalID]:
        resolved = {}
        for query in batch:
            gene_id = (
                self._by_accession.get(query)
                or self._by_accession.get(query.split(".")[0])
            )
            if gene_id:
                resolved[query] = gene_id
        return resolved

    def symbol_for(self, gene_id: CanonicalID) -> str | None:
        return self._symbols.get(str(gene_id))

    @property
    def gene_ids(self) -> list[CanonicalID]:
        """All canonical IDs known to the table."""
        return list(self._symbols)


def _extract_entrez(hit: dict[str, Any]) -> CanonicalID | None:
    """Pull an Entrez gene ID out of a mygene hit."""
    entrez = hit.get("entrezgene")
    if entrez is not None:
        return str(entrez)
    # mygene _id is the Entrez ID for NCBI-annotated genes
    hit_id = str(hit.get("_id", ""))
    if hit_id.isdigit():
        return hit_id
    return None


class MyGeneAnnotationProvider(AnnotationProvider):
    """Annotation provider using mygene.info batch queries.

    Canonical IDs are Entrez gene IDs for the configured species. Network
    failures are retried with exponential backoff.
    """

    ACCESSION_SCOPES = "entrezgene,ensembl.gene,ensembl.transcript,refseq,uniprot"

    def __init__(self, species: int = 10090, max_retries: int = 5):
        """Initialize mygene provider.

        Args:
            species: NCBI taxonomy ID (default: 10090, mouse)
            max_retries: Maximum attempts per mygene request
        """
        self.species = species
        self.max_retries = max_retries
        self.mg = mygene.MyGeneInfo()
        logger.info(f"Initialized MyGeneAnnotationProvider for taxon {species}")

    def _create_retry_decorator(self):
        """Create retry decorator with exponential backoff."""
        return retry(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=2, max=60),
            retry=retry_if_exception_type((HTTPError, Timeout, ConnectionError)),
            reraise=True,
        )

    def _querymany(self, batch: Sequence[str], scopes: str) -> dict[str, CanonicalID]:
        if not batch:
            return {}

        query = self._create_retry_decorator()(self.mg.querymany)
        response = query(
            list(batch),
            scopes=scopes,
            fields="entrezgene,symbol",
            species=self.species,
            returnall=True,
        )

        resolved: dict[str, CanonicalID] = {}
        for hit in response.get("out", []):
            query_id = hit.get("query", "")
            if hit.get("notfound", False) or query_id in resolved:
                # Several hits per query: the first one wins
                continue
            gene_id = _extract_entrez(hit)
            if gene_id:
                resolved[query_id] = gene_id

        logger.debug(
            f"mygene scopes={scopes}: {len(resolved)}/{len(batch)} resolved"
        )
        return resolved

    def resolve_by_symbol(self, batch: Sequence[str]) -> dict[str, CanonicalID]:
        return self._querymany(batch, scopes="symbol")

    def resolve_by_accession(self, batch: Sequence[str]) -> dict[str, CanonicalID]:
        return self._querymany(batch, scopes=self.ACCESSION_SCOPES)

    def symbols_for(self, gene_ids: Iterable[CanonicalID]) -> dict[CanonicalID, str]:
        gene_ids = [str(g) for g in gene_ids]
        if not gene_ids:
            return {}

        getgenes = self._create_retry_decorator()(self.mg.getgenes)
        hits = getgenes(gene_ids, fields="symbol")

        symbols: dict[CanonicalID, str] = {}
        for hit in hits or []:
            if hit.get("notfound", False):
                continue
            query_id = str(hit.get("query", ""))
            symbol = hit.get("symbol")
            if query_id and symbol and query_id not in symbols:
                symbols[query_id] = symbol
        return symbols

    def symbol_for(self, gene_id: CanonicalID) -> str | None:
        return self.symbols_for([gene_id]).get(str(gene_id))


def build_provider(config: AnnotationConfig) -> AnnotationProvider:
    """Create the annotation provider selected in the config."""
    if config.provider == "mygene":
        return MyGeneAnnotationProvider(
            species=config.species,
            max_retries=config.max_retries,
        )
    if config.table_path is None:
        raise ConfigurationError(
            "annotation.table_path is required for the table provider",
            stage="annotation",
        )
    return TableAnnotationProvider.from_tsv(config.table_path)
