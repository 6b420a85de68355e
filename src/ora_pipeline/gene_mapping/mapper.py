"""Identifier normalization into canonical gene IDs.

Raw identifiers are classified by lexical shape, resolved per class through
an AnnotationProvider, topped up with manual overrides, and deduplicated by
canonical ID.
"""

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

from ora_pipeline.gene_mapping.provider import AnnotationProvider, CanonicalID

logger = logging.getLogger(__name__)


class IdentifierClass(str, Enum):
    """Lexical identifier classes; disjoint."""

    ACCESSION = "accession"
    SYMBOL = "symbol"
    UNCLASSIFIED = "unclassified"


# Checked in order; first match wins
ACCESSION_PATTERNS = (
    re.compile(r"^\d+$"),  # Entrez
    re.compile(r"^ENS[A-Z]*[GTP]\d{6,}(\.\d+)?$"),  # Ensembl
    re.compile(r"^[NX][MRP]_\d+(\.\d+)?$"),  # RefSeq
    re.compile(
        r"^([OPQ][0-9][A-Z0-9]{3}[0-9]|[A-NR-Z][0-9]([A-Z][A-Z0-9]{2}[0-9]){1,2})(-\d+)?$"
    ),  # UniProt
)
# Leading digits allowed (RIKEN clones such as 1700001C19Rik); needs a letter
SYMBOL_PATTERN = re.compile(r"^(?=.*[A-Za-z])[A-Za-z0-9][A-Za-z0-9\-._@]*$")


def classify_identifier(raw_id: str) -> IdentifierClass:
    """Classify an identifier by its lexical shape only.

    Args:
        raw_id: Stripped identifier string

    Returns:
        IdentifierClass for the string
    """
    for pattern in ACCESSION_PATTERNS:
        if pattern.match(raw_id):
            return IdentifierClass.ACCESSION
    if SYMBOL_PATTERN.match(raw_id):
        return IdentifierClass.SYMBOL
    return IdentifierClass.UNCLASSIFIED


@dataclass
class MappingReport:
    """Summary report for a mapping run.

    Attributes:
        total_ids: Number of distinct raw identifiers submitted
        mapped_count: Distinct canonical IDs produced
        via_override: Raw IDs resolved by the manual override table
        symbol_retries: Accession-shaped raw IDs resolved on the symbol retry
        unmapped_ids: Raw IDs with no resolution
        duplicate_ids: Raw IDs whose canonical ID was already produced
        class_counts: Raw IDs per identifier class
        success_rate: Fraction of raw IDs resolved (0-1)
    """
    total_ids: int
    mapped_count: int
    via_override: int = 0
    symbol_retries: int = 0
    unmapped_ids: list[str] = field(default_factory=list)
    duplicate_ids: list[str] = field(default_factory=list)
    class_counts: dict[str, int] = field(default_factory=dict)
    success_rate: float = 0.0

    def __post_init__(self):
        """Calculate success rate after initialization."""
        if self.total_ids > 0:
            self.success_rate = (self.total_ids - len(self.unmapped_ids)) / self.total_ids

    @property
    def unmapped_count(self) -> int:
        return len(self.unmapped_ids)


@dataclass(frozen=True)
class MappingOutcome:
    """Result of GeneMapper.map.

    Attributes:
        mapped: Canonical IDs, deduplicated, in input order
        unmapped: Raw IDs that failed every strategy
        mapping: Raw ID -> canonical ID for every resolved raw ID
        report: MappingReport with counts
    """
    mapped: list[CanonicalID]
    unmapped: list[str]
    mapping: dict[str, CanonicalID]
    report: MappingReport


class GeneMapper:
    """Batch identifier mapper over an AnnotationProvider.

    Automated lookups take precedence; the override table only fills raw IDs
    that no strategy resolved.
    Accession-shaped IDs that miss the accession lookup but also have a
    symbol shape (P2RY12, B3GAT1) are retried as symbols.
    """

    def __init__(self, provider: AnnotationProvider, batch_size: int = 1000):
        """Initialize gene mapper.

        Args:
            provider: Annotation provider answering lookups
            batch_size: Number of identifiers per provider call (default: 1000)
        """
        self.provider = provider
        self.batch_size = batch_size
        logger.info(f"Initialized GeneMapper with batch_size={batch_size}")

    def resolve(
        self,
        id_class: IdentifierClass,
        batch: Sequence[str],
    ) -> dict[str, CanonicalID]:
        """Resolve one class of identifiers in provider-sized batches.

        Args:
            id_class: Class shared by every identifier in batch
            batch: Identifiers to resolve

        Returns:
            Raw ID -> canonical ID for resolved identifiers
        """
        if id_class is IdentifierClass.SYMBOL:
            lookup = self.provider.resolve_by_symbol
        elif id_class is IdentifierClass.ACCESSION:
            lookup = self.provider.resolve_by_accession
        else:
            return {}

        resolved: dict[str, CanonicalID] = {}
        total = len(batch)
        for i in range(0, total, self.batch_size):
            chunk = list(batch[i:i + self.batch_size])
            logger.debug(
                f"Resolving {id_class.value} batch {i // self.batch_size + 1} "
                f"({len(chunk)} ids)"
            )
            requested = set(chunk)
            for raw_id, gene_id in lookup(chunk).items():
                if raw_id in requested and gene_id:
                    resolved[raw_id] = str(gene_id)
        return resolved

    def map(
        self,
        raw_ids: Sequence[str],
        overrides: Mapping[str, CanonicalID | int] | None = None,
    ) -> MappingOutcome:
        """Map raw identifiers to canonical IDs.

        Args:
            raw_ids: Raw identifiers (duplicates allowed, order kept)
            overrides: Manual raw ID -> canonical ID fallbacks

        Returns:
            MappingOutcome with mapped IDs, unmapped raw IDs and report
        """
        overrides = {str(k): str(v) for k, v in (overrides or {}).items()}

        unique_ids = list(dict.fromkeys(r.strip() for r in raw_ids if r and r.strip()))

        # Classify
        by_class: dict[IdentifierClass, list[str]] = {c: [] for c in IdentifierClass}
        for raw_id in unique_ids:
            by_class[classify_identifier(raw_id)].append(raw_id)

        # Resolve each class
        resolved: dict[str, CanonicalID] = {}
        for id_class, batch in by_class.items():
            if batch:
                resolved.update(self.resolve(id_class, batch))

        # Symbols that look like UniProt accessions
        retry = [
            raw_id for raw_id in by_class[IdentifierClass.ACCESSION]
            if raw_id not in resolved and SYMBOL_PATTERN.match(raw_id)
        ]
        symbol_retries = 0
        if retry:
            retried = self.resolve(IdentifierClass.SYMBOL, retry)
            resolved.update(retried)
            symbol_retries = len(retried)
            logger.debug(
                f"Symbol retry resolved {symbol_retries} of {len(retry)} accession-shaped IDs"
            )

        # Overrides fill gaps only
        via_override = 0
        for raw_id in unique_ids:
            if raw_id not in resolved and raw_id in overrides:
                resolved[raw_id] = overrides[raw_id]
                via_override += 1

        # Deduplicate by canonical ID in input order
        mapped: list[CanonicalID] = []
        seen: set[CanonicalID] = set()
        unmapped: list[str] = []
        duplicates: list[str] = []
        for raw_id in unique_ids:
            gene_id = resolved.get(raw_id)
            if gene_id is None:
                unmapped.append(raw_id)
            elif gene_id in seen:
                duplicates.append(raw_id)
            else:
                seen.add(gene_id)
                mapped.append(gene_id)

        report = MappingReport(
            total_ids=len(unique_ids),
            mapped_count=len(mapped),
            via_override=via_override,
            symbol_retries=symbol_retries,
            unmapped_ids=unmapped,
            duplicate_ids=duplicates,
            class_counts={c.value: len(ids) for c, ids in by_class.items()},
        )

        logger.info(
            f"Mapping complete: resolved {report.total_ids - report.unmapped_count} "
            f"of {report.total_ids} ({report.success_rate:.1%}), "
            f"{via_override} via override, {len(duplicates)} duplicate(s) collapsed"
        )

        return MappingOutcome(
            mapped=mapped,
            unmapped=unmapped,
            mapping={raw_id: resolved[raw_id] for raw_id in unique_ids if raw_id in resolved},
            report=report,
        )
