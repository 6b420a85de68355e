"""Data models for gene-set libraries."""

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict


class GeneSetTerm(BaseModel):
    """One gene set (pathway, ontology term, or signature).

    Attributes:
        term_id: Identifier of the term (GO ID, pathway ID, set name)
        description: Human-readable description
        members: Canonical IDs of the genes annotated to the term
    """

    model_config = ConfigDict(frozen=True)

    term_id: str
    description: str
    members: frozenset[str]

    @property
    def size(self) -> int:
        return len(self.members)


class GeneSetLibrary:
    """Immutable mapping from term ID to GeneSetTerm.

    Term order follows load order; lookups by term ID are read-only.
    """

    def __init__(self, name: str, terms: Iterable[GeneSetTerm]):
        self.name = name
        ordered: dict[str, GeneSetTerm] = {}
        for term in terms:
            if term.term_id in ordered:
                raise ValueError(f"Duplicate term '{term.term_id}' in library '{name}'")
            ordered[term.term_id] = term
        self._terms: Mapping[str, GeneSetTerm] = MappingProxyType(ordered)

    @classmethod
    def from_dict(
        cls,
        name: str,
        gene_sets: Mapping[str, Iterable[str]],
        descriptions: Mapping[str, str] | None = None,
    ) -> "GeneSetLibrary":
        """Build a library from term ID -> members.

        Args:
            name: Library name
            gene_sets: Term ID -> canonical member IDs
            descriptions: Optional term ID -> description (defaults to term ID)
        """
        descriptions = descriptions or {}
        return cls(
            name,
            (
                GeneSetTerm(
                    term_id=term_id,
                    description=descriptions.get(term_id, term_id),
                    members=frozenset(str(m) for m in members),
                )
                for term_id, members in gene_sets.items()
            ),
        )

    @property
    def terms(self) -> Mapping[str, GeneSetTerm]:
        return self._terms

    def __len__(self) -> int:
        return len(self._terms)

    def __iter__(self) -> Iterator[GeneSetTerm]:
        return iter(self._terms.values())

    def __contains__(self, term_id: object) -> bool:
        return term_id in self._terms

    def __getitem__(self, term_id: str) -> GeneSetTerm:
        return self._terms[term_id]

    def members(self) -> frozenset[str]:
        """Union of all term members."""
        union: set[str] = set()
        for term in self:
            union.update(term.members)
        return frozenset(union)

    def subset(self, term_ids: Iterable[str], name: str | None = None) -> "GeneSetLibrary":
        """Focused panel: a new library restricted to the named terms.

        Unknown term IDs are ignored; the caller decides whether that matters.
        """
        wanted = set(term_ids)
        return GeneSetLibrary(
            name or self.name,
            (term for term in self if term.term_id in wanted),
        )

    def __repr__(self) -> str:
        return f"GeneSetLibrary(name={self.name!r}, terms={len(self)})"
