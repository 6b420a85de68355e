"""Provenance tracking for pipeline runs."""

from ora_pipeline.persistence.provenance import ProvenanceTracker

__all__ = ["ProvenanceTracker"]
