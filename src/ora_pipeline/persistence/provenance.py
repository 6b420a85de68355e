"""Provenance tracking for enrichment runs.

A run is reproducible from its config hash, the checksums of the files it
read (gene list, annotation table, GMT libraries) and the ordered list of
steps with their counts.
"""

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ora_pipeline.config.schema import PipelineConfig

# Read size for file checksums
CHUNK_SIZE = 1 << 20


def file_sha256(path: Path) -> Optional[str]:
    """SHA-256 hex digest of a file, or None if it does not exist."""
    path = Path(path)
    if not path.is_file():
        return None
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class ProvenanceTracker:
    """
    Collects run metadata and writes it as a JSON sidecar.

    Library entries keep the file path, identifier type and focused-panel
    terms of each configured library; input checksums are taken when the
    metadata is created, so they describe the files as the run saw them.
    """

    def __init__(self, pipeline_version: str, config: PipelineConfig):
        """
        Initialize provenance tracker.

        Args:
            pipeline_version: Pipeline version string (e.g., "0.1.0")
            config: Validated run configuration
        """
        self.pipeline_version = pipeline_version
        self.config_hash = config.config_hash()
        self.annotation = {
            "provider": config.annotation.provider,
            "species": config.annotation.species,
            "table_path": (
                str(config.annotation.table_path)
                if config.annotation.table_path is not None
                else None
            ),
        }
        self.library_sources = {
            lib.tag: {
                "path": str(lib.path),
                "id_type": lib.id_type,
                "focused_terms": lib.terms,
            }
            for lib in config.libraries
        }
        self.input_files = {"gene_list": config.input.gene_list}
        if config.annotation.table_path is not None:
            self.input_files["annotation_table"] = config.annotation.table_path
        for lib in config.libraries:
            self.input_files[f"library:{lib.tag}"] = lib.path

        self.processing_steps: list[dict] = []
        self.created_at = datetime.now(timezone.utc)

    def record_step(self, step_name: str, details: Optional[dict] = None) -> None:
        """
        Append a processing step with its time offset from run start.

        Args:
            step_name: Name of the step (e.g. "map_identifiers")
            details: Optional counts or paths for the step
        """
        now = datetime.now(timezone.utc)
        step = {
            "step_name": step_name,
            "timestamp": now.isoformat(),
            "elapsed_seconds": round((now - self.created_at).total_seconds(), 3),
        }
        if details:
            step["details"] = details
        self.processing_steps.append(step)

    def get_steps(self) -> list[dict]:
        return self.processing_steps

    def input_checksums(self) -> dict[str, Optional[str]]:
        """SHA-256 per input file; None for files that are missing."""
        return {name: file_sha256(path) for name, path in self.input_files.items()}

    def create_metadata(self) -> dict:
        return {
            "pipeline_version": self.pipeline_version,
            "config_hash": self.config_hash,
            "annotation": self.annotation,
            "library_sources": self.library_sources,
            "input_checksums": self.input_checksums(),
            "created_at": self.created_at.isoformat(),
            "processing_steps": self.processing_steps,
        }

    def save_sidecar(self, output_path: Path) -> Path:
        """
        Write metadata to {output_path}.provenance.json.

        Args:
            output_path: Output file or run marker the sidecar belongs to
                (the run command passes {run_dir}/run)

        Returns:
            Path to the sidecar file
        """
        sidecar_path = Path(output_path).with_suffix(".provenance.json")
        sidecar_path.parent.mkdir(parents=True, exist_ok=True)

        with open(sidecar_path, "w") as f:
            json.dump(self.create_metadata(), f, indent=2, default=str)
        return sidecar_path

    @staticmethod
    def load_sidecar(sidecar_path: Path) -> dict:
        with open(sidecar_path) as f:
            return json.load(f)

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        version: Optional[str] = None
    ) -> "ProvenanceTracker":
        """Tracker for config, defaulting to the installed package version."""
        if version is None:
            from ora_pipeline import __version__
            version = __version__

        return cls(version, config)
