"""Pydantic models for pipeline configuration."""

import hashlib
import json
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class InputConfig(BaseModel):
    """Location of the hit gene list and its lexical rewrite table."""

    gene_list: Path = Field(
        ...,
        description="Text file with one gene identifier per line",
    )
    rewrites: dict[str, str] = Field(
        default_factory=dict,
        description="Substring -> replacement rules applied before classification",
    )


class AnnotationConfig(BaseModel):
    """Annotation provider used to resolve identifiers and symbols."""

    provider: Literal["table", "mygene"] = Field(
        default="table",
        description="Provider backend: local annotation table or mygene.info",
    )
    table_path: Path | None = Field(
        default=None,
        description="TSV with gene_id, symbol[, accession, aliases] columns",
    )
    species: int = Field(
        default=10090,
        ge=1,
        description="NCBI taxonomy ID (default: 10090, mouse)",
    )
    batch_size: int = Field(
        default=1000,
        ge=1,
        description="Identifiers per provider query batch",
    )
    max_retries: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Maximum retry attempts for mygene requests",
    )

    @model_validator(mode="after")
    def require_table_path(self) -> "AnnotationConfig":
        """Table provider needs a table path."""
        if self.provider == "table" and self.table_path is None:
            raise ValueError("annotation.table_path is required when provider is 'table'")
        return self


class MappingConfig(BaseModel):
    """Identifier mapping options."""

    overrides: dict[str, str] = Field(
        default_factory=dict,
        description="Manual symbol -> canonical ID fallbacks",
    )
    min_success_rate: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Mapping rate below this is reported as FAILED (run continues)",
    )
    warn_threshold: float = Field(
        default=0.9,
        ge=0.0,
        le=1.0,
        description="Mapping rate below this is reported as WARNING",
    )

    @field_validator("overrides", mode="before")
    @classmethod
    def stringify_override_ids(cls, v):
        """Accept numeric canonical IDs in YAML (e.g. Entrez 12345)."""
        if isinstance(v, dict):
            return {str(key): str(value) for key, value in v.items()}
        return v


class UniverseConfig(BaseModel):
    """Background universe definition shared by all libraries."""

    size: int | None = Field(
        default=None,
        ge=1,
        description="Explicit universe size; overrides source",
    )
    source: Literal["libraries", "protein_coding"] = Field(
        default="libraries",
        description="Derive size from library members or protein-coding genes",
    )


class Thresholds(BaseModel):
    """Significance cutoffs, both in (0, 1]."""

    p_cutoff: float = Field(
        default=0.05,
        gt=0.0,
        le=1.0,
        description="Raw p-value cutoff",
    )
    q_cutoff: float = Field(
        default=0.2,
        gt=0.0,
        le=1.0,
        description="Adjusted p-value / q-value cutoff",
    )


class LibraryConfig(BaseModel):
    """One gene-set library to test the query against."""

    tag: str = Field(
        ...,
        min_length=1,
        description="Short name used for output files",
    )
    path: Path = Field(
        ...,
        description="GMT file with the library's gene sets",
    )
    id_type: Literal["canonical", "symbol"] = Field(
        default="canonical",
        description="Whether GMT members are canonical IDs or symbols",
    )
    terms: list[str] | None = Field(
        default=None,
        description="Restrict to these term IDs (focused panel)",
    )
    p_cutoff: float | None = Field(default=None, gt=0.0, le=1.0)
    q_cutoff: float | None = Field(default=None, gt=0.0, le=1.0)
    min_size: int | None = Field(default=None, ge=1)
    max_size: int | None = Field(default=None, ge=1)

    def resolve_thresholds(self, defaults: Thresholds) -> Thresholds:
        """Per-library cutoffs fall back to the run defaults."""
        return Thresholds(
            p_cutoff=self.p_cutoff if self.p_cutoff is not None else defaults.p_cutoff,
            q_cutoff=self.q_cutoff if self.q_cutoff is not None else defaults.q_cutoff,
        )


class OutputConfig(BaseModel):
    """Output location and chart options."""

    base_dir: Path = Field(
        default=Path("results"),
        description="Parent directory for dated run folders",
    )
    top_n: int = Field(
        default=15,
        ge=1,
        description="Terms shown in per-library bar charts",
    )


class RunConfig(BaseModel):
    """Execution options."""

    max_workers: int = Field(
        default=1,
        ge=1,
        le=64,
        description="Libraries enriched concurrently (1 = sequential)",
    )


class PipelineConfig(BaseModel):
    """Main pipeline configuration."""

    input: InputConfig = Field(
        ...,
        description="Gene list input",
    )
    annotation: AnnotationConfig = Field(
        ...,
        description="Annotation provider",
    )
    mapping: MappingConfig = Field(
        default_factory=MappingConfig,
        description="Identifier mapping options",
    )
    universe: UniverseConfig = Field(
        default_factory=UniverseConfig,
        description="Background universe",
    )
    thresholds: Thresholds = Field(
        default_factory=Thresholds,
        description="Default significance cutoffs",
    )
    libraries: list[LibraryConfig] = Field(
        ...,
        min_length=1,
        description="Gene-set libraries to test",
    )
    output: OutputConfig = Field(
        default_factory=OutputConfig,
        description="Output options",
    )
    run: RunConfig = Field(
        default_factory=RunConfig,
        description="Execution options",
    )

    @field_validator("libraries")
    @classmethod
    def unique_tags(cls, v: list[LibraryConfig]) -> list[LibraryConfig]:
        """Library tags name output files, so they must be unique."""
        tags = [lib.tag for lib in v]
        duplicates = sorted({tag for tag in tags if tags.count(tag) > 1})
        if duplicates:
            raise ValueError(f"Duplicate library tags: {', '.join(duplicates)}")
        return v

    def config_hash(self) -> str:
        """
        Compute SHA-256 hash of the configuration.

        Returns a deterministic hash based on all config values,
        useful for tracking config changes between runs.
        """
        config_dict = self.model_dump(mode="python")
        config_json = json.dumps(
            config_dict,
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(config_json.encode()).hexdigest()
