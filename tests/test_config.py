"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from ora_pipeline.config import load_config, load_config_with_overrides
from ora_pipeline.config.schema import LibraryConfig, PipelineConfig, Thresholds


MINIMAL_CONFIG = """
input:
  gene_list: hits.txt
annotation:
  provider: table
  table_path: genes.tsv
libraries:
  - tag: kegg
    path: kegg.gmt
"""


@pytest.fixture
def minimal_config(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(MINIMAL_CONFIG)
    return config_path


def test_load_default_config():
    """Test loading the shipped default configuration."""
    config = load_config("config/default.yaml")

    assert isinstance(config, PipelineConfig)
    assert config.annotation.species == 10090
    assert config.thresholds.p_cutoff == 0.05
    assert config.thresholds.q_cutoff == 0.2
    assert len(config.libraries) == 7
    assert config.input.rewrites["steroid sulfatase, mouse"] == "Sts"


def test_default_config_overrides_are_strings():
    """Numeric override IDs in YAML become string canonical IDs."""
    config = load_config("config/default.yaml")

    assert config.mapping.overrides == {"Foo": "12345"}


def test_minimal_config_defaults(minimal_config):
    config = load_config(minimal_config)

    assert config.mapping.overrides == {}
    assert config.universe.size is None
    assert config.universe.source == "libraries"
    assert config.output.base_dir == Path("results")
    assert config.run.max_workers == 1
    assert config.libraries[0].id_type == "canonical"


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_invalid_config_missing_libraries(tmp_path):
    """Test that missing required section raises ValidationError."""
    config_path = tmp_path / "invalid.yaml"
    config_path.write_text("""
input:
  gene_list: hits.txt
annotation:
  table_path: genes.tsv
""")

    with pytest.raises(ValidationError) as exc_info:
        load_config(config_path)

    assert "libraries" in str(exc_info.value)


@pytest.mark.parametrize("value", [0, 0.0, -0.1, 1.5])
def test_cutoff_out_of_range_rejected(value):
    with pytest.raises(ValidationError):
        Thresholds(p_cutoff=value)
    with pytest.raises(ValidationError):
        Thresholds(q_cutoff=value)


def test_cutoff_of_one_accepted():
    thresholds = Thresholds(p_cutoff=1.0, q_cutoff=1.0)
    assert thresholds.p_cutoff == 1.0


def test_table_provider_requires_table_path(tmp_path):
    config_path = tmp_path / "invalid.yaml"
    config_path.write_text("""
input:
  gene_list: hits.txt
annotation:
  provider: table
libraries:
  - tag: kegg
    path: kegg.gmt
""")

    with pytest.raises(ValidationError) as exc_info:
        load_config(config_path)

    assert "table_path" in str(exc_info.value)


def test_duplicate_library_tags_rejected(tmp_path):
    config_path = tmp_path / "invalid.yaml"
    config_path.write_text(MINIMAL_CONFIG + """  - tag: kegg
    path: other.gmt
""")

    with pytest.raises(ValidationError) as exc_info:
        load_config(config_path)

    assert "Duplicate library tags" in str(exc_info.value)


def test_library_thresholds_fall_back_to_defaults():
    defaults = Thresholds(p_cutoff=0.01, q_cutoff=0.1)
    lib = LibraryConfig(tag="panel", path=Path("x.gmt"), q_cutoff=0.25)

    resolved = lib.resolve_thresholds(defaults)

    assert resolved.p_cutoff == 0.01
    assert resolved.q_cutoff == 0.25


def test_config_hash_deterministic(minimal_config, tmp_path):
    """Config hash is stable and changes with content."""
    config1 = load_config(minimal_config)
    config2 = load_config(minimal_config)

    assert config1.config_hash() == config2.config_hash()
    assert len(config1.config_hash()) == 64

    other = tmp_path / "other.yaml"
    other.write_text(MINIMAL_CONFIG + "thresholds:\n  p_cutoff: 0.01\n")
    assert load_config(other).config_hash() != config1.config_hash()


def test_load_config_with_overrides(minimal_config):
    """Dotted keys override nested values; None values are skipped."""
    config = load_config_with_overrides(minimal_config, {
        "input.gene_list": "other.txt",
        "run.max_workers": 4,
        "output.base_dir": None,
    })

    assert config.input.gene_list == Path("other.txt")
    assert config.run.max_workers == 4
    assert config.output.base_dir == Path("results")


def test_override_unknown_section(minimal_config):
    with pytest.raises(KeyError, match="nope"):
        load_config_with_overrides(minimal_config, {"nope.value": 1})


def test_overrides_are_validated(minimal_config):
    with pytest.raises(ValidationError):
        load_config_with_overrides(minimal_config, {"thresholds.q_cutoff": 2.0})
