"""Integration tests for the run CLI command using CliRunner.

Tests:
- run --help and info
- Full run with a local annotation table and GMT libraries
- Per-library tables, unmapped IDs, run summary, and provenance
- Same-day runs never overwrite each other
- --skip-viz, --gene-list, and --max-workers options
- Error handling for bad input and configuration
"""

import json

import polars as pl
import pytest
import yaml
from click.testing import CliRunner

from ora_pipeline.cli.main import cli
from ora_pipeline.output import read_enrichment_table

pytestmark = pytest.mark.integration


@pytest.fixture
def workspace(tmp_path):
    """Annotation table, gene list, and two libraries on disk."""
    background = [str(i) for i in range(1001, 1041)]

    table = tmp_path / "genes.tsv"
    rows = [
        "gene_id\tsymbol\taccession\taliases",
        "15957\tIfit1\tENSMUSG00000034459\t",
        "20907\tSts\tENSMUSG00000033013\t",
        "20846\tStat1\tNM_009283.4\t",
        "16913\tPsmb8\t\tLmp7",
        "12345\tOverridden\t\t",
    ]
    rows += [f"{gene_id}\tGene{gene_id}\t\t" for gene_id in background]
    table.write_text("\n".join(rows) + "\n")

    gene_list = tmp_path / "hits.txt"
    gene_list.write_text(
        "Ifit1\nIfit1\nsteroid sulfatase, mouse\n\nStat1\nLmp7\nFoo\nNope\n"
    )

    kegg = tmp_path / "kegg.gmt"
    kegg.write_text(
        "mmu04620\tInterferon response\t15957\t20846\t16913\t12345\t1001\t1002\n"
        "mmu00140\tSteroid hormone biosynthesis\t20907\t"
        + "\t".join(background[2:20]) + "\n"
        "mmu99999\tUnrelated\t" + "\t".join(background[20:40]) + "\n"
    )

    hallmark = tmp_path / "hallmark.gmt"
    hallmark.write_text(
        "HALLMARK_INTERFERON_ALPHA_RESPONSE\tNA\tIfit1\tStat1\tPsmb8\tMissing1\n"
    )

    return tmp_path


def write_config(workspace, **overrides):
    config = {
        "input": {
            "gene_list": str(workspace / "hits.txt"),
            "rewrites": {"steroid sulfatase, mouse": "Sts"},
        },
        "annotation": {
            "provider": "table",
            "table_path": str(workspace / "genes.tsv"),
        },
        "mapping": {"overrides": {"Foo": 12345}},
        "universe": {"size": 200},
        "thresholds": {"p_cutoff": 0.05, "q_cutoff": 0.2},
        "libraries": [
            {"tag": "kegg", "path": str(workspace / "kegg.gmt")},
            {
                "tag": "hallmark",
                "path": str(workspace / "hallmark.gmt"),
                "id_type": "symbol",
            },
            {
                "tag": "ifn_panel",
                "path": str(workspace / "kegg.gmt"),
                "terms": ["mmu04620"],
                "p_cutoff": 0.1,
            },
        ],
        "output": {"base_dir": str(workspace / "results"), "top_n": 5},
    }
    for key, value in overrides.items():
        config[key] = value

    config_path = workspace / "config.yaml"
    config_path.write_text(yaml.safe_dump(config))
    return config_path


def run_dirs(workspace):
    return sorted((workspace / "results").iterdir())


def test_run_help():
    runner = CliRunner()
    result = runner.invoke(cli, ["run", "--help"])

    assert result.exit_code == 0
    assert "--gene-list" in result.output
    assert "--skip-viz" in result.output
    assert "--max-workers" in result.output


def test_info_command(workspace):
    config_path = write_config(workspace)

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_path), "info"])

    assert result.exit_code == 0
    assert "Config Hash:" in result.output
    assert "Libraries (3):" in result.output
    assert "ifn_panel" in result.output


def test_info_shows_universe_and_size_filters(workspace):
    config_path = write_config(
        workspace,
        universe={"source": "libraries"},
        libraries=[
            {"tag": "kegg", "path": str(workspace / "kegg.gmt"), "min_size": 10, "max_size": 500},
        ],
    )

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_path), "info"])

    assert result.exit_code == 0, result.output
    assert "Union of library members" in result.output
    assert "Overrides: 1" in result.output
    assert "term size 10..500" in result.output


def test_run_end_to_end(workspace):
    config_path = write_config(workspace)

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_path), "run", "--skip-viz"])

    assert result.exit_code == 0, result.output
    assert "Enrichment complete!" in result.output

    dirs = run_dirs(workspace)
    assert len(dirs) == 1
    run_dir = dirs[0]
    assert run_dir.name.endswith("_1")

    for tag in ["kegg", "hallmark", "ifn_panel"]:
        assert (run_dir / f"{tag}.tsv").exists()
        assert (run_dir / f"{tag}.parquet").exists()
        assert (run_dir / f"{tag}.provenance.yaml").exists()
    assert not list(run_dir.glob("*.png"))

    kegg = read_enrichment_table(run_dir / "kegg.tsv")
    assert kegg["term_id"][0] == "mmu04620"
    assert kegg["gene_ids"][0] == "12345/15957/16913/20846"
    assert kegg["gene_symbols"][0] == "Overridden/Ifit1/Psmb8/Stat1"
    assert kegg["gene_ratio"][0] == "4/5"
    assert kegg["bg_ratio"][0] == "6/200"
    assert "mmu99999" not in kegg["term_id"].to_list()

    hallmark = read_enrichment_table(run_dir / "hallmark.tsv")
    assert hallmark["description"][0] == "HALLMARK_INTERFERON_ALPHA_RESPONSE"
    assert hallmark["count"][0] == 3


def test_run_writes_mapping_and_run_metadata(workspace):
    config_path = write_config(workspace)

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_path), "run", "--skip-viz"])
    assert result.exit_code == 0, result.output

    run_dir = run_dirs(workspace)[0]

    unmapped = [
        line for line in (run_dir / "unmapped_ids.txt").read_text().splitlines()
        if not line.startswith("#")
    ]
    assert unmapped == ["Nope"]

    with open(run_dir / "run_summary.yaml") as f:
        summary = yaml.safe_load(f)
    assert summary["input_count"] == 6
    assert summary["mapped_count"] == 5
    assert summary["universe_size"] == 200
    assert summary["cutoffs"]["ifn_panel"] == {"p_cutoff": 0.1, "q_cutoff": 0.2}

    with open(run_dir / "run.provenance.json") as f:
        provenance = json.load(f)
    steps = [step["step_name"] for step in provenance["processing_steps"]]
    assert steps == [
        "read_gene_list",
        "map_identifiers",
        "load_libraries",
        "determine_universe",
        "run_enrichment",
        "write_results",
    ]
    assert provenance["input_checksums"]["library:kegg"] is not None


def test_run_twice_same_day_keeps_both(workspace):
    config_path = write_config(workspace)
    runner = CliRunner()

    first = runner.invoke(cli, ["--config", str(config_path), "run", "--skip-viz"])
    second = runner.invoke(cli, ["--config", str(config_path), "run", "--skip-viz"])

    assert first.exit_code == 0
    assert second.exit_code == 0
    names = [d.name for d in run_dirs(workspace)]
    assert len(names) == 2
    assert names[0].endswith("_1")
    assert names[1].endswith("_2")


def test_run_with_charts(workspace):
    config_path = write_config(workspace)

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_path), "run"])

    assert result.exit_code == 0, result.output
    run_dir = run_dirs(workspace)[0]
    assert (run_dir / "kegg_top_terms.png").exists()


def test_run_parallel_matches_sequential(workspace):
    config_path = write_config(workspace)
    runner = CliRunner()

    runner.invoke(cli, ["--config", str(config_path), "run", "--skip-viz"])
    result = runner.invoke(
        cli,
        ["--config", str(config_path), "run", "--skip-viz", "--max-workers", "3"],
    )

    assert result.exit_code == 0, result.output
    sequential, parallel = run_dirs(workspace)
    for tag in ["kegg", "hallmark", "ifn_panel"]:
        assert pl.read_parquet(sequential / f"{tag}.parquet").equals(
            pl.read_parquet(parallel / f"{tag}.parquet")
        )


def test_run_gene_list_option(workspace):
    config_path = write_config(workspace)
    other = workspace / "other.txt"
    other.write_text("Nope1\nNope2\n")

    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["--config", str(config_path), "run", "--skip-viz", "--gene-list", str(other)],
    )

    # Nothing maps: the run still completes with empty tables
    assert result.exit_code == 0, result.output
    run_dir = run_dirs(workspace)[0]
    assert read_enrichment_table(run_dir / "kegg.tsv").height == 0


def test_run_missing_gene_list(workspace):
    config_path = write_config(workspace)

    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "--config", str(config_path),
            "run", "--gene-list", str(workspace / "missing.txt"),
        ],
    )

    assert result.exit_code == 1
    assert "Error reading gene list" in result.output
    assert not (workspace / "results").exists()


def test_run_universe_smaller_than_query(workspace):
    config_path = write_config(workspace, universe={"size": 2})

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_path), "run", "--skip-viz"])

    assert result.exit_code == 1
    assert "smaller than query" in result.output
    assert not (workspace / "results").exists()


def test_run_universe_from_libraries(workspace):
    config_path = write_config(workspace, universe={"source": "libraries"})

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_path), "run", "--skip-viz"])

    assert result.exit_code == 0, result.output
    with open(run_dirs(workspace)[0] / "run_summary.yaml") as f:
        summary = yaml.safe_load(f)
    # kegg: 6 + 19 + 20 members, hallmark adds none
    assert summary["universe_size"] == 45


def test_run_universe_smaller_than_term(workspace):
    # 5 mapped genes fit, but mmu00140 has 19 members
    config_path = write_config(workspace, universe={"size": 10})

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(config_path), "run", "--skip-viz"])

    assert result.exit_code == 1
    assert "Error running enrichment" in result.output
    assert "more than the universe size 10" in result.output
    assert not (workspace / "results").exists()
