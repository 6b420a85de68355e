"""Run command: map a gene list, enrich it against every library, write results.

Orchestrates the full pipeline:
- Reads and normalizes the gene list
- Maps identifiers to canonical gene IDs
- Loads gene-set libraries and fixes the universe size
- Runs the enrichment engine per library
- Annotates symbols and writes tables, charts, and run metadata
"""

import logging
import sys
from pathlib import Path

import click

from ora_pipeline.config.loader import load_config_with_overrides
from ora_pipeline.enrichment import LibraryJob, run_enrichment_jobs
from ora_pipeline.gene_list import read_gene_list
from ora_pipeline.gene_mapping import (
    GeneMapper,
    MappingValidator,
    build_provider,
    check_universe_size,
    resolve_universe_size,
)
from ora_pipeline.libraries import load_library
from ora_pipeline.output import (
    allocate_run_directory,
    generate_library_plots,
    write_enrichment_table,
    write_run_summary,
)
from ora_pipeline.persistence import ProvenanceTracker
from ora_pipeline.results import ResultAggregator, RunMetadata

logger = logging.getLogger(__name__)


def _fail(message: str, error: Exception) -> None:
    click.echo(click.style(f"  {message}: {error}", fg='red'), err=True)
    logger.exception(message)
    sys.exit(1)


@click.command('run')
@click.option(
    '--gene-list',
    type=click.Path(path_type=Path),
    default=None,
    help='Gene list file (overrides input.gene_list)'
)
@click.option(
    '--output-dir',
    type=click.Path(path_type=Path),
    default=None,
    help='Parent directory for run folders (overrides output.base_dir)'
)
@click.option(
    '--skip-viz',
    is_flag=True,
    help='Skip bar chart generation'
)
@click.option(
    '--max-workers',
    type=int,
    default=None,
    help='Libraries enriched concurrently (overrides run.max_workers)'
)
@click.pass_context
def run(ctx, gene_list, output_dir, skip_viz, max_workers):
    """Run over-representation analysis for a gene list.

    Pipeline steps:
    1. Read and normalize the gene list
    2. Map identifiers to canonical gene IDs
    3. Load gene-set libraries
    4. Determine the background universe
    5. Enrich the query against every library
    6. Attach gene symbols
    7. Write tables, charts, unmapped IDs, and run summary

    Examples:

        # Run with the default config
        ora-pipeline run

        # Another gene list, four libraries at a time
        ora-pipeline run --gene-list hits.txt --max-workers 4

        # Tables only
        ora-pipeline run --skip-viz
    """
    config_path = ctx.obj['config_path']

    click.echo(click.style("=== Over-Representation Analysis ===", bold=True))
    click.echo()

    try:
        # Load config
        click.echo("Loading configuration...")
        try:
            config = load_config_with_overrides(config_path, {
                'input.gene_list': gene_list,
                'output.base_dir': output_dir,
                'run.max_workers': max_workers,
            })
        except Exception as e:
            _fail("Error loading config", e)
        click.echo(click.style(f"  Config loaded: {config_path}", fg='green'))
        click.echo()

        provenance = ProvenanceTracker.from_config(config)

        # Step 1: Gene list
        click.echo(click.style("Step 1: Reading gene list...", bold=True))
        try:
            raw_ids = read_gene_list(config.input.gene_list, config.input.rewrites)
        except Exception as e:
            _fail("Error reading gene list", e)
        click.echo(click.style(
            f"  {len(raw_ids)} unique identifiers from {config.input.gene_list}",
            fg='green'
        ))
        click.echo()
        provenance.record_step('read_gene_list', {
            'path': str(config.input.gene_list),
            'unique_ids': len(raw_ids),
        })

        # Step 2: Mapping
        click.echo(click.style("Step 2: Mapping identifiers...", bold=True))
        try:
            provider = build_provider(config.annotation)
            mapper = GeneMapper(provider, batch_size=config.annotation.batch_size)
            outcome = mapper.map(raw_ids, overrides=config.mapping.overrides)
        except Exception as e:
            _fail("Error mapping identifiers", e)

        report = outcome.report
        validation = MappingValidator.from_config(config.mapping).validate(report)
        color = 'green' if validation.passed else 'yellow'
        for message in validation.messages:
            click.echo(click.style(f"  {message}", fg=color))
        click.echo()
        provenance.record_step('map_identifiers', {
            'total_ids': report.total_ids,
            'mapped': report.mapped_count,
            'via_override': report.via_override,
            'unmapped': report.unmapped_count,
            'duplicates': len(report.duplicate_ids),
            'success_rate': report.success_rate,
        })

        # Step 3: Libraries
        click.echo(click.style("Step 3: Loading gene-set libraries...", bold=True))
        libraries = {}
        for lib_config in config.libraries:
            try:
                libraries[lib_config.tag] = load_library(lib_config, provider)
            except Exception as e:
                _fail(f"Error loading library {lib_config.tag}", e)
            click.echo(f"  {lib_config.tag}: {len(libraries[lib_config.tag])} terms")
        click.echo()
        provenance.record_step('load_libraries', {
            tag: len(library) for tag, library in libraries.items()
        })

        # Step 4: Universe
        click.echo(click.style("Step 4: Determining background universe...", bold=True))
        try:
            universe_size = resolve_universe_size(
                config.universe,
                libraries.values(),
                species=config.annotation.species,
            )
            check_universe_size(universe_size, len(outcome.mapped))
        except Exception as e:
            _fail("Error determining universe", e)
        click.echo(click.style(f"  Universe size: {universe_size}", fg='green'))
        click.echo()
        provenance.record_step('determine_universe', {
            'source': 'config' if config.universe.size else config.universe.source,
            'universe_size': universe_size,
        })

        # Step 5: Enrichment
        click.echo(click.style("Step 5: Running enrichment...", bold=True))
        cutoffs = {
            lib.tag: lib.resolve_thresholds(config.thresholds)
            for lib in config.libraries
        }
        jobs = [
            LibraryJob(
                tag=lib.tag,
                library=libraries[lib.tag],
                p_cutoff=cutoffs[lib.tag].p_cutoff,
                q_cutoff=cutoffs[lib.tag].q_cutoff,
                min_size=lib.min_size,
                max_size=lib.max_size,
            )
            for lib in config.libraries
        ]
        try:
            results = run_enrichment_jobs(
                outcome.mapped,
                jobs,
                universe_size,
                max_workers=config.run.max_workers,
            )
        except Exception as e:
            _fail("Error running enrichment", e)

        for tag, rows in results.items():
            click.echo(f"  {tag}: {len(rows)} significant terms")
        click.echo()
        provenance.record_step('run_enrichment', {
            'query_size': len(outcome.mapped),
            'max_workers': config.run.max_workers,
            'significant_terms': {tag: len(rows) for tag, rows in results.items()},
        })

        # Step 6: Symbols
        click.echo(click.style("Step 6: Attaching gene symbols...", bold=True))
        aggregator = ResultAggregator(RunMetadata(
            input_count=report.total_ids,
            mapped_count=report.mapped_count,
            unmapped_ids=list(report.unmapped_ids),
            universe_size=universe_size,
        ))
        for tag, rows in results.items():
            aggregator.add(tag, rows, cutoffs[tag])
        try:
            annotated = aggregator.annotate(provider)
        except Exception as e:
            _fail("Error attaching gene symbols", e)
        click.echo(click.style(
            f"  Annotated {len(aggregator.all_gene_ids())} matched genes",
            fg='green'
        ))
        click.echo()

        # Step 7: Output
        click.echo(click.style("Step 7: Writing results...", bold=True))
        try:
            run_dir = allocate_run_directory(config.output.base_dir)
            for tag, rows in annotated.items():
                paths = write_enrichment_table(
                    rows,
                    run_dir,
                    tag,
                    cutoffs=cutoffs[tag].model_dump(),
                )
                click.echo(click.style(f"  {tag}: {paths['tsv'].name}", fg='green'))

            MappingValidator.from_config(config.mapping).save_unmapped_report(
                report, run_dir / "unmapped_ids.txt"
            )
            write_run_summary(aggregator, run_dir)
        except Exception as e:
            _fail("Error writing results", e)

        provenance.record_step('write_results', {
            'run_dir': str(run_dir),
            'libraries': list(annotated),
        })

        if not skip_viz:
            try:
                plot_paths = generate_library_plots(
                    annotated, run_dir, top_n=config.output.top_n
                )
                for tag, plot_path in plot_paths.items():
                    click.echo(click.style(f"  {tag} chart: {plot_path.name}", fg='green'))
            except Exception as e:
                click.echo(click.style(f"  Warning: Chart generation failed: {e}", fg='yellow'))
                logger.exception("Failed to generate charts")
                plot_paths = {}
            provenance.record_step('generate_charts', {'chart_count': len(plot_paths)})
        else:
            click.echo(click.style("  Skipping charts (--skip-viz)", fg='yellow'))

        provenance_path = provenance.save_sidecar(run_dir / "run")
        click.echo()

        # Final summary
        click.echo(click.style("=== Final Summary ===", bold=True))
        click.echo(f"Run Directory: {run_dir}")
        click.echo(
            f"Mapped {report.mapped_count} of {report.total_ids} identifiers "
            f"({report.unmapped_count} unmapped)"
        )
        for tag, rows in annotated.items():
            click.echo(f"  {tag}: {len(rows)} significant terms")
        click.echo(f"Provenance: {provenance_path.name}")
        click.echo()
        click.echo(click.style("Enrichment complete!", fg='green', bold=True))

    except Exception as e:
        click.echo(click.style(f"Run command failed: {e}", fg='red'), err=True)
        logger.exception("Run command failed")
        sys.exit(1)
