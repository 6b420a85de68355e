"""Main CLI entry point for ora-pipeline.

Provides command group with global options and subcommands for pipeline operations.
"""

import logging
from pathlib import Path

import click

from ora_pipeline import __version__
from ora_pipeline.config.loader import load_config
from ora_pipeline.cli.run_cmd import run


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@click.group()
@click.option(
    '--config',
    type=click.Path(exists=True, path_type=Path),
    default='config/default.yaml',
    help='Path to pipeline configuration YAML file'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Enable verbose logging (DEBUG level)'
)
@click.pass_context
def cli(ctx, config, verbose):
    """ora-pipeline: Over-representation analysis of a gene list across gene-set libraries.

    Maps raw identifiers to canonical gene IDs, tests every configured
    library with the hypergeometric test, and writes ranked tables and charts.
    """
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Verbose logging enabled")


@cli.command()
@click.pass_context
def info(ctx):
    """Display pipeline information and configuration summary."""
    config_path = ctx.obj['config_path']

    click.echo(f"ORA Pipeline v{__version__}")
    click.echo(f"Config: {config_path}")
    click.echo()

    try:
        config = load_config(config_path)

        config_hash = config.config_hash()
        click.echo(f"Config Hash: {config_hash[:16]}...")
        click.echo()

        click.echo(click.style("Annotation:", bold=True))
        click.echo(f"  Provider: {config.annotation.provider}")
        if config.annotation.table_path is not None:
            click.echo(f"  Table:    {config.annotation.table_path}")
        click.echo(f"  Species:  {config.annotation.species}")
        click.echo()

        click.echo(click.style("Thresholds:", bold=True))
        click.echo(f"  p_cutoff: {config.thresholds.p_cutoff}")
        click.echo(f"  q_cutoff: {config.thresholds.q_cutoff}")
        click.echo()

        click.echo(click.style("Universe:", bold=True))
        if config.universe.size is not None:
            click.echo(f"  Explicit size: {config.universe.size}")
        elif config.universe.source == "protein_coding":
            click.echo(
                f"  Protein-coding genes of taxon {config.annotation.species} (mygene)"
            )
        else:
            click.echo("  Union of library members")
        click.echo()

        click.echo(click.style("Mapping:", bold=True))
        click.echo(f"  Rewrites:  {len(config.input.rewrites)}")
        click.echo(f"  Overrides: {len(config.mapping.overrides)}")
        click.echo(
            f"  Gates:     FAILED < {config.mapping.min_success_rate:.0%}, "
            f"WARNING < {config.mapping.warn_threshold:.0%}"
        )
        click.echo()

        click.echo(click.style(f"Libraries ({len(config.libraries)}):", bold=True))
        for lib in config.libraries:
            cutoffs = lib.resolve_thresholds(config.thresholds)
            click.echo(f"  {lib.tag}: {lib.path}")
            details = [f"ids={lib.id_type}"]
            if lib.terms is not None:
                details.append(f"panel of {len(lib.terms)} terms")
            if lib.min_size is not None or lib.max_size is not None:
                details.append(f"term size {lib.min_size or 1}..{lib.max_size or 'any'}")
            details.append(f"p<={cutoffs.p_cutoff}, q<={cutoffs.q_cutoff}")
            click.echo(f"    {'; '.join(details)}")

    except Exception as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        ctx.exit(1)


# Register commands
cli.add_command(run)


if __name__ == '__main__':
    cli()
