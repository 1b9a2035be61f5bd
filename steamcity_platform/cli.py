"""
Command-line interface for the SteamCity platform.

This module provides CLI commands for serving the API, browsing protocols and
experiments, generating sample data, validating collections and exporting
measurements.
"""

import click
import json
import sys
from pathlib import Path

from .config import SystemConfig, load_config_from_file, set_config
from .errors import ConfigurationError, PlatformError
from .logging_config import setup_logging
from .storage.json_store import JSONStore, set_store


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True,
              help='Enable verbose logging')
@click.pass_context
def cli(ctx, config, verbose):
    """SteamCity - citizen-science experiments and sensor data."""
    ctx.ensure_object(dict)

    try:
        if config:
            system_config = load_config_from_file(config)
        else:
            system_config = SystemConfig.from_env()
            set_config(system_config)
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    if verbose:
        system_config.logging.level = "DEBUG"

    setup_logging(system_config.logging)
    set_store(JSONStore(system_config.storage))

    ctx.obj['config'] = system_config


def _engine(ctx):
    from .query.engine import QueryEngine
    from .storage.json_store import get_store

    return QueryEngine(store=get_store(), config=ctx.obj['config'].query)


def _print_protocols(protocols, output_format):
    if output_format == 'json':
        click.echo(json.dumps(protocols, indent=2, ensure_ascii=False))
        return

    click.echo(f"{'ID':<28} {'Cluster':<8} {'Difficulty':<13} Name")
    click.echo("-" * 80)
    for protocol in protocols:
        click.echo(
            f"{str(protocol.get('id', '')):<28} "
            f"{str(protocol.get('primaryCluster', '')):<8} "
            f"{str(protocol.get('difficulty') or '-'):<13} "
            f"{protocol.get('name', '')}"
        )
    click.echo(f"\n{len(protocols)} protocol(s)")


@cli.command()
@click.option('--cluster', type=int, help='Primary or secondary cluster id')
@click.option('--difficulty', type=click.Choice(['beginner', 'intermediate', 'advanced']),
              help='Difficulty level')
@click.option('--search', help='Text search over name, description and keywords')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def protocols(ctx, cluster, difficulty, search, output_format):
    """List protocols with optional filters."""
    result = _engine(ctx).list_protocols(cluster=cluster, difficulty=difficulty, search=search)
    _print_protocols(result.data, output_format)


@cli.command()
@click.argument('query')
@click.option('--cluster', type=int, help='Primary or secondary cluster id')
@click.option('--difficulty', type=click.Choice(['beginner', 'intermediate', 'advanced']),
              help='Difficulty level')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def search(ctx, query, cluster, difficulty, output_format):
    """Search protocols by text."""
    try:
        result = _engine(ctx).search_protocols(query, cluster=cluster, difficulty=difficulty)
    except PlatformError as e:
        click.echo(f"Search failed: {e.message}", err=True)
        sys.exit(1)

    _print_protocols(result.data, output_format)


@cli.command()
@click.option('--student', 'student_name', help='Student name')
@click.option('--school', help='School')
@click.option('--status', type=click.Choice(['planned', 'active', 'completed', 'cancelled']),
              help='Experiment status')
@click.option('--protocol', help='Protocol id')
@click.option('--search', help='Text search over titles, descriptions and tags')
@click.option('--include-private', is_flag=True, help='Include private experiments')
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def experiments(ctx, student_name, school, status, protocol, search, include_private, output_format):
    """List experiments with optional filters."""
    from .query.engine import ExperimentFilters

    filters = ExperimentFilters(
        student_name=student_name,
        school=school,
        status=status,
        protocol=protocol,
        search=search,
        include_private=include_private,
    )
    result = _engine(ctx).list_experiments(filters)

    if output_format == 'json':
        click.echo(json.dumps(result.data, indent=2, ensure_ascii=False))
        return

    for experiment in result.data:
        click.echo(f"{experiment.get('id')}  [{experiment.get('status', '-')}]  {experiment.get('title')}")
        click.echo(f"    {experiment.get('studentName')} - {experiment.get('school', '')}")
    click.echo(f"\n{result.count} experiment(s)")


@cli.command()
@click.option('--seed', type=int, help='Random seed for reproducible data')
@click.option('--days', type=int, help='Number of days of measurements')
@click.option('--experiments-per-protocol', type=int, help='Experiments created for each protocol')
@click.confirmation_option(prompt='This replaces experiments, sensors and measurements. Continue?')
@click.pass_context
def generate(ctx, seed, days, experiments_per_protocol):
    """Regenerate sample experiments, sensors and measurements."""
    from .generator.data_generator import DataGenerator
    from .storage.json_store import get_store

    config = ctx.obj['config']
    if seed is not None:
        config.generator.seed = seed
    if days is not None:
        config.generator.days = days
    if experiments_per_protocol is not None:
        config.generator.experiments_per_protocol = experiments_per_protocol

    click.echo("=== Sample Data Generation ===")
    click.echo(f"Data directory: {config.storage.data_dir}")
    click.echo(f"Seed: {config.generator.seed}")
    click.echo(f"Days: {config.generator.days}")

    try:
        report = DataGenerator(config.generator).write(get_store())
    except PlatformError as e:
        click.echo(f"\nGeneration failed: {e.message}", err=True)
        sys.exit(1)

    click.echo("\n=== Generation Results ===")
    click.echo(f"Experiments: {report.experiments}")
    click.echo(f"Sensors: {report.sensors}")
    click.echo(f"Measurements: {report.measurements}")
    click.echo(f"Duration: {report.duration_seconds:.1f} seconds")


@cli.command()
@click.pass_context
def validate(ctx):
    """Validate collection files and cluster references."""
    from .models.entities import ClusterModel, ProtocolModel
    from .models.validation import DataValidator
    from .storage.json_store import get_store

    store = get_store()
    validator = DataValidator()

    clusters = store.load("clusters")
    protocols = store.load("protocols")

    result = validator.validate_records(clusters, ClusterModel)
    result.merge(validator.validate_records(protocols, ProtocolModel))
    result.merge(validator.check_protocol_references(protocols, clusters))

    click.echo("=== Collection Validation ===")
    click.echo(f"Clusters: {len(clusters)}")
    click.echo(f"Protocols: {len(protocols)}")

    for warning in result.warnings:
        click.echo(f"WARNING: {warning}")
    for error in result.errors:
        click.echo(f"ERROR: {error.message}")

    if not result.is_valid:
        click.echo(f"\nValidation failed with {len(result.errors)} error(s).", err=True)
        sys.exit(1)

    click.echo("\nAll collections are valid.")


@cli.command()
@click.option('--format', 'export_format', type=click.Choice(['json', 'csv']),
              default='json', help='Export format')
@click.option('--output', '-o', type=click.Path(), help='Output file (default: stdout)')
@click.option('--experiment', 'experiment_id', help='Experiment id')
@click.option('--sensor-type', help='Sensor type')
@click.option('--period', type=click.Choice(['24h', '7d', '30d', 'all']), default='all',
              help='Relative time window')
@click.option('--min-value', type=float, help='Inclusive lower bound on measured value')
@click.option('--max-value', type=float, help='Inclusive upper bound on measured value')
@click.pass_context
def export(ctx, export_format, output, experiment_id, sensor_type, period, min_value, max_value):
    """Export measurements as JSON or CSV."""
    from .query.engine import MeasurementFilters
    from .query.export import DataExporter, ExportFormat

    filters = MeasurementFilters(experiment_id=experiment_id, sensor_type=sensor_type, period=period,
                                 min_value=min_value, max_value=max_value)
    try:
        result = _engine(ctx).query_measurements(filters)
    except PlatformError as e:
        click.echo(f"Export failed: {e.message}", err=True)
        sys.exit(1)
    content = DataExporter().export_measurements(result.data, ExportFormat(export_format))

    if output:
        Path(output).write_text(content, encoding='utf-8')
        click.echo(f"Exported {result.count} measurements to {output}")
    else:
        click.echo(content)


@cli.command()
@click.pass_context
def status(ctx):
    """Show configuration and collection sizes."""
    from .storage.json_store import get_store

    config = ctx.obj['config']

    click.echo("=== SteamCity Status ===")
    click.echo(f"Data directory: {config.storage.data_dir}")
    click.echo(f"Log level: {config.logging.level}")
    click.echo("\nCollections:")
    for kind, count in get_store().counts().items():
        click.echo(f"  {kind}: {count}")


@cli.command()
@click.option('--host', help='Host to bind to')
@click.option('--port', type=int, help='Port to bind to')
@click.option('--reload', is_flag=True, help='Enable auto-reload for development')
@click.option('--workers', type=int, help='Number of worker processes')
@click.pass_context
def serve(ctx, host, port, reload, workers):
    """Start the REST API server."""
    from .server import run_server

    config = ctx.obj['config']
    host = host or config.server.host
    port = port or config.server.port

    click.echo("=== SteamCity API Server ===")
    click.echo(f"Host: {host}")
    click.echo(f"Port: {port}")
    click.echo(f"API Documentation: http://{host}:{port}/docs")
    click.echo(f"Health Check: http://{host}:{port}/api/health")

    try:
        run_server(host=host, port=port, reload=reload or config.server.reload, workers=workers)
    except KeyboardInterrupt:
        click.echo("\nServer stopped by user.")


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user.", err=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
