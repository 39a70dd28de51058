"""
Main CLI entry point for the Process Discovery Engine.

Usage:
    python -m discovery_engine generate --output ./data/events.json
    python -m discovery_engine discover --input ./data/events.json --organization org-demo
    python -m discovery_engine metrics --input ./data/events.json --organization org-demo
    python -m discovery_engine conformance --input ./data/events.json --organization org-demo \\
        --expected "Ticket Created,Triage,Assign Agent,Resolve,Close"
"""

import click
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Tuple

import numpy as np

from . import DEFAULT_CONFIG, __version__
from .conformance.checker import ConformanceChecker
from .discovery.miner import AlphaMiner
from .discovery.service import DiscoveryOptions, ProcessDiscoveryService
from .ingest.builder import EventLog, EventLogBuilder
from .ingest.events import EventFilter
from .ingest.source import JsonEventSource
from .metrics.calculator import MetricsMemo, calculate_activity_metrics, calculate_process_metrics
from .store.model_store import JsonFileModelStore
from .synthetic.config import GeneratorConfig, PRESETS, apply_preset
from .synthetic.generator import EventLogGenerator


def convert_for_json(obj: Any) -> Any:
    """Convert objects to JSON-serializable types, including numpy types."""
    if isinstance(obj, dict):
        return {str(k): convert_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_for_json(item) for item in obj]
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.bool_):
        return bool(obj)
    else:
        return obj


class EngineContext:
    """Holds configuration shared by CLI commands."""

    def __init__(self):
        self.config = DEFAULT_CONFIG.copy()


pass_context = click.make_pass_decorator(EngineContext, ensure=True)


@click.group()
@click.version_option(version=__version__)
@click.option('--seed', default=42, help='Random seed for reproducibility')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, seed: int, verbose: bool):
    """Process Discovery Engine

    Groups business events into cases, discovers the underlying workflow,
    and measures its performance and conformance.
    """
    ctx.ensure_object(EngineContext)
    ctx.obj.config['random_seed'] = seed

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


@cli.command()
@click.option('--output', '-o', type=click.Path(), default='sample_output/events.json',
              help='Output JSON file for generated events')
@click.option('--cases', '-n', type=int, default=None,
              help='Number of cases to generate')
@click.option('--preset', type=click.Choice(list(PRESETS)), default=None,
              help='Size preset')
@click.option('--organization', default='org-demo', help='Organization id of generated events')
@pass_context
def generate(ctx, output: str, cases: Optional[int], preset: Optional[str], organization: str):
    """Generate a synthetic event log.

    Writes support-ticket events for several process variants, including a
    small share of events without a correlation key.
    """
    config = GeneratorConfig(seed=ctx.config['random_seed'], organization_id=organization)
    if preset:
        apply_preset(config, preset)
    if cases is not None:
        config.num_cases = cases

    generator = EventLogGenerator(config)
    rows = generator.generate()
    path = generator.save_output(rows, output)

    click.echo(f"Generated {len(rows)} events for {config.num_cases} cases")
    click.echo(f"Saved events to {path}")


def _event_filter(ctx: EngineContext, organization: str, source: Optional[str],
                  event_types: Tuple[str, ...], start: Optional[str], end: Optional[str]) -> EventFilter:
    return EventFilter(
        organization_id=organization,
        source_id=source,
        event_types=frozenset(event_types) if event_types else None,
        start=start,
        end=end,
        max_events=ctx.config['max_events'],
    )


def _load_event_log(ctx: EngineContext, input_path: str, event_filter: EventFilter) -> EventLog:
    source = JsonEventSource(input_path)
    rows = source.query(event_filter)
    builder = EventLogBuilder(correlation_keys=ctx.config['correlation_keys'])
    return builder.build(rows)


def _write_json(data: Any, output: Optional[str]) -> None:
    if not output:
        return
    output_path = Path(output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        json.dump(convert_for_json(data), f, indent=2, default=str)
    click.echo(f"Saved results to {output_path}")


def _filter_options(func):
    """Options shared by commands that read events."""
    options = [
        click.option('--input', '-i', 'input_path', required=True, type=click.Path(exists=True),
                     help='JSON file of raw event rows'),
        click.option('--organization', required=True, help='Organization whose events are read'),
        click.option('--source', default=None, help='Restrict to one source system'),
        click.option('--event-type', 'event_types', multiple=True,
                     help='Allowed event type (repeatable)'),
        click.option('--start', default=None, help='Earliest timestamp (ISO-8601)'),
        click.option('--end', default=None, help='Latest timestamp (ISO-8601)'),
        click.option('--output', '-o', type=click.Path(), default=None,
                     help='Write results as JSON to this file'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@cli.command()
@_filter_options
@click.option('--min-cases', type=int, default=None, help='Minimum cases to emit a model')
@click.option('--min-frequency', type=int, default=None,
              help='Minimum occurrences to retain an activity')
@click.option('--no-metrics', is_flag=True, help='Skip process metrics')
@click.option('--store-dir', type=click.Path(), default=None,
              help='Save discovered processes to this directory')
@pass_context
def discover(ctx, input_path: str, organization: str, source: Optional[str],
             event_types: Tuple[str, ...], start: Optional[str], end: Optional[str],
             output: Optional[str], min_cases: Optional[int], min_frequency: Optional[int],
             no_metrics: bool, store_dir: Optional[str]):
    """Discover processes from an event log."""
    config = dict(ctx.config)
    if min_cases is not None:
        config['min_case_count'] = min_cases
    if min_frequency is not None:
        config['min_activity_frequency'] = min_frequency
    config['include_metrics'] = not no_metrics
    config['save_to_dashboard'] = store_dir is not None

    try:
        options = DiscoveryOptions.from_config(config)
        event_filter = _event_filter(ctx, organization, source, event_types, start, end)
        service = ProcessDiscoveryService(
            JsonEventSource(input_path),
            model_store=JsonFileModelStore(store_dir) if store_dir else None,
            builder=EventLogBuilder(correlation_keys=ctx.config['correlation_keys']),
        )
        results = service.discover_processes(event_filter, options)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not results:
        click.echo("No processes discovered (not enough cases or activities).")
        return

    for result in results:
        model = result.process
        click.echo(f"Process: {model.name} (confidence {model.confidence:.2f})")
        for step in result.steps:
            marker = '*' if step.is_start_step or step.is_end_step else ' '
            click.echo(f"  {marker} {step.order + 1}. {step.activity} ({step.frequency})")
        for source_activity, target_activity, frequency in model.edges():
            click.echo(f"    {source_activity} -> {target_activity} [{frequency}]")
        if result.stored_process_id:
            click.echo(f"  Saved as {result.stored_process_id}")

    _write_json([r.to_dict() for r in results], output)


@cli.command()
@_filter_options
@click.option('--activity', '-a', 'activities', multiple=True,
              help='Report detail metrics for an activity (repeatable)')
@pass_context
def metrics(ctx, input_path: str, organization: str, source: Optional[str],
            event_types: Tuple[str, ...], start: Optional[str], end: Optional[str],
            output: Optional[str], activities: Tuple[str, ...]):
    """Calculate process performance metrics."""
    try:
        event_filter = _event_filter(ctx, organization, source, event_types, start, end)
        event_log = _load_event_log(ctx, input_path, event_filter)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    process_metrics = calculate_process_metrics(event_log)
    memo = MetricsMemo(event_log)
    details = [calculate_activity_metrics(event_log, a, memo) for a in activities]

    click.echo(f"Cases: {process_metrics.total_cases}  Events: {process_metrics.total_events}  "
               f"Variants: {process_metrics.trace_variants}")
    click.echo(f"Average case duration: {process_metrics.avg_case_duration_hours:.2f} h "
               f"(median {process_metrics.median_case_duration_hours:.2f} h)")
    click.echo(f"Throughput: {process_metrics.throughput:.2f} cases/day")
    if process_metrics.bottleneck_activities:
        click.echo(f"Bottlenecks: {', '.join(process_metrics.bottleneck_activities)}")
    if process_metrics.uncorrelated_events:
        click.echo(f"Uncorrelated events: {process_metrics.uncorrelated_events}")
    for detail in details:
        click.echo(f"  {detail.activity}: {detail.frequency} occurrences, "
                   f"avg {detail.avg_duration_hours:.2f} h, "
                   f"{detail.participant_count} participants"
                   f"{' (bottleneck)' if detail.is_bottleneck else ''}")

    _write_json({
        'metrics': process_metrics.to_dict(),
        'activities': [d.to_dict() for d in details],
    }, output)


@cli.command()
@_filter_options
@click.option('--expected', '-e', default=None,
              help='Comma-separated reference activity sequence')
@click.option('--max-deviations', type=int, default=10, help='Deviations to print')
@pass_context
def conformance(ctx, input_path: str, organization: str, source: Optional[str],
                event_types: Tuple[str, ...], start: Optional[str], end: Optional[str],
                output: Optional[str], expected: Optional[str], max_deviations: int):
    """Check cases against a reference sequence.

    Without --expected, the reference is derived from a process discovered
    from the same events.
    """
    try:
        event_filter = _event_filter(ctx, organization, source, event_types, start, end)
        event_log = _load_event_log(ctx, input_path, event_filter)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if expected is not None:
        checker = ConformanceChecker([a.strip() for a in expected.split(',') if a.strip()])
    else:
        model = AlphaMiner(
            min_case_count=ctx.config['min_case_count'],
            min_activity_frequency=ctx.config['min_activity_frequency'],
        ).mine(event_log)
        if model is None:
            click.echo("Error: No process discovered to derive a reference from. "
                       "Provide --expected.", err=True)
            sys.exit(1)
        checker = ConformanceChecker.from_model(model)

    result = checker.check_log(event_log)

    click.echo(f"Reference: {' -> '.join(result.expected_sequence) or '(empty)'}")
    click.echo(f"Conformance rate: {result.conformance_rate:.1%} "
               f"({result.conforming_cases}/{result.total_cases} cases)")
    for deviation_type, count in result.deviation_summary.most_common:
        click.echo(f"  {deviation_type}: {count}")
    for deviation in result.deviations[:max_deviations]:
        click.echo(f"  [{deviation.case_id}] {deviation.description}")

    _write_json(result.to_dict(), output)


def main():
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
