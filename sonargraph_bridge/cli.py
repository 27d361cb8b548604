"""CLI entry point — command definitions using Click.

Commands:
    init            Generate a template config file
    reconcile       Project a Sonargraph report onto the project or one of its modules
    custom-metrics  List custom metrics discovered by earlier runs
"""

import json
import logging
import sys
from typing import Any

import click

from sonargraph_bridge import __version__


# ---------------------------------------------------------------------------
# Helpers shared by all data commands
# ---------------------------------------------------------------------------

def _load_config(ctx: click.Context):
    """Load the config file. Exits on error."""
    from sonargraph_bridge.config import ConfigError, load

    try:
        return load(ctx.obj["config_path"])
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)


def _make_host(ctx: click.Context, config, registry, offline: bool):
    """Return the server host when a server is configured, else an offline one."""
    from sonargraph_bridge.hosts.offline import OfflineHost

    if config.has_server and not offline:
        from sonargraph_bridge.client import SonarClient
        from sonargraph_bridge.hosts.server import ServerHost

        if ctx.obj["verbose"]:
            click.echo(f"[verbose] Connecting to {config.url}", err=True)
        return ServerHost(SonarClient(url=config.url, token=config.token), config.project_key, config.base_dir)

    if ctx.obj["verbose"]:
        click.echo("[verbose] Working offline", err=True)
    metrics = config.offline_metrics + registry.definitions()
    return OfflineHost(config.project_key, config.base_dir, rules=config.offline_rules, metrics=metrics)


def _emit_json(data: Any, ctx: click.Context) -> None:
    """Write JSON to stdout or to the file specified by --output."""
    obj = ctx.obj
    indent = 2 if obj["pretty"] else None
    text = json.dumps(data, indent=indent, ensure_ascii=False)

    output_path: str | None = obj["output_path"]
    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(text)
        click.echo(f"Report written to '{output_path}'", err=True)
    else:
        click.echo(text)


def _handle_client_errors(func):
    """Decorator that catches SonarClient exceptions and exits cleanly."""
    import functools

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        from sonargraph_bridge.client import (
            AuthenticationError,
            NetworkError,
            NotFoundError,
            SonarClientError,
        )
        from sonargraph_bridge.config import ProjectNotFoundError

        try:
            return func(*args, **kwargs)
        except ProjectNotFoundError as exc:
            click.echo(f"Project error: {exc}", err=True)
            sys.exit(1)
        except AuthenticationError as exc:
            click.echo(f"Authentication error: {exc}", err=True)
            sys.exit(1)
        except NotFoundError as exc:
            click.echo(f"Not found: {exc}", err=True)
            sys.exit(1)
        except NetworkError as exc:
            click.echo(f"Network error: {exc}", err=True)
            sys.exit(1)
        except SonarClientError as exc:
            click.echo(f"SonarQube error: {exc}", err=True)
            sys.exit(1)

    return wrapper


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "config_path", default="sonargraph-bridge.yaml", show_default=True,
              help="Path to the configuration file.")
@click.option("--output", "output_path", default=None,
              help="Write JSON output to a file instead of stdout.")
@click.option("--pretty", is_flag=True, default=False,
              help="Pretty-print the JSON output.")
@click.option("--verbose", is_flag=True, default=False,
              help="Enable verbose logging.")
@click.version_option(__version__, prog_name="sonargraph-bridge")
@click.pass_context
def cli(ctx: click.Context, config_path: str, output_path: str | None,
        pretty: bool, verbose: bool) -> None:
    """Sonargraph bridge — republish a Sonargraph report as SonarQube measures and issues."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["output_path"] = output_path
    ctx.obj["pretty"] = pretty
    ctx.obj["verbose"] = verbose


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@cli.command("init")
@click.option("--output", "output_path", default="sonargraph-bridge.yaml", show_default=True,
              help="Path where the template config file will be written.")
def init_command(output_path: str) -> None:
    """Generate a template sonargraph-bridge.yaml file."""
    from sonargraph_bridge.config import ConfigError, generate_template
    try:
        generate_template(output_path)
        click.echo(f"Template written to '{output_path}'.")
        click.echo("Edit it with your project key, module directories and report location.")
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# reconcile
# ---------------------------------------------------------------------------

@cli.command("reconcile")
@click.argument("module", required=False)
@click.option("--match", "match_by", type=click.Choice(["key", "directory"]), default="key",
              show_default=True, help="How the report module is matched to MODULE.")
@click.option("--report", "report_path", default=None,
              help="Report file (overrides the configured location).")
@click.option("--offline", is_flag=True, default=False,
              help="Do not contact the server even when one is configured.")
@click.option("--issues-report", "issues_report", default=None,
              help="Also write the issues as a SonarQube generic issue import file.")
@click.option("--generation", type=click.Choice(["legacy", "current"]), default="current",
              show_default=True, help="Format generation of the generic issue import file.")
@click.pass_context
@_handle_client_errors
def reconcile_command(ctx: click.Context, module: str | None, match_by: str, report_path: str | None,
                      offline: bool, issues_report: str | None, generation: str) -> None:
    """Reconcile the report with MODULE (the project root when omitted)."""
    from sonargraph_bridge.export import build_annotations, build_external_issues
    from sonargraph_bridge.orchestrator import PassState, Reconciler
    from sonargraph_bridge.registry import CustomMetricRegistry
    from sonargraph_bridge.report import load_report
    from sonargraph_bridge.reporter import Reporter

    config = _load_config(ctx)
    unit = config.resolve_unit(module)
    reporter = Reporter()
    registry = CustomMetricRegistry(reporter, config.custom_metrics)
    host = _make_host(ctx, config, registry, offline)

    report_file = report_path or config.report_file()
    if ctx.obj["verbose"]:
        click.echo(f"[verbose] Reading report '{report_file}' for '{unit.key}'", err=True)

    result = load_report(report_file, config.system_base_dir)
    outcome = Reconciler(host, registry, reporter, config.cost_per_index_point).run(result, unit, match_by)
    if PassState.LOAD_FAILED in outcome.states:
        click.echo(f"Report error: {result}", err=True)
        sys.exit(1)

    if issues_report:
        with open(issues_report, "w", encoding="utf-8") as f:
            json.dump(build_external_issues(host, generation), f, indent=2, ensure_ascii=False)
        click.echo(f"Issues written to '{issues_report}'", err=True)

    annotations = build_annotations(host)
    annotations["module"] = outcome.module.name if outcome.module is not None else None
    annotations["states"] = [state.value for state in outcome.states]
    _emit_json(annotations, ctx)


# ---------------------------------------------------------------------------
# custom-metrics
# ---------------------------------------------------------------------------

@cli.command("custom-metrics")
@click.pass_context
def custom_metrics_command(ctx: click.Context) -> None:
    """List the custom metrics stored by earlier runs."""
    from sonargraph_bridge.naming import is_representable
    from sonargraph_bridge.registry import CustomMetricRegistry
    from sonargraph_bridge.reporter import Reporter

    config = _load_config(ctx)
    registry = CustomMetricRegistry(Reporter(), config.custom_metrics)
    stored = registry.load()
    _emit_json({
        "store": str(registry.path),
        "metrics": [
            {
                "key":         metric.key,
                "name":        metric.presentation_name,
                "float":       metric.is_float,
                "best":        metric.best_value if is_representable(metric.best_value) else None,
                "worst":       metric.worst_value if is_representable(metric.worst_value) else None,
                "description": metric.description,
            }
            for metric in stored.values()
        ],
    }, ctx)
