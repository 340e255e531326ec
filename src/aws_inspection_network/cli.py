"""Inspection network resolver CLI"""

from pathlib import Path
from typing import Optional

import typer
from botocore.exceptions import BotoCoreError, ClientError
from rich.console import Console

from .config import NetworkConfig, load_config
from .core import DisplayRenderer, setup_logging
from .errors import NetworkResolutionError, ValidationFailure
from .resolver import (
    ExistingNetworkReader,
    RecordingMaterializer,
    ResolutionPipeline,
    ResolutionResult,
    apply,
    iter_routes,
    search_routes,
)

app = typer.Typer(
    name="aws-inspect-net",
    help="Resolve a hub-and-spoke inspection network from a declarative config",
    no_args_is_help=True,
)
console = Console()
renderer = DisplayRenderer(console)


class Ctx:
    def __init__(self):
        self.format: str = "table"
        self.debug: bool = False
        self.log_file: Optional[str] = None


# Global context instance
gctx = Ctx()

CONFIG_ARG = typer.Argument(..., help="Network configuration file (YAML or JSON)")
CHECK_ACCOUNT = typer.Option(
    False, "--check-account", help="Warn about overlaps with VPCs already deployed"
)
PROFILE = typer.Option(None, "--profile", "-p", help="AWS profile for --check-account")
REGION = typer.Option(None, "--region", help="Region override for --check-account")


@app.callback()
def _global(
    output_format: str = typer.Option("table", "--format", help="table|json|yaml"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    log_file: Optional[str] = typer.Option(
        None, "--log-file", help="Write a full debug log to this file"
    ),
):
    gctx.format = output_format
    gctx.debug = debug
    gctx.log_file = log_file
    setup_logging(debug=debug, log_file=log_file)


def _fail(message: str, diagnostics=None):
    if diagnostics:
        if not renderer.render([d.model_dump() for d in diagnostics], gctx.format):
            renderer.diagnostics(diagnostics)
    renderer.error(message)
    raise typer.Exit(1)


def _existing_networks(
    config: NetworkConfig, check_account: bool, profile, region
) -> Optional[list[dict]]:
    if not check_account:
        return None
    try:
        return ExistingNetworkReader(profile, region or config.region).vpc_cidrs()
    except (BotoCoreError, ClientError) as e:
        _fail(f"Cannot read existing VPCs: {e}")


def _resolve(
    config_path: Path,
    check_account: bool = False,
    profile: Optional[str] = None,
    region: Optional[str] = None,
) -> ResolutionResult:
    try:
        config = load_config(config_path)
        existing = _existing_networks(config, check_account, profile, region)
        return ResolutionPipeline(config, existing).run()
    except ValidationFailure as e:
        _fail(e.message, e.diagnostics)
    except NetworkResolutionError as e:
        _fail(f"{e.code}: {e.message}")


def _report_failures(result: ResolutionResult):
    if result.failures:
        renderer.error(f"{len(result.failures)} spoke(s) rejected")
        raise typer.Exit(1)


@app.command("resolve")
def resolve_cmd(
    config_path: Path = CONFIG_ARG,
    check_account: bool = CHECK_ACCOUNT,
    profile: Optional[str] = PROFILE,
    region: Optional[str] = REGION,
):
    """Resolve the topology and print its outputs"""
    result = _resolve(config_path, check_account, profile, region)
    if not renderer.render(result.outputs, gctx.format):
        renderer.outputs(result.outputs)
        if result.diagnostics:
            renderer.diagnostics(result.diagnostics)
    _report_failures(result)


@app.command("validate")
def validate_cmd(
    config_path: Path = CONFIG_ARG,
    check_account: bool = CHECK_ACCOUNT,
    profile: Optional[str] = PROFILE,
    region: Optional[str] = REGION,
):
    """Run every resolution stage and report validation findings"""
    result = _resolve(config_path, check_account, profile, region)
    data = [d.model_dump() for d in result.diagnostics]
    if not renderer.render(data, gctx.format):
        renderer.diagnostics(result.diagnostics)
        if result.ok:
            renderer.status("Topology is valid")
    _report_failures(result)


@app.command("plan")
def plan_cmd(
    config_path: Path = CONFIG_ARG,
    allow_partial: bool = typer.Option(
        False, "--allow-partial", help="Plan the accepted spokes even if some failed"
    ),
):
    """Show the ordered resource plan for materialization"""
    result = _resolve(config_path)
    try:
        plan = apply(result, RecordingMaterializer(), allow_partial=allow_partial)
    except ValidationFailure as e:
        _fail(e.message, e.diagnostics)
    data = plan.to_dict()
    if not renderer.render(data, gctx.format):
        renderer.plan(data["resources"])


@app.command("routes")
def routes_cmd(
    config_path: Path = CONFIG_ARG,
    search: Optional[str] = typer.Option(
        None, "--search", "-s", help="Fuzzy match on route prefix"
    ),
):
    """List resolved routes, optionally filtered by prefix"""
    result = _resolve(config_path)
    if search:
        routes = search_routes(result, search)
        title = f"Routes matching '{search}'"
    else:
        routes = list(iter_routes(result))
        title = "Routes"
    if not renderer.render(routes, gctx.format):
        renderer.routes(routes, title)


def main():
    app()


if __name__ == "__main__":
    main()
