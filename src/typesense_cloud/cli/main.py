"""Main CLI entry point for the Typesense Cloud reconciler."""

from __future__ import annotations

import functools
import json
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
import yaml
from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from typesense_cloud import __version__
from typesense_cloud.core.exceptions import ConfigurationError, TypesenseCloudError

if TYPE_CHECKING:
    from typesense_cloud.clients.cloud_client import TypesenseCloudClient
    from typesense_cloud.controllers.reconciler import Reconciler
    from typesense_cloud.core.config import ReconcilerConfig
    from typesense_cloud.core.models import ClusterApiKeys, ClusterRecord, ClusterSpec

console = Console()
# Progress and confirmations, kept off stdout so JSON output stays parseable.
err_console = Console(stderr=True)

DEFAULT_CONFIG_PATH = "~/.tscloud/config.yaml"


class CliContext:
    """Shared context for CLI commands with lazy initialization."""

    def __init__(
        self,
        config_path: str,
        state_file: str | None = None,
        api_key: str | None = None,
        log_level: str | None = None,
    ):
        """Initialize context.

        Args:
            config_path: Path to configuration file (optional on disk)
            state_file: State file override
            api_key: Management API key override
            log_level: Log level override
        """
        self.config_path = config_path
        self.state_file = state_file
        self.api_key = api_key
        self.log_level = log_level
        self._config: ReconcilerConfig | None = None
        self._client: TypesenseCloudClient | None = None
        self._reconciler: Reconciler | None = None

    @property
    def config(self) -> ReconcilerConfig:
        """Get or load config lazily; a missing default config means defaults."""
        if self._config is None:
            from typesense_cloud.core.config import ReconcilerConfig
            from typesense_cloud.utils.logging import setup_logging

            config_path = Path(self.config_path).expanduser()
            if config_path.exists() or self.config_path != DEFAULT_CONFIG_PATH:
                self._config = ReconcilerConfig.from_file(config_path)
            else:
                self._config = ReconcilerConfig()

            logging_config = self._config.logging
            setup_logging(
                level=self.log_level or logging_config.level,
                format=logging_config.format,
                output=logging_config.output,
            )
        return self._config

    @property
    def client(self) -> TypesenseCloudClient:
        """Get or create the management API client lazily."""
        if self._client is None:
            from typesense_cloud.clients.cloud_client import TypesenseCloudClient
            from typesense_cloud.utils.credentials import resolve_management_key

            key = resolve_management_key(self.config.api, explicit_key=self.api_key)
            self._client = TypesenseCloudClient.from_config(self.config, api_key=key)
        return self._client

    @property
    def reconciler(self) -> Reconciler:
        """Get or create the reconciler lazily."""
        if self._reconciler is None:
            from typesense_cloud.controllers.reconciler import Reconciler
            from typesense_cloud.controllers.waiter import ProvisioningWaiter
            from typesense_cloud.state.file_store import JsonFileStateStore

            provisioning = self.config.provisioning
            self._reconciler = Reconciler.build(
                client=self.client,
                store=JsonFileStateStore(self.state_file or self.config.state.path),
                waiter=ProvisioningWaiter(
                    poll_interval=provisioning.poll_interval_seconds,
                    max_wait=provisioning.max_wait_seconds,
                ),
            )
        return self._reconciler

    def close(self) -> None:
        """Release the HTTP client if one was created."""
        if self._client is not None:
            self._client.close()


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Print reconciler errors with their category and exit non-zero."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except TypesenseCloudError as e:
            console.print(f"[red]Error: {escape(e.describe())}[/red]")
            if e.cluster_id:
                console.print(f"[yellow]Cluster ID: {e.cluster_id}[/yellow]")
            raise SystemExit(1) from e

    return wrapper


def load_cluster_spec(path: str) -> ClusterSpec:
    """Load a desired cluster spec from a YAML or JSON file.

    Raises:
        ConfigurationError: If the file cannot be read or is not a valid spec
    """
    from typesense_cloud.core.models import ClusterSpec

    spec_path = Path(path).expanduser()
    try:
        with spec_path.open() as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load cluster spec {spec_path}: {e}") from e

    try:
        return ClusterSpec.model_validate(data or {})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid cluster spec {spec_path}: {e}") from e


def _print_json(model: BaseModel | list[BaseModel]) -> None:
    if isinstance(model, list):
        data: Any = [m.model_dump(mode="json") for m in model]
    else:
        data = model.model_dump(mode="json")
    click.echo(json.dumps(data, indent=2))


def _print_cluster(record: ClusterRecord, title: str) -> None:
    table = Table(title=title)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    state_color = "green" if record.state.value == "ready" else "yellow"
    table.add_row("ID", record.id or "-")
    table.add_row("State", f"[{state_color}]{record.state.value}[/{state_color}]")
    table.add_row("Status", record.status or "-")
    table.add_row("Name", record.name or "-")
    table.add_row("Memory", record.memory)
    table.add_row("vCPU", record.vcpu)
    table.add_row("Region", record.region)
    table.add_row("High Availability", record.high_availability)
    table.add_row("High Performance Disk", record.high_performance_disk)
    table.add_row("Auto Upgrade Capacity", str(record.auto_upgrade_capacity).lower())
    table.add_row("Server Version", record.typesense_server_version or "-")
    table.add_row("Load Balancing", record.load_balancing or "-")
    table.add_row("Search Delivery Network", record.search_delivery_network or "-")
    table.add_row("Load Balanced Host", record.hostnames.load_balanced or "-")
    table.add_row("Node Hosts", "\n".join(record.hostnames.nodes) or "-")

    console.print(table)


def _print_api_keys(keys: ClusterApiKeys) -> None:
    table = Table(title=f"API Keys for {keys.cluster_id}")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Admin Key", keys.admin_key)
    table.add_row("Search-Only Key", keys.search_only_key)
    table.add_row("Issued At", keys.issued_at.isoformat())
    console.print(table)


def _progress(format: str, message: str) -> None:
    if format != "json":
        err_console.print(message)


def _emit_cluster(record: ClusterRecord, title: str, format: str) -> None:
    if format == "json":
        _print_json(record)
    else:
        _print_cluster(record, title)


format_option = click.option(
    "--format", type=click.Choice(["table", "json"]), default="table", help="Output format"
)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    type=click.Path(),
    default=DEFAULT_CONFIG_PATH,
    help="Path to configuration file",
)
@click.option("--state-file", type=click.Path(), help="Tracked state file (overrides config)")
@click.option("--api-key", envvar=None, help="Cloud Management API key (overrides config/env)")
@click.option("--log-level", help="Log level (overrides config)")
@click.pass_context
def cli(
    ctx: click.Context,
    config: str,
    state_file: str | None,
    api_key: str | None,
    log_level: str | None,
) -> None:
    """Reconcile Typesense Cloud clusters and their API keys."""
    ctx.obj = CliContext(
        config_path=config, state_file=state_file, api_key=api_key, log_level=log_level
    )
    ctx.call_on_close(ctx.obj.close)


@cli.group()
def cluster() -> None:
    """Manage tracked clusters."""


@cluster.command("create")
@click.option("-f", "--file", "spec_file", required=True, help="Desired cluster spec (YAML/JSON)")
@format_option
@click.pass_context
@handle_errors
def cluster_create(ctx: click.Context, spec_file: str, format: str) -> None:
    """Provision a cluster and wait until it is in service."""
    spec = load_cluster_spec(spec_file)
    _progress(format, f"[bold blue]Creating cluster[/bold blue] ({spec.memory}, {spec.region})")

    with err_console.status("Waiting for cluster to come into service..."):
        record = ctx.obj.reconciler.create_cluster(spec)

    _progress(format, f"[green]✓ Cluster {record.id} is in service[/green]")
    _emit_cluster(record, "Cluster", format)


@cluster.command("read")
@click.argument("cluster_id")
@format_option
@click.pass_context
@handle_errors
def cluster_read(ctx: click.Context, cluster_id: str, format: str) -> None:
    """Refresh a tracked cluster from Typesense Cloud."""
    record = ctx.obj.reconciler.read_cluster(cluster_id)
    _emit_cluster(record, "Cluster", format)


@cluster.command("update")
@click.argument("cluster_id")
@click.option("-f", "--file", "spec_file", required=True, help="Desired cluster spec (YAML/JSON)")
@format_option
@click.pass_context
@handle_errors
def cluster_update(ctx: click.Context, cluster_id: str, spec_file: str, format: str) -> None:
    """Apply name and auto-upgrade changes to a tracked cluster."""
    spec = load_cluster_spec(spec_file)
    record = ctx.obj.reconciler.update_cluster(cluster_id, spec)
    _progress(format, f"[green]✓ Cluster {cluster_id} updated[/green]")
    _emit_cluster(record, "Cluster", format)


@cluster.command("delete")
@click.argument("cluster_id")
@click.pass_context
@handle_errors
def cluster_delete(ctx: click.Context, cluster_id: str) -> None:
    """Terminate a cluster by id and stop tracking it."""
    ctx.obj.reconciler.delete_cluster(cluster_id)
    console.print(f"[green]✓ Termination of cluster {cluster_id} requested[/green]")


@cluster.command("import")
@click.argument("cluster_id")
@format_option
@click.pass_context
@handle_errors
def cluster_import(ctx: click.Context, cluster_id: str, format: str) -> None:
    """Start tracking an existing cluster."""
    record = ctx.obj.reconciler.import_cluster(cluster_id)
    _progress(format, f"[green]✓ Cluster {cluster_id} imported[/green]")
    _emit_cluster(record, "Cluster", format)


@cluster.command("drift")
@click.argument("cluster_id")
@click.option("-f", "--file", "spec_file", required=True, help="Desired cluster spec (YAML/JSON)")
@format_option
@click.pass_context
@handle_errors
def cluster_drift(ctx: click.Context, cluster_id: str, spec_file: str, format: str) -> None:
    """Compare a tracked cluster against a desired spec."""
    spec = load_cluster_spec(spec_file)
    _, drift = ctx.obj.reconciler.cluster_drift(cluster_id, spec)

    if format == "json":
        _print_json(drift)
        return

    if not drift:
        console.print(f"[green]✓ Cluster {cluster_id} matches the desired spec[/green]")
        return

    table = Table(title=f"Drift for {cluster_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Desired", style="green")
    table.add_column("Observed", style="yellow")
    table.add_column("Fix")
    for entry in drift:
        fix = "update" if entry.mutable else "[red]replace[/red]"
        table.add_row(entry.attribute, str(entry.desired), str(entry.observed), fix)
    console.print(table)


@cluster.command("list")
@format_option
@click.pass_context
@handle_errors
def cluster_list(ctx: click.Context, format: str) -> None:
    """List tracked clusters."""
    records = ctx.obj.reconciler.list_clusters()

    if format == "json":
        _print_json(records)
        return

    if not records:
        console.print("[yellow]No clusters tracked[/yellow]")
        return

    table = Table(title=f"Tracked Clusters ({len(records)} total)")
    table.add_column("Cluster ID", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Region", style="blue")
    table.add_column("Memory")
    table.add_column("Status", style="bold")
    table.add_column("State")
    for record in records:
        table.add_row(
            record.id or "-",
            record.name or "-",
            record.region,
            record.memory,
            record.status or "-",
            record.state.value,
        )
    console.print(table)


@cli.group()
def keys() -> None:
    """Manage cluster API keys."""


@keys.command("create")
@click.argument("cluster_id")
@format_option
@click.pass_context
@handle_errors
def keys_create(ctx: click.Context, cluster_id: str, format: str) -> None:
    """Issue API keys for a cluster (shown once by Typesense Cloud)."""
    api_keys = ctx.obj.reconciler.issue_api_keys(cluster_id)
    if format == "json":
        _print_json(api_keys)
        return
    console.print(f"[green]✓ API keys issued for cluster {cluster_id}[/green]")
    _print_api_keys(api_keys)


@keys.command("show")
@click.argument("cluster_id")
@format_option
@click.pass_context
@handle_errors
def keys_show(ctx: click.Context, cluster_id: str, format: str) -> None:
    """Show tracked API keys for a cluster."""
    api_keys = ctx.obj.reconciler.read_api_keys(cluster_id)
    if format == "json":
        _print_json(api_keys)
    else:
        _print_api_keys(api_keys)


@keys.command("delete")
@click.argument("cluster_id")
@click.pass_context
@handle_errors
def keys_delete(ctx: click.Context, cluster_id: str) -> None:
    """Stop tracking a cluster's API keys (they stay valid remotely)."""
    ctx.obj.reconciler.delete_api_keys(cluster_id)
    console.print(f"[green]✓ API keys for cluster {cluster_id} no longer tracked[/green]")


@cli.command()
@click.argument("cluster_id")
@format_option
@click.pass_context
@handle_errors
def lookup(ctx: click.Context, cluster_id: str, format: str) -> None:
    """Show the observed state of any cluster without tracking it."""
    record = ctx.obj.reconciler.lookup_cluster(cluster_id)
    _emit_cluster(record, "Cluster (observed)", format)


if __name__ == "__main__":
    cli()
