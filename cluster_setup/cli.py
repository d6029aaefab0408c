"""Main CLI entry point for cluster setup."""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cluster_setup.exceptions import ClusterSetupError
from cluster_setup.logging_config import get_logger, setup_logging
from cluster_setup.models.config import SetupConfig
from cluster_setup.models.outcome import OutcomeStatus, StepOutcome
from cluster_setup.wizard import SetupWizard

app = typer.Typer(
    name="cluster-setup",
    help="Set up and bootstrap a Kubernetes cluster step by step",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

STATUS_STYLES = {
    OutcomeStatus.success: ("green", "✓"),
    OutcomeStatus.warning: ("yellow", "⚠"),
    OutcomeStatus.error: ("red", "✗"),
}


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_level: str = typer.Option(
        "INFO", "--log-level", help="Level for the log file (DEBUG, INFO, WARNING, ERROR)"
    ),
    log_file: str | None = typer.Option(None, "--log-file", help="Path to log file"),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Path to setup configuration (YAML)"
    ),
    state_dir: str | None = typer.Option(
        None, "--state-dir", help="Directory holding pillar and minion state"
    ),
):
    """Global options for all commands."""
    log_path = Path(log_file) if log_file else None
    try:
        setup_logging(level=log_level, verbose=verbose, log_file=log_path)
    except ClusterSetupError as e:
        console.print(f"[red]Configuration Error:[/red] {e.message}")
        if e.details:
            console.print(f"\n{e.details}")
        raise typer.Exit(code=1)
    logger.debug("Logging initialized")

    try:
        config = SetupConfig.load(config_file) if config_file else SetupConfig()
    except Exception as e:
        console.print(f"[red]Configuration Error:[/red] {e}")
        raise typer.Exit(code=1)
    if state_dir:
        config = config.model_copy(update={"state_dir": state_dir})

    ctx.obj = config


def _wizard(ctx: typer.Context) -> SetupWizard:
    return SetupWizard.from_config(ctx.obj)


def render(outcome: StepOutcome) -> None:
    """Print an outcome and exit non-zero unless it succeeded."""
    color, mark = STATUS_STYLES[outcome.status]
    console.print(f"[{color}]{mark}[/{color}] {outcome.message}")
    if outcome.details:
        console.print(f"\n{outcome.details}")
    for error in outcome.errors:
        console.print(f"  - {error}")
    console.print(f"\n[bold]Next step:[/bold] {outcome.next_step.value.replace('_', ' ')}")

    if not outcome.ok:
        raise typer.Exit(code=1)


def _run(step):
    try:
        return step()
    except ClusterSetupError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        if e.details:
            console.print(f"\n{e.details}")
        raise typer.Exit(code=1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        console.print(f"[red]Unexpected error:[/red] {e}")
        console.print("\nRun with --verbose --log-file debug.log for more details")
        raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Show version information."""
    from cluster_setup import __version__

    typer.echo(f"cluster-setup version {__version__}")


@app.command()
def welcome(ctx: typer.Context) -> None:
    """Show the currently stored cluster settings."""
    outcome = _run(lambda: _wizard(ctx).welcome())

    table = Table(title="Cluster Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="magenta")
    for name, value in outcome.data.items():
        if name == "registry_mirror_cert" and value:
            value = f"{len(value)} bytes"
        table.add_row(name, "" if value is None else str(value))
    console.print(table)

    render(outcome)


@app.command()
def configure(
    ctx: typer.Context,
    dashboard: str = typer.Option("", "--dashboard", "-d", help="Dashboard (controller) address"),
    apiserver: str | None = typer.Option(None, "--apiserver", help="External API server FQDN"),
    proxy: str | None = typer.Option(None, "--proxy", help="Proxy settings: enable or disable"),
    http_proxy: str | None = typer.Option(None, "--http-proxy", help="HTTP proxy host:port"),
    https_proxy: str | None = typer.Option(None, "--https-proxy", help="HTTPS proxy host:port"),
    no_proxy: str | None = typer.Option(None, "--no-proxy", help="Hosts bypassing the proxy"),
    proxy_systemwide: bool | None = typer.Option(
        None, "--proxy-systemwide/--no-proxy-systemwide", help="Use the proxy system wide"
    ),
    registry_mirror: str | None = typer.Option(
        None, "--registry-mirror", help="Registry mirror: enable or disable"
    ),
    registry_mirror_url: str | None = typer.Option(
        None, "--registry-mirror-url", help="Registry mirror URL"
    ),
    registry_mirror_certificate: str | None = typer.Option(
        None, "--registry-mirror-certificate", help="Mirror certificate: enable or disable"
    ),
    registry_mirror_cert: Path | None = typer.Option(
        None, "--registry-mirror-cert", help="Path to the mirror's PEM certificate"
    ),
) -> None:
    """
    Save cluster-wide settings.

    Disabling a feature erases its stored settings even when values for it
    are passed on the same command line.

    Examples:
        cluster-setup configure -d dashboard.example.com --proxy disable
        cluster-setup configure -d dashboard.example.com --registry-mirror enable \\
            --registry-mirror-url https://local.registry --registry-mirror-certificate disable
    """
    form = {
        "dashboard": dashboard,
        "apiserver": apiserver,
        "enable_proxy": proxy,
        "http_proxy": http_proxy,
        "https_proxy": https_proxy,
        "no_proxy": no_proxy,
        "proxy_systemwide": None if proxy_systemwide is None else str(proxy_systemwide).lower(),
        "suse_registry_mirror_enabled": registry_mirror,
        "suse_registry_mirror_url": registry_mirror_url,
        "suse_registry_mirror_cert_enabled": registry_mirror_certificate,
    }
    if registry_mirror_cert:
        try:
            form["suse_registry_mirror_cert"] = registry_mirror_cert.read_text()
        except OSError as e:
            console.print(f"[red]Error:[/red] Cannot read certificate: {e}")
            raise typer.Exit(code=1)

    form = {k: v for k, v in form.items() if v is not None}
    outcome = _run(lambda: _wizard(ctx).configure(form))

    if outcome.ok:
        if outcome.data["written"]:
            console.print(f"Saved: {', '.join(outcome.data['written'])}")
        if outcome.data["erased"]:
            console.print(f"Erased: {', '.join(outcome.data['erased'])}")
    render(outcome)


@app.command()
def worker_bootstrap(ctx: typer.Context) -> None:
    """Show how to bootstrap worker nodes, with instance sizes on a cloud."""
    outcome = _run(lambda: _wizard(ctx).worker_bootstrap())

    if outcome.ok:
        console.print(f"[bold]Controller node:[/bold] {outcome.data['controller_node'] or 'N/A'}")
        framework = outcome.data["cloud_framework"]
        console.print(f"[bold]Cloud framework:[/bold] {framework or 'none (bare metal)'}")

        if outcome.data["instance_types"]:
            table = Table(title=f"Instance Types ({framework})")
            table.add_column("Type", style="cyan")
            table.add_column("Category", style="magenta")
            table.add_column("vCPU", style="green")
            table.add_column("RAM (GiB)", style="yellow")
            table.add_column("Details")
            for entry in outcome.data["instance_types"]:
                table.add_row(
                    entry["key"],
                    entry["category"],
                    str(entry["vcpu_count"]),
                    f"{entry['ram_bytes'] / 1024**3:.1f}",
                    entry["details"],
                )
            console.print(table)
    render(outcome)


@app.command()
def build_cloud_cluster(
    ctx: typer.Context,
    instance_type: str = typer.Option(..., "--instance-type", help="Worker instance type"),
    instance_count: int = typer.Option(..., "--instance-count", "-n", help="Number of workers"),
    subnet_id: str | None = typer.Option(None, "--subnet-id", help="Subnet for the workers"),
    security_group_id: str | None = typer.Option(
        None, "--security-group-id", help="EC2 security group"
    ),
    subscription_id: str | None = typer.Option(
        None, "--subscription-id", help="Azure subscription ID"
    ),
    tenant_id: str | None = typer.Option(None, "--tenant-id", help="Azure tenant ID"),
    client_id: str | None = typer.Option(None, "--client-id", help="Azure service principal ID"),
    secret: str | None = typer.Option(
        None, "--secret", envvar="AZURE_CLIENT_SECRET", help="Azure service principal secret"
    ),
    resource_group: str | None = typer.Option(
        None, "--resource-group", help="Azure resource group"
    ),
    storage_account: str | None = typer.Option(
        None, "--storage-account", help="Azure storage account"
    ),
    network_id: str | None = typer.Option(None, "--network-id", help="Azure virtual network"),
) -> None:
    """
    Provision worker instances on the configured cloud framework.

    The framework (ec2 or azure) comes from the stored cluster configuration
    and cannot be chosen here.
    """
    form = {
        "instance_type": instance_type,
        "instance_count": instance_count,
        "subnet_id": subnet_id,
        "security_group_id": security_group_id,
        "subscription_id": subscription_id,
        "tenant_id": tenant_id,
        "client_id": client_id,
        "secret": secret,
        "resource_group": resource_group,
        "storage_account": storage_account,
        "network_id": network_id,
    }
    form = {k: v for k, v in form.items() if v is not None}
    outcome = _run(lambda: _wizard(ctx).build_cloud_cluster(form))

    if outcome.ok:
        for name, value in outcome.data["cloud_cluster"].items():
            console.print(f"  {name}: {value}")
    render(outcome)


@app.command()
def discover(
    ctx: typer.Context,
    refresh: bool = typer.Option(
        True, "--refresh/--no-refresh", help="Query the network for new nodes first"
    ),
) -> None:
    """List discovered nodes and their roles."""
    outcome = _run(lambda: _wizard(ctx).discover(refresh=refresh))

    if outcome.ok:
        if not outcome.data["minions"]:
            console.print("[yellow]No nodes discovered yet[/yellow]")
        else:
            added = set(outcome.data["added"])
            table = Table(title="Discovered Nodes")
            table.add_column("ID", style="cyan")
            table.add_column("FQDN", style="magenta")
            table.add_column("Role", style="green")
            table.add_column("New", style="yellow")
            for minion in outcome.data["minions"]:
                table.add_row(
                    minion["minion_id"],
                    minion["fqdn"],
                    minion["role"],
                    "Yes" if minion["minion_id"] in added else "",
                )
            console.print(table)
    render(outcome)


@app.command()
def set_roles(
    ctx: typer.Context,
    master: list[str] = typer.Option([], "--master", "-m", help="ID of the master node"),
    worker: list[str] = typer.Option([], "--worker", "-w", help="ID of a worker node"),
) -> None:
    """
    Assign the master and worker roles.

    Examples:
        cluster-setup set-roles --master n1 --worker n2 --worker n3
    """
    outcome = _run(lambda: _wizard(ctx).set_roles({"master": master, "worker": worker}))
    render(outcome)


@app.command()
def bootstrap(
    ctx: typer.Context,
    apiserver: str = typer.Option("", "--apiserver", help="External API server FQDN"),
) -> None:
    """
    Bootstrap the cluster.

    Saves the API server address, applies every recorded role on the nodes
    and starts orchestration. Orchestration is not started if any of the
    earlier steps failed.
    """
    outcome = _run(lambda: _wizard(ctx).bootstrap({"apiserver": apiserver}))
    render(outcome)


if __name__ == "__main__":
    app()
