"""
sitedeploy command-line interface.

Commands:
    init             write a starter site.config.json
    check            validate configuration, build output and credentials
    deploy           upload the build output and invalidate the CDN cache
    setup            bootstrap bucket, DNS zone, certificate and distribution
    invalidate       submit a CDN invalidation without uploading
    refresh-headers  re-apply cache-control headers to objects in the bucket
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Awaitable, Callable, Optional

import anyio
import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from application.ports.cloud import CloudError
from application.services.bootstrap_service import BootstrapService
from application.services.deploy_service import DeploymentReport, DeploymentService
from application.services.header_refresh_service import HeaderRefreshService
from application.services.invalidation_service import CacheInvalidator
from application.services.preflight import ensure_build_output, verify_credentials
from core.config import settings
from core.exceptions import describe_error, log_failure
from core.logging_config import bind_command, configure_logging
from domain.common.exceptions import ConfigValidationError, DeployException
from domain.deploy.config import SiteConfig
from domain.deploy.entities import BootstrapState
from domain.deploy.policy import CachePolicy
from infrastructure.config_store import JsonConfigStore
from infrastructure.external.aws import build_aws_clients

app = typer.Typer(
    name="sitedeploy",
    help="Deploy a static site to S3 + CloudFront and bootstrap its infrastructure",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Site configuration file (default: site.config.json)"),
]
BuildDirOption = Annotated[
    Optional[Path],
    typer.Option("--build-dir", "-b", help="Build output directory (default: build.outputDir)"),
]


@app.callback()
def _main(
    debug: Annotated[bool, typer.Option("--debug", help="Verbose logging")] = False,
    log_format: Annotated[
        Optional[str],
        typer.Option("--log-format", help="auto, console or json (default: SITEDEPLOY_LOG_FORMAT)"),
    ] = None,
) -> None:
    try:
        configure_logging(debug=debug or None, log_format=log_format)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-format") from exc


def _store(config_path: Optional[Path]) -> JsonConfigStore:
    return JsonConfigStore(config_path or Path(settings.CONFIG_FILE))


def _build_dir(site: SiteConfig, override: Optional[Path]) -> Path:
    if override is not None:
        return override
    return Path(site.build.output_dir or settings.BUILD_DIR)


def _fail(exc: Exception, command: str) -> typer.Exit:
    code = log_failure(exc, command)
    message, hint = describe_error(exc)
    console.print(f"[red]✗ {message}[/red]")
    if hint:
        console.print(f"  [dim]{hint}[/dim]")
    return typer.Exit(code)


def _run(command: str, action: Callable[[], Awaitable[Any]]) -> Any:
    """Run an async action, turning failures into a diagnostic and exit code."""
    bind_command(command)
    try:
        return anyio.run(action)
    except (DeployException, CloudError) as exc:
        raise _fail(exc, command) from exc


def _load_site(store: JsonConfigStore, command: str) -> SiteConfig:
    try:
        return store.load()
    except DeployException as exc:
        raise _fail(exc, command) from exc


@app.command()
def init(
    domain: Annotated[str, typer.Option("--domain", "-d", help="Site domain")] = "example.com",
    region: Annotated[str, typer.Option("--region", "-r", help="Bucket region")] = "us-east-1",
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing file")] = False,
    config: ConfigOption = None,
) -> None:
    """Write a starter site configuration."""
    store = _store(config)
    existed = store.exists()
    try:
        store.init(domain=domain, region=region, overwrite=force)
    except DeployException as exc:
        raise _fail(exc, "init") from exc
    if existed and not force:
        console.print(f"[yellow]Configuration already exists:[/yellow] {store.path}")
        return
    console.print(f"[green]✓[/green] Wrote {store.path}")
    console.print("  Review deploy.bucketName, deploy.region and deploy.domain, then run [cyan]sitedeploy setup[/cyan].")


@app.command()
def check(
    config: ConfigOption = None,
    build_dir: BuildDirOption = None,
) -> None:
    """Validate configuration, build output and AWS credentials."""
    store = _store(config)
    site = _load_site(store, "check")
    deploy_config = site.deploy
    output = _build_dir(site, build_dir)

    async def _check() -> dict[str, str]:
        deploy_config.ensure_deployable(settings.PLACEHOLDER_BUCKETS)
        ensure_build_output(output)
        clients = build_aws_clients(deploy_config, settings)
        return await verify_credentials(clients.identity, deploy_config.aws.profile)

    caller = _run("check", _check)

    table = Table(title="Deployment check")
    table.add_column("Item", style="cyan")
    table.add_column("Value")
    table.add_row("Config", str(store.path))
    table.add_row("Bucket", deploy_config.bucket_name or "")
    table.add_row("Region", deploy_config.region or "")
    table.add_row("Domain", deploy_config.domain or "")
    table.add_row("Build output", str(output))
    table.add_row("AWS account", caller.get("account", ""))
    table.add_row("Distribution", deploy_config.cloudfront.distribution_id or "[yellow]not set[/yellow]")
    console.print(table)
    console.print("[green]✓ Ready to deploy[/green]")


def _print_deploy_report(report: DeploymentReport) -> None:
    summary = report.summary
    lines = [
        f"Uploaded: [green]{summary.succeeded}[/green] files ({summary.compressed} compressed)",
    ]
    if report.deleted_keys:
        lines.append(f"Removed: {len(report.deleted_keys)} stale objects")
    if report.prune_error:
        lines.append(f"[yellow]Pruning failed: {report.prune_error}[/yellow]")

    outcome = report.invalidation
    if outcome.submitted:
        lines.append(f"Invalidation: {outcome.invalidation_id} ({len(outcome.request.paths)} paths)")
    elif outcome.error:
        lines.append(f"[yellow]Invalidation failed: {outcome.error}[/yellow]")
    elif outcome.skipped_reason:
        lines.append(f"[yellow]Invalidation skipped: {outcome.skipped_reason}[/yellow]")

    lines.append(f"\nLive at: [cyan]{report.live_url}[/cyan]")
    console.print(Panel("\n".join(lines), title="Deployment complete"))


@app.command()
def deploy(
    config: ConfigOption = None,
    build_dir: BuildDirOption = None,
) -> None:
    """Upload the build output and invalidate the CDN cache."""
    store = _store(config)
    site = _load_site(store, "deploy")
    output = _build_dir(site, build_dir)

    with Progress(
        TextColumn("[bold]Uploading"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:
        task_id = progress.add_task("upload", total=None)

        def _on_progress(done: int, total: int) -> None:
            progress.update(task_id, completed=done, total=total)

        async def _deploy() -> DeploymentReport:
            site.deploy.ensure_deployable(settings.PLACEHOLDER_BUCKETS)
            clients = build_aws_clients(site.deploy, settings)
            service = DeploymentService(
                site.deploy,
                output,
                clients.store,
                clients.cdn,
                clients.identity,
                upload_settings=settings.upload,
                placeholders=settings.PLACEHOLDER_BUCKETS,
                on_progress=_on_progress,
            )
            return await service.run()

        report = _run("deploy", _deploy)

    _print_deploy_report(report)


def _print_setup_summary(state: BootstrapState) -> None:
    table = Table(title="Infrastructure")
    table.add_column("Resource", style="cyan")
    table.add_column("Value")
    table.add_row("Domain", ", ".join(state.domains))
    table.add_row("Bucket", f"{state.bucket} ({'created' if state.bucket_created else 'existing'})")
    table.add_row("Hosted zone", f"{state.hosted_zone_id} ({state.zone_domain})")
    table.add_row("Certificate", state.certificate_arn or "")
    table.add_row(
        "Distribution",
        f"{state.distribution_id} ({state.distribution_domain})",
    )
    console.print(table)

    if state.zone_created and state.name_servers:
        console.print(
            Panel(
                "\n".join(state.name_servers),
                title="Update the nameservers at your registrar",
                border_style="yellow",
            )
        )
    if not state.persisted:
        console.print(
            f"[yellow]Add deploy.cloudfront.distributionId = {state.distribution_id} to the site config.[/yellow]"
        )
    console.print("CloudFront rollout usually takes 15-20 minutes before the domain serves traffic.")
    console.print(f"[green]✓ Live at:[/green] [cyan]https://{state.domain}[/cyan]")


@app.command()
def setup(config: ConfigOption = None) -> None:
    """Bootstrap hosted zone, bucket, certificate, distribution and DNS aliases."""
    store = _store(config)
    site = _load_site(store, "setup")

    async def _setup() -> BootstrapState:
        site.deploy.ensure_deployable(settings.PLACEHOLDER_BUCKETS)
        clients = build_aws_clients(site.deploy, settings)
        service = BootstrapService(
            site.deploy,
            clients.store,
            clients.dns,
            clients.certificates,
            clients.cdn,
            clients.identity,
            config_store=store,
            settings=settings.bootstrap,
            placeholders=settings.PLACEHOLDER_BUCKETS,
        )
        return await service.run()

    with console.status("Provisioning infrastructure (certificate validation can take several minutes)..."):
        state = _run("setup", _setup)
    _print_setup_summary(state)


@app.command()
def invalidate(
    paths: Annotated[
        Optional[list[str]],
        typer.Option("--path", "-p", help="Extra path to invalidate (repeatable)"),
    ] = None,
    config: ConfigOption = None,
) -> None:
    """Submit a CDN invalidation for the baseline paths plus any extras."""
    store = _store(config)
    site = _load_site(store, "invalidate")
    cloudfront = site.deploy.cloudfront.model_copy(
        update={"invalidate_paths": [*site.deploy.cloudfront.invalidate_paths, *(paths or [])]}
    )
    deploy_config = site.deploy.model_copy(update={"cloudfront": cloudfront})

    async def _invalidate():
        if not cloudfront.distribution_id:
            raise ConfigValidationError(["deploy.cloudfront.distributionId"])
        clients = build_aws_clients(deploy_config, settings)
        return await CacheInvalidator(clients.cdn).invalidate(deploy_config, force=True)

    outcome = _run("invalidate", _invalidate)
    if not outcome.submitted:
        console.print(f"[red]✗ Invalidation failed: {outcome.error}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Invalidation {outcome.invalidation_id} submitted")
    for path in outcome.request.paths:
        console.print(f"  {path}")


@app.command("refresh-headers")
def refresh_headers(
    prefix: Annotated[str, typer.Option("--prefix", help="Only objects under this key prefix")] = "",
    config: ConfigOption = None,
) -> None:
    """Re-apply cache-control headers to objects already in the bucket."""
    store = _store(config)
    site = _load_site(store, "refresh-headers")

    async def _refresh():
        site.deploy.ensure_deployable(settings.PLACEHOLDER_BUCKETS)
        clients = build_aws_clients(site.deploy, settings)
        policy = CachePolicy.from_table(site.deploy.options.cache_control)
        return await HeaderRefreshService(clients.store, policy).run(prefix)

    report = _run("refresh-headers", _refresh)
    console.print(
        f"[green]✓[/green] Updated {len(report.updated)}, "
        f"unchanged {len(report.unchanged)}, failed {len(report.failed)}"
    )
    for key in report.failed:
        console.print(f"  [yellow]! {key}[/yellow]")


def main() -> None:
    app()
