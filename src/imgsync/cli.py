"""Command line interface for imgsync."""

import asyncio
import logging

import aiohttp
import click

from .copier import SkopeoCopier
from .core.orchestrator import SyncOrchestrator
from .core.registry_client import RegistryManifestFetcher
from .core.types import (
    DEFAULT_SYNC_RETRY,
    DEFAULT_SYNC_RETRY_DELAY,
    DEFAULT_SYNC_TIMEOUT,
    DEFAULT_TIMEOUT,
    REPORT_FAILURES,
    SyncOption,
)
from .exceptions import ConfigError, DiscoveryError
from .report import ReportSummary
from .store import FileManifestStore
from .synchronizers import Synchronizer, default_registry


def _synchronizer(ctx: click.Context, name: str) -> Synchronizer:
    try:
        return ctx.obj["registry"].get(name)
    except ConfigError as e:
        raise click.UsageError(str(e)) from e


async def _run(
    synchronizer: Synchronizer,
    option: SyncOption,
    manifest_dir: str,
    overrides: dict,
    list_only: bool = False,
):
    timeout = aiohttp.ClientTimeout(total=option.http_timeout)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        catalog = synchronizer.catalog(session, option.http_timeout)
        manifests = overrides.get("manifests") or RegistryManifestFetcher(
            session=session, timeout=option.http_timeout
        )
        copier = overrides.get("copier") or SkopeoCopier()
        orchestrator = SyncOrchestrator(
            catalog, manifests, copier, FileManifestStore(manifest_dir), option
        )
        if list_only:
            return await orchestrator.images()
        return await orchestrator.run()


class SyncGroup(click.Group):
    """Treats `imgsync NAME ...` as `imgsync sync NAME ...`."""

    def resolve_command(self, ctx, args):
        if args and not args[0].startswith("-") and args[0] not in self.commands:
            args = ["sync", *args]
        return super().resolve_command(ctx, args)


@click.group(cls=SyncGroup)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, debug):
    """Mirror container images from a source registry into Docker Hub."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj.setdefault("registry", default_registry())


@cli.command()
@click.argument("name")
@click.option(
    "--user", envvar="IMGSYNC_USER", default="", help="Destination registry user"
)
@click.option(
    "--password",
    envvar="IMGSYNC_PASSWORD",
    default="",
    help="Destination registry password",
)
@click.option(
    "--timeout",
    type=float,
    default=DEFAULT_TIMEOUT,
    show_default=True,
    help="Sync single image timeout (seconds)",
)
@click.option(
    "--limit",
    "--process-limit",
    "limit",
    type=int,
    default=0,
    help="Images sync process limit",
)
@click.option("--batch-size", type=int, default=0, help="Images per batch")
@click.option("--batch-number", type=int, default=0, help="Batch to sync (1-based)")
@click.option(
    "--manifests",
    "manifest_dir",
    default="manifests",
    show_default=True,
    help="Manifests storage dir",
)
@click.option("--manifests-only", is_flag=True, help="Only download manifests")
@click.option("--report", is_flag=True, help="Report sync result")
@click.option(
    "--report-level",
    type=int,
    default=REPORT_FAILURES,
    show_default=True,
    help="1: failures, 2: changes, 3: all",
)
@click.option("--query-limit", type=int, default=0, help="Registry query limit")
@click.option("--namespace", default="", help="Source image namespace")
@click.option("--kubeadm", is_flag=True, help="Name gcr.io images as k8s.gcr.io")
@click.option(
    "--sync-timeout",
    type=float,
    default=DEFAULT_SYNC_TIMEOUT,
    show_default=True,
    help="Whole run timeout (seconds), 0 disables",
)
@click.option(
    "--retry",
    "sync_retry",
    type=int,
    default=DEFAULT_SYNC_RETRY,
    show_default=True,
    help="Copy attempts per image",
)
@click.option(
    "--retry-delay",
    "sync_retry_delay",
    type=float,
    default=DEFAULT_SYNC_RETRY_DELAY,
    show_default=True,
    help="Delay between copy attempts (seconds)",
)
@click.pass_context
def sync(ctx, name, manifest_dir, **options):
    """Sync the images of synchronizer NAME."""
    synchronizer = _synchronizer(ctx, name)
    options["namespace"] = options["namespace"] or synchronizer.namespace
    try:
        option = SyncOption(**options).validate()
    except ConfigError as e:
        raise click.UsageError(str(e)) from e

    try:
        summary: ReportSummary = asyncio.run(
            _run(synchronizer, option, manifest_dir, ctx.obj)
        )
    except DiscoveryError as e:
        raise click.ClickException(str(e)) from e

    if option.report:
        click.echo(summary.render())


@cli.command(name="list")
@click.argument("name")
@click.option("--namespace", default="", help="Source image namespace")
@click.option("--query-limit", type=int, default=0, help="Registry query limit")
@click.pass_context
def list_images(ctx, name, namespace, query_limit):
    """List the images synchronizer NAME would sync."""
    synchronizer = _synchronizer(ctx, name)
    try:
        option = SyncOption(
            manifests_only=True,
            query_limit=query_limit,
            namespace=namespace or synchronizer.namespace,
        ).validate()
    except ConfigError as e:
        raise click.UsageError(str(e)) from e

    try:
        images = asyncio.run(_run(synchronizer, option, "", ctx.obj, list_only=True))
    except DiscoveryError as e:
        raise click.ClickException(str(e)) from e

    for image in images:
        click.echo(str(image))


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
