#!/usr/bin/env python3
"""
Command line entry point for the traffic controller.

- ``run``: start the controller against the current Kubernetes context.
- ``show-weight``: print the weight row stored for a cluster.
"""

from __future__ import annotations

import asyncio
import signal
import sys
from collections.abc import Callable
from typing import Any

import click
from loguru import logger
from rich.console import Console
from rich.table import Table

from traffic_controller.cluster.kubernetes import (
    KubernetesClusterClient,
    KubernetesEventSource,
    load_kube_config,
)
from traffic_controller.config import (
    DEFAULT_ANNOTATION_PREFIX,
    BackendType,
    ControllerSettings,
)
from traffic_controller.controller.bootstrap import bootstrap_weight, build_runtime
from traffic_controller.core.errors import TrafficControllerError
from traffic_controller.core.logging import configure_logging
from traffic_controller.core.metrics import DEFAULT_METRICS_ADDR
from traffic_controller.core.weight_state import WeightState
from traffic_controller.store import DynamoDBWeightStore, new_weight_store

console = Console()

ENV_PREFIX = "TRAFFIC_CONTROLLER"


def _env(name: str) -> str:
    return f"{ENV_PREFIX}_{name}"


def store_options(func: Callable[..., Any]) -> Callable[..., Any]:
    options = [
        click.option(
            "--cluster-name",
            envvar=_env("CLUSTER_NAME"),
            default="",
            help="The name of the cluster",
        ),
        click.option(
            "--aws-region",
            envvar=_env("AWS_REGION"),
            default="eu-west-1",
            show_default=True,
            help="The AWS region of the weight table",
        ),
        click.option(
            "--backend-type",
            envvar=_env("BACKEND_TYPE"),
            type=click.Choice([backend.value for backend in BackendType]),
            default=BackendType.FAKE.value,
            show_default=True,
            help="The weight store backend to use",
        ),
        click.option(
            "--table-name",
            envvar=_env("TABLE_NAME"),
            default="traffic-controller",
            show_default=True,
            help="DynamoDB table holding cluster weights",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
def cli() -> None:
    """Shift DNS traffic between peer clusters through weighted records."""


@cli.command()
@store_options
@click.option(
    "--binding-domain",
    envvar=_env("BINDING_DOMAIN"),
    default="",
    help="Only hosts with this suffix get DNS records",
)
@click.option(
    "--annotation-filter",
    envvar=_env("ANNOTATION_FILTER"),
    default="",
    help="key=value annotation a route must carry to be handled",
)
@click.option(
    "--annotation-prefix",
    envvar=_env("ANNOTATION_PREFIX"),
    default=DEFAULT_ANNOTATION_PREFIX,
    show_default=True,
    help="Prefix of the traffic-weight route annotation",
)
@click.option(
    "--aws-health-check-id",
    "health_check_id",
    envvar=_env("AWS_HEALTH_CHECK_ID"),
    default="",
    help="Health check id attached to every record; empty disables it",
)
@click.option(
    "--initial-weight",
    envvar=_env("INITIAL_WEIGHT"),
    type=int,
    default=0,
    show_default=True,
    help="Weight used to seed the store for a new cluster",
)
@click.option(
    "--dev-mode",
    envvar=_env("DEV_MODE"),
    is_flag=True,
    help="Use a fixed record target for local development",
)
@click.option(
    "--metrics-addr",
    envvar=_env("METRICS_ADDR"),
    default=DEFAULT_METRICS_ADDR,
    show_default=True,
    help="Address the metrics endpoint binds to; 0 disables it",
)
@click.option(
    "--reconcile-interval",
    envvar=_env("RECONCILE_INTERVAL"),
    type=float,
    default=20.0,
    show_default=True,
    help="Seconds between weight store polls",
)
@click.option(
    "--workers",
    envvar=_env("WORKERS"),
    type=int,
    default=4,
    show_default=True,
    help="Concurrent route reconcilers",
)
@click.option("--log-level", envvar=_env("LOG_LEVEL"), default="INFO", show_default=True)
@click.option(
    "--debug-scope",
    "debug_scopes",
    envvar=_env("DEBUG_SCOPES"),
    multiple=True,
    help="Module scope to log at DEBUG (repeatable)",
)
def run(**options: Any) -> None:
    """Run the controller until SIGINT/SIGTERM."""
    options["debug_scopes"] = tuple(options["debug_scopes"])
    settings = ControllerSettings(**options)
    configure_logging(settings.log_level, debug_scopes=settings.debug_scopes)

    try:
        settings.validate()
        asyncio.run(_run(settings))
    except TrafficControllerError as e:
        logger.error("problem running controller: {}", e)
        sys.exit(1)


async def _run(settings: ControllerSettings) -> None:
    load_kube_config()
    cluster = KubernetesClusterClient()
    state = WeightState()
    store = new_weight_store(settings, state)

    await bootstrap_weight(settings, store, state)

    runtime = build_runtime(settings, cluster, store, state)
    if runtime.metrics.serve(settings.metrics_addr):
        logger.info("serving metrics on {}", settings.metrics_addr)
    events = KubernetesEventSource(cluster, runtime.queue)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop.set)

    logger.info("starting controller for cluster {}", settings.cluster_name)
    await runtime.start()
    await events.start()
    try:
        await stop.wait()
    finally:
        logger.info("shutting down controller")
        await events.stop()
        await runtime.stop()


@cli.command("show-weight")
@store_options
def show_weight(
    cluster_name: str, aws_region: str, backend_type: str, table_name: str
) -> None:
    """Print the stored weight row for a cluster."""
    settings = ControllerSettings(
        cluster_name=cluster_name,
        aws_region=aws_region,
        backend_type=backend_type,
        table_name=table_name,
    )
    configure_logging("WARNING")

    async def _show() -> None:
        store = new_weight_store(settings, WeightState())
        if not isinstance(store, DynamoDBWeightStore):
            console.print(
                f"[yellow]backend {backend_type} keeps no shared state[/yellow]"
            )
            return
        item = await store.read_item()
        table = Table(title=f"Traffic weight: {item.cluster_name}")
        table.add_column("Desired", justify="right")
        table.add_column("Current", justify="right")
        table.add_row(str(item.desired_weight), str(item.current_weight))
        console.print(table)

    try:
        settings.validate()
        asyncio.run(_show())
    except TrafficControllerError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
