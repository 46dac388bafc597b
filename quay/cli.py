from __future__ import annotations

import asyncio
import importlib
import json
import logging
import signal

import click

from . import schema, telemetry
from ._store import open_store
from .queue import Queue
from .registry import Registry

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

store_option = click.option(
    "--store",
    "store_url",
    envvar="QUAY_STORE_URL",
    default="memory://",
    show_default=True,
    help="Store URL: memory://, redis://host/db or postgresql://dsn",
)

key_prefix_option = click.option(
    "--key-prefix",
    envvar="QUAY_KEY_PREFIX",
    default="quay",
    show_default=True,
    help="Prefix applied to every queue key",
)

dsn_option = click.option(
    "--dsn",
    envvar="QUAY_DSN",
    required=True,
    help="Postgres connection string",
)

prefix_option = click.option(
    "--prefix",
    envvar="QUAY_PREFIX",
    default="public",
    show_default=True,
    help="Postgres schema holding the store tables",
)


@click.group(help="quay: background job queue")
@click.option(
    "--log-level",
    envvar="QUAY_LOG_LEVEL",
    default="INFO",
    show_default=True,
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
)
def main(log_level):
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command(help="Install the Postgres store schema")
@dsn_option
@prefix_option
def install(dsn, prefix):
    asyncio.run(_with_pool(dsn, schema.install, prefix))

    click.secho(f"Installed quay tables in schema {prefix}", fg="green")


@main.command(help="Drop the Postgres store schema")
@dsn_option
@prefix_option
def uninstall(dsn, prefix):
    asyncio.run(_with_pool(dsn, schema.uninstall, prefix))

    click.secho(f"Dropped quay tables from schema {prefix}", fg="yellow")


@main.command(help="Delete expired job records from the Postgres store")
@dsn_option
@prefix_option
def prune(dsn, prefix):
    count = asyncio.run(_prune(dsn, prefix))

    click.echo(f"Pruned {count} expired record(s)")


@main.command(help="Print queue statistics as JSON")
@store_option
@key_prefix_option
def stats(store_url, key_prefix):
    async def run():
        store = await open_store(store_url)

        try:
            return await Queue(store, prefix=key_prefix).get_stats()
        finally:
            await store.close()

    click.echo(json.dumps(asyncio.run(run()).to_dict(), indent=2))


@main.command(help="Print a job record as JSON")
@click.argument("job_id")
@store_option
@key_prefix_option
def inspect(job_id, store_url, key_prefix):
    async def run():
        store = await open_store(store_url)

        try:
            return await Queue(store, prefix=key_prefix).get_job(job_id)
        finally:
            await store.close()

    job = asyncio.run(run())

    if job is None:
        click.secho(f"Error: job {job_id} not found", fg="red", err=True)
        raise click.exceptions.Exit(1)

    click.echo(json.dumps(job.to_dict(), indent=2))


@main.command(help="Run the dispatch loop until interrupted")
@store_option
@key_prefix_option
@click.option(
    "--handlers",
    "handlers_path",
    envvar="QUAY_HANDLERS",
    required=True,
    help="Import path of a handler Registry, e.g. myapp.jobs:registry",
)
@click.option(
    "--concurrency",
    envvar="QUAY_CONCURRENCY",
    type=click.IntRange(min=1),
    default=5,
    show_default=True,
)
def start(store_url, key_prefix, handlers_path, concurrency):
    registry = _import_registry(handlers_path)

    telemetry.attach_default_logger()

    click.secho(
        f"Starting quay with concurrency={concurrency}. Press Ctrl+C to stop…",
        fg="cyan",
    )

    asyncio.run(_run(store_url, key_prefix, registry, concurrency))

    click.secho("Queue stopped.", fg="yellow")


def _import_registry(path: str) -> Registry:
    module_name, _, attr = path.partition(":")

    if not module_name or not attr:
        raise click.BadParameter(
            "expected the form module:attribute", param_hint="--handlers"
        )

    try:
        module = importlib.import_module(module_name)
    except ImportError as error:
        raise click.BadParameter(str(error), param_hint="--handlers") from error

    registry = getattr(module, attr, None)

    if not isinstance(registry, Registry):
        raise click.BadParameter(
            f"{path} is not a quay Registry", param_hint="--handlers"
        )

    return registry


async def _with_pool(dsn, func, prefix):
    from psycopg_pool import AsyncConnectionPool

    async with AsyncConnectionPool(conninfo=dsn, open=False) as pool:
        await func(pool, prefix)


async def _prune(dsn, prefix):
    from ._postgres import PostgresStore

    store = await PostgresStore.connect(dsn, prefix=prefix)

    try:
        return await store.prune()
    finally:
        await store.close()


async def _run(store_url, key_prefix, registry, concurrency):
    store = await open_store(store_url)
    stopped = asyncio.Event()
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stopped.set)

    try:
        async with Queue(
            store, registry=registry, concurrency=concurrency, prefix=key_prefix
        ):
            await stopped.wait()
    finally:
        await store.close()


if __name__ == "__main__":
    main()
