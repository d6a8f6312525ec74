"""
CLI interface for environment stores.

Usage:
    envstore list
    envstore show prod --create
    envstore select
    envstore delete staging
    envstore order pin
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

import typer
from typing_extensions import Annotated

from .config import StoreConfig, load_or_default_config, save_config
from .errors import EnvStoreError, PersistenceWarning, log_exception
from .logging_config import (
    configure_ops_log,
    configure_quiet_mode,
    enable_debug_mode,
    remove_ops_log,
)
from .order import EnvOrder
from .paths import default_home_dir_name, resolve_store_dir
from .prompts import passphrase_key_source, prompt_key_values, terminal_presenter
from .protocol import KeySource, empty_key
from .store import EnvironmentStore

logger = logging.getLogger(__name__)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"envstore {version('envstore')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_home_dir_override: Optional[str] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _home_dir_callback(value: Optional[str]):
    global _home_dir_override
    _home_dir_override = value


def _get_home_dir() -> str:
    return _home_dir_override or default_home_dir_name()


app = typer.Typer(
    name="envstore",
    help="Encrypted per-user environment store.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

order_app = typer.Typer(
    name="order",
    help="Inspect or curate the environment order.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
app.add_typer(order_app, name="order")


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    home_dir: Annotated[Optional[str], typer.Option(
        "--home-dir", "-H",
        envvar="ENVSTORE_HOME_DIR",
        help="Store directory name below the home directory",
        callback=_home_dir_callback,
        is_eager=True,
    )] = None,
):
    """Encrypted per-user environment store."""
    # Set ENVSTORE_VERBOSE=1 to enable debug mode via environment
    if not verbose:
        if os.environ.get("ENVSTORE_VERBOSE") == "1":
            enable_debug_mode()
        else:
            configure_quiet_mode(quiet=True)


# -----------------------------------------------------------------------------
# Store wiring
# -----------------------------------------------------------------------------

def _warn(warning: PersistenceWarning) -> None:
    logger.debug("Persistence warning: %s", warning)
    typer.echo(f"WARNING: {warning}", err=True)


def _key_source(config: StoreConfig) -> KeySource:
    """Key from the configured environment variable, a prompt, or none."""
    key = config.crypto.key_from_env()
    if key is not None:
        return lambda: key
    if config.crypto.prompt:
        return passphrase_key_source()
    return empty_key


def _fail(e: Exception, context: str, store_path: Optional[Path] = None):
    log_exception(e, context=f"envstore {context}", store_path=store_path)
    typer.echo(f"Error: {e}", err=True)
    raise typer.Exit(1)


def _get_store(ctx: typer.Context) -> EnvironmentStore:
    """Build the store for the current invocation from its config file."""
    try:
        store: EnvironmentStore = EnvironmentStore(
            _get_home_dir(),
            enter_env=prompt_key_values,
            presenter=terminal_presenter,
            warn=_warn,
        )
        config = load_or_default_config(store.dir)
    except (EnvStoreError, ValueError, OSError) as e:
        _fail(e, "config")

    store.key_source = _key_source(config)
    store.get_title = config.format_title

    if store.dir.is_dir():
        handler = configure_ops_log(store.dir)
        ctx.call_on_close(lambda: remove_ops_log(handler))
    return store


def _echo_value(name: str, value: Any) -> None:
    if _get_json_output():
        typer.echo(json.dumps({"name": name, "value": value}, indent=2, ensure_ascii=False))
    else:
        typer.echo(json.dumps(value, indent=2, ensure_ascii=False))


def _echo_order(order: EnvOrder) -> None:
    if _get_json_output():
        typer.echo(json.dumps(order.to_dict(), indent=2))
        return
    typer.echo(f"fixed: {'yes' if order.fixed else 'no'}")
    if not order.order:
        typer.echo("(no order recorded)")
    for i, file_name in enumerate(order.order, 1):
        typer.echo(f"{i:>3}. {file_name}")


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command("list")
def list_cmd(ctx: typer.Context):
    """List environments, most recently used first."""
    store = _get_store(ctx)
    try:
        titles = store.list_environments()
    except OSError as e:
        _fail(e, "list", store.dir)
    if _get_json_output():
        typer.echo(json.dumps(titles, ensure_ascii=False))
        return
    if not titles:
        typer.echo("No environments.")
        return
    for title in titles:
        typer.echo(title)


@app.command()
def show(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Environment name")],
    create: Annotated[bool, typer.Option(
        "--create", "-c",
        help="Prompt for the environment if it does not exist yet",
    )] = False,
):
    """Print an environment."""
    store = _get_store(ctx)
    try:
        value = store.create_or_read(name) if create else store.read(name)
    except (EnvStoreError, OSError) as e:
        _fail(e, "show", store.dir)
    _echo_value(name, value)


@app.command()
def select(ctx: typer.Context):
    """Choose an environment interactively and print it."""
    store = _get_store(ctx)
    try:
        name, value = store.select_environment()
    except (EnvStoreError, OSError) as e:
        _fail(e, "select", store.dir)
    _echo_value(name, value)


@app.command()
def delete(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Environment name")],
):
    """Delete an environment (its order entry is kept)."""
    store = _get_store(ctx)
    try:
        store.delete_environment(name)
    except (EnvStoreError, OSError) as e:
        _fail(e, "delete", store.dir)
    typer.echo(f"Deleted {name}")


@app.command()
def init(
    key_env: Annotated[Optional[str], typer.Option(
        "--key-env",
        help="Environment variable holding the passphrase",
    )] = None,
    prompt: Annotated[Optional[bool], typer.Option(
        "--prompt/--no-prompt",
        help="Ask for a passphrase when the key variable is unset",
    )] = None,
):
    """Write a default envstore.toml into the store directory."""
    try:
        store_dir = resolve_store_dir(_get_home_dir())
        config = load_or_default_config(store_dir)
        if key_env is not None:
            config.crypto.key_env = key_env
        if prompt is not None:
            config.crypto.prompt = prompt
        save_config(config)
    except (EnvStoreError, ValueError, OSError) as e:
        _fail(e, "init")
    typer.echo(f"Wrote {config.config_path}")


@order_app.command("show")
def order_show(ctx: typer.Context):
    """Show the recorded order and whether it is pinned."""
    store = _get_store(ctx)
    _echo_order(store.load_order())


@order_app.command("pin")
def order_pin(ctx: typer.Context):
    """Freeze the current order; access no longer reorders."""
    store = _get_store(ctx)
    try:
        _echo_order(store.order.set_fixed(True))
    except OSError as e:
        _fail(e, "order pin", store.dir)


@order_app.command("unpin")
def order_unpin(ctx: typer.Context):
    """Resume most-recently-used ordering."""
    store = _get_store(ctx)
    try:
        _echo_order(store.order.set_fixed(False))
    except OSError as e:
        _fail(e, "order unpin", store.dir)


@order_app.command("set")
def order_set(
    ctx: typer.Context,
    names: Annotated[list[str], typer.Argument(help="Environment names, first shown first")],
):
    """Replace the recorded order."""
    store = _get_store(ctx)
    try:
        _echo_order(store.order.set_order(names))
    except (EnvStoreError, OSError) as e:
        _fail(e, "order set", store.dir)


@order_app.command("prune")
def order_prune(ctx: typer.Context):
    """Remove order entries of deleted environments."""
    store = _get_store(ctx)
    try:
        removed = store.prune_order()
    except OSError as e:
        _fail(e, "order prune", store.dir)
    if _get_json_output():
        typer.echo(json.dumps(removed))
        return
    for file_name in removed:
        typer.echo(f"Removed {file_name}")
    if not removed:
        typer.echo("Nothing to prune.")


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        log_path = log_exception(e, context="envstore CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
