"""
Terminal collaborators for EnvironmentStore: selection, capture and key prompts.
"""

import click
import typer

from .errors import SelectionFailed
from .protocol import KeySource


def terminal_presenter(label: str, items: list[str]) -> int:
    """Numbered list on stdout, 1-based choice on stdin. Returns a 0-based index."""
    if not items:
        raise SelectionFailed("nothing to select")
    typer.echo(f"{label}:")
    width = len(str(len(items)))
    for i, item in enumerate(items, 1):
        typer.echo(f"  {i:>{width}}) {item}")
    try:
        choice = typer.prompt("Choice", type=click.IntRange(1, len(items)))
    except (click.exceptions.Abort, EOFError) as e:
        raise SelectionFailed("selection cancelled") from e
    return choice - 1


def prompt_key_values(name: str) -> dict[str, str]:
    """
    Capture a new environment as KEY=VALUE lines, ended by an empty line.

    Lines without ``=`` are rejected and asked again.
    """
    typer.echo(f"Environment {name!r} does not exist yet, please enter below.")
    typer.echo("One KEY=VALUE per line, empty line to finish:")
    values: dict[str, str] = {}
    while True:
        line = typer.prompt("", default="", show_default=False, prompt_suffix="> ").strip()
        if not line:
            return values
        key, sep, value = line.partition("=")
        if not sep or not key.strip():
            typer.echo(f"Expected KEY=VALUE, got: {line}", err=True)
            continue
        values[key.strip()] = value.strip()


def passphrase_key_source(prompt: str = "Passphrase") -> KeySource:
    """Key source that asks for a hidden passphrase once per process."""
    cached: list[bytes] = []

    def source() -> bytes:
        if not cached:
            cached.append(typer.prompt(prompt, hide_input=True).encode("utf-8"))
        return cached[0]

    return source

