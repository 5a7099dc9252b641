"""
Wardline CLI - styled output helpers built on Click.

All output degrades gracefully on non-colour terminals (click.style
handles NO_COLOR / TERM=dumb).
"""

from __future__ import annotations

from typing import Sequence

import click

_L_H = "─"


def success(message: str) -> None:
    click.echo(click.style(message, fg="green"))


def error(message: str) -> None:
    click.echo(click.style(message, fg="red"), err=True)


def warning(message: str) -> None:
    click.echo(click.style(message, fg="yellow"))


def info(message: str) -> None:
    click.echo(click.style(message, fg="cyan"))


def kv(key: str, value: object, *, key_width: int = 18, indent: int = 2) -> None:
    """
    Print an aligned key-value pair.

        Schema version:   0.1.0
        Controllers:      12
    """
    padding = " " * max(1, key_width - len(key) - 1)
    click.echo(f"{' ' * indent}{key}:{padding}{click.style(str(value), fg='cyan')}")


def table(headers: Sequence[str], rows: Sequence[Sequence[object]], *, indent: int = 2) -> None:
    """
    Print a minimal aligned table.

        Type      Handle      Controller
        ───────── ─────────── ─────────────────────────
        view      product     handlers.product:ProductPage
    """
    prefix = " " * indent
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))
    widths = [w + 2 for w in widths]

    click.echo(prefix + click.style("".join(h.ljust(w) for h, w in zip(headers, widths)), fg="cyan", bold=True))
    click.echo(prefix + click.style("".join(_L_H * (w - 1) + " " for w in widths), dim=True))
    for row in rows:
        click.echo(prefix + "".join(str(cell).ljust(w) for cell, w in zip(row, widths)))
