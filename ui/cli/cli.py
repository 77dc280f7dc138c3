"""CLI entrypoint for the learning streak tracker."""

from __future__ import annotations

import typer

from ui.cli import commands

app = typer.Typer(help="Daily learning streak tracker")
config_app = typer.Typer(help="Configuration commands")


@app.command("start")
def start_cmd(
    topic: str = typer.Argument("", help="What you are learning (blank means the default topic)"),
    duration: str = typer.Option("Week", help="Goal length: Week, Month or Year"),
) -> None:
    """Start a new learning goal."""
    commands.start(topic=topic, duration=duration)


@app.command("update")
def update_cmd(
    topic: str = typer.Argument(..., help="New topic"),
    duration: str = typer.Option("Week", help="Goal length: Week, Month or Year"),
) -> None:
    """Change the current goal. The streak starts over."""
    commands.update(topic=topic, duration=duration)


@app.command("status")
def status_cmd(as_json: bool = typer.Option(False, "--json", help="Print raw state")) -> None:
    """Show today's state, streak and freezes."""
    commands.status(as_json=as_json)


@app.command("tap")
def tap_cmd() -> None:
    """Primary action for today: learn, unlearn or unfreeze."""
    commands.apply_action("tap")


@app.command("learn")
def learn_cmd() -> None:
    """Mark today as learned."""
    commands.apply_action("learn")


@app.command("unlearn")
def unlearn_cmd() -> None:
    """Remove today's learned mark."""
    commands.apply_action("unlearn")


@app.command("freeze")
def freeze_cmd() -> None:
    """Log today as freezed, using one freeze."""
    commands.apply_action("freeze")


@app.command("unfreeze")
def unfreeze_cmd() -> None:
    """Undo today's freeze and get the credit back."""
    commands.apply_action("unfreeze")


@app.command("restart")
def restart_cmd(force: bool = typer.Option(False, "--force", help="Restart before completion")) -> None:
    """Archive the current run and start the same goal again."""
    commands.restart(force=force)


@app.command("calendar")
def calendar_cmd(months: int = typer.Option(3, min=1, max=12)) -> None:
    """Show learned and freezed days of all goals."""
    commands.calendar(months=months)


@app.command("history")
def history_cmd() -> None:
    """List finished goals."""
    commands.history()


@app.command("activity")
def activity_cmd(limit: int = typer.Option(20, min=1, max=500)) -> None:
    """Show recent tracker activity."""
    commands.activity(limit=limit)


@app.command("watch")
def watch_cmd(
    interval: float = typer.Option(0.0, help="Seconds between sweeps (0 uses config)"),
    ticks: int = typer.Option(0, help="Stop after this many sweeps (0 runs until Ctrl-C)"),
) -> None:
    """Keep sweeping for missed days on a timer."""
    commands.watch(interval=interval or None, ticks=ticks)


@app.command("reset")
def reset_cmd(yes: bool = typer.Option(False, "--yes", help="Skip confirmation")) -> None:
    """Remove every goal and its progress."""
    commands.reset(yes=yes)


@config_app.command("show")
def config_show_cmd() -> None:
    """Show effective configuration."""
    commands.config_show()


app.add_typer(config_app, name="config")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
