"""Log streamer CLI — Typer-based command-line interface.

Provides the ``logstreamer`` command with subcommands for following a
job's console live, printing build status, and dumping a build log.

All output uses Rich for formatted terminal display.
"""
