"""Shared utility functions for create-react-app.

Provides async command execution, JSON I/O, and Rich-based console
reporting. Everything that talks to the terminal goes through the module
level ``console`` so tests can capture or silence it in one place.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: int = 120,
    capture: bool = True,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a command asynchronously.

    Args:
        cmd: Program and arguments. No shell is involved.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
        capture: Whether to capture stdout/stderr (if ``False`` they inherit
            the parent's streams, which is what installs want).
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  If *capture* is ``False``
        the stdout/stderr strings will be empty.

    Raises:
        FileNotFoundError: If the program does not exist.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    stdout_pipe = asyncio.subprocess.PIPE if capture else None
    stderr_pipe = asyncio.subprocess.PIPE if capture else None

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=stdout_pipe,
        stderr=stderr_pipe,
        cwd=str(cwd) if cwd else None,
        env=merged_env,
    )

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


async def query_command(cmd: list[str], cwd: str | Path | None = None, timeout: int = 30) -> str | None:
    """Run a short query command and return its stdout, or ``None`` on any failure.

    Used for ``--version`` style probes where a missing binary simply means
    "unknown".
    """
    try:
        returncode, stdout, _ = await run_command(cmd, cwd=cwd, timeout=timeout)
    except OSError:
        return None
    if returncode != 0:
        return None
    return stdout


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> dict[str, Any]:
    """Load and parse a JSON object from *path*.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the top-level value is not an object.
    """
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {path}")
    return data


def write_json(data: dict[str, Any], path: str | Path) -> None:
    """Write *data* as two-space indented JSON with a trailing newline."""
    Path(path).write_text(json.dumps(data, indent=2) + os.linesep, encoding="utf-8")


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


STEP_NAMES: dict[int, str] = {
    1: "VALIDATE",
    2: "RESOLVE",
    3: "ESTABLISH ROOT",
    4: "PREFLIGHT",
    5: "IDENTIFY",
    6: "NEGOTIATE",
    7: "INSTALL",
    8: "INITIALIZE",
}


def print_step_header(step: int, name: str) -> None:
    """Print a dim rule naming the step, used in verbose mode."""
    console.print(Rule(f"[dim]{step}. {name}[/dim]", style="dim"))


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[yellow]{message}[/yellow]")


def print_verbose(message: str, verbose: bool) -> None:
    """Print a dim diagnostic line only when *verbose* is set."""
    if verbose:
        console.print(f"[dim]{message}[/dim]")
