"""Package-manager and init-script invocation.

Command lines are built by pure functions so the exact flags can be tested
without spawning anything; :func:`install` and :func:`run_init_script`
execute them in the app root with inherited stdio.
"""

from __future__ import annotations

import json
from pathlib import Path

from create_react_app.config import Config
from create_react_app.models import PackageManager, WorkingContext
from create_react_app.utils import console, print_warning, run_command

PNP_FILES = (".pnp.js", ".pnp.cjs")

INIT_BOOTSTRAP = (
    "var init = require('{package}/scripts/init.js');\n"
    "init.apply(null, JSON.parse(process.argv[1]));"
)


class InstallError(Exception):
    """Raised when a child process exits non-zero.

    ``command`` holds the failed command line so it can be shown to the user.
    """

    def __init__(self, command: str, returncode: int | None = None, detail: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.detail = detail
        message = f"{command} has failed"
        if returncode is not None:
            message += f" (exit {returncode})"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Command assembly
# ---------------------------------------------------------------------------


def build_install_command(
    manager: PackageManager,
    dependencies: list[str],
    root: Path,
    *,
    use_pnp: bool = False,
    verbose: bool = False,
    is_online: bool = True,
    config: Config | None = None,
) -> list[str]:
    """Return the argv that installs *dependencies* as exact pins.

    Yarn gets ``--cwd`` so it cannot wander off to a parent project; npm has
    no working equivalent, which is why npm's cwd is verified in preflight.
    """
    toolchain = (config or Config()).toolchain
    if manager is PackageManager.YARN:
        cmd = [toolchain.yarn_command, "add", "--exact"]
        if not is_online:
            cmd.append("--offline")
        if use_pnp:
            cmd.append("--enable-pnp")
        cmd.extend(dependencies)
        cmd.extend(["--cwd", str(root)])
    else:
        cmd = [
            toolchain.npm_command,
            "install",
            "--save",
            "--save-exact",
            "--loglevel",
            "error",
            *dependencies,
        ]
    if verbose:
        cmd.append("--verbose")
    return cmd


def init_script_arguments(
    context: WorkingContext, verbose: bool, template_name: str | None
) -> str:
    """Serialise the positional arguments ``scripts/init.js`` is applied with."""
    return json.dumps([
        str(context.root_dir),
        context.app_name,
        verbose,
        str(context.original_dir),
        template_name,
    ])


def find_pnp_file(root: Path) -> Path | None:
    for name in PNP_FILES:
        candidate = root / name
        if candidate.exists():
            return candidate
    return None


def build_init_command(
    package_name: str,
    context: WorkingContext,
    verbose: bool,
    template_name: str | None,
    config: Config | None = None,
) -> list[str]:
    """Return the ``node -e`` argv that runs the installed package's init script."""
    toolchain = (config or Config()).toolchain
    node_args: list[str] = []
    pnp_file = find_pnp_file(context.root_dir)
    if pnp_file is not None:
        node_args = ["--require", str(pnp_file)]
    return [
        toolchain.node_command,
        *node_args,
        "-e",
        INIT_BOOTSTRAP.format(package=package_name),
        "--",
        init_script_arguments(context, verbose, template_name),
    ]


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


async def _run_inherited(cmd: list[str], cwd: Path, timeout: int, display: str) -> None:
    try:
        returncode, _, stderr = await run_command(cmd, cwd=cwd, timeout=timeout, capture=False)
    except OSError as exc:
        raise InstallError(display, detail=str(exc)) from exc
    if returncode != 0:
        raise InstallError(display, returncode=returncode, detail=stderr)


async def install(
    manager: PackageManager,
    dependencies: list[str],
    context: WorkingContext,
    config: Config,
    *,
    use_pnp: bool = False,
    is_online: bool = True,
) -> list[str]:
    """Install *dependencies* into the app root and return the argv used.

    Raises:
        InstallError: If the package manager cannot be started or exits non-zero.
    """
    if manager is PackageManager.YARN and not is_online:
        print_warning("You appear to be offline.")
        print_warning("Falling back to the local Yarn cache.")
        console.print()
    if manager is PackageManager.NPM and use_pnp:
        print_warning("NPM doesn't support PnP.")
        print_warning("Falling back to the regular installs.")
        console.print()

    cmd = build_install_command(
        manager,
        dependencies,
        context.root_dir,
        use_pnp=use_pnp and manager is PackageManager.YARN,
        verbose=config.verbose,
        is_online=is_online,
        config=config,
    )
    await _run_inherited(cmd, context.root_dir, config.timeouts.install, " ".join(cmd))
    return cmd


async def run_init_script(
    package_name: str,
    context: WorkingContext,
    config: Config,
    template_name: str | None,
) -> list[str]:
    """Hand over to ``<package>/scripts/init.js`` and return the argv used.

    Raises:
        InstallError: If node cannot be started or the script exits non-zero.
    """
    cmd = build_init_command(package_name, context, config.verbose, template_name, config)
    # Shown without the -e source and its JSON payload.
    display = " ".join([cmd[0], *cmd[1:cmd.index("-e")]])
    await _run_inherited(cmd, context.root_dir, config.timeouts.init_script, display)
    return cmd
