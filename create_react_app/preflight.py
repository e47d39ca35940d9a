"""Environment checks run before anything is installed.

Each check only reports. The one exception is the directory check, which
deletes leftover package-manager error logs once the directory is known to
be otherwise clean. Whether a failed check stops the run is decided by the
orchestrator, which raises :class:`PreflightAbort`.
"""

from __future__ import annotations

import asyncio
import os
import re
import socket
import sys
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from create_react_app.config import Config
from create_react_app.models import DirectoryCheck, PackageManager, PreflightResult, WorkingContext
from create_react_app.utils import console, print_error, print_warning, query_command, run_command
from create_react_app.versions import clean_semver, version_gte, version_lt

# Files a fresh checkout or an IDE may leave behind; they never conflict.
VALID_FILES = (
    ".DS_Store",
    ".git",
    ".gitattributes",
    ".gitignore",
    ".gitlab-ci.yml",
    ".hg",
    ".hgcheck",
    ".hgignore",
    ".idea",
    ".npmignore",
    ".travis.yml",
    "docs",
    "LICENSE",
    "README.md",
    "mkdocs.yml",
    "Thumbs.db",
)

# Left behind by a failed install; tolerated, then removed.
ERROR_LOG_PATTERNS = ("npm-debug.log", "yarn-error.log", "yarn-debug.log")

NPM_CWD_PREFIX = "; cwd = "
_NIGHTLY_RE = re.compile(r"^(.+?)[-+].+$")


class PreflightAbort(Exception):
    """Raised by the orchestrator when a preflight check rules out installing."""


# ---------------------------------------------------------------------------
# Directory safety
# ---------------------------------------------------------------------------


def is_error_log(filename: str) -> bool:
    return any(filename.startswith(pattern) for pattern in ERROR_LOG_PATTERNS)


def find_conflicts(root: Path) -> list[str]:
    """Return the sorted entries of *root* that could clash with a new app."""
    return sorted(
        entry.name
        for entry in root.iterdir()
        if entry.name not in VALID_FILES
        and not entry.name.endswith(".iml")
        and not is_error_log(entry.name)
    )


def check_directory(root: Path, display_name: str) -> DirectoryCheck:
    """Check that *root* holds nothing an app would overwrite.

    On conflicts the offending entries are printed and the directory is
    left untouched. Otherwise stale error logs are removed.
    """
    conflicts = find_conflicts(root)
    if conflicts:
        console.print(
            f"The directory [green]{display_name}[/green] contains files that could conflict:"
        )
        console.print()
        for name in conflicts:
            if (root / name).is_dir():
                console.print(f"  [blue]{name}/[/blue]")
            else:
                console.print(f"  {name}")
        console.print()
        console.print("Either try using a new directory name, or remove the files listed above.")
        return DirectoryCheck(safe=False, conflicts=conflicts)

    removed: list[str] = []
    for entry in root.iterdir():
        if is_error_log(entry.name) and entry.is_file():
            entry.unlink()
            removed.append(entry.name)
    return DirectoryCheck(safe=True, removed_logs=sorted(removed))


# ---------------------------------------------------------------------------
# Toolchain versions
# ---------------------------------------------------------------------------


@dataclass
class NodeInfo:
    version: str | None
    supported: bool


@dataclass
class NpmInfo:
    version: str | None
    has_min_npm: bool


@dataclass
class YarnInfo:
    version: str | None
    has_min_yarn_pnp: bool
    has_max_yarn_pnp: bool


async def should_use_yarn(config: Config) -> bool:
    """``True`` if ``yarnpkg --version`` runs successfully."""
    output = await query_command(
        [config.toolchain.yarn_command, "--version"], timeout=config.timeouts.version_query
    )
    return output is not None


async def check_node_version(config: Config) -> NodeInfo:
    """Compare ``node --version`` against the minimum supported Node.

    An undeterminable version is reported as supported; the install step
    will surface a missing Node on its own.
    """
    version = await query_command(
        [config.toolchain.node_command, "--version"], timeout=config.timeouts.version_query
    )
    if version is None:
        return NodeInfo(version=None, supported=True)
    return NodeInfo(version=version, supported=version_gte(version, config.toolchain.min_node))


async def check_npm_version(config: Config) -> NpmInfo:
    """Compare ``npm --version`` against the minimum supported npm."""
    version = await query_command(
        [config.toolchain.npm_command, "--version"], timeout=config.timeouts.version_query
    )
    exact = clean_semver(version)
    has_min = exact is not None and version_gte(exact, config.toolchain.min_npm)
    return NpmInfo(version=version, has_min_npm=has_min)


async def check_yarn_version(config: Config) -> YarnInfo:
    """Place ``yarnpkg --version`` inside the ``[min, max)`` PnP window.

    Nightly builds report strings such as ``1.13.0-20181204.1002`` that are
    truncated at the first ``-`` or ``+`` before comparing.
    """
    version = await query_command(
        [config.toolchain.yarn_command, "--version"], timeout=config.timeouts.version_query
    )
    comparable = clean_semver(version)
    if comparable is None and version:
        match = _NIGHTLY_RE.match(version)
        if match:
            comparable = clean_semver(match.group(1))
    if comparable is None:
        return YarnInfo(version=version, has_min_yarn_pnp=False, has_max_yarn_pnp=False)
    return YarnInfo(
        version=version,
        has_min_yarn_pnp=version_gte(comparable, config.toolchain.min_yarn_pnp),
        has_max_yarn_pnp=version_lt(comparable, config.toolchain.max_yarn_pnp),
    )


def negotiate_pnp(yarn: YarnInfo, use_pnp: bool) -> tuple[bool, list[str]]:
    """Decide whether ``--enable-pnp`` can be passed to this Yarn.

    Returns the effective flag and the messages explaining any downgrade.
    """
    messages: list[str] = []
    if not use_pnp or not yarn.version:
        return use_pnp, messages
    if not yarn.has_min_yarn_pnp:
        messages.append(
            f"You are using Yarn {yarn.version} together with the --use-pnp flag, but "
            "Plug'n'Play is only supported starting from the 1.12 release.\n\n"
            "Please update to Yarn 1.12 or higher for a better, fully supported experience."
        )
        use_pnp = False
    if not yarn.has_max_yarn_pnp:
        messages.append(
            "The --use-pnp flag is no longer necessary with yarn 2 and will be "
            "deprecated and removed in a future release."
        )
        use_pnp = False
    return use_pnp, messages


# ---------------------------------------------------------------------------
# npm working directory
# ---------------------------------------------------------------------------


def parse_npm_cwd(config_list_output: str) -> str | None:
    """Extract the ``; cwd = <path>`` value from ``npm config list`` output."""
    for line in config_list_output.splitlines():
        if line.startswith(NPM_CWD_PREFIX):
            return line[len(NPM_CWD_PREFIX):].strip()
    return None


async def check_npm_can_read_cwd(root: Path, config: Config) -> bool:
    """Verify a freshly spawned npm sees *root* as its working directory.

    A misconfigured shell (e.g. a Windows ``AutoRun`` key that ``cd``\\s
    elsewhere) makes npm install into the wrong place. If npm cannot be
    started or does not print its cwd, the check passes.
    """
    try:
        _, stdout, stderr = await run_command(
            [config.toolchain.npm_command, "config", "list"],
            cwd=root,
            timeout=config.timeouts.version_query,
        )
    except OSError:
        return True

    npm_cwd = parse_npm_cwd(f"{stdout}\n{stderr}")
    if npm_cwd is None or Path(npm_cwd).resolve() == root.resolve():
        return True

    print_error(
        "Could not start an npm process in the right directory.\n\n"
        f"The current directory is: {root}\n"
        f"However, a newly started npm process runs in: {npm_cwd}\n\n"
        "This is probably caused by a misconfigured system terminal shell."
    )
    if sys.platform == "win32":
        console.print(
            "[red]On Windows, this can usually be fixed by running:[/red]\n\n"
            '  [cyan]reg[/cyan] delete "HKCU\\Software\\Microsoft\\Command Processor" /v AutoRun /f\n'
            '  [cyan]reg[/cyan] delete "HKLM\\Software\\Microsoft\\Command Processor" /v AutoRun /f\n\n'
            "[red]Try to run the above two lines in the terminal.[/red]\n"
            "[red]To learn more about this problem, read: "
            "https://blogs.msdn.microsoft.com/oldnewthing/20071121-00/?p=24433/[/red]"
        )
    return False


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


async def resolve_host(hostname: str) -> bool:
    """``True`` if *hostname* resolves via DNS."""
    loop = asyncio.get_running_loop()
    try:
        await loop.getaddrinfo(hostname, None)
    except (socket.gaierror, UnicodeError, OSError):
        return False
    return True


async def get_proxy(config: Config) -> str | None:
    """Return the HTTPS proxy from ``https_proxy`` or npm's config, if any."""
    env_proxy = os.environ.get("https_proxy")
    if env_proxy:
        return env_proxy
    proxy = await query_command(
        [config.toolchain.npm_command, "config", "get", "https-proxy"],
        timeout=config.timeouts.version_query,
    )
    if not proxy or proxy == "null":
        return None
    return proxy


async def check_if_online(manager: PackageManager, config: Config) -> bool:
    """Guess whether the registry is reachable.

    Only Yarn needs this (it has an offline mode); npm is assumed online.
    When the registry does not resolve but a proxy is configured, resolving
    the proxy host is taken as the signal instead.
    """
    if manager is not PackageManager.YARN:
        return True
    if await resolve_host(config.registry.yarn_registry_host):
        return True
    proxy = await get_proxy(config)
    if not proxy:
        return False
    hostname = urlparse(proxy).hostname
    if not hostname:
        return False
    return await resolve_host(hostname)


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------


async def run_preflight(
    manager: PackageManager,
    use_pnp: bool,
    context: WorkingContext,
    config: Config,
) -> PreflightResult:
    """Run the checks relevant to *manager* and collect their directives."""
    result = PreflightResult(use_pnp=use_pnp)

    node = await check_node_version(config)
    result.node_version = node.version
    if not node.supported:
        message = (
            f"You are using Node {node.version} so the project will be bootstrapped "
            "with an old unsupported version of tools.\n\n"
            "Please update to Node 10 or higher for a better, fully supported experience."
        )
        print_warning(message)
        result.messages.append(message)
        result.use_legacy_scripts = True

    if manager is PackageManager.NPM:
        if not await check_npm_can_read_cwd(context.root_dir, config):
            result.ok = False
            return result

        npm = await check_npm_version(config)
        result.npm_version = npm.version
        if not npm.has_min_npm:
            if npm.version:
                message = (
                    f"You are using npm {npm.version} so the project will be bootstrapped "
                    "with an old unsupported version of tools.\n\n"
                    "Please update to npm 6 or higher for a better, fully supported experience."
                )
                print_warning(message)
                result.messages.append(message)
            result.use_legacy_scripts = True
    elif use_pnp:
        yarn = await check_yarn_version(config)
        result.yarn_version = yarn.version
        result.use_pnp, pnp_messages = negotiate_pnp(yarn, use_pnp)
        for message in pnp_messages:
            print_warning(message)
        result.messages.extend(pnp_messages)

    result.is_online = await check_if_online(manager, config)
    return result
