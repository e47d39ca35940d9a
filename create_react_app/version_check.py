"""Make sure the running tool is the latest release.

The registry is asked directly first; when that fails (firewalls, private
registries) ``npm view`` is tried, since npm already knows how to reach
whatever registry the user has configured.
"""

from __future__ import annotations

import httpx

from create_react_app.config import Config
from create_react_app.utils import console, print_warning, query_command
from create_react_app.versions import coerce_version


class OutdatedToolError(Exception):
    """Raised when a newer release of the tool is available."""

    def __init__(self, current: str, latest: str) -> None:
        self.current = current
        self.latest = latest
        super().__init__(
            f"You are running create-react-app {current}, which is behind the "
            f"latest release ({latest})."
        )


async def fetch_latest_from_registry(config: Config) -> str | None:
    """Read the ``latest`` dist-tag from the registry, or ``None`` on any failure."""
    try:
        async with httpx.AsyncClient(timeout=httpx.Timeout(config.timeouts.http)) as client:
            response = await client.get(config.registry.dist_tags_url)
            if response.status_code != 200:
                return None
            payload = response.json()
    except (httpx.HTTPError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    latest = payload.get("latest")
    return latest if isinstance(latest, str) else None


async def check_for_latest_version(config: Config) -> str | None:
    """Return the latest published version, falling back to ``npm view``."""
    latest = await fetch_latest_from_registry(config)
    if latest:
        return latest
    return await query_command(
        [config.toolchain.npm_command, "view", config.registry.tool_name, "version"],
        timeout=config.timeouts.version_query,
    )


async def ensure_latest(config: Config) -> str | None:
    """Refuse to run an outdated tool.

    Returns the latest version seen (``None`` when it could not be
    determined, in which case the run continues).

    Raises:
        OutdatedToolError: If ``config.tool_version`` is behind the registry.
    """
    latest = await check_for_latest_version(config)
    current = coerce_version(config.tool_version)
    newest = coerce_version(latest)
    if current is None or newest is None or current >= newest:
        return latest

    console.print()
    print_warning(
        f"You are running `create-react-app` {config.tool_version}, which is behind "
        f"the latest release ({latest}).\n\n"
        "We no longer support global installation of Create React App."
    )
    console.print()
    console.print(
        "Please remove any global installs with one of the following commands:\n"
        "- npm uninstall -g create-react-app\n"
        "- yarn global remove create-react-app"
    )
    console.print()
    console.print(
        "The latest instructions for creating a new app can be found here:\n"
        "https://create-react-app.dev/docs/getting-started/"
    )
    console.print()
    raise OutdatedToolError(config.tool_version, latest or "")
