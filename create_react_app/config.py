"""create-react-app configuration.

Centralised, typed configuration for a bootstrap run. All settings use
Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from create_react_app import __version__


class PackageDefaults(BaseModel):
    """Names and thresholds for the packages a new app is built from.

    ``runtime_dependencies`` are installed into every app and are also the
    names a project may not be called (npm cannot depend on itself).
    """

    scripts_package: str = Field(default="react-scripts")
    template_package: str = Field(default="cra-template")
    runtime_dependencies: list[str] = Field(default=["react", "react-dom"])
    legacy_scripts: str = Field(
        default="react-scripts@0.9.x",
        description="Substituted when Node or npm are too old for current tooling",
    )
    templates_version_minimum: str = Field(
        default="3.3.0",
        description="First react-scripts release that understands --template",
    )
    deprecated_scripts: dict[str, str] = Field(
        default={
            "react-scripts-ts": (
                "The react-scripts-ts package is deprecated. TypeScript is now "
                "supported natively in Create React App. You can use the "
                "--template typescript option instead when generating your app "
                "to include TypeScript support. Would you like to continue "
                "using react-scripts-ts?"
            ),
        },
    )

    def reserved_names(self) -> list[str]:
        """Return the sorted list of names a project may not use."""
        return sorted([*self.runtime_dependencies, self.scripts_package])


class ToolchainConfig(BaseModel):
    """Minimum versions for Node and the package managers."""

    min_node: str = Field(default="10.0.0")
    min_npm: str = Field(default="6.0.0")
    min_yarn_pnp: str = Field(default="1.12.0")
    max_yarn_pnp: str = Field(
        default="2.0.0", description="Yarn 2 enables PnP by default and rejects the flag"
    )
    node_command: str = Field(default="node")
    npm_command: str = Field(default="npm")
    yarn_command: str = Field(default="yarnpkg")


class RegistryConfig(BaseModel):
    """Registry endpoints used for freshness and connectivity checks."""

    dist_tags_url: str = Field(
        default="https://registry.npmjs.org/-/package/create-react-app/dist-tags"
    )
    yarn_registry_host: str = Field(default="registry.yarnpkg.com")
    tool_name: str = Field(default="create-react-app")


class TimeoutConfig(BaseModel):
    """Timeouts, in seconds, for network calls and child processes."""

    http: float = Field(default=10.0, gt=0)
    version_query: int = Field(default=30, ge=1)
    install: int = Field(default=1800, ge=60, description="Package manager install timeout")
    init_script: int = Field(default=1800, ge=60)


class Config(BaseModel):
    """Global create-react-app configuration.

    Holds the per-run options supplied by the CLI together with every
    tuneable default. Instances are created once by ``main`` (or by tests)
    and passed to ``AppCreator``.
    """

    project_name: str = Field(default="")
    verbose: bool = Field(default=False)
    scripts_version: str | None = Field(default=None)
    template: str | None = Field(default=None)
    use_npm: bool = Field(default=False)
    use_pnp: bool = Field(default=False)
    skip_version_check: bool = Field(default=False)
    tool_version: str = Field(default=__version__)

    packages: PackageDefaults = Field(default_factory=PackageDefaults)
    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file and return its path."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls, **overrides: Any) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            CRA_NODE_COMMAND, CRA_NPM_COMMAND, CRA_YARN_COMMAND,
            CRA_DIST_TAGS_URL, CRA_YARN_REGISTRY_HOST,
            CRA_HTTP_TIMEOUT, CRA_INSTALL_TIMEOUT, CRA_SKIP_VERSION_CHECK.

        Keyword *overrides* are applied on top (typically the CLI options).
        """
        toolchain_kwargs: dict[str, Any] = {}
        if os.environ.get("CRA_NODE_COMMAND"):
            toolchain_kwargs["node_command"] = os.environ["CRA_NODE_COMMAND"]
        if os.environ.get("CRA_NPM_COMMAND"):
            toolchain_kwargs["npm_command"] = os.environ["CRA_NPM_COMMAND"]
        if os.environ.get("CRA_YARN_COMMAND"):
            toolchain_kwargs["yarn_command"] = os.environ["CRA_YARN_COMMAND"]

        registry_kwargs: dict[str, Any] = {}
        if os.environ.get("CRA_DIST_TAGS_URL"):
            registry_kwargs["dist_tags_url"] = os.environ["CRA_DIST_TAGS_URL"]
        if os.environ.get("CRA_YARN_REGISTRY_HOST"):
            registry_kwargs["yarn_registry_host"] = os.environ["CRA_YARN_REGISTRY_HOST"]

        timeout_kwargs: dict[str, Any] = {}
        if os.environ.get("CRA_HTTP_TIMEOUT"):
            timeout_kwargs["http"] = float(os.environ["CRA_HTTP_TIMEOUT"])
        if os.environ.get("CRA_INSTALL_TIMEOUT"):
            timeout_kwargs["install"] = int(os.environ["CRA_INSTALL_TIMEOUT"])

        skip = os.environ.get("CRA_SKIP_VERSION_CHECK", "").lower() in ("1", "true", "yes")

        values: dict[str, Any] = {
            "toolchain": ToolchainConfig(**toolchain_kwargs),
            "registry": RegistryConfig(**registry_kwargs),
            "timeouts": TimeoutConfig(**timeout_kwargs),
            "skip_version_check": skip,
        }
        values.update(overrides)
        return cls(**values)
