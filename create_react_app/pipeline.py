"""create-react-app orchestrator.

Drives a bootstrap run through its steps:

Step 1: VALIDATE       -- Project name obeys npm naming rules.
Step 2: RESOLVE        -- react-scripts and template references (concurrently).
Step 3: ESTABLISH ROOT -- Create the directory, check for conflicts, write package.json.
Step 4: PREFLIGHT      -- Node/npm/Yarn versions, npm cwd, connectivity.
Step 5: IDENTIFY       -- Name and version behind both references (concurrently).
Step 6: NEGOTIATE      -- Does this react-scripts understand --template?
Step 7: INSTALL        -- npm or Yarn with the assembled dependency list.
Step 8: INITIALIZE     -- Patch package.json, check engines, run scripts/init.js.

Any failure from step 4 on rolls back the files the run generated.

Usage::

    python -m create_react_app.pipeline my-app
    python -m create_react_app.pipeline my-app --template typescript --use-npm
"""

from __future__ import annotations

import asyncio
import shutil
import sys
import traceback
from pathlib import Path

from create_react_app import __version__
from create_react_app.config import Config
from create_react_app.identity import get_package_info
from create_react_app.installer import InstallError, install, run_init_script
from create_react_app.manifest import (
    EngineError,
    ManifestError,
    check_engine_requirement,
    new_app_manifest,
    set_caret_range_for_runtime_deps,
    write_manifest,
)
from create_react_app.models import (
    REGISTRY_KINDS,
    CreateResult,
    InstallPlan,
    PackageInfo,
    PackageManager,
    PreflightResult,
    WorkingContext,
)
from create_react_app.naming import validate_package_name
from create_react_app.preflight import (
    PreflightAbort,
    check_directory,
    run_preflight,
    should_use_yarn,
)
from create_react_app.resolver import (
    ConfirmFn,
    UserCancelled,
    resolve_install_package,
    resolve_template_package,
)
from create_react_app.utils import (
    STEP_NAMES,
    console,
    print_error,
    print_step_header,
    print_summary_table,
    print_verbose,
    print_warning,
)
from create_react_app.version_check import OutdatedToolError, ensure_latest
from create_react_app.versions import coerce_version, version_gte

# Removed from the app root when an install fails.
KNOWN_GENERATED_FILES = ("package.json", "yarn.lock", "node_modules")

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CreateAppError(Exception):
    """Raised when a step fails irrecoverably."""

    def __init__(self, step: int, message: str) -> None:
        self.step = step
        super().__init__(message)


class ProjectNameError(CreateAppError):
    """Raised when the project name cannot be used as a package name."""

    def __init__(self, app_name: str, problems: list[str]) -> None:
        self.app_name = app_name
        self.problems = problems
        super().__init__(1, f'Cannot create a project named "{app_name}"')


# ---------------------------------------------------------------------------
# Pure decision helpers
# ---------------------------------------------------------------------------


def validate_project_name(app_name: str, config: Config) -> None:
    """Reject names npm would refuse, or that shadow a runtime dependency.

    Raises:
        ProjectNameError: With every problem found.
    """
    validation = validate_package_name(app_name)
    if not validation.valid_for_new_packages:
        raise ProjectNameError(app_name, validation.problems)

    reserved = config.packages.reserved_names()
    if app_name in reserved:
        raise ProjectNameError(
            app_name,
            [
                "a dependency with the same name exists. Due to the way npm works, "
                f"the following names are not allowed: {', '.join(reserved)}"
            ],
        )


def supports_templates(package_info: PackageInfo, minimum: str) -> bool:
    """Whether the react-scripts behind *package_info* understands ``--template``.

    Registry names and dist-tags without a usable version resolve to a
    current release and are assumed compatible. Anything else whose version
    cannot be read (git URLs, unreadable tarballs) is not.
    """
    if coerce_version(package_info.version) is None:
        return package_info.kind in REGISTRY_KINDS
    return version_gte(package_info.version, minimum)


def build_install_plan(
    package_to_install: str,
    template_to_install: str,
    package_info: PackageInfo,
    template_info: PackageInfo,
    config: Config,
    used_legacy_fallback: bool = False,
) -> InstallPlan:
    """Assemble the dependency list for the package manager."""
    supported = supports_templates(package_info, config.packages.templates_version_minimum)
    dependencies = [*config.packages.runtime_dependencies, package_to_install]
    if supported:
        dependencies.append(template_to_install)
    return InstallPlan(
        dependencies=dependencies,
        package_info=package_info,
        template_info=template_info,
        supports_template=supported,
        used_legacy_fallback=used_legacy_fallback,
    )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class AppCreator:
    """Bootstraps one React app.

    Attributes:
        config: Options and defaults for this run.
        context: Original and root directories, set once the name is known.
        confirm: Yes/no prompt used for deprecated packages (injectable).
    """

    def __init__(
        self,
        config: Config,
        original_dir: Path | None = None,
        confirm: ConfirmFn | None = None,
    ) -> None:
        self.config = config
        self.context = WorkingContext.for_project(config.project_name, original_dir)
        self.confirm = confirm
        self.manager: PackageManager = PackageManager.NPM
        self.preflight: PreflightResult | None = None

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self) -> CreateResult:
        """Execute every step and return the outcome.

        Never raises for expected failures; the result carries the exit
        code ``main`` should use.
        """
        try:
            if not self.config.skip_version_check:
                await ensure_latest(self.config)
            self._step(1)
            validate_project_name(self.context.app_name, self.config)
            self._step(2)
            package_to_install, template_to_install = await self.resolve()
            self._step(3)
            await self.establish_root()
        except UserCancelled:
            return CreateResult(success=True, exit_code=0)
        except ProjectNameError as exc:
            self._report_name_error(exc)
            return CreateResult(error=str(exc))
        except (PreflightAbort, OutdatedToolError) as exc:
            return CreateResult(root_dir=self.context.root_dir, error=str(exc))
        except OSError as exc:
            print_error(f"Could not create {self.context.root_dir}: {exc}")
            return CreateResult(error=str(exc))

        try:
            plan = await self.install_app(package_to_install, template_to_install)
        except Exception as exc:
            self._report_install_failure(exc)
            try:
                self.rollback()
            except OSError as cleanup_exc:
                print_error(f"Could not remove generated files: {cleanup_exc}")
                return CreateResult(root_dir=self.context.root_dir, error=str(exc))
            return CreateResult(
                root_dir=self.context.root_dir, error=str(exc), rolled_back=True
            )

        if self.config.verbose:
            print_summary_table(
                {
                    "App": str(self.context.root_dir),
                    "Package manager": self.manager.value,
                    "Dependencies": ", ".join(plan.dependencies),
                    "Template": plan.template_name or "(none)",
                },
                title="create-react-app",
            )
        return CreateResult(
            success=True, exit_code=0, root_dir=self.context.root_dir, plan=plan
        )

    def _step(self, step: int) -> None:
        if self.config.verbose:
            print_step_header(step, STEP_NAMES[step])

    # ------------------------------------------------------------------
    # Steps 2-3
    # ------------------------------------------------------------------

    async def resolve(self) -> tuple[str, str]:
        """Resolve the react-scripts and template references concurrently."""
        package_to_install, template_to_install = await asyncio.gather(
            resolve_install_package(
                self.config.scripts_version, self.context, self.config, self.confirm
            ),
            resolve_template_package(self.config.template, self.context, self.config),
        )
        print_verbose(f"react-scripts reference: {package_to_install}", self.config.verbose)
        print_verbose(f"template reference: {template_to_install}", self.config.verbose)
        return package_to_install, template_to_install

    async def establish_root(self) -> None:
        """Create the app directory and its initial package.json.

        Raises:
            PreflightAbort: If the directory already holds conflicting files;
                nothing is modified in that case.
        """
        root = self.context.root_dir
        root.mkdir(parents=True, exist_ok=True)
        if not check_directory(root, self.config.project_name).safe:
            raise PreflightAbort(f"{root} contains files that could conflict")

        console.print()
        console.print(f"Creating a new React app in [green]{root}[/green].")
        console.print()

        write_manifest(root, new_app_manifest(self.context.app_name))

        if self.config.use_npm:
            self.manager = PackageManager.NPM
        elif await should_use_yarn(self.config):
            self.manager = PackageManager.YARN
        else:
            self.manager = PackageManager.NPM
        print_verbose(f"package manager: {self.manager.value}", self.config.verbose)

    # ------------------------------------------------------------------
    # Steps 4-8
    # ------------------------------------------------------------------

    async def install_app(self, package_to_install: str, template_to_install: str) -> InstallPlan:
        """Preflight, install and initialise. Every failure here is rolled back."""
        self._step(4)
        self.preflight = await run_preflight(
            self.manager, self.config.use_pnp, self.context, self.config
        )
        if not self.preflight.ok:
            raise PreflightAbort("npm cannot run in the app directory")
        used_legacy = self.preflight.use_legacy_scripts
        if used_legacy:
            package_to_install = self.config.packages.legacy_scripts

        console.print("Installing packages. This might take a couple of minutes.")

        self._step(5)
        package_info, template_info = await asyncio.gather(
            get_package_info(package_to_install, self.context, self.config),
            get_package_info(template_to_install, self.context, self.config),
        )

        self._step(6)
        plan = build_install_plan(
            package_to_install,
            template_to_install,
            package_info,
            template_info,
            self.config,
            used_legacy_fallback=used_legacy,
        )
        if not plan.supports_template and self.config.template:
            verdict = (
                "is not"
                if package_info.name == self.config.packages.scripts_package
                else "may not be"
            )
            console.print()
            console.print(
                f"The [cyan]{package_info.name}[/cyan] version you're using {verdict} "
                "compatible with the [cyan]--template[/cyan] option."
            )
            console.print()

        with_template = (
            f" with [cyan]{template_info.name}[/cyan]" if plan.supports_template else ""
        )
        console.print(
            "Installing [cyan]react[/cyan], [cyan]react-dom[/cyan], and "
            f"[cyan]{package_info.name}[/cyan]{with_template}..."
        )
        console.print()

        self._step(7)
        await install(
            self.manager,
            plan.dependencies,
            self.context,
            self.config,
            use_pnp=self.preflight.use_pnp,
            is_online=self.preflight.is_online,
        )

        self._step(8)
        set_caret_range_for_runtime_deps(
            self.context.root_dir,
            package_info.name,
            self.config.packages.runtime_dependencies,
        )
        check_engine_requirement(
            self.context.root_dir, package_info.name, self.preflight.node_version
        )
        await run_init_script(package_info.name, self.context, self.config, plan.template_name)

        if used_legacy:
            print_warning(
                "\nNote: the project was bootstrapped with an old unsupported version of tools.\n"
                "Please update to Node >=10 and npm >=6 to get supported tools in new projects.\n"
            )
        return plan

    # ------------------------------------------------------------------
    # Failure handling
    # ------------------------------------------------------------------

    def rollback(self) -> list[str]:
        """Delete the files this run generated; remove the root if it ends up empty.

        Returns the names that were deleted.
        """
        root = self.context.root_dir
        deleted: list[str] = []
        if not root.is_dir():
            return deleted

        for name in KNOWN_GENERATED_FILES:
            target = root / name
            if not (target.exists() or target.is_symlink()):
                continue
            console.print(f"Deleting generated file... [cyan]{name}[/cyan]")
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
            deleted.append(name)

        if not any(root.iterdir()):
            console.print(
                f"Deleting [cyan]{self.context.app_name}/[/cyan] from [cyan]{root.parent}[/cyan]"
            )
            root.rmdir()
        console.print("Done.")
        return deleted

    def _report_name_error(self, exc: ProjectNameError) -> None:
        print_error(
            f'Cannot create a project named "{exc.app_name}" because of npm naming restrictions:\n'
        )
        for problem in exc.problems:
            print_error(f"  * {problem}")
        print_error("\nPlease choose a different project name.")

    def _report_install_failure(self, exc: Exception) -> None:
        console.print()
        console.print("Aborting installation.")
        if isinstance(exc, InstallError):
            console.print(f"  [cyan]{exc.command}[/cyan] has failed.")
        elif isinstance(exc, (PreflightAbort, ManifestError, EngineError)):
            print_error(str(exc))
        else:
            print_error("Unexpected error. Please report it as a bug:")
            console.print(f"[dim]{traceback.format_exc()}[/dim]")
        console.print()


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``create-react-app``."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="create-react-app",
        usage="%(prog)s <project-directory> [options]",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "A custom --scripts-version can be one of:\n"
            "  - a specific npm version: 0.8.2\n"
            "  - a specific npm tag: @next\n"
            "  - a custom fork published on npm: my-react-scripts\n"
            "  - a local path relative to the current working directory: file:../my-react-scripts\n"
            "  - a .tgz archive: https://mysite.com/my-react-scripts-0.8.2.tgz\n"
            "  - a .tar.gz archive: https://mysite.com/my-react-scripts-0.8.2.tar.gz\n"
            "\n"
            "A custom --template can be one of:\n"
            "  - a custom template published on npm: cra-template-typescript\n"
            "  - a local path relative to the current working directory: file:../my-custom-template\n"
            "  - a .tgz archive: https://mysite.com/my-custom-template-0.8.2.tgz\n"
            "  - a .tar.gz archive: https://mysite.com/my-custom-template-0.8.2.tar.gz\n"
        ),
    )
    parser.add_argument("project_directory", nargs="?", help="Directory to create the app in")
    parser.add_argument("-V", "--version", action="version", version=__version__)
    parser.add_argument("--verbose", action="store_true", help="print additional logs")
    parser.add_argument(
        "--scripts-version",
        metavar="<alternative-package>",
        help="use a non-standard version of react-scripts",
    )
    parser.add_argument(
        "--template",
        metavar="<path-to-template>",
        help="specify a template for the created project",
    )
    parser.add_argument("--use-npm", action="store_true")
    parser.add_argument("--use-pnp", action="store_true")

    args, _unknown = parser.parse_known_args(argv)

    if not args.project_directory:
        print_error("Please specify the project directory:")
        console.print("  [cyan]create-react-app[/cyan] [green]<project-directory>[/green]")
        console.print()
        console.print("For example:")
        console.print("  [cyan]create-react-app[/cyan] [green]my-react-app[/green]")
        console.print()
        console.print("Run [cyan]create-react-app --help[/cyan] to see all options.")
        sys.exit(1)

    config = Config.from_env(
        project_name=args.project_directory,
        verbose=args.verbose,
        scripts_version=args.scripts_version,
        template=args.template,
        use_npm=args.use_npm,
        use_pnp=args.use_pnp,
    )
    result = asyncio.run(AppCreator(config).run())
    sys.exit(result.exit_code)


if __name__ == "__main__":
    main()
