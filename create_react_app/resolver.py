"""Turn user-supplied ``--scripts-version`` / ``--template`` strings into
installable package references.

Both resolvers are decision tables: an ordered list of
``(predicate, transform)`` rules where the first matching predicate wins.
Relative ``file:`` paths always resolve against the directory the user ran
the tool from (``WorkingContext.original_dir``).
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from rich.prompt import Confirm

from create_react_app.config import Config
from create_react_app.models import FILE_PREFIX, WorkingContext, is_archive, is_local_file
from create_react_app.utils import console
from create_react_app.versions import clean_semver

# (@scope/)?(name)?(@version-or-tag)?
TEMPLATE_RE = re.compile(r"^(@[^/]+/)?([^@]+)?(@.+)?$")

ConfirmFn = Callable[[str], bool]


class UserCancelled(Exception):
    """Raised when the user declines to continue with a deprecated package."""


@dataclass(frozen=True)
class Rule:
    """One row of a resolver decision table."""

    name: str
    matches: Callable[[str], bool]
    transform: Callable[[str], str]


def resolve_file_reference(reference: str, context: WorkingContext) -> str:
    """Make a ``file:`` reference absolute relative to the original directory."""
    relative = reference[len(FILE_PREFIX):]
    target = (context.original_dir / relative) if relative else context.original_dir
    return f"{FILE_PREFIX}{target.resolve()}"


def _ask(message: str) -> bool:
    return Confirm.ask(f"[yellow]{message}[/yellow]", default=False, console=console)


# ---------------------------------------------------------------------------
# react-scripts
# ---------------------------------------------------------------------------


def install_package_rules(context: WorkingContext, config: Config) -> list[Rule]:
    """Decision table for the main (``react-scripts``) reference."""
    default = config.packages.scripts_package
    return [
        Rule("local-file", is_local_file, lambda ref: resolve_file_reference(ref, context)),
        Rule("url-or-archive", lambda ref: "://" in ref or is_archive(ref), lambda ref: ref),
        Rule(
            "dist-tag",
            lambda ref: ref.startswith("@") and "/" not in ref,
            lambda ref: f"{default}{ref}",
        ),
        Rule(
            "exact-semver",
            lambda ref: clean_semver(ref) is not None,
            lambda ref: f"{default}@{clean_semver(ref)}",
        ),
        Rule("passthrough", lambda ref: True, lambda ref: ref),
    ]


def apply_rules(rules: list[Rule], reference: str) -> str:
    for rule in rules:
        if rule.matches(reference):
            return rule.transform(reference)
    return reference


async def resolve_install_package(
    version: str | None,
    context: WorkingContext,
    config: Config,
    confirm: ConfirmFn | None = None,
) -> str:
    """Resolve ``--scripts-version`` into the reference handed to the package manager.

    Examples::

        None                      -> "react-scripts"
        "4.0.3"                   -> "react-scripts@4.0.3"
        "@next"                   -> "react-scripts@next"
        "file:../my-scripts"      -> "file:/abs/path/my-scripts"
        "my-react-scripts"        -> "my-react-scripts"

    Raises:
        UserCancelled: If the result is a deprecated package and the user
            declines to continue.
    """
    if not version:
        package_to_install = config.packages.scripts_package
    else:
        package_to_install = apply_rules(install_package_rules(context, config), version)

    ask = confirm or _ask
    for deprecated, message in config.packages.deprecated_scripts.items():
        if package_to_install.startswith(deprecated):
            if not ask(message):
                raise UserCancelled(f"Declined to continue with {deprecated}")
            break

    return package_to_install


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


def canonical_template_name(template: str, default: str) -> str:
    """Add the ``cra-template-`` prefix to a template name.

    Scope and any ``@version`` / ``@tag`` suffix are kept intact::

        cra-template-typescript        -> cra-template-typescript
        @scope/cra-template            -> @scope/cra-template
        typescript                     -> cra-template-typescript
        @scope/name@1.0.0              -> @scope/cra-template-name@1.0.0
        @next                          -> @next/cra-template
    """
    match = TEMPLATE_RE.match(template)
    scope = (match.group(1) if match else None) or ""
    name = (match.group(2) if match else None) or ""
    suffix = (match.group(3) if match else None) or ""

    if name == default or name.startswith(f"{default}-"):
        return f"{scope}{name}{suffix}"
    if suffix and not scope and not name:
        # A lone "@something" is taken as a scope; the literal is load-bearing.
        return f"{suffix}/{default}"
    return f"{scope}{default}-{name}{suffix}"


def template_package_rules(context: WorkingContext, config: Config) -> list[Rule]:
    """Decision table for the template reference."""
    default = config.packages.template_package
    return [
        Rule("local-file", is_local_file, lambda ref: resolve_file_reference(ref, context)),
        Rule("url-or-archive", lambda ref: "://" in ref or is_archive(ref), lambda ref: ref),
        Rule("named", lambda ref: True, lambda ref: canonical_template_name(ref, default)),
    ]


async def resolve_template_package(
    template: str | None, context: WorkingContext, config: Config
) -> str:
    """Resolve ``--template`` into the reference handed to the package manager."""
    if not template:
        return config.packages.template_package
    return apply_rules(template_package_rules(context, config), template)
