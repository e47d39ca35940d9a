"""npm package-name rules for new project names.

The project directory name becomes the ``name`` field of the generated
``package.json``, so it must be publishable under npm's naming rules.
Problems are split the way npm splits them: *errors* make a name invalid
everywhere, *warnings* only forbid it for new packages.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from urllib.parse import quote

BLACKLISTED_NAMES = ("node_modules", "favicon.ico")

NODE_BUILTIN_MODULES = frozenset({
    "assert", "async_hooks", "buffer", "child_process", "cluster", "console",
    "constants", "crypto", "dgram", "diagnostics_channel", "dns", "domain",
    "events", "fs", "http", "http2", "https", "inspector", "module", "net",
    "os", "path", "perf_hooks", "process", "punycode", "querystring",
    "readline", "repl", "stream", "string_decoder", "sys", "timers", "tls",
    "trace_events", "tty", "url", "util", "v8", "vm", "wasi",
    "worker_threads", "zlib",
})

MAX_NAME_LENGTH = 214

_SCOPED_RE = re.compile(r"^(?:@([^/]+?)[/])?([^/]+?)$")
_SPECIAL_CHARS_RE = re.compile(r"[~'!()*]")


def _encode_uri_component(value: str) -> str:
    # Matches JavaScript's encodeURIComponent unreserved set.
    return quote(value, safe="-_.!~*'()")


@dataclass
class NameValidation:
    """Outcome of validating a candidate package name."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid_for_new_packages(self) -> bool:
        return not self.errors and not self.warnings

    @property
    def problems(self) -> list[str]:
        return [*self.errors, *self.warnings]


def validate_package_name(name: str) -> NameValidation:
    """Check *name* against npm's package naming rules."""
    result = NameValidation()

    if not name:
        result.errors.append("name length must be greater than zero")
        return result

    if name.startswith("."):
        result.errors.append("name cannot start with a period")
    if name.startswith("_"):
        result.errors.append("name cannot start with an underscore")
    if name.strip() != name:
        result.errors.append("name cannot contain leading or trailing spaces")

    for blacklisted in BLACKLISTED_NAMES:
        if name.lower() == blacklisted:
            result.errors.append(f"{blacklisted} is a blacklisted name")

    if name.lower() in NODE_BUILTIN_MODULES:
        result.warnings.append(f"{name} is a core module name")
    if len(name) > MAX_NAME_LENGTH:
        result.warnings.append(
            f"name can no longer contain more than {MAX_NAME_LENGTH} characters"
        )
    if name.lower() != name:
        result.warnings.append("name can no longer contain capital letters")
    if _SPECIAL_CHARS_RE.search(name.split("/")[-1]):
        result.warnings.append(
            "name can no longer contain special characters (\"~'!()*\")"
        )

    if _encode_uri_component(name) != name:
        match = _SCOPED_RE.match(name)
        if match and match.group(1) is not None:
            user, package = match.group(1), match.group(2)
            if _encode_uri_component(user) == user and _encode_uri_component(package) == package:
                return result
        result.errors.append("name can only contain URL-friendly characters")

    return result
