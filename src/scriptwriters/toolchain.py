"""Toolchain configuration: every tool a writer may reference, resolved once.

Writers never look tools up on their own. A :class:`Toolchain` is built at
start-up (from the host ``PATH`` or from a JSON file) and handed to
:class:`scriptwriters.writers.Writers`.
"""

from __future__ import annotations

import json
import shutil
import sys
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from scriptwriters.errors import ConfigurationError, UnresolvedDependencyError
from scriptwriters.models import Package
from scriptwriters.orchestrator import default_store_dir

# Tool attribute -> program probed on the host PATH.
HOST_PROGRAMS: dict[str, str] = {
    "bash": "bash",
    "dash": "dash",
    "coreutils": "mkdir",
    "gnused": "sed",
    "jq": "jq",
    "nodejs": "node",
    "perl": "perl",
    "gcc": "gcc",
    "binutils": "strip",
    "pkgconfig": "pkg-config",
}

DEFAULT_SITE_PACKAGES = {
    "python2": "lib/python2.7/site-packages",
    "python3": "lib/python3/site-packages",
}

GHC_BOOT_PACKAGES = (
    "array",
    "base",
    "bytestring",
    "containers",
    "deepseq",
    "directory",
    "filepath",
    "ghc-prim",
    "mtl",
    "parsec",
    "process",
    "stm",
    "text",
    "time",
    "transformers",
    "unix",
)


@dataclass(frozen=True, slots=True)
class PythonRuntime:
    package: Package
    flake8: Package | None = None
    program: str = "python"
    site_packages: str = "lib/python3/site-packages"

    @property
    def interpreter(self) -> str:
        return self.package.bin(self.program)


@dataclass(frozen=True, slots=True)
class HaskellPackageSet:
    ghc: Package
    packages: Mapping[str, Package] = field(default_factory=dict)
    builtin: tuple[str, ...] = GHC_BOOT_PACKAGES
    package_db: str = "lib/package.conf.d"

    def resolve(self, names: Iterable[str]) -> tuple[Package, ...]:
        """Packages backing *names*; GHC boot packages need none."""
        wanted = list(dict.fromkeys(names))
        missing = [name for name in wanted if name not in self.packages and name not in self.builtin]
        if missing:
            raise UnresolvedDependencyError(
                f"Haskell package set has no {', '.join(missing)}.",
                libraries=missing,
                hint="Add the packages to the toolchain's `haskell.packages` mapping.",
            )
        return tuple(self.packages[name] for name in wanted if name in self.packages)


@dataclass(frozen=True, slots=True)
class Toolchain:
    bash: Package | None = None
    dash: Package | None = None
    coreutils: Package | None = None
    gnused: Package | None = None
    jq: Package | None = None
    nodejs: Package | None = None
    perl: Package | None = None
    gcc: Package | None = None
    binutils: Package | None = None
    pkgconfig: Package | None = None
    python2: PythonRuntime | None = None
    python3: PythonRuntime | None = None
    haskell: HaskellPackageSet | None = None
    store_dir: str = field(default_factory=default_store_dir)

    def require(self, tool: str) -> Any:
        value = getattr(self, tool, None)
        if value is None:
            raise ConfigurationError(
                f"Toolchain has no `{tool}`.",
                hint="Install the tool on PATH or declare it in the toolchain file.",
                context={"tool": tool},
            )
        return value

    def available(self) -> tuple[str, ...]:
        return tuple(
            item.name
            for item in fields(self)
            if item.name != "store_dir" and getattr(self, item.name) is not None
        )

    @classmethod
    def from_host(cls, *, store_dir: str | None = None) -> Toolchain:
        """Resolve every tool from the current ``PATH``."""
        packages = {tool: host_package(tool, program) for tool, program in HOST_PROGRAMS.items()}
        version = f"{sys.version_info.major}.{sys.version_info.minor}"
        python3 = host_package("python3", "python3")
        python2 = host_package("python2", "python2")
        flake8 = host_package("flake8", "flake8")
        ghc = host_package("ghc", "ghc")
        return cls(
            **packages,
            python2=None
            if python2 is None
            else PythonRuntime(
                python2,
                program="python2",
                site_packages=DEFAULT_SITE_PACKAGES["python2"],
            ),
            python3=None
            if python3 is None
            else PythonRuntime(
                python3,
                flake8=flake8,
                program="python3",
                site_packages=f"lib/python{version}/site-packages",
            ),
            haskell=None if ghc is None else HaskellPackageSet(ghc=ghc),
            store_dir=store_dir or default_store_dir(),
        )


def host_package(tool: str, program: str) -> Package | None:
    """Installation prefix of ``program``, or None when it has no ``bin/program``.

    Shims and symlinks are followed to the real executable when the directory
    they live in is not a prefix of their own.
    """
    found = shutil.which(program)
    if found is None:
        return None
    for candidate in (Path(found), Path(found).resolve()):
        prefix = candidate.parent.parent
        if (prefix / "bin" / program).is_file():
            return Package(name=tool, path=str(prefix))
    return None


def parse_toolchain(raw: str) -> Toolchain:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError("Invalid toolchain JSON.", hint=str(exc)) from exc
    if not isinstance(payload, dict):
        raise ConfigurationError("Invalid toolchain payload type.")

    packages_raw = payload.get("packages", {})
    if not isinstance(packages_raw, dict):
        raise ConfigurationError("Invalid toolchain `packages` value.")
    unknown = sorted(set(packages_raw) - set(HOST_PROGRAMS))
    if unknown:
        raise ConfigurationError(
            "Unknown tools in toolchain `packages`.",
            hint=f"Known tools: {', '.join(sorted(HOST_PROGRAMS))}.",
            context={"unknown": ", ".join(unknown)},
        )
    packages = {tool: _package(tool, path) for tool, path in packages_raw.items()}

    python_raw = payload.get("python", {})
    if not isinstance(python_raw, dict):
        raise ConfigurationError("Invalid toolchain `python` value.")
    runtimes = {
        version: _python_runtime(version, python_raw[version])
        for version in ("python2", "python3")
        if version in python_raw
    }

    haskell_raw = payload.get("haskell")
    haskell = None if haskell_raw is None else _haskell(haskell_raw)

    store_dir = payload.get("store_dir", default_store_dir())
    if not isinstance(store_dir, str) or not store_dir.startswith("/"):
        raise ConfigurationError("Invalid toolchain `store_dir` value.", hint="Use an absolute path.")

    return Toolchain(**packages, **runtimes, haskell=haskell, store_dir=store_dir)


def load_toolchain(path: str | Path) -> Toolchain:
    toolchain_path = Path(path)
    try:
        raw = toolchain_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigurationError(
            "Toolchain file does not exist.",
            context={"path": str(toolchain_path)},
        ) from exc
    return parse_toolchain(raw)


def _package(tool: str, value: Any) -> Package:
    if not isinstance(value, str) or not value.startswith("/"):
        raise ConfigurationError(
            f"Invalid toolchain path for `{tool}`.",
            hint="Package paths must be absolute installation prefixes.",
        )
    return Package(name=tool, path=value.rstrip("/") or "/")


def _python_runtime(version: str, value: Any) -> PythonRuntime:
    if not isinstance(value, dict):
        raise ConfigurationError(f"Invalid toolchain `python.{version}` value.")
    flake8 = value.get("flake8")
    program = value.get("program", "python")
    site_packages = value.get("site_packages", DEFAULT_SITE_PACKAGES[version])
    if not isinstance(program, str) or not isinstance(site_packages, str):
        raise ConfigurationError(f"Invalid toolchain `python.{version}` value.")
    return PythonRuntime(
        package=_package(version, value.get("path")),
        flake8=None if flake8 is None else _package("flake8", flake8),
        program=program,
        site_packages=site_packages,
    )


def _haskell(value: Any) -> HaskellPackageSet:
    if not isinstance(value, dict):
        raise ConfigurationError("Invalid toolchain `haskell` value.")
    packages_raw = value.get("packages", {})
    if not isinstance(packages_raw, dict):
        raise ConfigurationError("Invalid toolchain `haskell.packages` value.")
    package_db = value.get("package_db", "lib/package.conf.d")
    if not isinstance(package_db, str):
        raise ConfigurationError("Invalid toolchain `haskell.package_db` value.")
    return HaskellPackageSet(
        ghc=_package("ghc", value.get("ghc")),
        packages={name: _package(name, path) for name, path in packages_raw.items()},
        package_db=package_db,
    )
