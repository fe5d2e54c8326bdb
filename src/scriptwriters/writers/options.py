"""Per-writer option records with named fields and documented defaults.

Options are validated when constructed; writers receive them fully formed.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from scriptwriters.errors import InvalidOptionError
from scriptwriters.models import Artifact, BuildPlan, Dependency, Package, as_dependency

DependencyLike = Dependency | Artifact | str | Path

DEFAULT_GHC_OPTIONS = ("-Wall", "-O3", "-threaded", "-rtsopts")


def _dependencies(option: str, values: Any) -> tuple[Dependency, ...]:
    if isinstance(values, (str, bytes, Path)) or not hasattr(values, "__iter__"):
        raise InvalidOptionError(
            f"Option `{option}` must be a sequence of dependencies.",
            option=option,
            context={"type": type(values).__name__},
        )
    resolved: list[Dependency] = []
    for value in values:
        if not isinstance(value, (Package, BuildPlan, Artifact, str, Path)):
            raise InvalidOptionError(
                f"Option `{option}` holds an unsupported dependency.",
                option=option,
                context={"type": type(value).__name__},
            )
        resolved.append(as_dependency(value))
    return tuple(resolved)


def _words(option: str, values: Any) -> tuple[str, ...]:
    if isinstance(values, str) or not hasattr(values, "__iter__"):
        raise InvalidOptionError(f"Option `{option}` must be a sequence of strings.", option=option)
    words = tuple(values)
    for word in words:
        if not isinstance(word, str) or not word or any(ch.isspace() for ch in word):
            raise InvalidOptionError(
                f"Option `{option}` holds an invalid entry.",
                option=option,
                context={"value": repr(word)},
            )
    return words


@dataclass(frozen=True, slots=True)
class EnvOptions:
    """Options for the JS and Perl writers.

    ``dependencies`` are linked into the runtime's search-path tree; an empty
    tuple yields an empty tree.
    """

    dependencies: tuple[DependencyLike, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "dependencies", _dependencies("dependencies", self.dependencies))


@dataclass(frozen=True, slots=True)
class PythonOptions:
    """Options for the Python writers.

    ``lint_ignore`` lists flake8 codes passed through ``--ignore``.
    """

    dependencies: tuple[DependencyLike, ...] = ()
    lint_ignore: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "dependencies", _dependencies("dependencies", self.dependencies))
        object.__setattr__(self, "lint_ignore", _words("lint_ignore", self.lint_ignore))


@dataclass(frozen=True, slots=True)
class COptions:
    """Options for the C writer.

    ``destination`` is ``""`` (the output root is the binary) or an absolute
    path inside the output tree. ``libraries`` maps pkg-config names to the
    packages providing them.
    """

    destination: str = ""
    libraries: Mapping[str, DependencyLike] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.destination, str):
            raise InvalidOptionError("Option `destination` must be a string.", option="destination")
        if not isinstance(self.libraries, Mapping):
            raise InvalidOptionError("Option `libraries` must be a mapping.", option="libraries")
        names = _words("libraries", tuple(self.libraries))
        packages = _dependencies("libraries", tuple(self.libraries.values()))
        object.__setattr__(self, "libraries", dict(zip(names, packages)))


@dataclass(frozen=True, slots=True)
class HaskellOptions:
    dependencies: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "dependencies", _words("dependencies", self.dependencies))


@dataclass(frozen=True, slots=True)
class HaskellModule:
    text: str
    relpath: str | None = None


@dataclass(frozen=True, slots=True)
class HaskellExecutable:
    """One ``executable`` section.

    ``build_depends`` overrides the package's ``base_depends`` plus
    ``dependencies``. ``relpath`` defaults to ``<exe-name>.hs``.
    """

    text: str
    dependencies: tuple[str, ...] = ()
    build_depends: tuple[str, ...] | None = None
    relpath: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "dependencies", _words("dependencies", self.dependencies))
        if self.build_depends is not None:
            object.__setattr__(self, "build_depends", _words("build_depends", self.build_depends))


@dataclass(frozen=True, slots=True)
class HaskellLibrary:
    exposed_modules: Mapping[str, HaskellModule]
    dependencies: tuple[str, ...] = ()
    build_depends: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.exposed_modules, Mapping) or not self.exposed_modules:
            raise InvalidOptionError(
                "Option `exposed_modules` must map at least one module name to a module.",
                option="exposed_modules",
            )
        object.__setattr__(self, "exposed_modules", dict(self.exposed_modules))
        object.__setattr__(self, "dependencies", _words("dependencies", self.dependencies))
        if self.build_depends is not None:
            object.__setattr__(self, "build_depends", _words("build_depends", self.build_depends))


@dataclass(frozen=True, slots=True)
class HaskellPackageOptions:
    base_depends: tuple[str, ...] = ("base",)
    executables: Mapping[str, HaskellExecutable] = field(default_factory=dict)
    ghc_options: tuple[str, ...] = DEFAULT_GHC_OPTIONS
    library: HaskellLibrary | None = None
    license: str = "WTFPL"

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_depends", _words("base_depends", self.base_depends))
        object.__setattr__(self, "ghc_options", _words("ghc_options", self.ghc_options))
        if not isinstance(self.executables, Mapping):
            raise InvalidOptionError("Option `executables` must be a mapping.", option="executables")
        object.__setattr__(self, "executables", dict(self.executables))
        if not self.executables and self.library is None:
            raise InvalidOptionError(
                "A Haskell package needs at least one executable or a library.",
                option="executables",
            )
        if not isinstance(self.license, str) or not self.license:
            raise InvalidOptionError("Option `license` must be a non-empty string.", option="license")
