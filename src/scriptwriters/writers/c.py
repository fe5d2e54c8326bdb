"""C writer: compiles inline source with gcc into a stripped binary."""

from __future__ import annotations

import shlex
from dataclasses import dataclass, replace

from scriptwriters.errors import ConfigurationError
from scriptwriters.grammars import Grammar, base_name, relative_path, require_name
from scriptwriters.models import Artifact, DependencyProbe, IsolatedEnv, Package
from scriptwriters.orchestrator import Orchestrator
from scriptwriters.writers.base import bin_name, require_text
from scriptwriters.writers.options import COptions


@dataclass(slots=True)
class CWriter:
    orchestrator: Orchestrator
    gcc: Package
    binutils: Package
    coreutils: Package
    bash: Package
    pkgconfig: Package | None = None

    def write(self, name: str, options: COptions, text: str) -> Artifact:
        require_name(name)
        require_text(text)
        destination = options.destination
        if not destination and Grammar.ABSOLUTE_PATHNAME.check(name):
            destination = name
        if destination:
            require_name(destination, (Grammar.ABSOLUTE_PATHNAME,), argument="destination")

        libraries = dict(options.libraries)
        path: list[Package] = [self.binutils, self.coreutils, self.gcc]
        variables: dict[str, str] = {}
        probes: tuple[DependencyProbe, ...] = ()
        cflags = ""
        libs = ""
        if libraries:
            pkgconfig = self._require_pkgconfig()
            path.append(pkgconfig)
            names = tuple(libraries)
            variables["PKG_CONFIG_PATH"] = ":".join(
                f"{dependency.path}/{subdir}"
                for dependency in libraries.values()
                for subdir in ("lib/pkgconfig", "share/pkgconfig")
            )
            probes = (
                DependencyProbe(
                    argv=(pkgconfig.bin("pkg-config"), "--exists", "--print-errors", *names),
                    libraries=names,
                    environment={"PKG_CONFIG_PATH": variables["PKG_CONFIG_PATH"]},
                ),
            )
            quoted = " ".join(shlex.quote(library) for library in names)
            cflags = f" $(pkg-config --cflags {quoted})"
            # Link flags must follow the source for --as-needed linkers.
            libs = f" -x none $(pkg-config --libs {quoted})"

        relpath = relative_path(destination) if destination else ""
        exe = f'"$out"/{shlex.quote(relpath)}' if relpath else '"$out"'
        script = (
            f"exe={exe}\n"
            'mkdir -p "$(dirname "$exe")"\n'
            f'gcc{cflags} -O -o "$exe" -Wall -x c "$textPath"{libs}\n'
            'strip --strip-unneeded "$exe"\n'
        )
        env = IsolatedEnv(
            builder=self.bash.bin("bash"),
            script=script,
            inputs=tuple(libraries.values()),
            path=tuple(path),
            variables=variables,
            pass_as_file={"text": text},
            probes=probes,
        )
        plan = self.orchestrator.run_isolated(base_name(name), env)
        return Artifact(plan=plan, relpath=relpath)

    def write_bin(self, name: str, options: COptions, text: str) -> Artifact:
        return self.write(name, replace(options, destination=bin_name(name)), text)

    def _require_pkgconfig(self) -> Package:
        if self.pkgconfig is None:
            raise ConfigurationError(
                "Toolchain has no `pkgconfig`; it is needed to resolve C libraries.",
                context={"tool": "pkgconfig"},
            )
        return self.pkgconfig
