"""Haskell writers.

``write_package`` synthesizes a minimal Cabal package (executables, a
library, or both) and builds it with ``runghc Setup.hs``. ``write`` wraps a
single-file executable package and exposes its binary directly.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass

from scriptwriters.errors import InvalidOptionError
from scriptwriters.grammars import (
    Grammar,
    base_name,
    parse_package_name,
    require_identifier,
    require_name,
)
from scriptwriters.models import Artifact, BuildPlan, IsolatedEnv, OutputFile, Package
from scriptwriters.orchestrator import Orchestrator
from scriptwriters.toolchain import HaskellPackageSet
from scriptwriters.writers.base import bin_name, output_relpath, require_text
from scriptwriters.writers.options import (
    HaskellExecutable,
    HaskellLibrary,
    HaskellOptions,
    HaskellPackageOptions,
)

SETUP_HS = "import Distribution.Simple\nmain = defaultMain\n"


def module_relpath(module: str) -> str:
    return module.replace(".", "/") + ".hs"


def executable_depends(options: HaskellPackageOptions, executable: HaskellExecutable) -> tuple[str, ...]:
    if executable.build_depends is not None:
        return executable.build_depends
    return options.base_depends + executable.dependencies


def library_depends(options: HaskellPackageOptions, library: HaskellLibrary) -> tuple[str, ...]:
    if library.build_depends is not None:
        return library.build_depends
    return options.base_depends + library.dependencies


def render_cabal(name: str, version: str, options: HaskellPackageOptions) -> str:
    ghc_options = " ".join(options.ghc_options)
    lines = [
        "build-type: Simple",
        "cabal-version: >= 1.2",
        f"name: {name}",
        f"version: {version}",
    ]
    for exe_name, executable in sorted(options.executables.items()):
        lines.extend(
            [
                f"executable {exe_name}",
                f"  build-depends: {','.join(executable_depends(options, executable))}",
                f"  ghc-options: {ghc_options}",
                f"  main-is: {executable.relpath or exe_name + '.hs'}",
            ]
        )
    if options.library is not None:
        lines.extend(
            [
                "library",
                f"  build-depends: {','.join(library_depends(options, options.library))}",
                f"  ghc-options: {ghc_options}",
                f"  exposed-modules: {','.join(sorted(options.library.exposed_modules))}",
            ]
        )
    return "\n".join(lines) + "\n"


@dataclass(slots=True)
class HaskellWriter:
    orchestrator: Orchestrator
    haskell: HaskellPackageSet
    bash: Package
    coreutils: Package

    def write_package(self, name_version: str, options: HaskellPackageOptions) -> Artifact:
        name, version = parse_package_name(name_version)
        version = version or "0"
        require_name(name, (Grammar.FILENAME,))

        sources: dict[str, str] = {}
        depends: list[str] = []
        for exe_name, executable in sorted(options.executables.items()):
            require_identifier(exe_name, Grammar.FILENAME, argument="exe-name")
            require_text(executable.text)
            self._add_source(sources, executable.relpath or f"{exe_name}.hs", executable.text)
            depends.extend(executable_depends(options, executable))
        if options.library is not None:
            for mod_name, module in sorted(options.library.exposed_modules.items()):
                require_identifier(mod_name, Grammar.HASKELL_MODID, argument="mod-name")
                require_text(module.text)
                self._add_source(sources, module.relpath or module_relpath(mod_name), module.text)
            depends.extend(library_depends(options, options.library))
        packages = self.haskell.resolve(depends)

        cabal_file = f"{name}-{version}.cabal"
        files = {
            cabal_file: OutputFile(text=render_cabal(name, version, options)),
            "Setup.hs": OutputFile(text=SETUP_HS),
        }
        files.update({relpath: OutputFile(text=text) for relpath, text in sources.items()})
        src = self.orchestrator.write(f"{name}-{version}-src", files)

        plan = self.orchestrator.run_isolated(
            f"{name}-{version}",
            IsolatedEnv(
                builder=self.bash.bin("bash"),
                script=self._build_script(name, src, packages, options.library is not None),
                inputs=(src, *packages),
                path=(self.haskell.ghc, self.coreutils),
                variables={"pname": name, "version": version, "license": options.license},
            ),
        )
        return Artifact(plan=plan)

    def write(self, name: str, options: HaskellOptions, text: str) -> Artifact:
        require_name(name)
        exe_name = base_name(name)
        package = self.write_package(
            exe_name,
            HaskellPackageOptions(
                executables={
                    exe_name: HaskellExecutable(text=text, dependencies=options.dependencies),
                },
            ),
        )
        relpath = output_relpath(name)
        binary = shlex.quote(f"{package.path}/bin/{exe_name}")
        if relpath:
            target = f'"$out"/{shlex.quote(relpath)}'
            script = f'mkdir -p "$(dirname {target})"\nln -fns {binary} {target}\n'
        else:
            script = f'ln -fns {binary} "$out"\n'
        plan = self.orchestrator.run_isolated(
            exe_name,
            IsolatedEnv(
                builder=self.bash.bin("bash"),
                script=script,
                inputs=(package.plan,),
                path=(self.coreutils,),
            ),
        )
        return Artifact(plan=plan, relpath=relpath)

    def write_bin(self, name: str, options: HaskellOptions, text: str) -> Artifact:
        return self.write(bin_name(name), options, text)

    @staticmethod
    def _add_source(sources: dict[str, str], relpath: str, text: str) -> None:
        require_name(f"/{relpath}", (Grammar.ABSOLUTE_PATHNAME,), argument="relpath")
        if relpath in sources:
            raise InvalidOptionError(
                "Two Haskell sources map to the same file.",
                option="relpath",
                context={"relpath": relpath},
            )
        sources[relpath] = text

    def _build_script(
        self,
        name: str,
        src: BuildPlan,
        packages: tuple[Package, ...],
        is_library: bool,
    ) -> str:
        package_dbs = "".join(
            f" --package-db={shlex.quote(f'{package.path}/{self.haskell.package_db}')}"
            for package in packages
        )
        out_db = f'"$out"/{shlex.quote(self.haskell.package_db)}'
        lines = [
            f'cp -R {shlex.quote(src.path)}/. "$TMPDIR/source"',
            'chmod -R u+w "$TMPDIR/source"',
            'cd "$TMPDIR/source"',
            'packageConfDir="$TMPDIR/package.conf.d"',
            'ghc-pkg init "$packageConfDir"',
            f'runghc Setup.hs configure --prefix="$out" --package-db="$packageConfDir"{package_dbs}',
            "runghc Setup.hs build",
            "runghc Setup.hs copy",
        ]
        if is_library:
            conf = f'"$TMPDIR"/{shlex.quote(name + ".conf")}'
            lines.extend(
                [
                    f"runghc Setup.hs register --gen-pkg-config={conf}",
                    f"mkdir -p {out_db}",
                    f"if [ -d {conf} ]; then cp {conf}/* {out_db}/; else cp {conf} {out_db}/; fi",
                    f"ghc-pkg --package-db={out_db} recache",
                ]
            )
        else:
            lines.append('mkdir -p "$out"')
        return "\n".join(lines) + "\n"
