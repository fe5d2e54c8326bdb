"""Search-path environments for interpreters that need their libraries linked in.

``build_env`` produces a tree holding only the requested subdirectories of
each dependency. ``runtime_interpreter`` turns a runtime plus such a tree
into an interpreter line the base script constructor can use.
"""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from dataclasses import dataclass

from scriptwriters.errors import ConfigurationError
from scriptwriters.models import BuildPlan, Dependency, IsolatedEnv, Package
from scriptwriters.orchestrator import Orchestrator
from scriptwriters.writers.base import make_script_writer


@dataclass(frozen=True, slots=True)
class SearchPathRuntime:
    """An interpreter and how it is told where its libraries live.

    With ``flag`` set (``perl -I``) the tree is passed on the interpreter
    line. Otherwise a wrapper exports ``variable`` before exec'ing the
    runtime.
    """

    package: Package
    program: str
    variable: str
    library_path: str
    flag: str | None = None

    @property
    def executable(self) -> str:
        return self.package.bin(self.program)


def build_env(
    orchestrator: Orchestrator,
    *,
    name: str,
    dependencies: Sequence[Dependency],
    paths_to_link: Sequence[str],
    bash: Package,
    coreutils: Package,
) -> BuildPlan:
    lines = ["set -u"]
    for link in paths_to_link:
        lines.append(f'mkdir -p "$out"/{shlex.quote(link)}')
    for dependency in dependencies:
        for link in paths_to_link:
            source = shlex.quote(f"{dependency.path}/{link}")
            target = f'"$out"/{shlex.quote(link)}'
            # First dependency providing an entry wins.
            lines.append(
                f"if [ -d {source} ]; then\n"
                f"  for entry in {source}/*; do\n"
                f'    [ -e "$entry" ] || [ -L "$entry" ] || continue\n'
                f'    dest={target}/"${{entry##*/}}"\n'
                f'    [ -e "$dest" ] || [ -L "$dest" ] || ln -s "$entry" "$dest"\n'
                f"  done\n"
                f"fi"
            )
    env = IsolatedEnv(
        builder=bash.bin("bash"),
        script="\n".join(lines) + "\n",
        inputs=tuple(dependencies),
        path=(coreutils,),
    )
    return orchestrator.run_isolated(name, env)


def runtime_interpreter(
    orchestrator: Orchestrator,
    runtime: SearchPathRuntime,
    tree: BuildPlan,
    *,
    dash: Package | None = None,
) -> tuple[str, tuple[Dependency, ...]]:
    """Interpreter line and its references for *runtime* bound to *tree*."""
    library_dir = f"{tree.path}/{runtime.library_path}"
    if runtime.flag is not None:
        return (
            f"{runtime.executable} {runtime.flag} {library_dir}",
            (runtime.package, tree),
        )
    if dash is None:
        raise ConfigurationError(
            f"Exporting {runtime.variable} for {runtime.program} needs a dash package.",
            context={"tool": "dash", "program": runtime.program},
        )
    wrapper = make_script_writer(
        orchestrator,
        interpreter=dash.bin("dash"),
        references=(dash, runtime.package, tree),
    )(
        runtime.program,
        f"export {runtime.variable}={shlex.quote(library_dir)}\n"
        f'exec {shlex.quote(runtime.executable)} "$@"\n',
    )
    return wrapper.path, (wrapper.plan,)
