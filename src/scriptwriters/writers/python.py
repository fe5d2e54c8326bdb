"""Python writers: a runtime with extra packages, linted by flake8."""

from __future__ import annotations

import shlex
from dataclasses import dataclass

from scriptwriters.errors import ConfigurationError
from scriptwriters.grammars import require_name
from scriptwriters.models import Artifact, Package
from scriptwriters.orchestrator import Orchestrator
from scriptwriters.toolchain import PythonRuntime
from scriptwriters.writers.base import bin_name, make_script_writer
from scriptwriters.writers.environment import SearchPathRuntime, build_env, runtime_interpreter
from scriptwriters.writers.options import PythonOptions
from scriptwriters.writers.shell import dash_writer


def flake8_check(
    orchestrator: Orchestrator,
    *,
    name: str,
    flake8: Package,
    dash: Package,
    lint_ignore: tuple[str, ...],
) -> Artifact:
    ignore = ""
    if lint_ignore:
        ignore = " --ignore " + ",".join(shlex.quote(code) for code in lint_ignore)
    return dash_writer(orchestrator, dash)(
        name,
        f'exec {flake8.bin("flake8")} --show-source{ignore} "$1"\n',
    )


@dataclass(slots=True)
class PythonWriter:
    orchestrator: Orchestrator
    runtime: PythonRuntime
    dash: Package
    bash: Package
    coreutils: Package
    label: str = "python3"

    def write(self, name: str, options: PythonOptions, text: str) -> Artifact:
        require_name(name)
        if self.runtime.flake8 is None:
            raise ConfigurationError(
                f"Toolchain has no flake8 for `{self.label}`.",
                hint="Declare `flake8` for this Python runtime in the toolchain file.",
                context={"tool": f"{self.label}.flake8"},
            )
        tree = build_env(
            self.orchestrator,
            name=f"{self.label}-environment",
            dependencies=options.dependencies,
            paths_to_link=(self.runtime.site_packages,),
            bash=self.bash,
            coreutils=self.coreutils,
        )
        runtime = SearchPathRuntime(
            package=self.runtime.package,
            program=self.runtime.program,
            variable="PYTHONPATH",
            library_path=self.runtime.site_packages,
        )
        interpreter, references = runtime_interpreter(
            self.orchestrator, runtime, tree, dash=self.dash
        )
        check = flake8_check(
            self.orchestrator,
            name=f"{self.label}check.sh",
            flake8=self.runtime.flake8,
            dash=self.dash,
            lint_ignore=options.lint_ignore,
        )
        writer = make_script_writer(
            self.orchestrator,
            interpreter=interpreter,
            check=check,
            references=references,
        )
        return writer(name, text)

    def write_bin(self, name: str, options: PythonOptions, text: str) -> Artifact:
        return self.write(bin_name(name), options, text)
