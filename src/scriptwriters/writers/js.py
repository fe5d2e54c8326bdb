"""JavaScript (node) writer."""

from __future__ import annotations

from dataclasses import dataclass

from scriptwriters.grammars import require_name
from scriptwriters.models import Artifact, Package
from scriptwriters.orchestrator import Orchestrator
from scriptwriters.writers.base import bin_name, make_script_writer
from scriptwriters.writers.environment import SearchPathRuntime, build_env, runtime_interpreter
from scriptwriters.writers.options import EnvOptions

NODE_MODULES = "lib/node_modules"


@dataclass(slots=True)
class JSWriter:
    orchestrator: Orchestrator
    nodejs: Package
    dash: Package
    bash: Package
    coreutils: Package

    def write(self, name: str, options: EnvOptions, text: str) -> Artifact:
        require_name(name)
        tree = build_env(
            self.orchestrator,
            name="node",
            dependencies=options.dependencies,
            paths_to_link=(NODE_MODULES,),
            bash=self.bash,
            coreutils=self.coreutils,
        )
        runtime = SearchPathRuntime(
            package=self.nodejs,
            program="node",
            variable="NODE_PATH",
            library_path=NODE_MODULES,
        )
        interpreter, references = runtime_interpreter(
            self.orchestrator, runtime, tree, dash=self.dash
        )
        writer = make_script_writer(
            self.orchestrator, interpreter=interpreter, references=references
        )
        return writer(name, text)

    def write_bin(self, name: str, options: EnvOptions, text: str) -> Artifact:
        return self.write(bin_name(name), options, text)
