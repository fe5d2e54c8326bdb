"""Perl writer."""

from __future__ import annotations

from dataclasses import dataclass

from scriptwriters.grammars import require_name
from scriptwriters.models import Artifact, Package
from scriptwriters.orchestrator import Orchestrator
from scriptwriters.writers.base import bin_name, make_script_writer
from scriptwriters.writers.environment import SearchPathRuntime, build_env, runtime_interpreter
from scriptwriters.writers.options import EnvOptions

SITE_PERL = "lib/perl5/site_perl"


@dataclass(slots=True)
class PerlWriter:
    orchestrator: Orchestrator
    perl: Package
    bash: Package
    coreutils: Package

    def write(self, name: str, options: EnvOptions, text: str) -> Artifact:
        require_name(name)
        tree = build_env(
            self.orchestrator,
            name="perl-environment",
            dependencies=options.dependencies,
            paths_to_link=(SITE_PERL,),
            bash=self.bash,
            coreutils=self.coreutils,
        )
        runtime = SearchPathRuntime(
            package=self.perl,
            program="perl",
            variable="PERL5LIB",
            library_path=SITE_PERL,
            flag="-I",
        )
        interpreter, references = runtime_interpreter(self.orchestrator, runtime, tree)
        writer = make_script_writer(
            self.orchestrator, interpreter=interpreter, references=references
        )
        return writer(name, text)

    def write_bin(self, name: str, options: EnvOptions, text: str) -> Artifact:
        return self.write(bin_name(name), options, text)
