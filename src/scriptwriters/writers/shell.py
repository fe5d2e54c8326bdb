"""Shell-family and sed script writers."""

from __future__ import annotations

from scriptwriters.models import Package
from scriptwriters.orchestrator import Orchestrator
from scriptwriters.writers.base import ScriptWriter, make_script_writer


def bash_writer(orchestrator: Orchestrator, bash: Package) -> ScriptWriter:
    return make_script_writer(orchestrator, interpreter=bash.bin("bash"), references=(bash,))


def dash_writer(orchestrator: Orchestrator, dash: Package) -> ScriptWriter:
    return make_script_writer(orchestrator, interpreter=dash.bin("dash"), references=(dash,))


def sed_writer(orchestrator: Orchestrator, gnused: Package) -> ScriptWriter:
    return make_script_writer(
        orchestrator,
        interpreter=f"{gnused.bin('sed')} -f",
        references=(gnused,),
    )
