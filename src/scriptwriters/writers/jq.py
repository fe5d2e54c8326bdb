"""jq filter writer with a parse-only syntax check."""

from __future__ import annotations

from scriptwriters.models import Artifact, Package
from scriptwriters.orchestrator import Orchestrator
from scriptwriters.writers.base import ScriptWriter, make_script_writer
from scriptwriters.writers.shell import dash_writer


def jq_check(orchestrator: Orchestrator, jq: Package, dash: Package) -> Artifact:
    # Compiles the filter against empty input; syntax errors exit nonzero.
    return dash_writer(orchestrator, dash)(
        "jqcheck.sh",
        f'exec {jq.bin("jq")} -f "$1" < /dev/null\n',
    )


def jq_writer(orchestrator: Orchestrator, jq: Package, dash: Package) -> ScriptWriter:
    return make_script_writer(
        orchestrator,
        interpreter=f"{jq.bin('jq')} -f",
        check=jq_check(orchestrator, jq, dash),
        references=(jq,),
    )
