"""Base constructor shared by every interpreted-language writer."""

from __future__ import annotations

from dataclasses import dataclass

from scriptwriters.errors import InvalidValueError
from scriptwriters.grammars import (
    Grammar,
    base_name,
    relative_path,
    require_name,
)
from scriptwriters.models import Artifact, Dependency, OutputFile
from scriptwriters.orchestrator import Orchestrator

BIN_DIR = "/bin"


def output_relpath(name: str) -> str:
    """Where a validated *name* lands inside its plan's output tree."""
    if Grammar.ABSOLUTE_PATHNAME.check(name):
        return relative_path(name)
    return ""


def bin_name(name: str) -> str:
    require_name(name, (Grammar.FILENAME,))
    return f"{BIN_DIR}/{name}"


def require_text(text: object, *, argument: str = "text") -> str:
    if not isinstance(text, str):
        raise InvalidValueError(
            f"argument ‘{argument}’ must be a string.",
            context={"argument": argument, "type": type(text).__name__},
        )
    return text


@dataclass(slots=True)
class ScriptWriter:
    """Turns ``(name, text)`` into an executable script with a shebang.

    ``interpreter`` becomes the first line (``#!<interpreter>``). When
    ``check`` is set, the orchestrator runs it on the written file and the
    artifact is only valid if the check succeeds.
    """

    orchestrator: Orchestrator
    interpreter: str
    check: Artifact | None = None
    references: tuple[Dependency, ...] = ()

    def __call__(self, name: str, text: str) -> Artifact:
        require_name(name)
        require_text(text)
        relpath = output_relpath(name)
        output = OutputFile(
            text=f"#!{self.interpreter}\n{text}",
            executable=True,
            check=self.check,
            references=self.references,
        )
        plan = self.orchestrator.write(base_name(name), {relpath: output})
        return Artifact(plan=plan, relpath=relpath)

    def bin(self, name: str, text: str) -> Artifact:
        """Same script placed at ``/bin/<name>`` of the output tree."""
        return self(bin_name(name), text)


def make_script_writer(
    orchestrator: Orchestrator,
    *,
    interpreter: str,
    check: Artifact | None = None,
    references: tuple[Dependency, ...] = (),
) -> ScriptWriter:
    return ScriptWriter(
        orchestrator=orchestrator,
        interpreter=interpreter,
        check=check,
        references=references,
    )
