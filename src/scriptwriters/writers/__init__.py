"""Writer facade bound to one toolchain and one orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from scriptwriters.grammars import require_name
from scriptwriters.models import Artifact, Dependency
from scriptwriters.observability import StructuredLogger
from scriptwriters.orchestrator import Orchestrator, PlanOrchestrator
from scriptwriters.toolchain import Toolchain

from .base import ScriptWriter, bin_name, make_script_writer
from .c import CWriter
from .haskell import HaskellWriter
from .jq import jq_writer
from .js import JSWriter
from .options import (
    COptions,
    EnvOptions,
    HaskellExecutable,
    HaskellLibrary,
    HaskellModule,
    HaskellOptions,
    HaskellPackageOptions,
    PythonOptions,
)
from .perl import PerlWriter
from .python import PythonWriter
from .shell import bash_writer, dash_writer, sed_writer
from .structured import JSONWriter


@dataclass(slots=True)
class Writers:
    """Every writer, with tools taken from ``toolchain``.

    Example::

        writers = Writers(Toolchain.from_host())
        hello = writers.write_bash_bin("hello", "echo hello world\\n")
    """

    toolchain: Toolchain
    orchestrator: Orchestrator | None = None
    logger: StructuredLogger = field(default_factory=StructuredLogger)

    def __post_init__(self) -> None:
        if self.orchestrator is None:
            self.orchestrator = PlanOrchestrator(store_dir=self.toolchain.store_dir)

    def make_script_writer(
        self,
        interpreter: str,
        *,
        check: Artifact | None = None,
        references: tuple[Dependency, ...] = (),
    ) -> ScriptWriter:
        return make_script_writer(
            self._orchestrator, interpreter=interpreter, check=check, references=references
        )

    # -- shells ----------------------------------------------------------

    def write_bash(self, name: str, text: str) -> Artifact:
        return self._record("bash", bash_writer(self._orchestrator, self._tool("bash"))(name, text))

    def write_bash_bin(self, name: str, text: str) -> Artifact:
        return self._record("bash", bash_writer(self._orchestrator, self._tool("bash")).bin(name, text))

    def write_dash(self, name: str, text: str) -> Artifact:
        return self._record("dash", dash_writer(self._orchestrator, self._tool("dash"))(name, text))

    def write_dash_bin(self, name: str, text: str) -> Artifact:
        return self._record("dash", dash_writer(self._orchestrator, self._tool("dash")).bin(name, text))

    def write_sed(self, name: str, text: str) -> Artifact:
        return self._record("sed", sed_writer(self._orchestrator, self._tool("gnused"))(name, text))

    def write_sed_bin(self, name: str, text: str) -> Artifact:
        return self._record("sed", sed_writer(self._orchestrator, self._tool("gnused")).bin(name, text))

    def write_jq(self, name: str, text: str) -> Artifact:
        require_name(name)
        return self._record("jq", self._jq()(name, text))

    def write_jq_bin(self, name: str, text: str) -> Artifact:
        bin_name(name)
        return self._record("jq", self._jq().bin(name, text))

    # -- interpreted languages with dependencies -------------------------

    def write_js(self, name: str, options: EnvOptions | None, text: str) -> Artifact:
        return self._record("js", self._js().write(name, options or EnvOptions(), text))

    def write_js_bin(self, name: str, options: EnvOptions | None, text: str) -> Artifact:
        return self._record("js", self._js().write_bin(name, options or EnvOptions(), text))

    def write_perl(self, name: str, options: EnvOptions | None, text: str) -> Artifact:
        return self._record("perl", self._perl().write(name, options or EnvOptions(), text))

    def write_perl_bin(self, name: str, options: EnvOptions | None, text: str) -> Artifact:
        return self._record("perl", self._perl().write_bin(name, options or EnvOptions(), text))

    def write_python2(self, name: str, options: PythonOptions | None, text: str) -> Artifact:
        writer = self._python("python2")
        return self._record("python2", writer.write(name, options or PythonOptions(), text))

    def write_python2_bin(self, name: str, options: PythonOptions | None, text: str) -> Artifact:
        writer = self._python("python2")
        return self._record("python2", writer.write_bin(name, options or PythonOptions(), text))

    def write_python3(self, name: str, options: PythonOptions | None, text: str) -> Artifact:
        writer = self._python("python3")
        return self._record("python3", writer.write(name, options or PythonOptions(), text))

    def write_python3_bin(self, name: str, options: PythonOptions | None, text: str) -> Artifact:
        writer = self._python("python3")
        return self._record("python3", writer.write_bin(name, options or PythonOptions(), text))

    # -- compiled languages ----------------------------------------------

    def write_c(self, name: str, options: COptions | None, text: str) -> Artifact:
        return self._record("c", self._c().write(name, options or COptions(), text))

    def write_c_bin(self, name: str, options: COptions | None, text: str) -> Artifact:
        return self._record("c", self._c().write_bin(name, options or COptions(), text))

    def write_haskell(self, name: str, options: HaskellOptions | None, text: str) -> Artifact:
        return self._record("haskell", self._haskell().write(name, options or HaskellOptions(), text))

    def write_haskell_bin(self, name: str, options: HaskellOptions | None, text: str) -> Artifact:
        return self._record(
            "haskell", self._haskell().write_bin(name, options or HaskellOptions(), text)
        )

    def write_haskell_package(self, name: str, options: HaskellPackageOptions) -> Artifact:
        return self._record("haskell", self._haskell().write_package(name, options))

    # -- structured data -------------------------------------------------

    def write_json(self, name: str, value: Any) -> Artifact:
        writer = JSONWriter(
            orchestrator=self._orchestrator,
            jq=self._tool("jq"),
            bash=self._tool("bash"),
            coreutils=self._tool("coreutils"),
        )
        return self._record("json", writer.write(name, value))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @property
    def _orchestrator(self) -> Orchestrator:
        assert self.orchestrator is not None
        return self.orchestrator

    def _tool(self, tool: str) -> Any:
        return self.toolchain.require(tool)

    def _jq(self) -> ScriptWriter:
        return jq_writer(self._orchestrator, self._tool("jq"), self._tool("dash"))

    def _js(self) -> JSWriter:
        return JSWriter(
            orchestrator=self._orchestrator,
            nodejs=self._tool("nodejs"),
            dash=self._tool("dash"),
            bash=self._tool("bash"),
            coreutils=self._tool("coreutils"),
        )

    def _perl(self) -> PerlWriter:
        return PerlWriter(
            orchestrator=self._orchestrator,
            perl=self._tool("perl"),
            bash=self._tool("bash"),
            coreutils=self._tool("coreutils"),
        )

    def _python(self, version: str) -> PythonWriter:
        return PythonWriter(
            orchestrator=self._orchestrator,
            runtime=self._tool(version),
            dash=self._tool("dash"),
            bash=self._tool("bash"),
            coreutils=self._tool("coreutils"),
            label=version,
        )

    def _c(self) -> CWriter:
        return CWriter(
            orchestrator=self._orchestrator,
            gcc=self._tool("gcc"),
            binutils=self._tool("binutils"),
            coreutils=self._tool("coreutils"),
            bash=self._tool("bash"),
            pkgconfig=self.toolchain.pkgconfig,
        )

    def _haskell(self) -> HaskellWriter:
        return HaskellWriter(
            orchestrator=self._orchestrator,
            haskell=self._tool("haskell"),
            bash=self._tool("bash"),
            coreutils=self._tool("coreutils"),
        )

    def _record(self, writer: str, artifact: Artifact) -> Artifact:
        self.logger.log(
            operation="write",
            writer=writer,
            plan=artifact.name,
            digest=artifact.plan.digest,
            message=f"Constructed {artifact.plan.kind} plan for `{artifact.name}`.",
            extra={"path": artifact.path},
        )
        return artifact


__all__ = [
    "COptions",
    "CWriter",
    "EnvOptions",
    "HaskellExecutable",
    "HaskellLibrary",
    "HaskellModule",
    "HaskellOptions",
    "HaskellPackageOptions",
    "HaskellWriter",
    "JSONWriter",
    "JSWriter",
    "PerlWriter",
    "PythonOptions",
    "PythonWriter",
    "ScriptWriter",
    "Writers",
    "bash_writer",
    "dash_writer",
    "jq_writer",
    "make_script_writer",
    "sed_writer",
]
