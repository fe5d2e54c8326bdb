"""Core typed dataclasses for build plans, their inputs and artifacts."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Union

import cbor2

from scriptwriters.cache.keys import payload_digest, short_digest

PlanKind = Literal["write", "run"]


@dataclass(frozen=True, slots=True)
class Package:
    """A pre-built dependency installed under ``path``."""

    name: str
    path: str

    def bin(self, program: str) -> str:
        return f"{self.path}/bin/{program}"

    @classmethod
    def at(cls, path: str | Path) -> Package:
        resolved = str(path).rstrip("/") or "/"
        return cls(name=Path(resolved).name or "root", path=resolved)


@dataclass(frozen=True, slots=True)
class OutputFile:
    """One file of a ``write`` plan."""

    text: str
    executable: bool = False
    check: Artifact | None = None
    references: tuple[Dependency, ...] = ()

    def _payload(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "executable": self.executable,
            "check": None if self.check is None else self.check.path,
            "references": [dependency.path for dependency in self.references],
        }


@dataclass(frozen=True, slots=True)
class DependencyProbe:
    """Resolution pre-flight: ``argv`` must succeed before a ``run`` plan executes."""

    argv: tuple[str, ...]
    libraries: tuple[str, ...]
    environment: Mapping[str, str] = field(default_factory=dict)

    def _payload(self) -> dict[str, Any]:
        return {
            "argv": list(self.argv),
            "libraries": list(self.libraries),
            "environment": dict(sorted(self.environment.items())),
        }


@dataclass(frozen=True, slots=True)
class IsolatedEnv:
    """Everything a ``run`` plan needs: a builder shell, a script and its inputs."""

    builder: str
    script: str
    inputs: tuple[Dependency, ...] = ()
    path: tuple[Dependency, ...] = ()
    variables: Mapping[str, str] = field(default_factory=dict)
    pass_as_file: Mapping[str, str] = field(default_factory=dict)
    probes: tuple[DependencyProbe, ...] = ()

    def search_path(self) -> str:
        return ":".join(f"{dependency.path}/bin" for dependency in self.path)

    def _payload(self) -> dict[str, Any]:
        return {
            "builder": self.builder,
            "script": self.script,
            "inputs": [dependency.path for dependency in self.inputs],
            "path": [dependency.path for dependency in self.path],
            "variables": dict(sorted(self.variables.items())),
            "pass_as_file": dict(sorted(self.pass_as_file.items())),
            "probes": [probe._payload() for probe in self.probes],
        }


@dataclass(frozen=True, slots=True)
class BuildPlan:
    """Opaque, content-addressed description of one output-producing step.

    Construct plans through an orchestrator; ``digest`` is derived from the
    canonical payload so identical plans share an output path.
    """

    name: str
    kind: PlanKind
    store_dir: str
    files: Mapping[str, OutputFile] = field(default_factory=dict)
    env: IsolatedEnv | None = None
    digest: str = ""

    @classmethod
    def create(
        cls,
        *,
        name: str,
        kind: PlanKind,
        store_dir: str,
        files: Mapping[str, OutputFile] | None = None,
        env: IsolatedEnv | None = None,
    ) -> BuildPlan:
        draft = cls(name=name, kind=kind, store_dir=store_dir, files=dict(files or {}), env=env)
        return cls(
            name=name,
            kind=kind,
            store_dir=store_dir,
            files=draft.files,
            env=env,
            digest=short_digest(payload_digest(draft._payload())),
        )

    @property
    def path(self) -> str:
        return f"{self.store_dir}/{self.digest}-{self.name}"

    @property
    def inputs(self) -> tuple[Dependency, ...]:
        """Dependencies that must exist before this plan can be realized."""
        collected: list[Dependency] = []
        if self.kind == "write":
            for output in self.files.values():
                collected.extend(output.references)
                if output.check is not None:
                    collected.append(output.check.plan)
        elif self.env is not None:
            collected.extend(self.env.inputs)
            collected.extend(self.env.path)
        unique: dict[str, Dependency] = {}
        for dependency in collected:
            unique.setdefault(dependency.path, dependency)
        return tuple(unique.values())

    def plan_inputs(self) -> tuple[BuildPlan, ...]:
        return tuple(dependency for dependency in self.inputs if isinstance(dependency, BuildPlan))

    def to_json(self, path: str | Path | None = None) -> str:
        encoded = json.dumps(self._export(), indent=2, sort_keys=True) + "\n"
        if path is not None:
            Path(path).write_text(encoded, encoding="utf-8")
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        encoded = cbor2.dumps(self._export(), canonical=True)
        if path is not None:
            Path(path).write_bytes(encoded)
        return encoded

    def _export(self) -> dict[str, Any]:
        payload = self._payload()
        payload["digest"] = self.digest
        payload["path"] = self.path
        payload["inputs"] = [dependency.path for dependency in self.inputs]
        return payload

    def _payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "kind": self.kind,
            "store_dir": self.store_dir,
        }
        if self.kind == "write":
            payload["files"] = {
                relpath: output._payload() for relpath, output in sorted(self.files.items())
            }
        elif self.env is not None:
            payload["env"] = self.env._payload()
        return payload


Dependency = Union[Package, BuildPlan]


@dataclass(frozen=True, slots=True)
class Artifact:
    """A writer result: a plan and the file it produces inside its output tree."""

    plan: BuildPlan
    relpath: str = ""

    @property
    def name(self) -> str:
        return self.plan.name

    @property
    def path(self) -> str:
        if not self.relpath:
            return self.plan.path
        return f"{self.plan.path}/{self.relpath}"


def as_dependency(value: Dependency | Artifact | str | Path) -> Dependency:
    """Normalize writer dependency arguments to a plan or package."""
    if isinstance(value, Artifact):
        return value.plan
    if isinstance(value, (Package, BuildPlan)):
        return value
    return Package.at(value)
