"""The two plan-construction primitives writers are allowed to call."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from scriptwriters.errors import ConfigurationError
from scriptwriters.models import BuildPlan, IsolatedEnv, OutputFile

STORE_ENV_VAR = "SCRIPTWRITERS_STORE"
DEFAULT_STORE_DIR = "/tmp/scriptwriters/store"


class Orchestrator(Protocol):
    def write(self, name: str, files: Mapping[str, OutputFile]) -> BuildPlan:
        """Plan that writes *files* into an output tree.

        The key ``""`` makes the output root itself the file.
        """

    def run_isolated(self, name: str, env: IsolatedEnv) -> BuildPlan:
        """Plan that runs ``env.script`` in isolation and captures ``$out``."""


def default_store_dir() -> str:
    return os.environ.get(STORE_ENV_VAR) or DEFAULT_STORE_DIR


@dataclass(slots=True)
class PlanOrchestrator:
    """Pure orchestrator: returns content-addressed plans and performs no I/O."""

    store_dir: str = field(default_factory=default_store_dir)

    def __post_init__(self) -> None:
        self.store_dir = str(self.store_dir).rstrip("/")
        if not self.store_dir.startswith("/"):
            raise ConfigurationError(
                "Store directory must be an absolute path.",
                hint=f"Set {STORE_ENV_VAR} or pass an absolute `store_dir`.",
                context={"store_dir": self.store_dir},
            )

    def write(self, name: str, files: Mapping[str, OutputFile]) -> BuildPlan:
        if "" in files and len(files) > 1:
            raise ConfigurationError(
                "A plan whose root is a file cannot hold other files.",
                context={"plan": name, "files": ", ".join(sorted(files))},
            )
        return BuildPlan.create(name=name, kind="write", store_dir=self.store_dir, files=files)

    def run_isolated(self, name: str, env: IsolatedEnv) -> BuildPlan:
        return BuildPlan.create(name=name, kind="run", store_dir=self.store_dir, env=env)
