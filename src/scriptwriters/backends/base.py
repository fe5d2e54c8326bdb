"""Realizer contract: turning plans into outputs on disk."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from scriptwriters.models import Artifact, BuildPlan


@dataclass(frozen=True, slots=True)
class Realization:
    plan: BuildPlan
    path: Path
    cached: bool = False


@runtime_checkable
class Realizer(Protocol):
    name: str

    def realize(self, plan: BuildPlan) -> Realization:
        """Produce ``plan.path``, realizing its inputs first."""

    def realize_artifact(self, artifact: Artifact) -> Path:
        """Realize the artifact's plan and return the artifact's file."""
