"""Local realizer: executes plans on the host into a content-addressed store.

Outputs live at ``plan.path``. Each distinct plan is executed at most once
per realizer; an output already in the store is verified against its
manifest and reused; output left by an interrupted build is
discarded and rebuilt. Build scripts run with a scrubbed environment
(``out``, ``PATH`` built from declared packages, ``TMPDIR``) but no further
sandboxing.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
import warnings
from dataclasses import dataclass, field
from pathlib import Path

from scriptwriters.backends.base import Realization
from scriptwriters.cache.store import StoreManifests
from scriptwriters.errors import (
    BuildFailedError,
    CheckFailedError,
    ConfigurationError,
    UnresolvedDependencyError,
)
from scriptwriters.models import Artifact, BuildPlan, IsolatedEnv
from scriptwriters.observability import StructuredLogger

HOMELESS = "/homeless-shelter"
NO_PATH = "/path-not-set"
OUTPUT_TAIL = 2000


@dataclass(slots=True)
class LocalRealizer:
    store_dir: str | Path
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    timeout: float | None = None
    name: str = "local"
    _realized: dict[str, Realization] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.store_dir = Path(self.store_dir)

    def realize(self, plan: BuildPlan) -> Realization:
        self._ensure_store(plan)
        previous = self._realized.get(plan.path)
        if previous is not None:
            return Realization(plan=plan, path=previous.path, cached=True)

        for dependency in plan.plan_inputs():
            self.realize(dependency)

        manifests = StoreManifests(self.store_dir)
        output = Path(plan.path)
        if manifests.is_pending(plan):
            self._log(plan, "Discarding output of an interrupted build.", level="warning")
            _discard(output)
        if output.exists() or output.is_symlink():
            if manifests.exists(plan):
                manifests.verify(plan)
            else:
                warnings.warn(
                    f"Reusing `{plan.path}` without a manifest; it cannot be verified.",
                    stacklevel=2,
                )
            result = Realization(plan=plan, path=output, cached=True)
            self._log(plan, "Reused existing output.")
        else:
            self._log(plan, f"Realizing {plan.kind} plan.")
            if plan.kind == "write":
                self._realize_write(plan)
            else:
                manifests.mark_pending(plan)
                self._realize_run(plan)
            manifests.record(plan)
            result = Realization(plan=plan, path=output, cached=False)
            self._log(plan, "Realized output.")

        self._realized[plan.path] = result
        return result

    def realize_artifact(self, artifact: Artifact) -> Path:
        self.realize(artifact.plan)
        return Path(artifact.path)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _ensure_store(self, plan: BuildPlan) -> None:
        if Path(plan.store_dir) != Path(self.store_dir):
            raise ConfigurationError(
                "Plan was constructed for a different store.",
                hint="Use the same store directory for the orchestrator and the realizer.",
                context={
                    "realizer": self.name,
                    "plan": plan.name,
                    "plan_store": plan.store_dir,
                    "realizer_store": str(self.store_dir),
                },
            )
        Path(self.store_dir).mkdir(parents=True, exist_ok=True)

    def _realize_write(self, plan: BuildPlan) -> None:
        with tempfile.TemporaryDirectory(dir=self.store_dir, prefix=".stage-") as staging:
            staged = Path(staging) / "out"
            if "" not in plan.files:
                staged.mkdir()
            for relpath, output in sorted(plan.files.items()):
                target = staged / relpath if relpath else staged
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(output.text, encoding="utf-8")
                target.chmod(0o755 if output.executable else 0o644)
                if output.check is not None:
                    self._run_check(plan, output.check, target, Path(staging))
            os.replace(staged, plan.path)

    def _run_check(self, plan: BuildPlan, check: Artifact, target: Path, scratch: Path) -> None:
        self._log(plan, f"Running check `{check.name}`.")
        env = {"HOME": HOMELESS, "PATH": NO_PATH, "TMPDIR": str(scratch)}
        try:
            result = subprocess.run(
                [check.path, str(target)],
                cwd=str(scratch),
                env=env,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise CheckFailedError(
                f"Check `{check.name}` timed out for `{plan.name}`.",
                artifact=plan.name,
                check=check.name,
                detail=f"no result after {self.timeout} seconds",
            ) from exc
        except OSError as exc:
            raise CheckFailedError(
                f"Check `{check.name}` could not be executed for `{plan.name}`.",
                artifact=plan.name,
                check=check.name,
                detail=str(exc),
            ) from exc
        if result.returncode != 0:
            self._log(plan, f"Check `{check.name}` failed.", level="error")
            raise CheckFailedError(
                f"Check `{check.name}` rejected `{plan.name}`.",
                artifact=plan.name,
                check=check.name,
                returncode=result.returncode,
                detail=_tail(result.stdout + result.stderr),
                hint="Fix the reported problems in the source text.",
            )

    def _realize_run(self, plan: BuildPlan) -> None:
        isolated = plan.env
        if isolated is None:
            raise BuildFailedError("Run plan has no environment.", plan=plan.name)
        output = Path(plan.path)
        with tempfile.TemporaryDirectory(prefix=f"{plan.name}-build-") as build_dir:
            env = self._build_environment(isolated, output, Path(build_dir))
            self._run_probes(plan, isolated, env)
            script_path = Path(build_dir) / ".builder.sh"
            script_path.write_text(isolated.script, encoding="utf-8")
            try:
                result = subprocess.run(
                    [isolated.builder, "-e", str(script_path)],
                    cwd=build_dir,
                    env=env,
                    capture_output=True,
                    text=True,
                    check=False,
                    timeout=self.timeout,
                )
            except subprocess.TimeoutExpired as exc:
                _discard(output)
                self._log(plan, "Build script timed out.", level="error")
                raise BuildFailedError(
                    f"Build script timed out after {self.timeout} seconds.",
                    plan=plan.name,
                    hint="Raise the realizer timeout or check the script for a hang.",
                    context={"realizer": self.name},
                ) from exc
            except OSError as exc:
                _discard(output)
                raise BuildFailedError(
                    "Builder could not be executed.",
                    plan=plan.name,
                    detail=str(exc),
                    context={"realizer": self.name, "builder": isolated.builder},
                ) from exc

        if result.returncode != 0:
            _discard(output)
            self._log(plan, "Build script failed.", level="error")
            raise BuildFailedError(
                "Build script failed.",
                plan=plan.name,
                returncode=result.returncode,
                detail=_tail(result.stderr),
                hint="Check the toolchain output for details.",
                context={"realizer": self.name},
            )
        if not (output.exists() or output.is_symlink()):
            raise BuildFailedError(
                "Build script succeeded but produced no output.",
                plan=plan.name,
                hint="The script must create `$out`.",
                context={"realizer": self.name},
            )

    def _build_environment(self, isolated: IsolatedEnv, output: Path, build_dir: Path) -> dict[str, str]:
        env = {
            "out": str(output),
            "PATH": isolated.search_path() or NO_PATH,
            "HOME": HOMELESS,
            "TMPDIR": str(build_dir),
            "TMP": str(build_dir),
            "TEMP": str(build_dir),
            "BUILD_TOP": str(build_dir),
        }
        env.update(isolated.variables)
        for attribute, text in isolated.pass_as_file.items():
            attribute_path = build_dir / f".attr-{attribute}"
            attribute_path.write_text(text, encoding="utf-8")
            env[f"{attribute}Path"] = str(attribute_path)
        return env

    def _run_probes(self, plan: BuildPlan, isolated: IsolatedEnv, env: dict[str, str]) -> None:
        for probe in isolated.probes:
            probe_env = {**env, **probe.environment}
            try:
                result = subprocess.run(
                    list(probe.argv),
                    env=probe_env,
                    capture_output=True,
                    text=True,
                    check=False,
                    timeout=self.timeout,
                )
            except OSError as exc:
                raise UnresolvedDependencyError(
                    f"Could not run the resolver for {', '.join(probe.libraries)}.",
                    libraries=probe.libraries,
                    detail=str(exc),
                    context={"plan": plan.name},
                ) from exc
            if result.returncode != 0:
                self._log(plan, "Dependency resolution failed.", level="error")
                raise UnresolvedDependencyError(
                    f"Could not resolve {', '.join(probe.libraries)}.",
                    libraries=probe.libraries,
                    detail=_tail(result.stderr or result.stdout),
                    hint="Check that every library is provided by its package.",
                    context={"plan": plan.name},
                )

    def _log(self, plan: BuildPlan, message: str, *, level: str = "info") -> None:
        self.logger.log(
            operation="realize",
            writer=None,
            plan=plan.name,
            digest=plan.digest,
            message=message,
            level=level,
            extra={"realizer": self.name, "path": plan.path},
        )


def _discard(output: Path) -> None:
    if output.is_symlink() or output.is_file():
        output.unlink()
    elif output.exists():
        shutil.rmtree(output)


def _tail(text: str) -> str:
    return text[-OUTPUT_TAIL:] if text else ""
