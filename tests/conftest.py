"""Shared test fixtures."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from scriptwriters.models import BuildPlan, IsolatedEnv, OutputFile, Package
from scriptwriters.orchestrator import PlanOrchestrator
from scriptwriters.toolchain import HaskellPackageSet, PythonRuntime, Toolchain
from scriptwriters.toolchain import host_package as find_host_package
from scriptwriters.writers import Writers


class RecordingOrchestrator:
    """Plan orchestrator that remembers every primitive call."""

    def __init__(self, store_dir: str = "/store") -> None:
        self.inner = PlanOrchestrator(store_dir=store_dir)
        self.calls: list[tuple[str, str]] = []

    def write(self, name: str, files: dict[str, OutputFile]) -> BuildPlan:
        self.calls.append(("write", name))
        return self.inner.write(name, files)

    def run_isolated(self, name: str, env: IsolatedEnv) -> BuildPlan:
        self.calls.append(("run_isolated", name))
        return self.inner.run_isolated(name, env)


def fake_package(name: str) -> Package:
    return Package(name=name, path=f"/opt/{name}")


@pytest.fixture
def toolchain() -> Toolchain:
    """Toolchain whose packages live at fixed, fake prefixes."""
    return Toolchain(
        bash=fake_package("bash"),
        dash=fake_package("dash"),
        coreutils=fake_package("coreutils"),
        gnused=fake_package("gnused"),
        jq=fake_package("jq"),
        nodejs=fake_package("nodejs"),
        perl=fake_package("perl"),
        gcc=fake_package("gcc"),
        binutils=fake_package("binutils"),
        pkgconfig=fake_package("pkgconfig"),
        python2=PythonRuntime(
            fake_package("python2"),
            flake8=fake_package("flake8-py2"),
            site_packages="lib/python2.7/site-packages",
        ),
        python3=PythonRuntime(
            fake_package("python3"),
            flake8=fake_package("flake8-py3"),
            site_packages="lib/python3.12/site-packages",
        ),
        haskell=HaskellPackageSet(
            ghc=fake_package("ghc"),
            packages={"aeson": fake_package("aeson")},
        ),
        store_dir="/store",
    )


@pytest.fixture
def recorder() -> RecordingOrchestrator:
    return RecordingOrchestrator()


@pytest.fixture
def writers(toolchain: Toolchain, recorder: RecordingOrchestrator) -> Writers:
    return Writers(toolchain, orchestrator=recorder)


def link_prefix(root: Path, name: str, programs: dict[str, str]) -> Package:
    """Build ``root/name/bin`` holding symlinks to host programs."""
    bin_dir = root / name / "bin"
    bin_dir.mkdir(parents=True, exist_ok=True)
    for program, target in programs.items():
        (bin_dir / program).symlink_to(target)
    return Package(name=name, path=str(root / name))


def host_program(*candidates: str) -> str:
    for candidate in candidates:
        found = shutil.which(candidate)
        if found is not None:
            return found
    pytest.skip(f"none of {', '.join(candidates)} is installed")


def host_package(name: str, program: str) -> Package:
    """Host installation prefix of ``program``."""
    package = find_host_package(name, program)
    if package is None:
        pytest.skip(f"{program} is not installed under a bin/ prefix")
    return package


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    return tmp_path / "store"


@pytest.fixture
def host_toolchain(tmp_path: Path, store_dir: Path) -> Toolchain:
    """Toolchain backed by host programs, for tests that realize plans."""
    prefixes = tmp_path / "prefixes"
    coreutils = {
        program: host_program(program)
        for program in ("mkdir", "ln", "dirname", "cp", "chmod", "cat")
    }
    return Toolchain(
        bash=link_prefix(prefixes, "bash", {"bash": host_program("bash")}),
        dash=link_prefix(prefixes, "dash", {"dash": host_program("dash", "sh")}),
        coreutils=link_prefix(prefixes, "coreutils", coreutils),
        store_dir=str(store_dir),
    )
