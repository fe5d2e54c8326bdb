import json
import os
import subprocess
from dataclasses import replace
from pathlib import Path

import pytest
from conftest import host_package

from scriptwriters.backends import LocalRealizer, Realizer
from scriptwriters.cache.store import StoreManifests
from scriptwriters.errors import (
    BuildFailedError,
    CheckFailedError,
    ConfigurationError,
    StoreIntegrityError,
    UnresolvedDependencyError,
)
from scriptwriters.models import DependencyProbe, IsolatedEnv, Package
from scriptwriters.orchestrator import PlanOrchestrator
from scriptwriters.toolchain import PythonRuntime, Toolchain
from scriptwriters.writers import COptions, PythonOptions, Writers
from scriptwriters.writers.environment import build_env

pytestmark = pytest.mark.skipif(os.name != "posix", reason="realizer needs a POSIX host")


def _run(path: str | Path, *args: str) -> str:
    result = subprocess.run([str(path), *args], capture_output=True, text=True, check=True)
    return result.stdout


def test_realized_bash_script_runs(host_toolchain: Toolchain, store_dir: Path) -> None:
    writers = Writers(host_toolchain)
    artifact = writers.write_bash_bin("hello", "echo hello world\n")
    realizer = LocalRealizer(store_dir=store_dir)

    path = realizer.realize_artifact(artifact)

    assert path == Path(artifact.plan.path) / "bin" / "hello"
    assert os.access(path, os.X_OK)
    assert _run(path) == "hello world\n"
    assert (store_dir / ".manifests" / f"{artifact.plan.digest}-hello.json").is_file()


def test_each_plan_is_realized_once(host_toolchain: Toolchain, store_dir: Path) -> None:
    writers = Writers(host_toolchain)
    artifact = writers.write_dash("hello", "echo hi\n")
    realizer = LocalRealizer(store_dir=store_dir)

    first = realizer.realize(artifact.plan)
    second = realizer.realize(artifact.plan)
    third = LocalRealizer(store_dir=store_dir).realize(artifact.plan)

    assert first.cached is False
    assert second.cached is True
    assert third.cached is True
    assert first.path == second.path == third.path
    messages = [record["message"] for record in realizer.logger.records_for_plan("hello")]
    assert messages == ["Realizing write plan.", "Realized output."]


def test_passing_check_admits_the_output(host_toolchain: Toolchain, store_dir: Path) -> None:
    writers = Writers(host_toolchain)
    check = writers.write_dash("nonempty.sh", 'test -s "$1"\n')
    writer = writers.make_script_writer(host_toolchain.require("bash").bin("bash"), check=check)
    artifact = writer("hello", "echo checked\n")

    path = LocalRealizer(store_dir=store_dir).realize_artifact(artifact)

    assert _run(path) == "checked\n"


def test_failing_check_leaves_no_output(host_toolchain: Toolchain, store_dir: Path) -> None:
    writers = Writers(host_toolchain)
    check = writers.write_dash("reject.sh", 'echo "rejected $1" >&2\nexit 4\n')
    writer = writers.make_script_writer(host_toolchain.require("bash").bin("bash"), check=check)
    artifact = writer("hello", "echo unchecked\n")

    with pytest.raises(CheckFailedError) as excinfo:
        LocalRealizer(store_dir=store_dir).realize(artifact.plan)

    assert excinfo.value.code == "E_CHECK_FAILED"
    assert excinfo.value.check == "reject.sh"
    assert excinfo.value.returncode == 4
    assert "rejected" in excinfo.value.detail
    assert not Path(artifact.plan.path).exists()
    assert not list(store_dir.glob(".stage-*"))


def test_run_plan_exposes_variables_and_files(host_toolchain: Toolchain, store_dir: Path) -> None:
    bash = host_toolchain.require("bash")
    coreutils = host_toolchain.require("coreutils")
    orchestrator = PlanOrchestrator(store_dir=str(store_dir))
    plan = orchestrator.run_isolated(
        "greeting",
        IsolatedEnv(
            builder=bash.bin("bash"),
            script='mkdir -p "$out"/share\necho "$greeting" > "$out"/share/greeting\n'
            'cat "$textPath" > "$out"/share/text\n',
            path=(coreutils,),
            variables={"greeting": "hi"},
            pass_as_file={"text": "passed as a file\n"},
        ),
    )

    LocalRealizer(store_dir=store_dir).realize(plan)

    output = Path(plan.path)
    assert (output / "share" / "greeting").read_text(encoding="utf-8") == "hi\n"
    assert (output / "share" / "text").read_text(encoding="utf-8") == "passed as a file\n"


def test_failed_build_discards_partial_output(host_toolchain: Toolchain, store_dir: Path) -> None:
    bash = host_toolchain.require("bash")
    coreutils = host_toolchain.require("coreutils")
    plan = PlanOrchestrator(store_dir=str(store_dir)).run_isolated(
        "broken",
        IsolatedEnv(
            builder=bash.bin("bash"),
            script='mkdir -p "$out"\necho boom >&2\nexit 3\n',
            path=(coreutils,),
        ),
    )

    with pytest.raises(BuildFailedError) as excinfo:
        LocalRealizer(store_dir=store_dir).realize(plan)

    assert excinfo.value.returncode == 3
    assert "boom" in excinfo.value.detail
    assert not Path(plan.path).exists()


def test_build_without_output_fails(host_toolchain: Toolchain, store_dir: Path) -> None:
    bash = host_toolchain.require("bash")
    plan = PlanOrchestrator(store_dir=str(store_dir)).run_isolated(
        "empty", IsolatedEnv(builder=bash.bin("bash"), script="true\n")
    )

    with pytest.raises(BuildFailedError, match="produced no output"):
        LocalRealizer(store_dir=store_dir).realize(plan)


def test_timed_out_build_leaves_nothing_to_reuse(host_toolchain: Toolchain, store_dir: Path) -> None:
    bash = host_toolchain.require("bash")
    coreutils = host_toolchain.require("coreutils")
    hanging = PlanOrchestrator(store_dir=str(store_dir)).run_isolated(
        "hanging",
        IsolatedEnv(
            builder=bash.bin("bash"),
            script='mkdir -p "$out"\necho partial > "$out"/f\nwhile :; do :; done\n',
            path=(coreutils,),
        ),
    )

    with pytest.raises(BuildFailedError, match="timed out"):
        LocalRealizer(store_dir=store_dir, timeout=1).realize(hanging)

    assert not Path(hanging.path).exists()
    assert not StoreManifests(store_dir).exists(hanging)


def test_interrupted_build_output_is_rebuilt(host_toolchain: Toolchain, store_dir: Path) -> None:
    bash = host_toolchain.require("bash")
    coreutils = host_toolchain.require("coreutils")
    plan = PlanOrchestrator(store_dir=str(store_dir)).run_isolated(
        "complete",
        IsolatedEnv(
            builder=bash.bin("bash"),
            script='mkdir -p "$out"\necho built > "$out"/f\n',
            path=(coreutils,),
        ),
    )
    manifests = StoreManifests(store_dir)
    manifests.mark_pending(plan)
    Path(plan.path).mkdir()
    (Path(plan.path) / "f").write_text("partial\n", encoding="utf-8")

    result = LocalRealizer(store_dir=store_dir).realize(plan)

    assert result.cached is False
    assert (Path(plan.path) / "f").read_text(encoding="utf-8") == "built\n"
    assert not manifests.is_pending(plan)
    manifests.verify(plan)


def test_failed_dependency_resolution_reports_the_resolver_output(
    host_toolchain: Toolchain, store_dir: Path
) -> None:
    bash = host_toolchain.require("bash")
    probe = DependencyProbe(
        argv=(bash.bin("bash"), "-c", "echo 'Package zlib was not found' >&2; exit 1"),
        libraries=("zlib",),
    )
    plan = PlanOrchestrator(store_dir=str(store_dir)).run_isolated(
        "zpipe",
        IsolatedEnv(builder=bash.bin("bash"), script='echo built > "$out"\n', probes=(probe,)),
    )

    with pytest.raises(UnresolvedDependencyError) as excinfo:
        LocalRealizer(store_dir=store_dir).realize(plan)

    assert excinfo.value.libraries == ("zlib",)
    assert "Package zlib was not found" in excinfo.value.detail
    assert not Path(plan.path).exists()


def test_modified_output_fails_verification(host_toolchain: Toolchain, store_dir: Path) -> None:
    artifact = Writers(host_toolchain).write_bash("hello", "echo hello\n")
    LocalRealizer(store_dir=store_dir).realize(artifact.plan)

    Path(artifact.path).write_text("#!/bin/sh\necho tampered\n", encoding="utf-8")

    with pytest.raises(StoreIntegrityError):
        LocalRealizer(store_dir=store_dir).realize(artifact.plan)


def test_output_without_manifest_is_reused_with_warning(
    host_toolchain: Toolchain, store_dir: Path
) -> None:
    artifact = Writers(host_toolchain).write_bash("hello", "echo hello\n")
    LocalRealizer(store_dir=store_dir).realize(artifact.plan)
    for manifest in (store_dir / ".manifests").iterdir():
        manifest.unlink()

    with pytest.warns(UserWarning, match="without a manifest"):
        result = LocalRealizer(store_dir=store_dir).realize(artifact.plan)
    assert result.cached is True


def test_plans_from_another_store_are_rejected(host_toolchain: Toolchain, store_dir: Path) -> None:
    artifact = Writers(replace(host_toolchain, store_dir="/elsewhere")).write_bash("hello", "true\n")

    with pytest.raises(ConfigurationError):
        LocalRealizer(store_dir=store_dir).realize(artifact.plan)


def test_build_env_links_first_provider_of_each_entry(
    host_toolchain: Toolchain, store_dir: Path, tmp_path: Path
) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    for prefix, entries in ((first, ("a", "b")), (second, ("a", "c"))):
        modules = prefix / "lib" / "node_modules"
        modules.mkdir(parents=True)
        for entry in entries:
            (modules / entry).mkdir()
    tree = build_env(
        PlanOrchestrator(store_dir=str(store_dir)),
        name="node",
        dependencies=(Package.at(first), Package.at(second)),
        paths_to_link=("lib/node_modules",),
        bash=host_toolchain.require("bash"),
        coreutils=host_toolchain.require("coreutils"),
    )

    LocalRealizer(store_dir=store_dir).realize(tree)

    modules = Path(tree.path) / "lib" / "node_modules"
    assert sorted(entry.name for entry in modules.iterdir()) == ["a", "b", "c"]
    assert os.readlink(modules / "a") == str(first / "lib" / "node_modules" / "a")
    assert os.readlink(modules / "c") == str(second / "lib" / "node_modules" / "c")


def test_build_env_without_dependencies_is_empty(host_toolchain: Toolchain, store_dir: Path) -> None:
    tree = build_env(
        PlanOrchestrator(store_dir=str(store_dir)),
        name="perl-environment",
        dependencies=(),
        paths_to_link=("lib/perl5/site_perl",),
        bash=host_toolchain.require("bash"),
        coreutils=host_toolchain.require("coreutils"),
    )

    LocalRealizer(store_dir=store_dir).realize(tree)

    assert list((Path(tree.path) / "lib" / "perl5" / "site_perl").iterdir()) == []


def test_jq_filter_is_syntax_checked(host_toolchain: Toolchain, store_dir: Path) -> None:
    writers = Writers(replace(host_toolchain, jq=host_package("jq", "jq")))
    realizer = LocalRealizer(store_dir=store_dir)

    good = realizer.realize_artifact(writers.write_jq_bin("first", ".[0]\n"))
    result = subprocess.run([str(good)], input="[7, 8]", capture_output=True, text=True, check=True)
    assert result.stdout == "7\n"

    bad = writers.write_jq("broken", ".[0\n")
    with pytest.raises(CheckFailedError):
        realizer.realize(bad.plan)
    assert not Path(bad.plan.path).exists()


def test_json_value_is_canonicalized(host_toolchain: Toolchain, store_dir: Path) -> None:
    writers = Writers(replace(host_toolchain, jq=host_package("jq", "jq")))
    artifact = writers.write_json("/etc/config.json", {"b": 1, "a": [True, None]})

    path = LocalRealizer(store_dir=store_dir).realize_artifact(artifact)

    assert path.read_text(encoding="utf-8") == '{\n  "b": 1,\n  "a": [\n    true,\n    null\n  ]\n}\n'
    assert json.loads(path.read_text(encoding="utf-8")) == {"b": 1, "a": [True, None]}


def test_compiled_c_binary_runs(host_toolchain: Toolchain, store_dir: Path) -> None:
    toolchain = replace(
        host_toolchain,
        gcc=host_package("gcc", "gcc"),
        binutils=host_package("binutils", "strip"),
    )
    artifact = Writers(toolchain).write_c_bin(
        "hello", None, '#include <stdio.h>\nint main(void) { puts("hello"); return 0; }\n'
    )

    path = LocalRealizer(store_dir=store_dir).realize_artifact(artifact)

    assert _run(path) == "hello\n"


def test_missing_c_library_is_unresolved(
    host_toolchain: Toolchain, store_dir: Path, tmp_path: Path
) -> None:
    toolchain = replace(
        host_toolchain,
        gcc=host_package("gcc", "gcc"),
        binutils=host_package("binutils", "strip"),
        pkgconfig=host_package("pkgconfig", "pkg-config"),
    )
    options = COptions(libraries={"no-such-library-xyz": Package.at(tmp_path / "empty")})
    artifact = Writers(toolchain).write_c("needs-lib", options, "int main(void) { return 0; }\n")

    with pytest.raises(UnresolvedDependencyError) as excinfo:
        LocalRealizer(store_dir=store_dir).realize(artifact.plan)

    assert "no-such-library-xyz" in excinfo.value.detail


def test_c_binary_links_a_resolved_library(host_toolchain: Toolchain, store_dir: Path) -> None:
    pkg_config = host_package("pkgconfig", "pkg-config")
    exists = subprocess.run([pkg_config.bin("pkg-config"), "--exists", "zlib"], check=False)
    if exists.returncode != 0:
        pytest.skip("zlib is not known to pkg-config")
    toolchain = replace(
        host_toolchain,
        gcc=host_package("gcc", "gcc"),
        binutils=host_package("binutils", "strip"),
        pkgconfig=pkg_config,
    )
    source = (
        "#include <stdio.h>\n#include <zlib.h>\n"
        'int main(void) { printf("%d\\n", zlibVersion()[0] != 0); return 0; }\n'
    )
    artifact = Writers(toolchain).write_c_bin(
        "zversion", COptions(libraries={"zlib": pkg_config}), source
    )

    path = LocalRealizer(store_dir=store_dir).realize_artifact(artifact)

    assert _run(path) == "1\n"


def test_python_lint_failure_blocks_the_script(host_toolchain: Toolchain, store_dir: Path) -> None:
    runtime = PythonRuntime(
        host_package("python3", "python3"),
        flake8=host_package("flake8", "flake8"),
        program="python3",
    )
    writers = Writers(replace(host_toolchain, python3=runtime))
    realizer = LocalRealizer(store_dir=store_dir)

    bad = writers.write_python3("unused", PythonOptions(), "import os\n")
    with pytest.raises(CheckFailedError) as excinfo:
        realizer.realize(bad.plan)
    assert "F401" in excinfo.value.detail

    ignored = writers.write_python3_bin(
        "ignored",
        PythonOptions(lint_ignore=("E501", "F401")),
        "import os\nprint('ok')\n",
    )
    assert _run(realizer.realize_artifact(ignored)) == "ok\n"


def test_local_realizer_satisfies_the_realizer_contract(store_dir: Path) -> None:
    realizer = LocalRealizer(store_dir=store_dir)

    assert isinstance(realizer, Realizer)
    assert realizer.name == "local"
