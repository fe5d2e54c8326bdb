"""Command line entry point: plan or realize a writer from a source file."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from scriptwriters.backends import LocalRealizer, Realizer
from scriptwriters.errors import ConfigurationError, InvalidValueError, WriterError
from scriptwriters.models import Artifact, Package
from scriptwriters.toolchain import Toolchain, load_toolchain
from scriptwriters.writers import (
    COptions,
    EnvOptions,
    HaskellOptions,
    PythonOptions,
    Writers,
)

LANGUAGES = ("bash", "dash", "sed", "jq", "js", "perl", "python2", "python3", "c", "haskell", "json")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scriptwriters",
        description="Generate build plans for executables written inline.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    plan = subparsers.add_parser("plan", help="print the build plan")
    _add_writer_arguments(plan)
    plan.add_argument("--format", choices=("json", "cbor"), default="json")
    plan.add_argument("--output", type=Path, help="write the plan to a file instead of stdout")
    plan.set_defaults(func=cmd_plan)

    realize = subparsers.add_parser("realize", help="realize the artifact in the local store")
    _add_writer_arguments(realize)
    realize.add_argument("--log", type=Path, help="write realizer records as JSON lines")
    realize.set_defaults(func=cmd_realize)
    return parser


def _add_writer_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("language", choices=LANGUAGES)
    parser.add_argument("name")
    parser.add_argument("source", help="source file, or - for stdin")
    parser.add_argument("--bin", action="store_true", help="place the artifact at /bin/<name>")
    parser.add_argument("--dep", action="append", default=[], help="dependency prefix")
    parser.add_argument("--lint-ignore", action="append", default=[], help="flake8 code to ignore")
    parser.add_argument(
        "--library",
        action="append",
        default=[],
        metavar="NAME=PREFIX",
        help="C library resolved with pkg-config",
    )
    parser.add_argument("--destination", default="", help="C binary path inside the output")
    parser.add_argument("--toolchain", type=Path, help="toolchain JSON file (default: host PATH)")
    parser.add_argument("--store", help="store directory")


def cmd_plan(args: argparse.Namespace) -> int:
    artifact = build_artifact(_writers(args), args)
    plan = artifact.plan
    if args.format == "cbor":
        encoded = plan.to_cbor(args.output)
        if args.output is None:
            sys.stdout.buffer.write(encoded)
    else:
        text = plan.to_json(args.output)
        if args.output is None:
            sys.stdout.write(text)
    return 0


def cmd_realize(args: argparse.Namespace) -> int:
    writers = _writers(args)
    artifact = build_artifact(writers, args)
    realizer: Realizer = LocalRealizer(store_dir=artifact.plan.store_dir, logger=writers.logger)
    path = realizer.realize_artifact(artifact)
    if args.log is not None:
        writers.logger.to_json_lines(args.log)
    print(path)
    return 0


def build_artifact(writers: Writers, args: argparse.Namespace) -> Artifact:
    text = _read_source(args.source)
    name = args.name
    language = args.language
    suffix = "_bin" if args.bin else ""
    if language in ("bash", "dash", "sed", "jq"):
        return getattr(writers, f"write_{language}{suffix}")(name, text)
    if language in ("js", "perl"):
        options = EnvOptions(dependencies=tuple(args.dep))
        return getattr(writers, f"write_{language}{suffix}")(name, options, text)
    if language in ("python2", "python3"):
        py_options = PythonOptions(dependencies=tuple(args.dep), lint_ignore=tuple(args.lint_ignore))
        return getattr(writers, f"write_{language}{suffix}")(name, py_options, text)
    if language == "c":
        c_options = COptions(destination=args.destination, libraries=_libraries(args.library))
        return getattr(writers, f"write_c{suffix}")(name, c_options, text)
    if language == "haskell":
        haskell_options = HaskellOptions(dependencies=tuple(args.dep))
        return getattr(writers, f"write_haskell{suffix}")(name, haskell_options, text)
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidValueError(
            "Source is not valid JSON.",
            hint=str(exc),
            context={"source": args.source},
        ) from exc
    return writers.write_json(f"/bin/{name}" if args.bin else name, value)


def _writers(args: argparse.Namespace) -> Writers:
    store = None if args.store is None else str(Path(args.store).resolve())
    if args.toolchain is None:
        return Writers(Toolchain.from_host(store_dir=store))
    toolchain = load_toolchain(args.toolchain)
    if store is not None:
        toolchain = replace(toolchain, store_dir=store)
    return Writers(toolchain)


def _libraries(values: Sequence[str]) -> dict[str, Package]:
    libraries: dict[str, Package] = {}
    for value in values:
        name, sep, prefix = value.partition("=")
        if not sep or not name or not prefix:
            raise SystemExit(f"scriptwriters: invalid --library value {value!r}; expected NAME=PREFIX")
        libraries[name] = Package(name=name, path=prefix)
    return libraries


def _read_source(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    try:
        return Path(source).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(
            "Source file cannot be read.",
            hint=str(exc),
            context={"source": source},
        ) from exc


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except WriterError as exc:
        print(json.dumps(exc.to_dict(), indent=2, sort_keys=True), file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
