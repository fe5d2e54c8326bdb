"""JSON writer: serialize a value and canonicalize it through jq."""

from __future__ import annotations

import json
import shlex
from dataclasses import dataclass
from typing import Any

from scriptwriters.errors import InvalidValueError
from scriptwriters.grammars import base_name, require_name
from scriptwriters.models import Artifact, IsolatedEnv, Package
from scriptwriters.orchestrator import Orchestrator
from scriptwriters.writers.base import output_relpath


def _check_value(value: Any, location: str) -> None:
    # Only values that parse back to themselves are accepted.
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise InvalidValueError(
                    "JSON object keys must be strings.",
                    context={"location": location, "key": repr(key)},
                )
            _check_value(item, f"{location}.{key}")
    elif isinstance(value, list):
        for index, item in enumerate(value):
            _check_value(item, f"{location}[{index}]")
    elif isinstance(value, tuple):
        raise InvalidValueError(
            "Tuples do not survive a JSON round trip; pass a list.",
            context={"location": location},
        )


def serialize(value: Any) -> str:
    _check_value(value, "$")
    try:
        return json.dumps(value, allow_nan=False, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise InvalidValueError(
            "Value cannot be represented as JSON.",
            hint=str(exc),
            context={"type": type(value).__name__},
        ) from exc


@dataclass(slots=True)
class JSONWriter:
    orchestrator: Orchestrator
    jq: Package
    bash: Package
    coreutils: Package

    def write(self, name: str, value: Any) -> Artifact:
        require_name(name)
        encoded = serialize(value)
        relpath = output_relpath(name)
        if relpath:
            prelude = f'target="$out"/{shlex.quote(relpath)}\nmkdir -p "$(dirname "$target")"\n'
        else:
            prelude = 'target="$out"\n'
        script = prelude + f'{shlex.quote(self.jq.bin("jq"))} . "$jsonPath" > "$target"\n'
        plan = self.orchestrator.run_isolated(
            base_name(name),
            IsolatedEnv(
                builder=self.bash.bin("bash"),
                script=script,
                inputs=(self.jq,),
                path=(self.coreutils,),
                pass_as_file={"json": encoded},
            ),
        )
        return Artifact(plan=plan, relpath=relpath)
