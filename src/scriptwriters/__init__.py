"""Public package entrypoint for the script writer library."""

from .backends import LocalRealizer, Realization
from .errors import (
    BuildFailedError,
    CheckFailedError,
    ConfigurationError,
    ErrorCode,
    InvalidIdentifierError,
    InvalidNameError,
    InvalidOptionError,
    InvalidValueError,
    NameValidationError,
    StoreIntegrityError,
    UnresolvedDependencyError,
    WriterError,
)
from .grammars import Grammar, parse_package_name
from .models import Artifact, BuildPlan, DependencyProbe, IsolatedEnv, OutputFile, Package
from .observability import StructuredLogger
from .orchestrator import Orchestrator, PlanOrchestrator
from .toolchain import HaskellPackageSet, PythonRuntime, Toolchain, load_toolchain
from .writers import (
    COptions,
    EnvOptions,
    HaskellExecutable,
    HaskellLibrary,
    HaskellModule,
    HaskellOptions,
    HaskellPackageOptions,
    PythonOptions,
    ScriptWriter,
    Writers,
    make_script_writer,
)

__all__ = [
    "Artifact",
    "BuildFailedError",
    "BuildPlan",
    "COptions",
    "CheckFailedError",
    "ConfigurationError",
    "DependencyProbe",
    "EnvOptions",
    "ErrorCode",
    "Grammar",
    "HaskellExecutable",
    "HaskellLibrary",
    "HaskellModule",
    "HaskellOptions",
    "HaskellPackageOptions",
    "HaskellPackageSet",
    "InvalidIdentifierError",
    "InvalidNameError",
    "InvalidOptionError",
    "InvalidValueError",
    "IsolatedEnv",
    "LocalRealizer",
    "NameValidationError",
    "Orchestrator",
    "OutputFile",
    "Package",
    "PlanOrchestrator",
    "PythonOptions",
    "PythonRuntime",
    "Realization",
    "ScriptWriter",
    "StoreIntegrityError",
    "StructuredLogger",
    "Toolchain",
    "UnresolvedDependencyError",
    "Writers",
    "WriterError",
    "load_toolchain",
    "make_script_writer",
    "parse_package_name",
]
