"""Typed writer error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error identifiers used across writers, realizers and the CLI."""

    INVALID_NAME = "E_INVALID_NAME"
    INVALID_IDENTIFIER = "E_INVALID_IDENTIFIER"
    INVALID_OPTION = "E_INVALID_OPTION"
    INVALID_VALUE = "E_INVALID_VALUE"
    UNRESOLVED_DEPENDENCY = "E_UNRESOLVED_DEPENDENCY"
    CHECK_FAILED = "E_CHECK_FAILED"
    BUILD_FAILED = "E_BUILD_FAILED"
    CONFIGURATION = "E_CONFIGURATION"
    STORE_INTEGRITY = "E_STORE_INTEGRITY"


class WriterError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in self.context.items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": dict(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class InvalidNameError(WriterError):
    """A writer name matched none of the accepted name grammars."""

    def __init__(
        self,
        value: str,
        *,
        expected: str,
        argument: str = "name",
        hint: str | None = None,
    ) -> None:
        super().__init__(
            f"argument ‘{argument}’ is not a {expected}",
            code=ErrorCode.INVALID_NAME,
            hint=hint,
            context={"argument": argument, "value": repr(value), "expected": expected},
        )
        self.value = value
        self.argument = argument
        self.expected = expected


NameValidationError = InvalidNameError


class InvalidIdentifierError(WriterError):
    """A module or executable identifier failed its language grammar."""

    def __init__(
        self,
        value: str,
        *,
        expected: str,
        argument: str,
        hint: str | None = None,
    ) -> None:
        super().__init__(
            f"argument ‘{argument}’ is not a {expected}",
            code=ErrorCode.INVALID_IDENTIFIER,
            hint=hint,
            context={"argument": argument, "value": repr(value), "expected": expected},
        )
        self.value = value
        self.argument = argument
        self.expected = expected


class InvalidOptionError(WriterError):
    def __init__(
        self,
        message: str,
        *,
        option: str,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.INVALID_OPTION,
            hint=hint,
            context={"option": option, **(context or {})},
        )
        self.option = option


class InvalidValueError(WriterError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.INVALID_VALUE, hint=hint, context=context)


class UnresolvedDependencyError(WriterError):
    """One or more named libraries could not be resolved.

    ``detail`` holds the resolving tool's own error output, unmodified.
    """

    def __init__(
        self,
        message: str,
        *,
        libraries: Sequence[str],
        detail: str = "",
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.UNRESOLVED_DEPENDENCY,
            hint=hint,
            context={"libraries": " ".join(libraries), "detail": detail, **(context or {})},
        )
        self.libraries = tuple(libraries)
        self.detail = detail


class CheckFailedError(WriterError):
    """The check attached to an output file rejected its content."""

    def __init__(
        self,
        message: str,
        *,
        artifact: str,
        check: str,
        returncode: int | None = None,
        detail: str = "",
        hint: str | None = None,
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.CHECK_FAILED,
            hint=hint,
            context={
                "artifact": artifact,
                "check": check,
                "returncode": "" if returncode is None else str(returncode),
                "detail": detail,
            },
        )
        self.artifact = artifact
        self.check = check
        self.returncode = returncode
        self.detail = detail


class BuildFailedError(WriterError):
    def __init__(
        self,
        message: str,
        *,
        plan: str,
        returncode: int | None = None,
        detail: str = "",
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            message,
            code=ErrorCode.BUILD_FAILED,
            hint=hint,
            context={
                "plan": plan,
                "returncode": "" if returncode is None else str(returncode),
                "detail": detail,
                **(context or {}),
            },
        )
        self.plan = plan
        self.returncode = returncode
        self.detail = detail


class ConfigurationError(WriterError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CONFIGURATION, hint=hint, context=context)


class StoreIntegrityError(WriterError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.STORE_INTEGRITY, hint=hint, context=context)


__all__ = [
    "BuildFailedError",
    "CheckFailedError",
    "ConfigurationError",
    "ErrorCode",
    "InvalidIdentifierError",
    "InvalidNameError",
    "InvalidOptionError",
    "InvalidValueError",
    "NameValidationError",
    "StoreIntegrityError",
    "UnresolvedDependencyError",
    "WriterError",
]
