"""Module graph error hierarchy.

Every error carries typed fields (not just a message string),
supports ``to_dict()`` for structured reporting, and has a readable
``__str__`` for logging.

Two outcomes that look like failures are deliberately *not* exceptions:
a child directory without a ``Build/Module.xml`` pair is skipped during
submodule discovery, and a missing delegate executable is reported as a
non-zero exit code by :mod:`modforge.delegate`.
"""

from __future__ import annotations


class ModforgeError(Exception):
    """Base error for all module graph failures."""

    def __init__(self, message: str, *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, "message": self.message, **self.detail}

    def __str__(self) -> str:
        return self.message


class DescriptorError(ModforgeError):
    """A module descriptor is missing, unreadable or malformed."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(
            f"Invalid module descriptor '{path}': {reason}",
            detail={"path": path, "reason": reason},
        )


class DefinitionError(ModforgeError):
    """A project definition file could not be read or parsed."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(
            f"Invalid project definition '{path}': {reason}",
            detail={"path": path, "reason": reason},
        )


class ModuleRootUnset(ModforgeError):
    """A directory-relative operation was attempted on a module with no root."""

    def __init__(self, module_name: str | None) -> None:
        self.module_name = module_name or ""
        super().__init__(
            f"Module '{self.module_name or '<unnamed>'}' has no root path; "
            "load it from a descriptor file first",
            detail={"module_name": self.module_name},
        )


class DelegateStartRace(ModforgeError):
    """The delegate executable exists but could not be started.

    Raised once the attempt budget is exhausted; the original ``OSError``
    is chained as ``__cause__``.
    """

    def __init__(self, executable: str, attempts: int, reason: str = "") -> None:
        self.executable = executable
        self.attempts = attempts
        self.reason = reason
        msg = f"Unable to start '{executable}' after {attempts} attempt(s)"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(
            msg,
            detail={"executable": executable, "attempts": attempts, "reason": reason},
        )
