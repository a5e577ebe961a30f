"""Step results.

A status is either a success or a failure with a human-readable reason.
It can be hidden from normal reporting and can abort the remaining steps:

    return status.success("Ignore generated branch").hidden().abort()
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum


class StatusCode(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class Status:
    """Outcome of a step or of a whole pipeline."""

    code: StatusCode
    reason: str = ""
    is_hidden: bool = False
    is_aborting: bool = False

    @property
    def ok(self) -> bool:
        return self.code is StatusCode.SUCCESS

    @property
    def failed(self) -> bool:
        return self.code is StatusCode.FAILURE

    def hidden(self) -> Status:
        """Returns a copy that is not surfaced to users."""

        return replace(self, is_hidden=True)

    def abort(self) -> Status:
        """Returns a copy that halts the remaining steps."""

        return replace(self, is_aborting=True)


def success(reason: str = "") -> Status:
    return Status(code=StatusCode.SUCCESS, reason=reason)


def failure(reason: str = "") -> Status:
    return Status(code=StatusCode.FAILURE, reason=reason)
