"""Check run body rendering."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from jinja2 import Environment, FileSystemLoader, StrictUndefined

CheckOutcome = Literal["running", "formatted", "unformatted", "errored", "unknown"]


@dataclass(frozen=True)
class CheckBodyInput:
    """Input to render a check run body."""

    outcome: CheckOutcome
    command: str = ""
    exit_code: int | None = None
    log: str = ""


class CheckBodyRenderer:
    """Renders check run bodies from a Jinja2 template."""

    def __init__(
        self,
        *,
        template_dir: str | None = None,
        template_name: str = "check_body.md",
    ) -> None:
        env = Environment(
            loader=FileSystemLoader(template_dir or get_default_template_dir()),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self._template = env.get_template(template_name)

    def render(self, *, data: CheckBodyInput) -> str:
        log = data.log.strip()
        return self._template.render(
            outcome=data.outcome,
            command=data.command,
            exit_code=data.exit_code,
            log=log,
            fence=code_fence(log),
        ).strip()


def code_fence(text: str) -> str:
    """Returns a backtick fence longer than any backtick run inside ``text``."""

    longest = max((len(run) for run in re.findall(r"`+", text)), default=0)
    return "`" * max(3, longest + 1)


def get_default_template_dir() -> str:
    """Returns the default template directory path."""

    return str(Path(__file__).parent / "templates")
