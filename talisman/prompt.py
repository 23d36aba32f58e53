"""Yes/no questions put to the user."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import click

log = logging.getLogger(__name__)


class Prompt:
    """Asks the user on the terminal."""

    def confirm(self, message: str) -> bool:
        """Ask a yes/no question defaulting to no; any input failure counts as no."""
        if not message:
            message = "Confirm?"
        try:
            return click.confirm(message, default=False)
        except (click.Abort, OSError) as exc:
            log.warning("error occurred when getting input from user: %s", exc or "aborted")
            return False


@dataclass
class PromptContext:
    """Whether to ask the user, and how."""

    interactive: bool
    prompt: Prompt = field(default_factory=Prompt)