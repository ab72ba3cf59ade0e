"""User prompt facility used for session expiry."""

import logging
from typing import Callable, Optional, Protocol, Sequence

import click
from pydantic import BaseModel

logger = logging.getLogger(__name__)


def _noop() -> None:
    pass


class PromptAction(BaseModel):
    """Labelled action shown on a prompt."""

    label: str
    on_press: Callable[[], None] = _noop


class Prompt(Protocol):
    """Presents a titled message with one or more actions."""

    def alert(
        self,
        title: str,
        message: str,
        actions: Sequence[PromptAction],
        *,
        cancelable: bool = True,
        on_dismiss: Optional[Callable[[], None]] = None,
    ) -> None:
        ...


class ConsolePrompt:
    """Terminal prompt built on click.

    With ``cancelable=False`` an empty answer is rejected and the prompt is
    asked again, so the only way out is one of the actions.
    """

    def alert(
        self,
        title: str,
        message: str,
        actions: Sequence[PromptAction],
        *,
        cancelable: bool = True,
        on_dismiss: Optional[Callable[[], None]] = None,
    ) -> None:
        """Show the prompt and run the chosen action."""
        by_label = {action.label.lower(): action for action in actions}

        click.echo("")
        click.secho(title, bold=True)
        click.echo(message)

        while True:
            answer = click.prompt(
                " / ".join(action.label for action in actions),
                default="",
                show_default=False,
            ).strip().lower()

            if answer in by_label:
                by_label[answer].on_press()
                return

            if not answer and cancelable:
                logger.debug(f"Prompt '{title}' dismissed")
                (on_dismiss or _noop)()
                return

            click.echo("Please choose one of the listed options.")
