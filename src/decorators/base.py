"""Decorator chain: ordered mutate-or-suppress stages over one entry."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from enum import StrEnum
from typing import Any, Protocol

from inkwell.errors import DecorationError
from inkwell.models import Blog, Entry
from inkwell.security import ANONYMOUS
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class ContentView(StrEnum):
    """How the decorated entry is about to be shown."""

    DETAIL = "detail"
    SUMMARY = "summary"


class DecoratorContext(BaseModel):
    """Per-call carrier; ``entry`` set to None means "don't show it"."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    entry: Entry | None = None
    blog: Blog | None = None
    capabilities: Any = ANONYMOUS
    view: ContentView = ContentView.DETAIL
    fragment_length: int | None = None
    cancelled: bool = False

    @property
    def suppressed(self) -> bool:
        return self.entry is None

    def cancel(self) -> None:
        """Stop the chain at the next unit boundary."""
        self.cancelled = True


Proceed = Callable[[DecoratorContext], None]


class Decorator(Protocol):
    """A chain stage.

    Call ``proceed(context)`` to hand over to the rest of the chain; return
    without calling it to stop there.
    """

    name: str

    def decorate(self, context: DecoratorContext, proceed: Proceed) -> None: ...


class DecoratorChain:
    """Runs decorators in the configured order."""

    def __init__(self, decorators: Sequence[Decorator] = ()) -> None:
        self._decorators = list(decorators)

    @property
    def decorators(self) -> list[Decorator]:
        return list(self._decorators)

    def __len__(self) -> int:
        return len(self._decorators)

    def decorate(self, context: DecoratorContext) -> DecoratorContext:
        """Run the whole chain over ``context`` and return it.

        Raises:
            DecorationError: If a decorator fails; later decorators don't run.
        """
        self._run(0, context)
        return context

    def _run(self, index: int, context: DecoratorContext) -> None:
        if index >= len(self._decorators):
            return
        if context.entry is None:
            return

        decorator = self._decorators[index]
        if context.cancelled:
            logger.debug("Decoration cancelled before %s", getattr(decorator, "name", decorator))
            return

        def proceed(ctx: DecoratorContext) -> None:
            self._run(index + 1, ctx)

        try:
            decorator.decorate(context, proceed)
        except DecorationError:
            raise
        except Exception as exc:
            name = getattr(decorator, "name", type(decorator).__name__)
            raise DecorationError(f"Decorator {name!r} failed: {exc}") from exc