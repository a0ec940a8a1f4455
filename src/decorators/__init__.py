"""Entry decorator registry and decoration helpers."""

from __future__ import annotations

from collections.abc import Iterable

from inkwell.decorators.base import (
    ContentView,
    Decorator,
    DecoratorChain,
    DecoratorContext,
    Proceed,
)
from inkwell.models import Blog, Entry
from inkwell.permalink import PermalinkProvider
from inkwell.security import ANONYMOUS, Capabilities

__all__ = [
    "ContentView",
    "Decorator",
    "DecoratorChain",
    "DecoratorContext",
    "Proceed",
    "build_chain",
    "create_decorator",
    "decorate_entry",
    "find_visible_entry",
]


def create_decorator(name: str) -> Decorator:
    """Create a decorator by its configured name.

    Raises:
        ValueError: If the name is unknown.
    """
    from inkwell.decorators.features import (
        DisableCommentsDecorator,
        DisableReferencesDecorator,
        ExcerptDecorator,
    )
    from inkwell.decorators.visibility import HideUnapprovedEntriesDecorator

    decorators: dict[str, type] = {
        HideUnapprovedEntriesDecorator.name: HideUnapprovedEntriesDecorator,
        DisableReferencesDecorator.name: DisableReferencesDecorator,
        DisableCommentsDecorator.name: DisableCommentsDecorator,
        ExcerptDecorator.name: ExcerptDecorator,
    }

    if name in decorators:
        return decorators[name]()

    raise ValueError(f"Unknown decorator: {name!r}")


def build_chain(names: Iterable[str]) -> DecoratorChain:
    """Build a chain from decorator names, keeping their order."""
    return DecoratorChain([create_decorator(name) for name in names])


def decorate_entry(
    entry: Entry,
    chain: DecoratorChain,
    *,
    blog: Blog | None = None,
    capabilities: Capabilities = ANONYMOUS,
    view: ContentView = ContentView.DETAIL,
    fragment_length: int | None = None,
) -> Entry | None:
    """Decorate a copy of ``entry``; None means the caller may not see it.

    The stored entry is never touched, even when a decorator fails.
    """
    context = DecoratorContext(
        entry=entry.model_copy(deep=True),
        blog=blog,
        capabilities=capabilities,
        view=view,
        fragment_length=fragment_length,
    )
    chain.decorate(context)
    return context.entry


def find_visible_entry(
    permalinks: PermalinkProvider,
    chain: DecoratorChain,
    path: str,
    *,
    capabilities: Capabilities = ANONYMOUS,
) -> Entry | None:
    """Resolve ``path`` and decorate the entry.

    Returns None both when nothing lives at ``path`` and when the chain
    hides the entry, so callers render the two cases the same way.
    """
    entry = permalinks.resolve(path)
    if entry is None:
        return None
    return decorate_entry(
        entry,
        chain,
        blog=permalinks.blog,
        capabilities=capabilities,
    )
