"""Decorators that switch entry features off or trim the body."""

from __future__ import annotations

from inkwell.decorators.base import ContentView, DecoratorContext, Proceed


class DisableReferencesDecorator:
    """Turns off inbound references (trackbacks) for the entry."""

    name = "disable-references"

    def decorate(self, context: DecoratorContext, proceed: Proceed) -> None:
        if context.entry is not None:
            context.entry.references_enabled = False
        proceed(context)


class DisableCommentsDecorator:
    """Turns off comments for the entry."""

    name = "disable-comments"

    def decorate(self, context: DecoratorContext, proceed: Proceed) -> None:
        if context.entry is not None:
            context.entry.comments_enabled = False
        proceed(context)


class ExcerptDecorator:
    """In summary views, show the excerpt or the first ``fragment_length`` chars."""

    name = "excerpt"

    def decorate(self, context: DecoratorContext, proceed: Proceed) -> None:
        entry = context.entry
        if entry is not None and context.view == ContentView.SUMMARY:
            if entry.excerpt:
                entry.body = entry.excerpt
            elif context.fragment_length is not None and len(entry.body) > context.fragment_length:
                entry.body = entry.body[: context.fragment_length].rstrip() + "..."
            entry.extended_body = ""
        proceed(context)
