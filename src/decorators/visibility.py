"""Hides unapproved entries from callers who can't moderate the blog."""

from __future__ import annotations

import logging

from inkwell.decorators.base import DecoratorContext, Proceed

logger = logging.getLogger(__name__)


class HideUnapprovedEntriesDecorator:
    """Lets approved entries through; others only for owners and contributors."""

    name = "hide-unapproved"

    def decorate(self, context: DecoratorContext, proceed: Proceed) -> None:
        entry = context.entry
        if entry is None:
            proceed(context)
            return

        if entry.is_approved:
            proceed(context)
            return

        # privileges count on the entry's own blog only
        capabilities = context.capabilities
        if capabilities.is_owner(entry.blog_id) or capabilities.is_contributor(entry.blog_id):
            proceed(context)
            return

        # hidden; nothing after this sees the entry
        logger.debug("Hiding %s entry %s", entry.state, entry.id)
        context.entry = None
