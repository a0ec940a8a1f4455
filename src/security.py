"""Capability checks consulted by permission-gated decorators."""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, Field


class Capabilities(Protocol):
    """What the current caller is allowed to do, per blog id."""

    def is_owner(self, blog_id: str) -> bool: ...

    def is_contributor(self, blog_id: str) -> bool: ...


class StaticCapabilities(BaseModel):
    """Fixed capability sets, keyed by blog id."""

    owner_of: set[str] = Field(default_factory=set)
    contributor_of: set[str] = Field(default_factory=set)

    def is_owner(self, blog_id: str) -> bool:
        return blog_id in self.owner_of

    def is_contributor(self, blog_id: str) -> bool:
        return blog_id in self.contributor_of


ANONYMOUS = StaticCapabilities()
