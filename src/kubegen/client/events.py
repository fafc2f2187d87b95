"""
Events delivered by a watch.

[Added], [Modified], [Deleted] and [Bookmark] correspond to the event types sent by the API server. [Reset] is never
sent by the server. A watch emits it whenever the consumer's view of the collection can no longer be trusted, i.e.
before the first connection of a long running watch and after the server invalidated the watch's resourceVersion.
A consumer receiving it must discard its state and rebuild it from the events that follow.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Added(Generic[T]):
    item: T


@dataclass(frozen=True)
class Modified(Generic[T]):
    item: T


@dataclass(frozen=True)
class Deleted(Generic[T]):
    item: T


@dataclass(frozen=True)
class Bookmark:
    resource_version: str


@dataclass(frozen=True)
class Reset:
    pass


WatchEvent = Union[Added[T], Modified[T], Deleted[T], Bookmark, Reset]

EVENT_TYPES: dict[str, type[Added] | type[Modified] | type[Deleted]] = {
    "ADDED": Added,
    "MODIFIED": Modified,
    "DELETED": Deleted,
}
