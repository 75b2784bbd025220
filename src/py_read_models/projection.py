import abc
from typing import Generic, TypeVar

from pydantic import BaseModel

from .models import ProjectedEvent
from .protocols import ReadModelStore

T = TypeVar("T", bound=BaseModel)


class BaseProjection(Generic[T], abc.ABC):
    """
    Base class for projections that own a single `ReadModelStore`.

    Subclasses set a class-level `name` and implement `project`. The same
    instance serves live application (`project` per event) and full rebuilds
    (`reset`, then `project` for every event in order).

    Example::

        class UserProjection(BaseProjection[UserReadModel]):
            name = "UserProjection"

            async def project(self, event: ProjectedEvent) -> None:
                if event.event_type == "UserCreated":
                    await self.store.save(
                        UserReadModel(id=event.aggregate_id, **event.payload)
                    )
    """

    name: str = ""

    def __init__(self, store: ReadModelStore[T]):
        if not self.name:
            raise TypeError(
                f"{type(self).__name__} must define a non-empty `name` attribute"
            )
        self.store = store

    @abc.abstractmethod
    async def project(self, event: ProjectedEvent) -> None:
        """Apply a single event to the store. Unhandled event types are ignored."""

    async def reset(self) -> None:
        """Clears every row this projection has materialized."""
        await self.store.clear()
