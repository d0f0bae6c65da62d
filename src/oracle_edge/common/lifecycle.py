"""Lifecycle interface shared by pipeline components."""

from __future__ import annotations

from typing import Protocol


class Component(Protocol):
    """A pipeline stage with explicit start-up and shutdown hooks.

    The pipeline starts and stops every stage through this interface; stages
    with nothing to do still implement both hooks.
    """

    name: str

    async def init(self) -> None:
        ...

    async def shutdown(self) -> None:
        ...
