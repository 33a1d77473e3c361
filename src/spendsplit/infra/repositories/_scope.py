"""Session reuse helper shared by the repositories."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, ContextManager, Iterator, Optional

from sqlmodel import Session

SessionFactory = Callable[[], ContextManager[Session]]


@contextmanager
def use_session(factory: SessionFactory, session: Optional[Session]) -> Iterator[Session]:
    """Yield ``session`` when the caller owns one, else open a new scope."""

    if session is not None:
        yield session
        return
    with factory() as own:
        yield own
