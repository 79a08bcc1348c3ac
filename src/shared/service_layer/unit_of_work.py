# pylint: disable=attribute-defined-outside-init
"""Unit of Work base classes shared by the service stores."""

from __future__ import annotations

import abc
import logging
from typing import Iterator, List

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session

import config
from shared.domain.commands import Event

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(abc.ABC):
    """
    Transaction boundary plus the outbound events it produced.

    Handlers record events instead of publishing them. Only events recorded
    before a successful commit are handed to the message bus; a rollback
    discards whatever is still pending.
    """

    def __enter__(self) -> AbstractUnitOfWork:
        self._pending = []  # type: List[Event]
        if not hasattr(self, "_committed"):
            self._committed = []  # type: List[Event]
        return self

    def __exit__(self, *args):
        self._pending = []
        self.rollback()

    def record(self, event: Event):
        self._pending.append(event)

    def commit(self):
        self._commit()
        self._committed.extend(self._pending)
        self._pending = []

    def collect_new_events(self) -> Iterator[Event]:
        committed = getattr(self, "_committed", [])
        while committed:
            yield committed.pop(0)

    @abc.abstractmethod
    def _commit(self):
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self):
        raise NotImplementedError


_default_session_factories = {}


def default_session_factory(isolation_level: str = "READ COMMITTED") -> sessionmaker:
    """One engine per isolation level, created on first use."""
    if isolation_level not in _default_session_factories:
        _default_session_factories[isolation_level] = sessionmaker(
            bind=create_engine(
                config.get_postgres_uri(),
                isolation_level=isolation_level,
            )
        )
    return _default_session_factories[isolation_level]


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """Opens a session per `with` block; subclasses attach their repositories in `_attach`."""

    isolation_level = "READ COMMITTED"

    def __init__(self, session_factory=None):
        self.session_factory = session_factory

    def __enter__(self):
        if self.session_factory is None:
            self.session_factory = default_session_factory(self.isolation_level)
        self.session = self.session_factory()  # type: Session
        self._attach(self.session)
        return super().__enter__()

    def __exit__(self, *args):
        super().__exit__(*args)
        self.session.close()

    @abc.abstractmethod
    def _attach(self, session: Session):
        raise NotImplementedError

    def _commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
