"""Store: sole owner of one on-disk (or in-memory) trust database."""

from __future__ import annotations

import os
import uuid
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from vetstore.config import Settings, get_settings
from vetstore.core.exceptions import StoreError
from vetstore.core.logging import get_logger
from vetstore.db.models import Base
from vetstore.db.session import make_engine, make_session_factory

logger = get_logger(__name__)

IN_MEMORY_URL = "sqlite://"


class StoreTransaction:
    """One unit of work against a Store.

    Nothing is persisted until ``commit()`` is called. The owning
    ``Store.transaction()`` block rolls back whatever was not committed.
    """

    def __init__(self, session: Session, label: str):
        self._session = session
        self._closed = False
        self.label = label

    @property
    def session(self) -> Session:
        if self._closed:
            raise StoreError(f"Transaction on {self.label} is closed")
        return self._session

    @property
    def closed(self) -> bool:
        return self._closed

    def commit(self) -> None:
        self.session.commit()
        logger.debug("Transaction committed", data={"store": self.label})

    def rollback(self) -> None:
        self.session.rollback()
        logger.debug("Transaction rolled back", data={"store": self.label})

    def close(self) -> None:
        if not self._closed:
            # Closing a session rolls back any uncommitted work.
            self._session.close()
            self._closed = True


class Store:
    """Transactional structured store holding one trust index."""

    def __init__(self, database_url: str, settings: Settings | None = None, echo: bool = False):
        self.database_url = database_url
        self.settings = settings or get_settings()
        self._engine = make_engine(database_url, echo=echo)
        self._session_factory = make_session_factory(self._engine)

    @classmethod
    def open(
        cls,
        database_url: str | None = None,
        settings: Settings | None = None,
        initialize: bool = True,
    ) -> Store:
        """Open (creating if needed) and initialize a store.

        Pass ``initialize=False`` for a store fetched from another peer: it is
        read as-is, with no tables or root peer written to it.
        """
        settings = settings or get_settings()
        url = database_url or settings.effective_database_url
        if url.startswith("sqlite:///") and url != "sqlite:///:memory:":
            db_dir = os.path.dirname(url[len("sqlite:///"):])
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)
        store = cls(url, settings=settings)
        if initialize:
            store.initialize()
        return store

    @classmethod
    def from_path(
        cls,
        path: str | os.PathLike,
        settings: Settings | None = None,
        initialize: bool = True,
    ) -> Store:
        return cls.open(
            f"sqlite:///{os.path.abspath(os.fspath(path))}", settings=settings, initialize=initialize
        )

    @classmethod
    def in_memory(cls, settings: Settings | None = None) -> Store:
        return cls.open(IN_MEMORY_URL, settings=settings)

    def initialize(self) -> None:
        """Create tables and the root peer. Safe to call repeatedly.

        Without a configured ``root_peer_url`` the root gets a generated
        ``local://<uuid>`` so that no two stores share a root natural key.
        """
        from vetstore.index.peer import PeerIndex

        Base.metadata.create_all(bind=self._engine)
        with self.transaction() as tx:
            peers = PeerIndex(tx)
            if peers.get_root() is None:
                root = peers.insert(
                    alias=self.settings.root_peer_alias,
                    url=self.settings.root_peer_url or f"local://{uuid.uuid4()}",
                    is_root=True,
                )
                logger.info("Created root peer", data={"alias": root.alias, "url": root.url})
            tx.commit()

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """Yield a transaction; uncommitted work is rolled back on exit."""
        tx = StoreTransaction(self._session_factory(), label=self.database_url)
        try:
            yield tx
        except Exception:
            if not tx.closed:
                tx.rollback()
            raise
        finally:
            tx.close()

    def close(self) -> None:
        self._engine.dispose()

    def __enter__(self) -> Store:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<Store {self.database_url}>"
