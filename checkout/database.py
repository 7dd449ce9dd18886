import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """Pooled connection handle to the relational store.

    Built once at process start and handed to whoever needs a unit of work;
    ``dispose()`` closes the pool at shutdown.
    """

    def __init__(self, url: str, **engine_kwargs):
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        connect_args.update(engine_kwargs.pop("connect_args", {}))
        engine_kwargs.setdefault("pool_pre_ping", True)
        self.engine = create_engine(url, connect_args=connect_args, **engine_kwargs)
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def create_all(self):
        Base.metadata.create_all(bind=self.engine)

    def dispose(self):
        self.engine.dispose()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Run the enclosed block as one atomic unit of work.

        Commits when the block exits normally, rolls back and re-raises on
        any exception. The session, and with it the pooled connection, is
        released on every exit path.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            logger.debug("transaction rolled back")
            raise
        finally:
            session.close()
