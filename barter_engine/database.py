from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
import os

# Allow overriding database via environment.
# Default remains a lightweight local sqlite DB.
SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+pysqlite:///./barter.db")


def create_db_engine(url: str) -> Engine:
	"""Create an engine; sqlite connections may be shared across threads and
	wait on the write lock instead of failing fast."""
	if url.startswith("sqlite"):
		return create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})
	return create_engine(url, pool_pre_ping=True)


engine = create_db_engine(SQLALCHEMY_DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

class Base(DeclarativeBase):
	pass
