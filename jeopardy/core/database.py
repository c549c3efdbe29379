from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from jeopardy.core.config import settings

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    # "timeout" is the SQLite busy timeout, so writers waiting on a lock give up
    connect_args = {"check_same_thread": False, "timeout": settings.DB_TIMEOUT}
    engine_kwargs = {}
else:
    connect_args = {}
    engine_kwargs = {"pool_timeout": settings.DB_TIMEOUT, "pool_pre_ping": True}

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args=connect_args,
    echo=settings.DEBUG,
    **engine_kwargs
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()
