from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from menubot.config import settings

engine = create_engine(settings.database_url, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all chatbot tables. Used by scripts and local setups without migrations."""
    import menubot.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
