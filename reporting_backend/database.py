import logging
from threading import Lock

from sqlalchemy import create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

from reporting_backend.core import config


logger = logging.getLogger(__name__)

DEFAULT_FACULTIES = (
    (1, 'Faculty of Information Communication Technology'),
    (2, 'Faculty of Business'),
    (3, 'Faculty of Engineering'),
)


def build_engine(database_url: str):
    if database_url.startswith('sqlite'):
        return create_engine(database_url, connect_args={'check_same_thread': False})

    # Bounded pool: requests beyond pool_size wait up to pool_timeout for a connection.
    return create_engine(
        database_url,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=0,
        pool_timeout=config.DB_POOL_TIMEOUT,
        pool_pre_ping=True,
    )


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_seed_lock = Lock()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def seed_default_faculties(bind=None) -> None:
    with _seed_lock:
        from reporting_backend.models.faculty import Faculty

        session_factory = sessionmaker(bind=bind) if bind is not None else SessionLocal
        with session_factory() as db:
            existing_ids = set(db.scalars(select(Faculty.id)).all())
            missing = [
                Faculty(id=faculty_id, name=name)
                for faculty_id, name in DEFAULT_FACULTIES
                if faculty_id not in existing_ids
            ]
            if missing:
                db.add_all(missing)
                db.commit()
                logger.info('Seeded %d default faculties', len(missing))


def as_dict(instance, **extra) -> dict:
    """Column values of an ORM instance, merged with joined extras."""
    values = {column.name: getattr(instance, column.name) for column in instance.__table__.columns}
    values.update(extra)
    return values
