import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from lab_api.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def make_engine(url: str) -> Engine:
    """
    Create an engine for the given URL.

    For SQLite, foreign keys are switched on and every transaction starts with
    BEGIN IMMEDIATE, so the write lock is taken before the overlap check runs
    and two bookings for the same slot cannot both pass it.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    engine = create_engine(
        url,
        connect_args={"check_same_thread": False, "timeout": settings.sqlite_busy_timeout},
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # take over transaction control from pysqlite
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


DEMO_LABORATORIES = [
    ("Chemistry Lab", "Fume hoods, titration benches and reagent storage", 24),
    ("Computer Lab A", "40 workstations with development tooling", 40),
    ("Electronics Lab", "Oscilloscopes, signal generators and soldering stations", 20),
    ("Physics Lab", "Optics bench and mechanics experiment kits", 30),
]


def init_db(bind: Engine = None, seed: bool = None):
    # Import models here to create tables
    from lab_api.models import Laboratory

    bind = bind or engine
    Base.metadata.create_all(bind=bind)

    if seed is None:
        seed = settings.seed_demo_data
    if not seed:
        return

    # Seed demo laboratories if empty
    db = sessionmaker(autocommit=False, autoflush=False, bind=bind)()
    try:
        if not db.query(Laboratory).first():
            db.add_all(
                Laboratory(name=name, description=description, capacity=capacity)
                for name, description, capacity in DEMO_LABORATORIES
            )
            logger.info("Seeded %d demo laboratories", len(DEMO_LABORATORIES))
        db.commit()
    finally:
        db.close()
