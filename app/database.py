from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session
from app.config import settings

def build_engine(database_url: str, echo: bool = False):
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=echo)

    kwargs = {"connect_args": {"check_same_thread": False}}
    # In-memory databases live on a single connection
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    sqlite_engine = create_engine(database_url, echo=echo, **kwargs)

    # pysqlite's implicit transactions break SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(sqlite_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    return sqlite_engine

engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

def create_db_and_tables():
    # Register every table on the metadata before creating
    import app.models  # noqa: F401
    SQLModel.metadata.create_all(engine)

def get_session():
    with Session(engine) as session:
        yield session
