"""Database configuration and initialization."""
from contextlib import contextmanager

from sqlalchemy import BigInteger, Integer, create_engine, event
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base

# Create SQLAlchemy base
Base = declarative_base()

# BIGSERIAL on PostgreSQL, rowid alias on SQLite
IdType = BigInteger().with_variant(Integer, 'sqlite')

# Global session and engine
engine = None
db_session = None


def _configure_sqlite(sqlite_engine):
    """Enable foreign keys and SAVEPOINT support for pysqlite connections."""

    @event.listens_for(sqlite_engine, 'connect')
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself so nested transactions work
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(sqlite_engine, 'begin')
    def _on_begin(conn):
        conn.exec_driver_sql('BEGIN')


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    engine_options = {
        'echo': app.config.get('SQLALCHEMY_ECHO', False),
        'pool_pre_ping': True,  # Enable connection health checks
    }
    if not database_uri.startswith('sqlite'):
        engine_options.update(pool_size=10, max_overflow=20)

    engine = create_engine(database_uri, **engine_options)
    if engine.dialect.name == 'sqlite':
        _configure_sqlite(engine)

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    Base.query = db_session.query_property()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def get_session():
    """Get database session."""
    return db_session


def get_engine():
    """Get the engine bound by init_db."""
    return engine


@contextmanager
def unit_of_work(session):
    """
    Atomic unit of work over a session.

    Everything written inside the block is committed together on normal exit.
    Any exception rolls the whole session back and is re-raised unchanged, so
    nothing partially written becomes visible to other transactions.
    """
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise
