"""Database configuration and initialization."""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Create SQLAlchemy base
Base = declarative_base()

# Global session and engine
engine = None
db_session = scoped_session(sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False))


def _build_engine(database_uri, echo=False):
    """Create the engine; SQLite gets a single shared connection and real SAVEPOINTs."""
    if not database_uri.startswith('sqlite'):
        return create_engine(
            database_uri,
            echo=echo,
            pool_pre_ping=True,  # Enable connection health checks
            pool_size=10,
            max_overflow=20
        )

    sqlite_engine = create_engine(
        database_uri,
        echo=echo,
        connect_args={'check_same_thread': False},
        poolclass=StaticPool
    )

    # pysqlite defers BEGIN on its own, which breaks nested transactions
    @event.listens_for(sqlite_engine, 'connect')
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    @event.listens_for(sqlite_engine, 'begin')
    def _on_begin(conn):
        conn.exec_driver_sql('BEGIN')

    return sqlite_engine


def init_db(app):
    """Initialize database connection."""
    global engine

    engine = _build_engine(
        app.config['SQLALCHEMY_DATABASE_URI'],
        echo=app.config.get('SQLALCHEMY_ECHO', False)
    )
    db_session.remove()
    db_session.configure(bind=engine)

    Base.query = db_session.query_property()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_all():
    """Create every table known to the models package."""
    import omahub.models  # noqa: F401  (register mappers)
    Base.metadata.create_all(bind=engine)


def drop_all():
    """Drop every table (test helper)."""
    import omahub.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session
