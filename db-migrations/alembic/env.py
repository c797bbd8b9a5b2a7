from logging.config import fileConfig
from alembic import context
import logging
from dotenv import load_dotenv
import sys
from sqlalchemy import create_engine
from sqlalchemy import pool
import sqlalchemy as sa

PORTAL_SCHEMA = 'portal'

dotenv_path = '../.env'
db_owner = "postgres"
db_owner_password = ""
db_host = "localhost"
db_port = "5432"
db_name = "postgres"
db_sslmode = "require"

# Use Alembic's x-arguments, e.g. alembic -x db-host=... -x db-name=... upgrade head
for x_arg in context.get_x_argument(as_dictionary=False):
    key, _, value = x_arg.partition('=')
    key = key.lower().strip()
    value = value.strip()
    if key == 'db-owner':
        db_owner = value
    elif key == 'db-owner-password':
        db_owner_password = value
    elif key == 'db-host':
        db_host = value
    elif key == 'db-port':
        db_port = value
    elif key == 'db-name':
        db_name = value
    elif key == 'db-sslmode':
        db_sslmode = value
    elif key == 'dotenv-path':
        dotenv_path = value
    else:
        print(f"ERROR: Unrecognized Alembic -x argument: '{x_arg}' Valid arguments are: db-owner, db-owner-password, db-host, db-port, db-name, db-sslmode, dotenv-path", file=sys.stderr)
        sys.exit(1)

load_dotenv(dotenv_path=dotenv_path)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Migrations are written by hand, no autogenerate
target_metadata = None

log = logging.getLogger('alembic.env')

def _db_url() -> str:
    return f"postgresql+psycopg2://{db_owner}:{db_owner_password}@{db_host}:{db_port}/{db_name}"

def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL instead of executing it."""
    context.configure(
        url=_db_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_schemas=True,
        version_table_schema=PORTAL_SCHEMA,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against a live connection."""
    connectable = create_engine(
        _db_url(),
        connect_args={"sslmode": db_sslmode},
        poolclass=pool.NullPool
    )

    # The first migration creates the portal schema, until then the version table lives in public
    with connectable.connect() as check_conn:
        schema_exists = check_conn.execute(sa.text(
            "SELECT EXISTS(SELECT 1 FROM information_schema.schemata WHERE schema_name = :name)"
        ), {"name": PORTAL_SCHEMA}).scalar()
        check_conn.commit()
    version_table_schema = PORTAL_SCHEMA if schema_exists else None
    log.info(f"Schema check result: {schema_exists}, using version_table_schema: {version_table_schema}")
    log.info(f"Connection URL: postgresql://{db_owner}:***@{db_host}:{db_port}/{db_name}")

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_schemas=True,
            version_table_schema=version_table_schema,
        )
        try:
            with context.begin_transaction():
                connection.execute(sa.text(f"SET LOCAL search_path TO {PORTAL_SCHEMA}, public"))
                context.run_migrations()
            log.info("Migrations completed successfully - transaction committed")
        except Exception as e:
            log.error(f"Migration failed with error: {e}", exc_info=True)
            raise


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
