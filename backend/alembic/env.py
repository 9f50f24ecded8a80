import burnafter.config as config_module
import burnafter.models.secret  # noqa: F401 - registers tables on Base.metadata
from alembic import context
from burnafter.database import Base, create_db_engine

config = context.config

target_metadata = Base.metadata


def get_url() -> str:
    # Read at run time so tests can point migrations at a scratch database
    return config.get_main_option("sqlalchemy.url") or config_module.settings.database_url


def run_migrations_offline() -> None:
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_db_engine(get_url())

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True,
        )

        with context.begin_transaction():
            context.run_migrations()

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
