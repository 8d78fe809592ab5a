from logging.config import fileConfig
from sqlalchemy import pool, create_engine
from alembic import context

# Import de la Base SQLAlchemy pour récupérer la MetaData
from app.config import settings
from app.db.session import Base

# Tous les modules de modèles doivent être importés pour l'autogenerate
import app.db.all_models  # noqa: F401

target_metadata = Base.metadata

# Chargement config Alembic
config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def get_sync_url() -> str:
    # Transformer URL async en URL sync (enlever +asyncpg)
    url = config.get_main_option("sqlalchemy.url") or settings.POSTGRES_URL
    return url.replace("postgresql+asyncpg://", "postgresql://")


def run_migrations_offline() -> None:
    context.configure(
        url=get_sync_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(
        get_sync_url(),
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
