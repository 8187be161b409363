import os
import sys
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

# Load environment variables from .env file
load_dotenv()

# Add the parent directory to the path so we can import storyline modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storyline.models.models import Base  # noqa: E402

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
# This line sets up loggers basically.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# add your model's MetaData object here
# for 'autogenerate' support
target_metadata = Base.metadata


def get_url(default_host: str) -> str:
    if os.getenv("DATABASE_URL"):
        return os.getenv("DATABASE_URL")
    mysql_user = os.getenv("MYSQL_USER", "root")
    mysql_password = os.getenv("MYSQL_PASSWORD", "password")
    mysql_host = os.getenv("MYSQL_HOST", default_host)
    mysql_port = os.getenv("MYSQL_PORT", "3306")
    mysql_db_name = os.getenv("MYSQL_DB_NAME", "storyline")
    return f"mysql+pymysql://{mysql_user}:{mysql_password}@{mysql_host}:{mysql_port}/{mysql_db_name}"


def run_migrations_offline() -> None:
    context.configure(
        url=get_url("localhost"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    # Use container name in Docker network
    configuration["sqlalchemy.url"] = get_url("mysql")

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
