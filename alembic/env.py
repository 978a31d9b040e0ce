"""Migration environment for the slotbook schema.

The URL and driver options come from the same helpers the app engine uses, so
migrations and the running service always talk to the same database.
"""

import os
import sys
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.core.config import get_db_url, settings  # noqa: E402
from database import Base, build_connect_args, resolve_db_url  # noqa: E402
import models  # noqa: F401, E402

config = context.config

# An explicit -x db_url=... wins over the app settings (handy for one-off upgrades).
db_url_obj = resolve_db_url(context.get_x_argument(as_dictionary=True).get("db_url") or get_db_url(settings))
# ConfigParser interpolation treats % specially; percent-encoded passwords need escaping.
config.set_main_option("sqlalchemy.url", db_url_obj.render_as_string(hide_password=False).replace("%", "%%"))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
# SQLite cannot ALTER constraints in place; batch mode rebuilds the table instead.
render_as_batch = db_url_obj.drivername.startswith("sqlite")


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        render_as_batch=render_as_batch,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        connect_args=build_connect_args(db_url_obj),
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=render_as_batch,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
