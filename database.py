import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import get_db_url, normalize_db_url, settings

logger = logging.getLogger(__name__)


def resolve_db_url(raw_url: str) -> URL:
    """Normalize a configured URL: MySQL always goes through pymysql with utf8mb4."""
    url_obj = make_url(normalize_db_url(raw_url))
    if url_obj.drivername.startswith("mysql") and url_obj.drivername != "mysql+pymysql":
        url_obj = url_obj.set(drivername="mysql+pymysql")
    if url_obj.drivername.startswith("mysql"):
        query = dict(url_obj.query) if url_obj.query else {}
        query.setdefault("charset", "utf8mb4")
        url_obj = url_obj.set(query=query)
    return url_obj


def build_connect_args(url_obj: URL) -> dict:
    connect_args: dict = {}
    if url_obj.drivername.startswith("mysql"):
        ca_path = os.getenv("DB_SSL_CA")
        if ca_path:
            connect_args["ssl"] = {"ca": ca_path}
        connect_args.setdefault("charset", "utf8mb4")
    elif url_obj.drivername.startswith("sqlite"):
        # Reminder jobs and the Telegram poller run on their own threads.
        connect_args["check_same_thread"] = False
    return connect_args


url_obj = resolve_db_url(get_db_url(settings))
DATABASE_URL = url_obj.render_as_string(hide_password=False)
connect_args = build_connect_args(url_obj)

safe_url = url_obj.set(password="***").render_as_string(hide_password=False)
logger.info("Connecting DB with URL: %s", safe_url)

engine = create_engine(DATABASE_URL, echo=False, future=True, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
