from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from dndinit.config import load_config

# URL берём из DNDINIT_DATABASE_URL, по умолчанию SQLite файл рядом с проектом
DATABASE_URL = load_config().database_url

engine = create_engine(
    DATABASE_URL,
    echo=False,
    future=True,
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
