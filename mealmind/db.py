from __future__ import annotations

from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import get_settings


engine: Optional[AsyncEngine] = None
SessionLocal: Optional[async_sessionmaker[AsyncSession]] = None


def init_engine() -> None:
    global engine, SessionLocal
    url = normalize_database_url(get_settings().database_url)
    if not url:
        engine = None
        SessionLocal = None
        return
    engine = create_async_engine(url, future=True, pool_pre_ping=True)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False)


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    if not SessionLocal:
        raise RuntimeError("Database not configured")
    return SessionLocal


def normalize_database_url(raw_url: Optional[str]) -> Optional[str]:
    """Point postgres URLs at asyncpg, which takes `ssl=` instead of `sslmode=`."""
    if not raw_url:
        return raw_url

    scheme, sep, rest = raw_url.partition("://")
    if scheme not in ("postgres", "postgresql"):
        return raw_url

    parsed = urlparse(f"postgresql+asyncpg{sep}{rest}")
    query = dict(parse_qsl(parsed.query, keep_blank_values=True))
    sslmode = query.pop("sslmode", None)
    if sslmode:
        query["ssl"] = sslmode.lower()
    return urlunparse(parsed._replace(query=urlencode(query)))
