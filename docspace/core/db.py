from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from docspace.core.config import settings

# Базовый класс для моделей
Base = declarative_base()

# Асинхронный движок
engine = create_async_engine(settings.database_url, echo=settings.db_echo)

# Сессии
SessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables() -> None:
    """Создание таблиц для всех зарегистрированных моделей"""
    # Импорт регистрирует модели в Base.metadata
    import docspace.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Функция для dependency injection в FastAPI
async def get_db():
    async with SessionLocal() as session:
        yield session
