from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    db_echo: bool = False
    # Создание таблиц при старте (миграции в этом сервисе не используются)
    db_auto_create: bool = True

    log_level: str = "INFO"

    # Размер выборок "недавние" / "недавно просмотренные"
    recent_limit: int = 10

    model_config = {"env_file": ".env", "extra": "ignore"}

settings = Settings()
