from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    POSTGRES_URL: str = Field(...)
    MONGO_URL: str = Field(default="mongodb://localhost:27017")
    MONGO_DB: str = Field(default="concert_chaussettes")
    SQL_ECHO: bool = Field(default=False)

    JWT_SECRET: str = Field(...)
    ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24)

    MAIL_USERNAME: str = Field(default="")
    MAIL_PASSWORD: str = Field(default="")
    MAIL_FROM: str = Field(default="Concert Chaussettes <noreply@concert-chaussettes.fr>")
    MAIL_PORT: int = Field(default=587)
    MAIL_SERVER: str = Field(default="localhost")
    SEND_EMAILS: bool = Field(default=False)

    APP_URL: str = Field(default="https://concert-chaussettes.vercel.app")
    LOG_LEVEL: str = Field(default="INFO")
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    # Limites du plan gratuit
    FREE_CONCERTS_PER_YEAR: int = Field(default=3)
    FREE_TEMPLATES_LIMIT: int = Field(default=2)

    DEFAULT_SEARCH_RADIUS_KM: float = Field(default=50)


settings = Settings()
