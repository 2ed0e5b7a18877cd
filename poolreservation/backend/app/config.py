from functools import lru_cache
import os
from pydantic import BaseModel, Field


class Settings(BaseModel):
    env: str = Field(default="dev", alias="ENV")
    timezone: str = Field(default="UTC", alias="TIMEZONE")

    postgres_db: str = Field(default="pool", alias="POSTGRES_DB")
    postgres_user: str = Field(default="pool", alias="POSTGRES_USER")
    postgres_password: str = Field(default="pool", alias="POSTGRES_PASSWORD")
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")
    database_url: str = Field(default="", alias="DATABASE_URL")

    jwt_secret: str = Field(default="secret", alias="JWT_SECRET")
    jwt_expire_min: int = Field(default=43200, alias="JWT_EXPIRE_MIN")

    pool_open: str = Field(default="08:00", alias="POOL_OPEN")
    pool_close: str = Field(default="20:00", alias="POOL_CLOSE")
    slot_duration_min: int = Field(default=60, alias="SLOT_DURATION_MIN")
    booking_lead_time_min: int = Field(default=30, alias="BOOKING_LEAD_TIME_MIN")
    default_max_guests: int = Field(default=10, alias="DEFAULT_MAX_GUESTS")
    default_capacity: int = Field(default=10, alias="DEFAULT_CAPACITY")

    brevo_api_key: str = Field(default="", alias="BREVO_API_KEY")
    brevo_sender_email: str = Field(default="", alias="BREVO_SENDER_EMAIL")
    brevo_sender_name: str = Field(default="Pool Reservations", alias="BREVO_SENDER_NAME")
    admin_notification_email: str = Field(default="", alias="ADMIN_NOTIFICATION_EMAIL")

    scheduler_enabled: bool = Field(default=False, alias="SCHEDULER_ENABLED")

    class Config:
        populate_by_name = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(**os.environ)
