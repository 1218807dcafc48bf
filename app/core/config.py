from typing import Optional
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    host: str = Field(default="localhost", alias="POSTGRES_HOST")
    port: int = Field(default=5432, alias="POSTGRES_DB_PORT")
    db_name: str = Field(default="study_companion", alias="POSTGRES_DB_NAME")
    user: str = Field(default="postgres", alias="POSTGRES_DB_USER")
    password: str = Field(default="postgres", alias="POSTGRES_DB_PASSWORD")
    create_tables: bool = Field(default=True, alias="DB_CREATE_TABLES")

    @computed_field
    def connection_string(self) -> str:
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.db_name}"

    @computed_field
    def is_sqlite(self) -> bool:
        return str(self.connection_string).startswith("sqlite")


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    issuer: str = Field(default="https://auth.example.com", alias="JWT_ISSUER")
    application_id: str = Field(default="study-companion", alias="JWT_APPLICATION_ID")
    token_lifetime_seconds: int = Field(
        default=3600, alias="JWT_TOKEN_LIFETIME_SECONDS"
    )
    key_file: str = Field(default="jwt_rsa_key.pem", alias="JWT_KEY_FILE")


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    name: str = Field(default="study-companion", alias="APP_NAME")
    version: str = Field(default="v1", alias="API_VERSION")
    port: int = Field(default=9000, alias="APP_PORT")
    mode: str = Field(default="prod", alias="MODE")
    jwt_secret: str = Field(alias="JWT_SECRET")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @computed_field
    def is_production(self) -> bool:
        return self.mode != "dev"

    @computed_field
    def is_testing(self) -> bool:
        return self.mode == "test"


class AISettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    openrouter_api_key: Optional[str] = Field(default=None, alias="OPENROUTER_API_KEY")

    # Model provider selection: "google" or "openrouter"
    model_provider: str = Field(default="google", alias="MODEL_PROVIDER")
    gemini_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_MODEL")
    openrouter_model: str = Field(
        default="google/gemini-2.5-flash", alias="OPENROUTER_MODEL"
    )
    live_model: str = Field(
        default="gemini-2.5-flash-native-audio-preview-09-2025",
        alias="GEMINI_LIVE_MODEL",
    )
    summary_max_chars: int = Field(default=30000, alias="SUMMARY_MAX_CHARS")


class StudySettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    work_minutes: int = Field(default=25, alias="POMODORO_WORK_MINUTES")
    short_break_minutes: int = Field(default=5, alias="POMODORO_SHORT_BREAK_MINUTES")
    long_break_minutes: int = Field(default=15, alias="POMODORO_LONG_BREAK_MINUTES")
    cycles_before_long_break: int = Field(default=4, alias="POMODORO_LONG_BREAK_EVERY")
    tick_seconds: float = Field(default=1.0, alias="POMODORO_TICK_SECONDS")

    pomodoro_points: int = Field(default=25, alias="POMODORO_POINTS")
    flashcard_points: int = Field(default=2, alias="FLASHCARD_POINTS")

    source_quiz_min: int = 3
    source_quiz_max: int = 10
    source_flashcards_min: int = 3
    source_flashcards_max: int = 15
    subject_quiz_min: int = 5
    subject_quiz_max: int = 20
    subject_flashcards_min: int = 5
    subject_flashcards_max: int = 25


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=lambda: AppSettings())
    database: DatabaseSettings = Field(default_factory=lambda: DatabaseSettings())
    jwt: JWTSettings = Field(default_factory=lambda: JWTSettings())
    ai: AISettings = Field(default_factory=lambda: AISettings())
    study: StudySettings = Field(default_factory=lambda: StudySettings())

    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"],
        alias="CORS_ORIGINS",
    )


settings = Settings()
