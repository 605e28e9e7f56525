from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "", "case_sensitive": False}

    # App
    environment: str = "development"
    debug: bool = False
    app_name: str = "CarbonFlow"
    cors_origins: str = "http://localhost:3000,http://localhost:5173"
    log_json: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./carbonflow.db"

    # Engine
    compliance_tolerance: float = 0.01
    comparison_epsilon: float = 1e-9
    sweep_max_points: int = 25

    # Trash
    trash_retention_days: int = 30

    @property
    def sync_database_url(self) -> str:
        return (
            self.database_url
            .replace("+asyncpg", "+psycopg2")
            .replace("+aiosqlite", "")
        )


settings = Settings()
