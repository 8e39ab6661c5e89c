from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API Settings
    PROJECT_NAME: str = "MessMate API"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Meal slot booking and dues ledger API"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "mymess"

    # Slot booking
    SLOT_CAPACITY: int = 5

    # Notifications
    NOTIFICATION_TIMEOUT_SECONDS: float = 2.0
    SYSTEM_SENDER_EMAIL: str = "system@myMessApp.com"
    SYSTEM_SENDER_NAME: str = "MyMess System"

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
