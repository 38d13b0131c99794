"""
ExamGuard Configuration Settings

All values can be overridden from the environment or a local .env file.
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Configuration for the ExamGuard proctoring service."""
    
    # API Settings
    APP_NAME: str = "ExamGuard Proctoring Service"
    DEBUG: bool = True
    PORT: int = 3000
    CORS_ORIGINS: str = "*"
    
    # Policy Settings
    TERMINATION_THRESHOLD: int = 5  # violations before auto-termination
    
    # Monitor Stream Settings
    HEARTBEAT_INTERVAL: float = 30.0  # seconds
    OBSERVER_QUEUE_SIZE: int = 100
    
    # Dashboard Settings
    RECENT_VIOLATIONS_LIMIT: int = 10
    
    # Audit Settings
    AUDIT_ENABLED: bool = True
    AUDIT_LOG_DIR: str = "logs"
    
    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False
    
    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]
    
    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
