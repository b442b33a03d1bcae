"""Application Settings - Central Configuration"""
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
    
    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "ictserve_dev"
    
    # Admin token validation (HS256 shared secret issued by the portal)
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_audience: str = ""
    admin_roles: str = "superuser"
    
    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"
    
    # CORS - set to "*" to allow all origins
    cors_origins: str = "*"
    
    # SLA monitor
    sla_monitor_enabled: bool = True
    sla_monitor_interval_seconds: int = 60
    sla_monitor_batch_size: int = 500
    
    # Import limits
    import_max_bytes: int = 2 * 1024 * 1024
    
    # Environment
    environment: str = "development"
    debug: bool = True
    
    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string to list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]
    
    @property
    def admin_roles_list(self) -> List[str]:
        """Roles allowed to use the configuration pages"""
        return [role.strip().lower() for role in self.admin_roles.split(",") if role.strip()]
    
    @property
    def is_development(self) -> bool:
        """Local development: token signatures are not verified"""
        return self.environment.lower() in ("development", "dev", "local")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
