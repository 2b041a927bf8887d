"""
Application configuration settings loaded from environment variables.
Uses pydantic_settings for validation and type conversion.
"""
from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    """
    Application settings class with environment variable validation.
    
    Attributes:
        database_url: SQLAlchemy connection string for the row store
        request_lock_timeout_seconds: How long a request waits for the advisory lock
        server_id_max: Upper bound of the random number in server-assigned ids
        
        # Bootstrap admin settings
        bootstrap_admin_email: Email of the seeded administrator
        bootstrap_admin_name: Display name of the seeded administrator
        bootstrap_admin_pin: PIN of the seeded administrator
        
        # Client settings
        backend_url: Default backend URL for the API client (None means mock mode)
        client_storage_path: File used as durable client storage
        poll_interval_seconds: Period of the silent background refresh
        request_timeout_seconds: Timeout for outbound HTTP calls
    """
    # Database settings
    database_url: str = "sqlite:///./radcenter.db"
    
    # Request handling
    request_lock_timeout_seconds: float = 10.0
    server_id_max: int = 99999
    cors_origins: List[str] = ["*"]
    
    # Bootstrap admin settings (only used when the users collection is first created)
    bootstrap_admin_email: str = "admin@radcenter.local"
    bootstrap_admin_name: str = "System Administrator"
    bootstrap_admin_pin: str = "1234"
    
    # Client settings
    backend_url: Optional[str] = None
    client_storage_path: str = "~/.radcenter/storage.json"
    poll_interval_seconds: float = 15.0
    request_timeout_seconds: float = 30.0

    class Config:
        """Configuration for environment variables loading"""
        env_file = ".env"
        case_sensitive = False

# Create settings instance
settings = Settings()
