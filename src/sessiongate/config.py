from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = "mongodb://localhost:27017/sessiongate"  # or "memory://" for a process-local store
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3000
    debug: bool = False
    session_window_seconds: float = 30  # sliding expiration window W
    identity_header: str = "x-username"
    token_header: str = "x-session-token"
    protected_prefix: str = "/api/"
    # Ordered, first match wins
    public_paths: list[str] = [
        r"^/$",
        r"^/login$",
        r"^/health$",
        r"^/api/auth/(login|logout|session)$",
    ]
    cors_origins: list[str] = ["*"]
    admin_username: str = "admin"
    admin_password: str = "admin123"
    bcrypt_rounds: int = 12

    model_config = {
        "env_file": [".env"],
        "env_prefix": "SESSIONGATE_",
        "extra": "ignore",
    }
