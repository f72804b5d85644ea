from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Repo Console"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False  # True drops the Secure flag on cookies for plain-http local dev
    ENV: str = "dev"  # Environment: "dev", "staging", "prod"

    # Database (MongoDB)
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "repo_console"

    # GitHub
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_AUTHORIZE_URL: str = "https://github.com/login/oauth/authorize"
    GITHUB_TOKEN_URL: str = "https://github.com/login/oauth/access_token"
    GITHUB_CLIENT_ID: Optional[str] = None
    GITHUB_CLIENT_SECRET: Optional[str] = None  # Trusted side only, never sent to the browser
    GITHUB_REDIRECT_URI: str = "http://localhost:8000/api/github/callback"
    GITHUB_REDIRECT_URI_DEV: Optional[str] = None
    GITHUB_SCOPES: List[str] = ["repo", "user"]

    # Remote code-exchange intermediary. Unset = exchange in-process.
    OAUTH_EXCHANGE_URL: Optional[str] = None
    OAUTH_STATE_COOKIE: str = "github_oauth_state"

    # Outbound calls (token exchange, verification, GitHub REST)
    HTTP_TIMEOUT_SECONDS: float = 15.0

    # Frontend
    FRONTEND_BASE_URL: str = "http://localhost:3000"
    FRONTEND_GITHUB_PATH: str = "/github"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Local session (JWT issued by the primary identity backend)
    SECRET_KEY: str = "your-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    @property
    def redirect_uri(self) -> str:
        """Redirect URI registered with GitHub for the current environment."""
        if self.ENV == "dev" and self.GITHUB_REDIRECT_URI_DEV:
            return self.GITHUB_REDIRECT_URI_DEV
        return self.GITHUB_REDIRECT_URI

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
