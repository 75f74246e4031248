# settings.py
import os
from typing import Optional, Set
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# --- Project paths ---
PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_DIR = os.path.dirname(PACKAGE_DIR)

# .env in the project root; real environment variables still win
ENV_PATH = os.path.join(PROJECT_DIR, ".env")
load_dotenv(dotenv_path=ENV_PATH)


class Settings(BaseSettings):
    # Server
    HOST: str = Field("0.0.0.0")
    PORT: int = Field(7183)
    LOG_LEVEL: str = Field("INFO")  # options: DEBUG, INFO, WARNING, ERROR
    PUBLIC_DIR: str = Field(os.path.join(PROJECT_DIR, "public"))
    # Absolute base for og:image links; falls back to the request's base URL
    PUBLIC_BASE_URL: Optional[str] = Field(None)

    # Domain
    XP_MAX_DEFAULT: int = Field(2000)
    XP_MAX_CEILING: int = Field(100_000)  # 0 disables the ceiling
    XP_MAX_POLICY: str = Field("reject")  # "reject" | "clamp"

    # Formula limits
    MAX_FORMULAS: int = Field(16)
    MAX_FORMULA_LENGTH: int = Field(4096)

    # Sandbox
    SANDBOX_MODE: str = Field("process")  # "process" | "inline"
    SANDBOX_START_METHOD: str = Field("spawn")
    SANDBOX_TIMEOUT_SECONDS: float = Field(5.0)
    SANDBOX_MEMORY_MB: int = Field(512)  # 0 disables the address-space limit

    # Chart rendering
    CHART_WIDTH_PX: int = Field(800)
    CHART_HEIGHT_PX: int = Field(600)
    CHART_DPI: int = Field(100)
    CHART_LINE_COLOR: str = Field("blue")
    ALLOWED_FORMATS: Set[str] = {"png", "svg"}

    model_config = {
        "env_file": ENV_PATH,
        "case_sensitive": False,
        "extra": "ignore",
    }


settings = Settings()
