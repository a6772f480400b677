# app/core/config.py
"""
Application configuration - loads from environment variables.
Single source of truth for all settings.
"""
import os
from typing import Optional
from urllib.parse import quote_plus
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables FIRST
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_path = BASE_DIR / '.env'
load_dotenv(dotenv_path=env_path)

# ────────────────────────────────────────────
# Application
# ────────────────────────────────────────────
APP_ENV: str = os.getenv("APP_ENV", "development")
PORT: int = int(os.getenv("PORT", "5000"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
CLIENT_URL: str = os.getenv("CLIENT_URL", "http://localhost:3000")

IS_PRODUCTION: bool = APP_ENV.lower() == "production"

# ────────────────────────────────────────────
# Database Configuration
# ────────────────────────────────────────────
DB_USER = os.getenv("DB_USER", "postgres")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "crowdfunding")
DATABASE_URL = os.getenv("DATABASE_URL")

# Build DATABASE_URL
if not DATABASE_URL:
    encoded_password = quote_plus(DB_PASSWORD)
    DATABASE_URL = f"postgresql://{DB_USER}:{encoded_password}@{DB_HOST}:{DB_PORT}/{DB_NAME}"

# ────────────────────────────────────────────
# Chain Configuration
# ────────────────────────────────────────────
CHAIN_RPC_URL: Optional[str] = os.getenv("CHAIN_RPC_URL") or os.getenv("SEPOLIA_RPC_URL")
CONTRACT_ADDRESS: Optional[str] = os.getenv("CONTRACT_ADDRESS")
CHAIN_ID: int = int(os.getenv("CHAIN_ID", "11155111"))

CHAIN_POLL_INTERVAL: float = float(os.getenv("CHAIN_POLL_INTERVAL", "5"))
CHAIN_MAX_BLOCK_RANGE: int = int(os.getenv("CHAIN_MAX_BLOCK_RANGE", "2000"))
CHAIN_REQUEST_TIMEOUT: float = float(os.getenv("CHAIN_REQUEST_TIMEOUT", "30"))

RECONCILER_START_DELAY: float = float(os.getenv("RECONCILER_START_DELAY", "5"))
RECONCILER_SETUP_RETRY_SECONDS: float = float(os.getenv("RECONCILER_SETUP_RETRY_SECONDS", "30"))
RECONCILER_RECONNECT_SECONDS: float = float(os.getenv("RECONCILER_RECONNECT_SECONDS", "10"))
SHUTDOWN_GRACE_SECONDS: float = float(os.getenv("SHUTDOWN_GRACE_SECONDS", "10"))

# ────────────────────────────────────────────
# Image Hosting (Cloudinary)
# ────────────────────────────────────────────
CLOUDINARY_CLOUD_NAME: Optional[str] = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY: Optional[str] = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET: Optional[str] = os.getenv("CLOUDINARY_API_SECRET")
UPLOAD_TIMEOUT: float = float(os.getenv("UPLOAD_TIMEOUT", "30"))

DEFAULT_CAMPAIGN_IMAGE: str = os.getenv(
    "DEFAULT_CAMPAIGN_IMAGE",
    "https://images.unsplash.com/photo-1532619675605-1ede6c2ed2b0?w=500&h=300&fit=crop"
)
