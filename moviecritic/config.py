"""
Configuration settings for MovieCritic.

Values come from the environment (a local .env file is loaded first) so the
same code runs against SQLite in development and Postgres in production.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./moviecritic.db")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 5))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 10))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 30))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", 3600))
DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

# API server
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
FRONTEND_URL = os.getenv("FRONTEND_URL")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Aggregate ratings are stored with this many decimal digits
RATING_PRECISION = 2
MIN_RATING = 0.0
MAX_RATING = 10.0

# Client library
API_BASE_URL = os.getenv("MOVIECRITIC_API_URL", "http://localhost:8080")
CLIENT_TIMEOUT_SECONDS = float(os.getenv("MOVIECRITIC_CLIENT_TIMEOUT", 15))
CACHE_STALE_TIME_SECONDS = float(os.getenv("MOVIECRITIC_CACHE_STALE_TIME", 60))
CACHE_MAX_SIZE = int(os.getenv("MOVIECRITIC_CACHE_MAX_SIZE", 500))
