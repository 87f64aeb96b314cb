import os
from typing import Any, Dict

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# PostgreSQL Configuration
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "localhost")
POSTGRES_PORT = int(os.getenv("POSTGRES_PORT", "5432"))
POSTGRES_DB = os.getenv("POSTGRES_DB", "digest")
POSTGRES_USER = os.getenv("POSTGRES_USER", "digest_user")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "digest_password")
POSTGRES_MIN_POOL = int(os.getenv("POSTGRES_MIN_POOL", "2"))
POSTGRES_MAX_POOL = int(os.getenv("POSTGRES_MAX_POOL", "10"))

# Inference Service Configuration
OLLAMA_HOST = os.getenv("OLLAMA_HOST", "http://localhost:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3")
INFERENCE_MAX_RETRIES = int(os.getenv("INFERENCE_MAX_RETRIES", "3"))
INFERENCE_TIMEOUT_SECONDS = float(os.getenv("INFERENCE_TIMEOUT_SECONDS", "300"))

# Collection Configuration
FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", "30"))
ANNOTATION_TIMEOUT_SECONDS = float(os.getenv("ANNOTATION_TIMEOUT_SECONDS", "60"))
COLLECTION_CONCURRENCY = int(os.getenv("COLLECTION_CONCURRENCY", "5"))
CHECK_INTERVAL_MINUTES = int(os.getenv("CHECK_INTERVAL_MINUTES", "30"))

# Topic Annotation Configuration
TOPIC_CHUNK_SIZE = int(os.getenv("TOPIC_CHUNK_SIZE", "20"))
PENDING_BATCH_SIZE = int(os.getenv("PENDING_BATCH_SIZE", "50"))
RECONCILE_INTERVAL_MINUTES = int(os.getenv("RECONCILE_INTERVAL_MINUTES", "5"))

# Summary Configuration
SUMMARY_MAX_ARTICLES = int(os.getenv("SUMMARY_MAX_ARTICLES", "100"))
SUMMARIZE_TIMEOUT_SECONDS = float(os.getenv("SUMMARIZE_TIMEOUT_SECONDS", "120"))
SUMMARY_MAX_LENGTH = int(os.getenv("SUMMARY_MAX_LENGTH", "500"))
SUMMARY_LANGUAGE = os.getenv("SUMMARY_LANGUAGE", "English")

# Worker Configuration
WORKER_POLL_INTERVAL_SECONDS = float(os.getenv("WORKER_POLL_INTERVAL_SECONDS", "5"))

# Observability Configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE")
LOG_JSON = os.getenv("LOG_JSON", "true").lower() == "true"
METRICS_PORT = int(os.getenv("METRICS_PORT", "0"))


def get_postgres_config() -> Dict[str, Any]:
    """Keyword arguments for PostgreSQLConnectionPool."""
    return {
        "host": POSTGRES_HOST,
        "port": POSTGRES_PORT,
        "database": POSTGRES_DB,
        "user": POSTGRES_USER,
        "password": POSTGRES_PASSWORD,
        "min_size": POSTGRES_MIN_POOL,
        "max_size": POSTGRES_MAX_POOL,
    }
