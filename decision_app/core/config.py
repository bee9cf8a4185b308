import os
import secrets
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

# Completion service configuration
DECISION_AI_ENDPOINT = os.getenv("DECISION_AI_ENDPOINT", "https://api.openai.com/v1")
DECISION_AI_API_KEY = os.getenv("DECISION_AI_API_KEY", "")
DECISION_AI_MODEL = os.getenv("DECISION_AI_MODEL", "gpt-4.1-mini")
DECISION_AI_API_VERSION = os.getenv("DECISION_AI_API_VERSION") or None
DECISION_AI_TIMEOUT = float(os.getenv("DECISION_AI_TIMEOUT", "60"))

# Security Configuration
SESSION_SECRET = os.getenv("SESSION_SECRET", secrets.token_hex(32))
ORIGIN = os.getenv("ORIGIN", "http://localhost:8000")

# Storage Configuration
DATA_DIR = os.getenv("DATA_DIR", os.path.join(os.getcwd(), "data"))
TREES_FILE = os.getenv("TREES_FILE", os.path.join(DATA_DIR, "decision_trees.json"))
PROFILES_FILE = os.getenv("PROFILES_FILE", os.path.join(DATA_DIR, "user_profiles.json"))
UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(os.getcwd(), "tmp", "user_attachments"))

# Decision policy
MAX_CONTEXT_CHARS = int(os.getenv("MAX_CONTEXT_CHARS", "4000"))
CONCLUDE_MIN_PATH_NODES = int(os.getenv("CONCLUDE_MIN_PATH_NODES", "3"))
CONCLUDE_MAX_NODES = int(os.getenv("CONCLUDE_MAX_NODES", "10"))
MIN_OPTIONS = int(os.getenv("MIN_OPTIONS", "2"))
MAX_OPTIONS = int(os.getenv("MAX_OPTIONS", "4"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
