# env vars + constants
import os

PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# "memory" or "firestore"
STORE_BACKEND = os.getenv("STORE_BACKEND", "memory").strip().lower()
SEED_PATH = os.getenv("SEED_PATH", "")

FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID", "")
FIREBASE_API_KEY = os.getenv("FIREBASE_API_KEY", "")
FIRESTORE_BASE_URL = os.getenv("FIRESTORE_BASE_URL", "https://firestore.googleapis.com/v1")
IDENTITY_BASE_URL = os.getenv("IDENTITY_BASE_URL", "https://identitytoolkit.googleapis.com")
COMPETITORS_COLLECTION = os.getenv("COMPETITORS_COLLECTION", "competitors")

FLAG_PATH = os.path.expanduser(os.getenv("FLAG_PATH", "~/.cookie_vote/flags.json"))
FLAG_KEY = os.getenv("FLAG_KEY", "hasSubmitted")

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "5.0"))

SELECTION_LIMIT = 2
