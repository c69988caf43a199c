import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def cors_origins() -> List[str]:
    """Localhost defaults plus any comma-separated CORS_ORIGINS."""
    origins = list(DEFAULT_CORS_ORIGINS)
    extra = os.getenv("CORS_ORIGINS", "")
    if extra:
        origins.extend(o.strip() for o in extra.split(",") if o.strip())
    return origins


def random_seed() -> Optional[int]:
    """Seed for new tournaments' RNG; unset means nondeterministic."""
    raw = os.getenv("SMASHBOARD_RANDOM_SEED", "").strip()
    return int(raw) if raw else None


def default_court_count() -> int:
    return int(os.getenv("SMASHBOARD_DEFAULT_COURTS", "4"))
