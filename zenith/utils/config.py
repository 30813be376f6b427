
import os
from dataclasses import dataclass

def _flag(key: str, default: str = "false") -> bool:
    return os.getenv(key, default).lower() in {"1", "true", "yes"}

@dataclass
class Settings:
    MONGODB_URI: str = os.getenv("MONGODB_URI", "")
    CACHE_SWEEP_INTERVAL: float = float(os.getenv("CACHE_SWEEP_INTERVAL", "300"))
    CACHE_COALESCE: bool = _flag("CACHE_COALESCE")
    CACHE_COPY_VALUES: bool = _flag("CACHE_COPY_VALUES")
    PERF_SLOW_MS: float = float(os.getenv("PERF_SLOW_MS", "400"))
    ENV: str = os.getenv("ENV", "dev")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    PORT: int = int(os.getenv("PORT", "5002"))

settings = Settings()
