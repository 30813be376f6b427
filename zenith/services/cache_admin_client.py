from typing import Dict
from ..utils.config import settings
from ..utils.http import get, post
from ..utils.logging import get_logger

log = get_logger(__name__)

class CacheAdminClient:
    """
    Talks to the /cache endpoints of a running portal service:
      GET  {base}/cache/stats
      POST {base}/cache/invalidate  {"pattern": ...}
      POST {base}/cache/clear
    """

    def __init__(self, base_url: str = None, timeout: float = 10, retries: int = 2):
        self.base = (base_url or f"http://localhost:{settings.PORT}").rstrip("/")
        self.timeout = timeout
        self.retries = retries

    def stats(self) -> Dict:
        return get(f"{self.base}/cache/stats", timeout=self.timeout, retries=self.retries)

    def invalidate(self, pattern: str) -> int:
        res = post(f"{self.base}/cache/invalidate", {"pattern": pattern},
                   timeout=self.timeout, retries=self.retries)
        removed = int(res.get("removed") or 0)
        log.info(f"invalidated {removed} cache keys matching {pattern!r} on {self.base}")
        return removed

    def clear(self) -> None:
        post(f"{self.base}/cache/clear", timeout=self.timeout, retries=self.retries)
