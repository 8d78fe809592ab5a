# app/utils/rate_limit.py - Limiteur de débit simple en mémoire (par processus)
import time
from dataclasses import dataclass
from typing import Dict

from fastapi import HTTPException, Request, status


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


class RateLimiter:
    """Fenêtre fixe: au plus max_requests requêtes par identifiant toutes les window_seconds"""

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._entries: Dict[str, RateLimitEntry] = {}

    def hit(self, identifier: str) -> bool:
        now = time.monotonic()
        entry = self._entries.get(identifier)
        if entry is None or entry.reset_at < now:
            entry = RateLimitEntry(count=0, reset_at=now + self.window_seconds)
        entry.count += 1
        self._entries[identifier] = entry
        self._cleanup(now)
        return entry.count <= self.max_requests

    def reset(self) -> None:
        self._entries.clear()

    def _cleanup(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if entry.reset_at < now]
        for key in expired:
            self._entries.pop(key, None)

    async def __call__(self, request: Request) -> None:
        # Utilisable directement comme dépendance FastAPI
        if not self.hit(f"{request.url.path}:{get_client_ip(request)}"):
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Trop de requêtes, veuillez réessayer plus tard",
            )


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


auth_rate_limiter = RateLimiter(max_requests=10, window_seconds=60)
inscription_rate_limiter = RateLimiter(max_requests=20, window_seconds=60)
