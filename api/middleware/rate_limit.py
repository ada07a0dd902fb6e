import time
import asyncio
from fastapi import Request
from fastapi.responses import JSONResponse
import logging
from cachetools import TTLCache

logger = logging.getLogger("rate_limiter")

RATE_LIMIT_MESSAGE = "تعداد درخواست‌های شما بیش از حد مجاز است. لطفاً یک دقیقه دیگر دوباره تلاش کنید."


class RateLimitMiddleware:
    """
    Per-IP sliding window limiter for the relay endpoints.
    Memory is bounded by the TTLCache; one asyncio lock guards all updates.
    """
    def __init__(self, requests_per_minute: int = 30, window_size: int = 60):
        self.rate_limit = requests_per_minute
        self.window_size = window_size
        self.clients = TTLCache(maxsize=10000, ttl=self.window_size)  # IP -> list of timestamps
        self.lock = asyncio.Lock()

    @staticmethod
    def client_ip(request: Request):
        x_forwarded = request.headers.get("x-forwarded-for")
        if x_forwarded:
            return x_forwarded.split(",")[0].strip()
        if request.headers.get("x-real-ip"):
            return request.headers.get("x-real-ip").strip()
        if request.client and request.client.host:
            return request.client.host
        return None

    async def __call__(self, request: Request, call_next):
        # A limit of 0 disables the middleware
        if self.rate_limit <= 0 or request.url.path == "/health" or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = self.client_ip(request)
        if not client_ip:
            logger.warning("Rate limit skipped due to missing client IP (blocking request)")
            return JSONResponse(status_code=400, content={"error": "آدرس کلاینت قابل تشخیص نیست."})

        async with self.lock:
            current_time = time.time()
            history = [t for t in self.clients.get(client_ip, []) if t > current_time - self.window_size]

            if len(history) >= self.rate_limit:
                self.clients[client_ip] = history
                logger.warning(f"Rate limit exceeded for IP: {client_ip}")
                return JSONResponse(status_code=429, content={"error": RATE_LIMIT_MESSAGE})

            history.append(current_time)
            self.clients[client_ip] = history

        return await call_next(request)
