import redis

from ...application.ports.rate_limiter import RateLimiter


class RedisRateLimiter(RateLimiter):
    def __init__(self, url: str, prefix: str = "rl:", client: "redis.Redis" = None) -> None:
        self.client = client or redis.Redis.from_url(url)
        self.prefix = prefix

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        rk = f"{self.prefix}{key}"
        # Fixed window: the first hit in a window sets the expiry
        pipe = self.client.pipeline()
        pipe.incr(rk, 1)
        pipe.ttl(rk)
        count, ttl = pipe.execute()
        if int(ttl) < 0:
            self.client.expire(rk, window_seconds)
        return int(count) <= int(max_requests)

    def reset(self, key: str) -> None:
        self.client.delete(f"{self.prefix}{key}")
