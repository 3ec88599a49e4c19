"""
Singleton OpenAI client with rate limiting using aiolimiter.
"""
from aiolimiter import AsyncLimiter
from openai import AsyncOpenAI
from loguru import logger

from listing_pipeline.config import OPENAI_API_KEY, CONCURRENCY


class OpenAIClient:
    """
    Singleton OpenAI client for making API requests.
    Uses AsyncRateLimiter for rate limiting instead of semaphores.
    """
    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not OpenAIClient._initialized:
            if not OPENAI_API_KEY:
                raise ValueError("OPENAI_API_KEY must be set in environment or config")

            self.client = AsyncOpenAI(api_key=OPENAI_API_KEY)
            self.rate_limiter = AsyncLimiter(max_rate=min(CONCURRENCY, 500), time_period=1.0)
            OpenAIClient._initialized = True

    async def moderations_create(self, **kwargs):
        """
        Run a moderation check with rate limiting.
        Accepts all arguments that AsyncOpenAI.moderations.create accepts.

        Returns:
            The response from OpenAI's moderations API.
        """
        async with self.rate_limiter:
            try:
                return await self.client.moderations.create(**kwargs)
            except Exception as e:
                logger.debug(f"⚠️ OpenAI moderation request failed: {e}")
                raise
