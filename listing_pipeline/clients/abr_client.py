"""
Singleton Australian Business Register client with rate limiting using aiolimiter.
"""
import json
import re
from aiohttp import ClientSession, ClientTimeout
from aiolimiter import AsyncLimiter
from typing import Dict, Any, Optional
from loguru import logger

from listing_pipeline.config import ABR_API_URL, ABR_WEBSERVICES_GUID, CONCURRENCY
from listing_pipeline.exceptions import AbrLookupError

# The JSON service wraps its payload in a JSONP callback: callback({...})
_JSONP = re.compile(r"^\s*[\w.$]*\((?P<body>.*)\)\s*;?\s*$", re.DOTALL)


class AbrClient:
    """
    Singleton client for the ABR JSON lookup service.
    Uses AsyncRateLimiter for rate limiting instead of semaphores.
    """
    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not AbrClient._initialized:
            self.guid = ABR_WEBSERVICES_GUID
            self.base_url = ABR_API_URL
            self.rate_limiter = AsyncLimiter(max_rate=CONCURRENCY, time_period=1.0)
            self._session: Optional[ClientSession] = None
            AbrClient._initialized = True

    @property
    def configured(self) -> bool:
        return bool(self.guid)

    async def _get_session(self) -> ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = ClientSession(timeout=ClientTimeout(total=30))
        return self._session

    async def get_abn_details(self, abn: str) -> Dict[str, Any]:
        """
        Look up an ABN and return the register's JSON payload.

        Args:
            abn: 11-digit ABN without spaces.

        Returns:
            Parsed payload (keys such as "Abn", "AbnStatus", "EntityName", "BusinessName", "Message").
        """
        if not self.configured:
            raise AbrLookupError("ABR_WEBSERVICES_GUID is not configured")

        async with self.rate_limiter:
            session = await self._get_session()
            try:
                async with session.get(
                    self.base_url,
                    params={"abn": abn, "guid": self.guid},
                ) as resp:
                    text = await resp.text()
                    if resp.status != 200:
                        raise AbrLookupError(f"ABR lookup returned HTTP {resp.status}")

                    match = _JSONP.match(text)
                    body = match.group("body") if match else text
                    try:
                        data = json.loads(body)
                    except json.JSONDecodeError as e:
                        raise AbrLookupError(f"Unparseable ABR response: {text[:200]}") from e
                    return data
            except Exception as e:
                logger.debug(f"⚠️ ABR lookup failed for {abn}: {e}")
                raise

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
