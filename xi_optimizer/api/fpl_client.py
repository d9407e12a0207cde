import aiohttp
from typing import Dict, List, Optional, Any
import json
import time
from loguru import logger

from xi_optimizer.utils.config import config


class FPLClient:
    """Read-only client for the public FPL feed"""

    ENDPOINTS = {
        "bootstrap": "/bootstrap-static/",
    }

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        base_url: Optional[str] = None,
        cache_duration: Optional[int] = None,
    ):
        self.session = session
        self.base_url = base_url or config.fpl.base_url
        self._owned_session = False
        self._cache = {}
        self._cache_expiry = {}
        self.cache_duration = cache_duration if cache_duration is not None else config.fpl.cache_duration

    async def __aenter__(self):
        if not self.session:
            self.session = aiohttp.ClientSession()
            self._owned_session = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._owned_session and self.session:
            await self.session.close()

    def _get_cache_key(self, endpoint: str, **kwargs) -> str:
        return f"{endpoint}:{json.dumps(kwargs, sort_keys=True)}"

    def _is_cache_valid(self, cache_key: str) -> bool:
        if cache_key not in self._cache:
            return False
        return time.time() < self._cache_expiry.get(cache_key, 0)

    def _set_cache(self, cache_key: str, data: Any, duration: Optional[int] = None):
        self._cache[cache_key] = data
        self._cache_expiry[cache_key] = time.time() + (duration or self.cache_duration)

    async def _make_request(self, endpoint: str, **kwargs) -> Dict:
        cache_key = self._get_cache_key(endpoint, **kwargs)

        if self._is_cache_valid(cache_key):
            logger.debug(f"Cache hit for {endpoint}")
            return self._cache[cache_key]

        url = f"{self.base_url}{endpoint}"

        logger.debug(f"Making request to {url}")

        try:
            async with self.session.get(url, params=kwargs or None) as response:
                response.raise_for_status()
                data = await response.json()
                self._set_cache(cache_key, data)
                return data
        except aiohttp.ClientError as e:
            logger.error(f"Request failed for {url}: {e}")
            raise

    async def get_bootstrap_data(self) -> Dict:
        """
        Get all general FPL data including:
        - All players with their current price, team and position
        - All teams
        - Position definitions
        """
        return await self._make_request(self.ENDPOINTS["bootstrap"])

    async def get_all_players(self) -> List[Dict]:
        """Get all players with their current data"""
        data = await self.get_bootstrap_data()
        return data.get("elements", [])

    async def get_all_teams(self) -> List[Dict]:
        """Get all teams data"""
        data = await self.get_bootstrap_data()
        return data.get("teams", [])

    async def get_team_names(self) -> Dict[int, str]:
        """Map team ID to team name"""
        return {t["id"]: t["name"] for t in await self.get_all_teams()}
