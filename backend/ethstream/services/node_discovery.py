"""Ethereum node discovery - scrape public endpoint listings into the pool"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional, Sequence

import httpx
from bs4 import BeautifulSoup

from ethstream.services.datasource.rpc import EndpointPool, dedupe_endpoints

logger = logging.getLogger(__name__)


class NodeDiscovery:
    """
    Keeps the endpoint pool filled from configured seeds plus the nodes a
    public listing reports as up.

    Scrape failures are logged and never clear a working pool.
    """

    def __init__(
        self,
        pool: EndpointPool,
        node_list_url: str,
        seed_urls: Sequence[str] = (),
        refresh_interval: int = 3600,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.pool = pool
        self.node_list_url = node_list_url
        self.seed_urls = list(seed_urls)
        self.refresh_interval = refresh_interval
        self.timeout = timeout
        self._transport = transport
        self.last_refresh: Optional[datetime] = None

    async def discover(self) -> List[str]:
        """Return seed URLs followed by scraped endpoints, without duplicates"""
        scraped: List[str] = []
        if self.node_list_url:
            try:
                scraped = await self._scrape()
                logger.info(f"✅ Found {len(scraped)} live nodes on {self.node_list_url}")
            except Exception as e:
                logger.error(f"Failed to scrape Ethereum nodes from {self.node_list_url}: {e}")
        return dedupe_endpoints([*self.seed_urls, *scraped])

    async def _scrape(self) -> List[str]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(self.node_list_url)
            response.raise_for_status()

        soup = BeautifulSoup(response.text, "html.parser")
        return parse_node_listing(soup)

    async def refresh(self) -> int:
        """Run one discovery cycle; returns the resulting pool size"""
        endpoints = await self.discover()
        if not endpoints:
            logger.warning("Discovery found no endpoints, keeping current pool of %d", self.pool.size())
            return self.pool.size()

        await self.pool.replace(endpoints)
        self.last_refresh = datetime.now()
        return self.pool.size()

    async def run_forever(self) -> None:
        """Refresh on a fixed interval until cancelled"""
        while True:
            try:
                await self.refresh()
            except Exception as e:
                logger.error(f"Node discovery cycle failed: {e}", exc_info=True)
            await asyncio.sleep(self.refresh_interval)


def parse_node_listing(soup: BeautifulSoup) -> List[str]:
    """Extract endpoint inputs from every node card marked as up"""
    endpoints: List[str] = []
    for card in soup.select("div.node.up"):
        for field in card.select("input.endpoint"):
            value = field.get("value")
            if value and value.strip():
                endpoints.append(value.strip())
    return endpoints
