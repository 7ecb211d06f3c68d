"""Pyth Network price oracle service."""
import logging
import ssl

import aiohttp
import certifi

from ..config import PythConfig
from ..fixed_point import USD_DECIMALS, format_units

logger = logging.getLogger(__name__)


def to_price_mantissa(price_raw: int, expo: int) -> int:
    """Rescale a Pyth ``price * 10^expo`` pair to a 1e18 fixed-point integer."""
    shift = USD_DECIMALS + expo
    if shift >= 0:
        return price_raw * 10**shift
    return price_raw // 10**-shift


class PythOracle:
    """Fetch prices from Pyth Network oracle, keyed by underlying address."""

    def __init__(self, config: PythConfig) -> None:
        self.hermes_url = config.hermes_url
        self.price_feeds = {k.lower(): v for k, v in config.feeds.items()}

    async def fetch_prices(self, keys: list[str] | None = None) -> dict[str, int]:
        """Fetch current prices from Pyth Network.

        Args:
            keys: Optional list of underlying addresses to fetch. If None,
                  fetches all configured feeds.
        """
        prices: dict[str, int] = {}

        feeds = self.price_feeds
        if keys is not None:
            wanted = {k.lower() for k in keys}
            feeds = {k: v for k, v in self.price_feeds.items() if k in wanted}

        feed_ids = list(set(feeds.values()))
        if not feed_ids:
            return prices

        query_params = "&".join([f"ids[]={fid}" for fid in feed_ids])
        url = f"{self.hermes_url}?{query_params}"

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        logger.error(
                            "Error fetching prices from Pyth: HTTP %s", response.status
                        )
                        return prices

                    data = await response.json()
                    parsed = data.get("parsed", [])

                    # Reverse mapping from feed ID to underlying addresses
                    id_to_keys: dict[str, list[str]] = {}
                    for key, feed_id in feeds.items():
                        id_to_keys.setdefault(feed_id.lower().removeprefix("0x"), []).append(key)

                    for item in parsed:
                        feed_id = str(item.get("id", "")).lower().removeprefix("0x")
                        price_data = item.get("price", {})
                        price_raw = int(price_data.get("price", 0))
                        expo = int(price_data.get("expo", 0))

                        if price_raw <= 0:
                            logger.warning("Ignoring non-positive Pyth price for %s", feed_id)
                            continue

                        price = to_price_mantissa(price_raw, expo)
                        for key in id_to_keys.get(feed_id, []):
                            prices[key] = price

                    logger.info("Fetched prices from Pyth Network:")
                    for key, price in sorted(prices.items()):
                        logger.info("  %s: $%s", key, format_units(price, USD_DECIMALS))

        except Exception as e:
            logger.error("Error fetching prices from Pyth: %s", e)

        return prices
