# scraper.py
import logging
from typing import Any, Dict, List

import requests

from errors import FetchError

log = logging.getLogger("bolsa.scraper")

HEADERS = {
    "User-Agent": "Mozilla/5.0",
    "Accept": "application/json, text/javascript, */*; q=0.01",
}


class BolsaClient:
    """Fetches the equity market summary from the exchange website."""

    def __init__(self, url: str, timeout: float = 15.0, session: requests.Session = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_summary(self) -> List[Dict[str, Any]]:
        """Return the raw record list; raise FetchError on any transport or format problem."""
        try:
            resp = self.session.get(self.url, headers=HEADERS, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            raise FetchError(f"request to exchange failed: {e}") from e
        except ValueError as e:
            raise FetchError(f"exchange returned non-JSON body: {e}") from e

        if not isinstance(data, list):
            raise FetchError(f"expected a JSON array, got {type(data).__name__}")
        log.info(f"Downloaded {len(data)} records")
        return data
