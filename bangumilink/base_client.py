"""
Base HTTP client for the remote services (Bangumi, chat completion API)
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class BaseClient(ABC):
    """Base client holding a requests session bound to a base URL"""

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if headers:
            self.session.headers.update(headers)

    def _build_url(self, endpoint: str) -> str:
        if not endpoint:
            return self.url
        return f"{self.url}/{endpoint.lstrip('/')}"

    def _get(self, endpoint: str, params: dict | None = None) -> Any:
        """Perform a GET request to the API"""
        response = self.session.get(
            self._build_url(endpoint), params=params, timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    def _post(self, endpoint: str, data: dict) -> Any:
        """Perform a POST request to the API"""
        response = self.session.post(
            self._build_url(endpoint), json=data, timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    @abstractmethod
    def test_connection(self) -> bool:
        """Test the connection to the service - must be implemented by subclasses"""
        pass
