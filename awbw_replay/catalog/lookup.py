"""
External username lookup.

The lookup service answers one request per user id with a JSON body
{"username": "..."}; a 404 or a null username means "not found".
"""

import json
import logging
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class UsernameLookup(ABC):
    @abstractmethod
    def lookup(self, user_id: int) -> Optional[str]:
        """
        Resolve a user id to a display name.

        Returns:
            The display name, or None when the service has no answer

        Raises:
            Exception: Transport or protocol failures (treated as retryable)
        """
        ...


class HttpUsernameLookup(UsernameLookup):
    def __init__(self, url_template: str, timeout: float = 10.0) -> None:
        self.url_template = url_template
        self.timeout = timeout

    def lookup(self, user_id: int) -> Optional[str]:
        url = self.url_template.format(user_id=user_id)
        req = urllib.request.Request(url, headers={"Accept": "application/json"}, method="GET")

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                body = response.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            if e.code == 404:
                logger.debug(f"Username lookup for {user_id}: not found")
                return None
            raise

        data = json.loads(body)
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected username response for {user_id}: {body[:200]}")
        username = data.get("username")
        return str(username) if username else None
