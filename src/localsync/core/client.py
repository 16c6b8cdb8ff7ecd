import threading
from typing import Any

import requests

from ..config import Config

CONNECT_TIMEOUT = 5


class RemoteClient:
    """Blocking JSON-over-HTTP client for the remote record source.

    Each worker thread gets its own ``requests.Session``; callers on the
    event loop go through ``run_sync()``.
    """

    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self._sessions: list[requests.Session] = []
        self._lock = threading.Lock()
        self.base_url = config.remote_url.rstrip("/")

    @property
    def session(self) -> requests.Session:
        """Return the current thread's session."""
        return self._get_session()

    @property
    def timeout(self) -> tuple[float, float]:
        return (
            min(CONNECT_TIMEOUT, self.config.request_timeout),
            self.config.request_timeout,
        )

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            session = self._create_session()
            self._thread_local.session = session
            with self._lock:
                self._sessions.append(session)
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({"Accept": "application/json"})
        return session

    def list_items(self, limit: int) -> Any:
        """
        Fetch up to *limit* items from the remote collection.

        Returns the decoded JSON body.

        Raises:
            requests.RequestException: On transport failure or non-2xx status.
            ValueError: If the body is not valid JSON.
        """
        response = self._get_session().get(
            self.base_url,
            params={"_limit": limit},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def create_item(self, payload: dict[str, Any]) -> None:
        """
        POST *payload* to the remote collection.

        The response body is ignored: the remote does not retain writes.

        Raises:
            requests.RequestException: On transport failure or non-2xx status.
        """
        response = self._get_session().post(
            self.base_url,
            json=payload,
            timeout=self.timeout,
        )
        response.raise_for_status()

    def close(self) -> None:
        """Close every session opened by this client."""
        with self._lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
        self._thread_local = threading.local()
