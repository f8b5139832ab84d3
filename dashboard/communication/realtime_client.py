"""
Realtime Database REST Client
Reads sensor history from, and writes commands to, the cloud realtime
database (Firebase Realtime Database REST API).

- Uses http.client directly, one method call per HTTP request
- Key-ordered queries ("orderBy=$key") so results follow push-id order
- Failures are logged and raised as TransientFetchError; callers decide
  how to report them
"""

import http.client
import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode, urlparse

from dashboard import config
from dashboard.data.reading import Reading, parse_reading

logger = logging.getLogger(__name__)


class RealtimeDatabaseError(Exception):
    """Base exception for realtime database errors"""
    pass


class TransientFetchError(RealtimeDatabaseError):
    """Request failed; nothing was changed and it is safe to retry"""
    pass


def readings_from_snapshot(snapshot: Optional[Dict[str, Any]]) -> List[Reading]:
    """
    Convert a {key: payload} snapshot into readings ascending by key.

    Null payloads are dropped.
    """
    if not snapshot:
        return []
    readings = (parse_reading(key, data) for key, data in snapshot.items())
    return sorted((r for r in readings if r is not None), key=lambda r: r.key)


class RealtimeDatabaseClient:
    """
    Wrapper for the realtime database REST interface.

    Example:
    >>> db = RealtimeDatabaseClient("https://my-db.firebaseio.com")
    >>> latest = db.fetch_last(1000)
    >>> older = db.fetch_page_before(latest[0].key, 20)
    """

    def __init__(self, url: str, auth: str = "",
                 readings_path: str = config.READINGS_PATH,
                 timeout: float = config.REQUEST_TIMEOUT):
        """
        Initialize client.

        Args:
            url: Database URL (e.g., https://xyz.firebaseio.com)
            auth: Optional database secret / ID token appended as ?auth=
            readings_path: Node holding the readings, keyed by push id
            timeout: Socket timeout in seconds
        """
        self.url = url
        self.auth = auth
        self.readings_path = readings_path.strip("/")
        self.timeout = timeout

        parsed = urlparse(url)
        self.scheme = parsed.scheme or "https"
        self.host = parsed.netloc
        self.base_path = parsed.path.rstrip("/") if parsed.path else ""

        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _connection(self) -> http.client.HTTPConnection:
        if self.scheme == "http":
            return http.client.HTTPConnection(self.host, timeout=self.timeout)
        return http.client.HTTPSConnection(self.host, timeout=self.timeout)

    def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                 body: Any = None) -> Any:
        """
        Execute one REST request.

        Args:
            method: HTTP method
            path: Database path without the .json suffix
            params: Query parameters (already JSON-encoded where required)
            body: JSON-serialisable request body

        Returns:
            Decoded JSON response (None for an empty node)

        Raises:
            TransientFetchError: connection failure, non-2xx status or bad JSON
        """
        query = dict(params or {})
        if self.auth:
            query["auth"] = self.auth
        endpoint = f"{self.base_path}/{path.strip('/')}.json"
        if query:
            endpoint = f"{endpoint}?{urlencode(query)}"

        conn = None
        try:
            conn = self._connection()
            payload = json.dumps(body) if body is not None else None
            conn.request(method, endpoint, payload, self.headers)
            response = conn.getresponse()
            raw = response.read()

            if response.status not in (200, 201, 204):
                logger.error(f"HTTP Error {response.status}: {raw.decode(errors='replace')}")
                raise TransientFetchError(f"HTTP {response.status} for {method} {path}")

            if not raw:
                return None
            return json.loads(raw)

        except TransientFetchError:
            raise
        except (OSError, http.client.HTTPException) as e:
            logger.error(f"Connection failed: {e}")
            raise TransientFetchError(f"Connection failed: {e}") from e
        except ValueError as e:
            logger.error(f"Invalid JSON from database: {e}")
            raise TransientFetchError(f"Invalid response: {e}") from e
        finally:
            if conn:
                conn.close()

    # ------------------------------------------------------------------
    # Readings
    # ------------------------------------------------------------------

    def fetch_last(self, limit: int) -> List[Reading]:
        """Most recent `limit` readings, ascending by key"""
        snapshot = self._request("GET", self.readings_path, {
            "orderBy": json.dumps("$key"),
            "limitToLast": int(limit),
        })
        return readings_from_snapshot(snapshot)

    def fetch_page_before(self, cursor: str, limit: int) -> List[Reading]:
        """
        Up to `limit` readings with key strictly less than `cursor`.

        endAt is inclusive, so one extra record is requested and the
        cursor itself is filtered out.
        """
        snapshot = self._request("GET", self.readings_path, {
            "orderBy": json.dumps("$key"),
            "endAt": json.dumps(cursor),
            "limitToLast": int(limit) + 1,
        })
        older = [r for r in readings_from_snapshot(snapshot) if r.key < cursor]
        return older[-limit:] if limit > 0 else []

    def fetch_newer_than(self, cursor: Optional[str], limit: int = 100) -> List[Reading]:
        """
        Readings with key strictly greater than `cursor`.

        With no cursor, returns only the latest reading (the same record a
        limitToLast(1) subscription delivers first).
        """
        if cursor is None:
            return self.fetch_last(1)

        snapshot = self._request("GET", self.readings_path, {
            "orderBy": json.dumps("$key"),
            "startAt": json.dumps(cursor),
            "limitToFirst": int(limit) + 1,
        })
        return [r for r in readings_from_snapshot(snapshot) if r.key > cursor]

    # ------------------------------------------------------------------
    # Generic node access (commands)
    # ------------------------------------------------------------------

    def get(self, path: str) -> Any:
        return self._request("GET", path)

    def set(self, path: str, value: Any) -> Any:
        """Overwrite the node at `path` with `value`"""
        return self._request("PUT", path, body=value)

    def is_configured(self) -> bool:
        """Check if URL is set to something non-empty."""
        return bool(self.host and "placeholder" not in self.url)
