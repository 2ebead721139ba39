"""
Benchmark ingestion client with local fallback.

Results are POSTed once to the ingestion endpoint with a bearer
credential. If the request fails or the server answers with a non-2xx
status, the payload is written to a local key-value store instead and
the returned SaveOutcome says so. Nothing here raises to the caller.

USAGE:
    store = SQLiteKeyValueStore('./devicebench.db')
    with BenchmarkClient(api_key='...', store=store) as client:
        outcome = client.save_benchmark_result(result)
        if outcome.degraded:
            print(f"Saved locally under {outcome.storage_key}")
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from devicebench.ai_benchmark import BenchmarkResult
from devicebench.geekbench_profile import build_profile_url
from devicebench.kv_store import (
    BENCHMARK_KEY,
    GEEKBENCH_PROFILE_KEY,
    InMemoryStore,
    KeyValueStore,
)
from devicebench.settings import get_settings

logger = logging.getLogger('devicebench.benchmark_client')

BENCHMARK_ENDPOINT = '/api/benchmark'
LINK_GEEKBENCH_ENDPOINT = '/api/user/link-geekbench'


@dataclass(frozen=True)
class SaveOutcome:
    """Which path a save took: 'persisted' (remote) or 'degraded' (local)."""
    status: str
    storage_key: Optional[str] = None
    http_status: Optional[int] = None
    error: Optional[str] = None

    @property
    def persisted(self) -> bool:
        return self.status == 'persisted'

    @property
    def degraded(self) -> bool:
        return self.status == 'degraded'


class BenchmarkClient:
    """
    HTTP client for the benchmark service.

    One attempt per call: the adapter is mounted with retries disabled,
    and failures fall through to the local store.
    """

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        store: Optional[KeyValueStore] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Args:
            api_key: Bearer credential sent with every request
            base_url: Service root, defaults to settings.api_url
            store: Fallback store, defaults to an in-memory store
            timeout: Request timeout in seconds, defaults to settings.api_timeout
            session: Pre-built requests session (tests, shared pools)
        """
        settings = get_settings()
        self.base_url = (base_url or settings.api_url).rstrip('/')
        self.timeout = timeout if timeout is not None else settings.api_timeout
        self.store = store if store is not None else InMemoryStore()

        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self._http_session = session
        self._http_session.headers.update({
            'Authorization': f'Bearer {api_key}',
            'Content-Type': 'application/json',
        })

    def _post(self, endpoint: str, payload: Dict[str, Any]) -> requests.Response:
        url = urljoin(self.base_url + '/', endpoint.lstrip('/'))
        return self._http_session.post(url, json=payload, timeout=self.timeout, allow_redirects=False)

    def _post_with_fallback(self, endpoint: str, payload: Dict[str, Any],
                            fallback_key: str, fallback_payload: Any) -> SaveOutcome:
        http_status = None
        try:
            response = self._post(endpoint, payload)
            http_status = response.status_code
            if 200 <= http_status < 300:
                logger.info(f"POST {endpoint} succeeded ({http_status})")
                return SaveOutcome(status='persisted', http_status=http_status)
            error = f"HTTP {http_status}"
        except requests.RequestException as e:
            error = str(e)

        logger.warning(f"POST {endpoint} failed ({error}), storing locally under {fallback_key}")
        try:
            self.store.set_json(fallback_key, fallback_payload)
        except Exception as e:
            logger.error(f"Local fallback write for {fallback_key} failed: {e}")
            return SaveOutcome(status='degraded', storage_key=None, http_status=http_status,
                               error=f"{error}; local store: {e}")

        return SaveOutcome(status='degraded', storage_key=fallback_key, http_status=http_status, error=error)

    def save_benchmark_result(self, result: BenchmarkResult) -> SaveOutcome:
        """
        Send a benchmark result, falling back to the local store.

        Args:
            result: Result from run_ai_benchmark

        Returns:
            SaveOutcome; degraded outcomes name the local key used
        """
        payload = result.to_dict()
        return self._post_with_fallback(BENCHMARK_ENDPOINT, payload, BENCHMARK_KEY, payload)

    def link_geekbench_account(self, user_id: str, geekbench_username: str) -> SaveOutcome:
        """Attach a Geekbench profile to a user account."""
        payload = {
            'user_id': user_id,
            'geekbench_username': geekbench_username,
            'profile_url': build_profile_url(geekbench_username),
        }
        fallback = {
            'userId': user_id,
            'geekbenchUsername': geekbench_username,
            'linkedAt': datetime.now(timezone.utc).isoformat(),
        }
        return self._post_with_fallback(LINK_GEEKBENCH_ENDPOINT, payload, GEEKBENCH_PROFILE_KEY, fallback)

    def close(self) -> None:
        self._http_session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - close the HTTP session."""
        self.close()


def save_benchmark_result(
    result: BenchmarkResult,
    api_key: str,
    store: Optional[KeyValueStore] = None,
    base_url: Optional[str] = None,
    session: Optional[requests.Session] = None
) -> SaveOutcome:
    """One-shot save with a throwaway client."""
    with BenchmarkClient(api_key=api_key, base_url=base_url, store=store, session=session) as client:
        return client.save_benchmark_result(result)


def load_benchmark_result(store: KeyValueStore) -> Optional[BenchmarkResult]:
    """Result saved by a degraded save, or None if there is none."""
    try:
        data = store.get_json(BENCHMARK_KEY)
        if data is None:
            return None
        return BenchmarkResult.from_dict(data)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logger.error(f"Stored benchmark under {BENCHMARK_KEY} is unreadable: {e}")
        return None
