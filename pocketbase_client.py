"""
PocketBase REST client with timeout and retry logic.
Covers the read side the dashboard needs: password auth and record listing.
"""

import requests
import logging
from typing import Any, Dict, List, Optional, Tuple
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from config import Config
from exceptions import AuthenticationError, ConfigurationError, DataFetchError
from shared.utils import retry_with_backoff

logger = logging.getLogger(__name__)


class PocketBaseClient:
    """Thin client over the PocketBase records API."""

    def __init__(self, base_url: str = Config.POCKETBASE_URL, identity: str = None,
                 password: str = None, auth_collection: str = Config.POCKETBASE_AUTH_COLLECTION,
                 connect_timeout: int = Config.API_CONNECT_TIMEOUT,
                 read_timeout: int = Config.API_READ_TIMEOUT,
                 max_retries: int = Config.API_RETRY_ATTEMPTS,
                 page_size: int = Config.PAGE_SIZE):
        """
        Args:
            base_url: PocketBase server URL, e.g. http://127.0.0.1:8090
            identity: Username or email for password auth (optional)
            password: Password for password auth (optional)
            auth_collection: Auth collection holding the user
            connect_timeout: Connection timeout in seconds
            read_timeout: Read timeout in seconds
            max_retries: Transport-level retries for 5xx responses
            page_size: Records requested per page (PocketBase caps this at 1000)
        """
        if not base_url:
            raise ConfigurationError("POCKETBASE_URL is not configured")

        self.base_url = base_url.rstrip('/')
        self.identity = identity
        self.password = password
        self.auth_collection = auth_collection
        self.timeout = (connect_timeout, read_timeout)
        self.max_retries = max_retries
        self.page_size = page_size
        self.token: Optional[str] = None
        self.auth_record: Optional[Dict[str, Any]] = None

        self.session = self._create_session()

        if not (identity and password):
            logger.warning("PocketBaseClient initialized without credentials; only public collection rules apply.")

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry strategy."""
        session = requests.Session()
        retry_strategy = Retry(
            total=self.max_retries,
            backoff_factor=1,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "POST", "OPTIONS"]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        if self.token:
            headers['Authorization'] = self.token
        return headers

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def authenticate(self) -> Dict[str, Any]:
        """
        Password-authenticate against the configured auth collection.

        Returns:
            The authenticated user record

        Raises:
            ConfigurationError: If identity or password is missing
            AuthenticationError: If PocketBase rejects the credentials or is unreachable
        """
        if not (self.identity and self.password):
            raise ConfigurationError("POCKETBASE_IDENTITY and POCKETBASE_PASSWORD are required to authenticate")

        url = f"{self.base_url}/api/collections/{self.auth_collection}/auth-with-password"
        try:
            response = self.session.post(
                url,
                json={'identity': self.identity, 'password': self.password},
                headers={'Accept': 'application/json'},
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Authentication request failed: {e}")
            raise AuthenticationError(f"Could not reach PocketBase at {self.base_url}: {e}")

        if response.status_code != 200:
            logger.error(f"Authentication rejected with HTTP {response.status_code}")
            raise AuthenticationError(f"Authentication failed (HTTP {response.status_code}): {self._error_message(response)}")

        payload = response.json()
        self.token = payload.get('token')
        self.auth_record = payload.get('record')
        if not self.token:
            raise AuthenticationError("Authentication response did not include a token")

        logger.info(f"Authenticated against '{self.auth_collection}' as {self.identity}")
        return self.auth_record or {}

    def ensure_authenticated(self) -> None:
        """Authenticate once if credentials are configured."""
        if self.token is None and self.identity and self.password:
            self.authenticate()

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            return response.json().get('message', '') or response.text[:200]
        except ValueError:
            return response.text[:200]

    @retry_with_backoff(max_attempts=Config.API_RETRY_ATTEMPTS, retry_on=(requests.exceptions.ConnectionError,
                                                                          requests.exceptions.Timeout))
    def _get(self, path: str, params: Dict[str, Any]) -> requests.Response:
        return self.session.get(f"{self.base_url}{path}", params=params,
                                headers=self._headers(), timeout=self.timeout)

    def _get_json(self, collection: str, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self._get(path, params)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request for '{collection}' failed: {e}")
            raise DataFetchError(collection, str(e))

        if response.status_code != 200:
            message = self._error_message(response)
            logger.error(f"Fetching '{collection}' returned HTTP {response.status_code}: {message}")
            raise DataFetchError(collection, message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise DataFetchError(collection, f"Invalid JSON response: {e}")

    def get_list(self, collection: str, page: int = 1, per_page: int = None, sort: str = None,
                 filter: str = None, expand: str = None, skip_total: bool = False) -> Dict[str, Any]:
        """
        Fetch a single page of records (PocketBase list response).
        With skip_total the server omits the count query and reports totalPages as -1.
        """
        self.ensure_authenticated()
        params = {'page': page, 'perPage': per_page or self.page_size}
        if skip_total:
            params['skipTotal'] = 1
        if sort:
            params['sort'] = sort
        if filter:
            params['filter'] = filter
        if expand:
            params['expand'] = expand
        return self._get_json(collection, f"/api/collections/{collection}/records", params)

    def get_full_list(self, collection: str, sort: str = None, filter: str = None,
                      expand: str = None, skip_total: bool = False) -> List[Dict[str, Any]]:
        """
        Fetch every record of a collection, following pagination.

        Raises:
            DataFetchError: On transport errors or non-200 responses
        """
        records: List[Dict[str, Any]] = []
        page = 1
        while True:
            payload = self.get_list(collection, page=page, sort=sort, filter=filter, expand=expand,
                                    skip_total=skip_total)
            items = payload.get('items', []) or []
            records.extend(items)

            total_pages = payload.get('totalPages')
            per_page = payload.get('perPage', self.page_size)
            if not items or len(items) < per_page:
                break
            # -1 when the total was skipped
            if total_pages is not None and total_pages >= 0 and page >= total_pages:
                break
            page += 1

        logger.info(f"Fetched {len(records)} records from '{collection}' ({page} page(s))")
        return records

    def get_one(self, collection: str, record_id: str, expand: str = None) -> Dict[str, Any]:
        """Fetch a single record by id."""
        self.ensure_authenticated()
        params = {'expand': expand} if expand else {}
        return self._get_json(collection, f"/api/collections/{collection}/records/{record_id}", params)

    def health(self) -> Tuple[bool, str]:
        """Check the PocketBase health endpoint."""
        try:
            response = self.session.get(f"{self.base_url}/api/health", timeout=Config.API_TIMEOUT)
            if response.status_code == 200:
                return True, response.json().get('message', 'OK')
            return False, f"HTTP {response.status_code}"
        except (requests.exceptions.RequestException, ValueError) as e:
            return False, str(e)
