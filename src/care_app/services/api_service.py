"""API service for HTTP client abstraction."""
import requests
import time
import logging
from ..errors import APIError
from .network_queue import get_network_queue


class APIService:
    """HTTP client for backend API calls with error handling and retry logic.

    `request_json` decodes the body and raises APIError for transport failures and
    error statuses.
    `submit_request_async` hands a request to the background network queue.
    """

    def __init__(self, base_url='http://localhost:5000', max_retries=3, retry_delay=1.0,
                 timeout=10.0, auth_service=None, access_token=None, network_queue=None):
        self.base_url = base_url.rstrip('/')
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)
        self._network_queue = network_queue
        self.auth_service = auth_service
        self.access_token = access_token

    @property
    def network_queue(self):
        if self._network_queue is None:
            self._network_queue = get_network_queue()
        return self._network_queue

    def _get_auth_headers(self):
        """Get authorization headers for API requests.

        auth_service takes precedence over a fixed access_token.
        """
        headers = {}
        if self.auth_service:
            headers.update(self.auth_service.get_headers())
        elif self.access_token:
            headers['Authorization'] = f"Bearer {self.access_token}"
        return headers

    def _merge_headers(self, kwargs):
        """Merge auth headers with any provided headers in kwargs."""
        kwargs.setdefault('timeout', self.timeout)
        auth_headers = self._get_auth_headers()
        if not auth_headers:
            return kwargs

        existing_headers = kwargs.get('headers', {})
        if not isinstance(existing_headers, dict):
            existing_headers = {}

        # auth headers take precedence
        kwargs['headers'] = {**existing_headers, **auth_headers}
        return kwargs

    def _make_request(self, method, url, **kwargs):
        """Make HTTP request with retry logic."""
        kwargs = self._merge_headers(kwargs)

        last_exception = None

        for attempt in range(self.max_retries):
            try:
                response = requests.request(method, url, **kwargs)
                # Don't retry on client errors (4xx) except for specific cases
                if 400 <= response.status_code < 500:
                    if response.status_code not in [408, 429]:  # Retry timeout and rate limit
                        return response
                elif response.status_code < 500:
                    return response

                if attempt < self.max_retries - 1:
                    self.logger.warning(f"Request failed (attempt {attempt + 1}/{self.max_retries}): {response.status_code} {response.reason}")
                    time.sleep(self.retry_delay * (2 ** attempt))  # Exponential backoff
                else:
                    return response

            except requests.exceptions.RequestException as e:
                last_exception = e
                if attempt < self.max_retries - 1:
                    self.logger.warning(f"Request exception (attempt {attempt + 1}/{self.max_retries}): {e}")
                    time.sleep(self.retry_delay * (2 ** attempt))  # Exponential backoff
                else:
                    self.logger.error(f"Request failed after {self.max_retries} attempts: {e}")

        if last_exception:
            raise last_exception
        raise requests.exceptions.RequestException("All retry attempts failed")

    def request_json(self, method, endpoint, **kwargs):
        """Send a request and return the decoded JSON body.

        Raises:
            APIError: On network failure or any status >= 400
        """
        url = f"{self.base_url}{endpoint}"
        try:
            response = self._make_request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            raise APIError(f"Connection error: {e}")
        return self.decode_response(response)

    def decode_response(self, response):
        if response.status_code >= 400:
            error = APIError.from_response(response)
            self.logger.warning(f"{response.request.method if response.request else ''} {response.url} -> {response.status_code}: {error.message}")
            raise error
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise APIError('Server returned invalid JSON', response.status_code)

    def submit_request_async(self, method, endpoint, **kwargs):
        """Submit an API request for asynchronous processing.

        Returns a request ID that can be used to poll for completion.
        """
        kwargs = self._merge_headers(kwargs)
        url = f"{self.base_url}{endpoint}"
        return self.network_queue.submit_request(
            operation='api_request',
            args=(method, url),
            kwargs=kwargs
        )

    def poll_request_result(self, request_id):
        """Poll for the result of an asynchronous API request.

        Returns:
            None while the request is still running, otherwise
            {'success': True, 'data': decoded JSON} or {'success': False, 'error': APIError}
        """
        result = self.network_queue.poll_result(request_id)
        if result is None:
            return None

        operation_result = result['result']
        if operation_result.get('data') is None:
            error = operation_result.get('error')
            return {'success': False, 'error': APIError(f"Connection error: {error}")}
        try:
            return {'success': True, 'data': self.decode_response(operation_result['data'])}
        except APIError as e:
            return {'success': False, 'error': e}

