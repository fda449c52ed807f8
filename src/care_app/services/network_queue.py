"""Network queue service for non-blocking network operations using background threading."""

import threading
import queue
import time
import uuid
import logging
import requests
from typing import Dict, Any, Optional, Callable


class NetworkQueue:
    """Background network request queue for non-blocking operations.

    Uses a single background thread to process network requests from a queue,
    with results placed in a result queue for polling by the UI loop, which
    owns all view state.

    With `autostart=False` no thread is started and `process_pending()` runs
    the queued requests on the calling thread.
    """

    def __init__(self, autostart=True):
        self.logger = logging.getLogger(self.__class__.__name__)

        self.request_queue = queue.Queue()
        self.results: Dict[str, Dict[str, Any]] = {}
        self._results_lock = threading.Lock()

        # Track active requests
        self.active_requests: Dict[str, Dict[str, Any]] = {}

        self.thread = None
        self.running = False

        if autostart:
            self.start()

    def start(self):
        """Start the background network processing thread."""
        if self.running:
            return

        self.running = True
        self.thread = threading.Thread(target=self._process_requests, daemon=True)
        self.thread.start()
        self.logger.info("Network queue service started")

    def stop(self):
        """Stop the background network processing thread."""
        self.running = False
        if self.thread:
            self.thread.join(timeout=5)
        self.logger.info("Network queue service stopped")

    def submit_request(self, operation: str, args: tuple = None, kwargs: dict = None,
                       callback: Callable = None) -> str:
        """Submit a network request for background processing.

        Args:
            operation: 'api_request' (method, url) or 'call' (a callable and its arguments)
            args: Positional arguments for the operation
            kwargs: Keyword arguments for the operation
            callback: Optional callback, run on the worker thread after success

        Returns:
            str: Unique request ID for polling results
        """
        request_id = str(uuid.uuid4())

        request = {
            'id': request_id,
            'operation': operation,
            'args': args or (),
            'kwargs': kwargs or {},
            'callback': callback,
            'submitted_at': time.time()
        }

        self.active_requests[request_id] = request
        self.request_queue.put(request)

        self.logger.debug(f"Submitted network request {request_id} for operation {operation}")
        return request_id

    def poll_result(self, request_id: str) -> Optional[Dict[str, Any]]:
        """Poll for completion of a network request.

        Returns:
            dict or None: Result dict if complete, None if still processing
        """
        with self._results_lock:
            result = self.results.pop(request_id, None)
        if result is not None:
            self.active_requests.pop(request_id, None)
        return result

    def cancel_request(self, request_id: str) -> bool:
        """Cancel a pending network request.

        Returns:
            bool: True if cancelled, False if not found or already processed
        """
        if request_id in self.active_requests:
            del self.active_requests[request_id]
            with self._results_lock:
                self.results.pop(request_id, None)
            self.logger.debug(f"Cancelled network request {request_id}")
            return True
        return False

    def get_active_requests(self) -> list:
        """Get list of currently active request IDs."""
        return list(self.active_requests.keys())

    def process_pending(self):
        """Run every queued request on the calling thread; returns how many ran."""
        processed = 0
        while True:
            try:
                request = self.request_queue.get_nowait()
            except queue.Empty:
                return processed
            self._handle(request)
            processed += 1

    def _process_requests(self):
        """Background thread main loop for processing network requests."""
        while self.running:
            try:
                request = self.request_queue.get(timeout=1.0)
            except queue.Empty:
                continue
            try:
                self._handle(request)
            except Exception as e:
                self.logger.error(f"Error in network queue processing: {e}", exc_info=True)

    def _handle(self, request: Dict[str, Any]):
        # Cancelled before it ran
        if request['id'] not in self.active_requests:
            return

        result = self._execute_operation(request)

        with self._results_lock:
            self.results[request['id']] = {
                'request_id': request['id'],
                'operation': request['operation'],
                'result': result,
                'completed_at': time.time()
            }

        if request.get('callback') and result.get('success', False):
            try:
                request['callback'](result)
            except Exception as e:
                self.logger.error(f"Error in callback for request {request['id']}: {e}")

    def _execute_operation(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a network operation.

        Returns:
            dict: Result with 'success', 'data', and 'error' keys
        """
        operation = request['operation']
        args = request['args']
        kwargs = request['kwargs']

        try:
            if operation == 'api_request':
                return self._execute_api_request(*args, **kwargs)
            elif operation == 'call':
                func, *call_args = args
                return {'success': True, 'data': func(*call_args, **kwargs), 'error': None}
            return {
                'success': False,
                'error': f'Unknown operation: {operation}',
                'data': None
            }
        except Exception as e:
            self.logger.error(f"Operation {operation} failed: {e}")
            return {'success': False, 'error': e, 'data': None}

    def _execute_api_request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """Execute an API request."""
        kwargs.setdefault('timeout', 30)
        response = requests.request(method, url, **kwargs)
        return {
            'success': response.status_code < 400,
            'data': response,
            'status_code': response.status_code
        }


# Global instance
_network_queue = None
_network_queue_lock = threading.Lock()


def get_network_queue() -> NetworkQueue:
    """Get or create the global network queue instance (thread-safe)."""
    global _network_queue
    if _network_queue is None:
        with _network_queue_lock:
            if _network_queue is None:
                _network_queue = NetworkQueue()
    return _network_queue
