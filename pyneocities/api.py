"""API client for Neocities."""

from __future__ import annotations

import random
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable
from urllib.parse import quote

import httpx

from .config import config
from .exceptions import (
    NeocitiesAPIError,
    NeocitiesAuthenticationError,
    NeocitiesConfigError,
    NeocitiesDownloadError,
    NeocitiesFileExistsError,
    NeocitiesInvalidResponseError,
    NeocitiesNetworkError,
    NeocitiesNotFoundError,
    NeocitiesRateLimitError,
    NeocitiesUploadError,
)
from .utils import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    HASH_CHUNK_SIZE,
    parse_remote_timestamp,
)

# error_type values of the JSON envelope mapped to exception classes
ERROR_TYPE_EXCEPTIONS: dict[str, type[NeocitiesAPIError]] = {
    "file_exists": NeocitiesFileExistsError,
    "invalid_auth": NeocitiesAuthenticationError,
    "missing_files": NeocitiesNotFoundError,
    "not_found": NeocitiesNotFoundError,
    "site_not_found": NeocitiesNotFoundError,
}


class NeocitiesClient:
    """Client for interacting with the Neocities API."""

    last_server_time: datetime | None = None
    """Server clock from the Date header of the last successful API call"""

    def __init__(
        self,
        api_key: str | None = None,
        sitename: str | None = None,
        password: str | None = None,
        api_url: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = 30.0,
    ):
        """Initialize Neocities API client.

        Either an API key or a sitename/password pair is required. The pair is
        only needed to fetch an API key with :meth:`key`.

        Args:
            api_key: Optional API key (uses config if not provided)
            sitename: Site name for basic authentication
            password: Password for basic authentication
            api_url: Optional API URL (uses config if not provided)
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
        """
        self.sitename = sitename
        self._password = password
        if api_key is None and not (sitename and password):
            api_key = config.api_key
        self.api_key = api_key
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

        if not self.api_key and not (sitename and password):
            raise NeocitiesConfigError(
                "Client requires a login (sitename/password) or an API key. "
                "Set the NEOCITIES_API_KEY environment variable."
            )

        self._client: httpx.Client | None = None
        self._download_client: httpx.Client | None = None

    def __enter__(self) -> NeocitiesClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get_client(self) -> httpx.Client:
        """Get or create the authenticated httpx client."""
        if self._client is None or self._client.is_closed:
            if self.api_key:
                self._client = httpx.Client(
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    timeout=httpx.Timeout(self.timeout),
                    follow_redirects=True,
                )
            else:
                self._client = httpx.Client(
                    auth=httpx.BasicAuth(self.sitename or "", self._password or ""),
                    timeout=httpx.Timeout(self.timeout),
                    follow_redirects=True,
                )
        return self._client

    def _get_download_client(self) -> httpx.Client:
        """Get or create an unauthenticated client for fetching site files."""
        if self._download_client is None or self._download_client.is_closed:
            self._download_client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._download_client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
        if self._download_client is not None and not self._download_client.is_closed:
            self._download_client.close()
        self._client = None
        self._download_client = None

    def _should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the request should be retried, False otherwise
        """
        if attempt >= self.max_retries:
            return False

        # Transient failures
        if isinstance(exception, (NeocitiesNetworkError, NeocitiesRateLimitError)):
            return True

        if isinstance(exception, httpx.HTTPStatusError):
            return 500 <= exception.response.status_code < 600

        return False

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # Add jitter: +/- 25% of base delay
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    @staticmethod
    def _error_from_envelope(data: Any) -> NeocitiesAPIError | None:
        """Build the exception for an error envelope, or None for success."""
        if not isinstance(data, dict) or data.get("result") != "error":
            return None
        error_type = data.get("error_type")
        message = data.get("message") or "Unknown API error"
        error_class = ERROR_TYPE_EXCEPTIONS.get(error_type or "", NeocitiesAPIError)
        return error_class(message, error_type=error_type)

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int
    ) -> tuple[Exception, bool]:
        """Handle HTTP errors and determine if retry should occur.

        Args:
            e: The HTTP error exception
            attempt: Current attempt number

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        status_code = e.response.status_code

        if status_code == 429:
            error: Exception = NeocitiesRateLimitError(
                "Rate limit exceeded - please try again later"
            )
            return (error, attempt < self.max_retries)

        if 500 <= status_code < 600:
            error = NeocitiesAPIError(f"API request failed with status {status_code}")
            return (error, attempt < self.max_retries)

        # Client errors normally carry a JSON envelope with the reason
        try:
            envelope_error = self._error_from_envelope(e.response.json())
        except ValueError:
            envelope_error = None
        if envelope_error is not None:
            return (envelope_error, False)

        if status_code == 401:
            return (NeocitiesAuthenticationError("Invalid API key or login"), False)
        if status_code == 404:
            return (NeocitiesNotFoundError("Resource not found"), False)
        error = NeocitiesAPIError(f"API request failed with status {status_code}")
        return (error, False)

    def _parse_response(self, response: httpx.Response) -> dict[str, Any]:
        """Parse and check the JSON envelope of a successful HTTP response."""
        if not response.content:
            return {}

        content_type = response.headers.get("Content-Type", "")
        if "json" not in content_type:
            raise NeocitiesInvalidResponseError(
                f"Unexpected response type: {content_type or 'unknown'}"
            )
        try:
            data = response.json()
        except ValueError as e:
            raise NeocitiesInvalidResponseError(
                "Invalid JSON response from server"
            ) from e

        error = self._error_from_envelope(data)
        if error is not None:
            raise error
        if not isinstance(data, dict):
            raise NeocitiesInvalidResponseError("Response is not a JSON object")
        return data

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> dict[str, Any]:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint name (e.g. "list")
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response envelope

        Raises:
            NeocitiesAPIError: If the API reports an error
            NeocitiesNetworkError: If the request fails after all retries
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        last_exception: Exception | None = None
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                response = client.request(method, url, **kwargs)
                response.raise_for_status()
                data = self._parse_response(response)
                self.last_server_time = parse_remote_timestamp(
                    response.headers.get("Date")
                )
                return data

            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt)
                last_exception = error

                if should_retry:
                    retry_after = e.response.headers.get("Retry-After", "")
                    if isinstance(error, NeocitiesRateLimitError) and (
                        retry_after.isdigit()
                    ):
                        delay = float(retry_after)
                    else:
                        delay = self._calculate_retry_delay(attempt)
                    time.sleep(delay)
                    continue
                raise error from e
            except NeocitiesAPIError:
                # Envelope errors are final
                raise
            except httpx.RequestError as e:
                error = NeocitiesNetworkError(f"Network error: {e}")
                last_exception = error
                if self._should_retry(error, attempt):
                    time.sleep(self._calculate_retry_delay(attempt))
                    continue
                raise error from e

        if last_exception:
            raise last_exception
        raise NeocitiesAPIError("Request failed after all retry attempts")

    # =========================
    # Site Operations
    # =========================

    def key(self) -> dict[str, Any]:
        """Fetch the API key for the logged in site.

        Returns:
            Envelope with an 'api_key' field
        """
        return self._request("GET", "key")

    def info(self, sitename: str | None = None) -> dict[str, Any]:
        """Get information about a site.

        Args:
            sitename: Site to query (defaults to the authenticated site)

        Returns:
            Envelope with an 'info' mapping
        """
        params = {"sitename": sitename} if sitename else None
        return self._request("GET", "info", params=params)

    def site_url(self, sitename: str | None = None) -> str:
        """Resolve the public base URL of a site.

        Supporter sites with a custom domain are served from that domain.

        Returns:
            Base URL ending with a slash
        """
        info = self.info(sitename).get("info") or {}
        domain = info.get("domain")
        if domain:
            return f"https://{domain}/"
        name = info.get("sitename") or sitename or self.sitename
        if not name:
            raise NeocitiesConfigError("Site name unknown; cannot build site URL")
        return f"https://{name}.neocities.org/"

    # =========================
    # File Operations
    # =========================

    def list(self, path: str | None = None) -> dict[str, Any]:
        """List files on the site.

        Args:
            path: Directory to list (None lists every file recursively)

        Returns:
            Envelope with a 'files' list of
            {path, is_directory, size, updated_at, sha1_hash}
        """
        params = {"path": path} if path else None
        return self._request("GET", "list", params=params)

    def upload_hash(self, hashes: dict[str, str]) -> dict[str, bool]:
        """Check whether remote files already match the given SHA-1 digests.

        Args:
            hashes: Mapping of remote path to SHA-1 hex digest

        Returns:
            Mapping of remote path to True when the stored content matches
        """
        data = self._request("POST", "upload_hash", data=hashes)
        files = data.get("files") or {}
        return {path: files.get(path) is True for path in hashes}

    def upload(self, local_path: Path, remote_path: str) -> dict[str, Any]:
        """Upload a single file.

        Args:
            local_path: File to upload
            remote_path: Destination path on the site

        Returns:
            Success envelope

        Raises:
            NeocitiesUploadError: If the local file cannot be read
            NeocitiesFileExistsError: If the API reports identical content
        """
        try:
            content = Path(local_path).read_bytes()
        except OSError as e:
            raise NeocitiesUploadError(f"Cannot read {local_path}: {e}") from e

        files = {remote_path: (Path(local_path).name, content)}
        return self._request("POST", "upload", files=files)

    def delete(self, paths: list[str]) -> dict[str, Any]:
        """Delete files or directories from the site.

        Args:
            paths: Remote paths to delete

        Returns:
            Success envelope
        """
        return self._request("POST", "delete", data={"filenames[]": list(paths)})

    # =========================
    # Download Operations
    # =========================

    @staticmethod
    def file_url(base_url: str, remote_path: str) -> str:
        """Build the public URL of a site file."""
        return base_url.rstrip("/") + "/" + quote(remote_path.lstrip("/"))

    def download(
        self,
        url: str,
        output_path: Path,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> Path:
        """Download a public site file.

        Args:
            url: Public URL of the file
            output_path: Where to save the file
            progress_callback: Optional callback function(bytes_downloaded, total)

        Returns:
            Path where the file was saved

        Raises:
            NeocitiesDownloadError: If the server does not answer with 200
            NeocitiesNetworkError: On transport failure
        """
        client = self._get_download_client()
        output_path = Path(output_path)
        # Only a complete body ever reaches output_path
        part_path = output_path.with_name(f".{output_path.name}.part")

        try:
            with client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise NeocitiesDownloadError(
                        f"Download failed with status {response.status_code}"
                    )

                total_size = int(response.headers.get("Content-Length", 0))
                bytes_downloaded = 0

                with open(part_path, "wb") as f:
                    for chunk in response.iter_bytes(chunk_size=HASH_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                            bytes_downloaded += len(chunk)
                            if progress_callback:
                                progress_callback(bytes_downloaded, total_size)

                part_path.replace(output_path)
                return output_path

        except httpx.RequestError as e:
            raise NeocitiesNetworkError(f"Network error during download: {e}") from e
        except OSError as e:
            raise NeocitiesDownloadError(f"Failed to write file: {e}") from e
        finally:
            part_path.unlink(missing_ok=True)
