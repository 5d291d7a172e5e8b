"""API client for POEditor."""

from __future__ import annotations

import logging
import random
import time
from typing import Any

import httpx

from .exceptions import (
    POEditorAPIError,
    POEditorAuthenticationError,
    POEditorConfigError,
    POEditorInvalidResponseError,
    POEditorNetworkError,
    POEditorRateLimitError,
)
from .models import APIResponse, RemoteLanguage, UploadResult
from .rate_limit import OperationClass, RateLimiter
from .utils import (
    DEFAULT_API_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    DEFAULT_UPDATING_MODE,
    XLIFF_MIME_TYPE,
)

logger = logging.getLogger(__name__)


class POEditorClient:
    """Client for interacting with the POEditor API (v2)."""

    def __init__(
        self,
        api_token: str,
        project_id: str,
        api_url: str = DEFAULT_API_URL,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = DEFAULT_TIMEOUT,
        rate_limiter: RateLimiter | None = None,
    ):
        """Initialize POEditor API client.

        Args:
            api_token: POEditor API token
            project_id: POEditor project ID
            api_url: API base URL (default: https://api.poeditor.com/v2)
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 2.0)
            timeout: Request timeout in seconds (default: 30.0)
            rate_limiter: Optional limiter consulted before every attempt of a
                rate-limited call, including retries
        """
        if not api_token:
            raise POEditorConfigError(
                "API token not configured. Set api_token in .poeditor.yml "
                "or the POEDITOR_API_TOKEN environment variable."
            )
        if not project_id:
            raise POEditorConfigError("POEditor project_id not configured.")

        self.api_token = api_token
        self.project_id = str(project_id)
        self.api_url = api_url.rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.rate_limiter = rate_limiter

        self._client: httpx.Client | None = None

    @classmethod
    def from_config(cls, config, rate_limiter: RateLimiter | None = None):
        """Create a client from a POEditorConfig."""
        return cls(
            api_token=config.api_token,
            project_id=config.project_id,
            api_url=config.api_url,
            max_retries=config.max_retries,
            timeout=config.timeout,
            rate_limiter=rate_limiter,
        )

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> POEditorClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

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

        # Transient failures: the request most likely never reached POEditor
        if isinstance(exception, (POEditorNetworkError, POEditorRateLimitError)):
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
        # +/- 25% jitter
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _handle_http_error(self, e: httpx.HTTPStatusError) -> Exception:
        """Map an HTTP error status to a POEditor exception."""
        status_code = e.response.status_code

        if status_code in (401, 403):
            return POEditorAuthenticationError(
                "Invalid API token or unauthorized access"
            )
        if status_code == 429:
            return POEditorRateLimitError(
                "Rate limit exceeded - please try again later"
            )
        return POEditorAPIError(f"API request failed with status {status_code}")

    def _send(
        self,
        method: str,
        url: str,
        operation: OperationClass | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request with retry logic.

        When a rate limiter and an operation class are set, each attempt
        waits for the class interval and marks the limiter afterwards.

        Raises:
            POEditorAPIError: If the request fails after all retries
        """
        client = self._get_client()
        last_exception: Exception | None = None

        for attempt in range(self.max_retries + 1):
            if self.rate_limiter is not None and operation is not None:
                self.rate_limiter.wait_if_needed(operation)
            try:
                try:
                    response = client.request(method, url, **kwargs)
                finally:
                    # The interval counts from the end of the call, not the backoff
                    if self.rate_limiter is not None and operation is not None:
                        self.rate_limiter.mark(operation)
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as e:
                error = self._handle_http_error(e)
                last_exception = error
                if self._should_retry(error, attempt) or self._should_retry(
                    e, attempt
                ):
                    delay = self._calculate_retry_delay(attempt)
                    retry_after = e.response.headers.get("Retry-After")
                    if retry_after and retry_after.isdigit():
                        delay = float(retry_after)
                    logger.debug(
                        f"Retrying {url} in {delay:.1f}s after HTTP "
                        f"{e.response.status_code}"
                    )
                    time.sleep(delay)
                    continue
                raise error from e
            except httpx.RequestError as e:
                error = POEditorNetworkError(f"Network error: {e}")
                last_exception = error
                if self._should_retry(error, attempt):
                    delay = self._calculate_retry_delay(attempt)
                    logger.debug(f"Retrying {url} in {delay:.1f}s after {e}")
                    time.sleep(delay)
                    continue
                raise error from e

        if last_exception:
            raise last_exception
        raise POEditorAPIError("Request failed after all retry attempts")

    def _request(
        self,
        endpoint: str,
        params: dict[str, str] | None = None,
        files: dict[str, Any] | None = None,
        operation: OperationClass | None = None,
    ) -> APIResponse:
        """Call a POEditor endpoint and parse the response envelope.

        Args:
            endpoint: API endpoint path (e.g. "/languages/list")
            params: Form parameters (api_token and id are added)
            files: Optional multipart files
            operation: Rate limit class of this call

        Returns:
            Parsed API response envelope (status not yet checked)
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        data = {"api_token": self.api_token, "id": self.project_id}
        data.update(params or {})

        logger.debug(f"API Request: {endpoint}")
        for key, value in (params or {}).items():
            logger.debug(f"  {key}: {value}")

        response = self._send("POST", url, operation=operation, data=data, files=files)

        try:
            body = response.json()
        except ValueError as e:
            raise POEditorInvalidResponseError(
                "Invalid JSON response from POEditor"
            ) from e

        return APIResponse.from_dict(body)

    # =========================
    # Language Operations
    # =========================

    def list_languages(self) -> list[RemoteLanguage]:
        """List the languages of the POEditor project.

        Returns:
            Languages in provider order

        Raises:
            POEditorAPIError: If the request fails
        """
        response = self._request("/languages/list")
        if not response.is_success:
            raise POEditorAPIError(
                f"POEditor API error: {response.message}", code=response.code
            )

        languages = response.result.get("languages")
        if not isinstance(languages, list):
            raise POEditorInvalidResponseError(
                "Failed to parse languages list from POEditor"
            )

        parsed = [RemoteLanguage.from_dict(item) for item in languages]
        return [lang for lang in parsed if lang is not None]

    def add_language(self, language: str) -> bool:
        """Add a language to the POEditor project.

        Args:
            language: Language code (e.g. "pt-br")

        Returns:
            True if the language was added, False if it already existed

        Raises:
            POEditorAPIError: For any failure other than "already exists"
        """
        response = self._request(
            "/languages/add",
            {"language": language},
            operation=OperationClass.ADD_LANGUAGE,
        )
        if response.is_success:
            return True
        if response.is_already_exists:
            logger.debug(f"Language '{language}' already exists: {response.message}")
            return False
        raise POEditorAPIError(
            f"POEditor API error for {language}: {response.message}",
            code=response.code,
        )

    # =========================
    # Upload / Download Operations
    # =========================

    def upload_translations(
        self,
        language: str,
        content: bytes,
        file_name: str,
        updating: str = DEFAULT_UPDATING_MODE,
        overwrite: bool = False,
        sync_terms: bool = False,
    ) -> UploadResult:
        """Upload a translation file for one language.

        Args:
            language: Language code of the file
            content: File content (XLIFF)
            file_name: File name sent to POEditor
            updating: terms, terms_translations or translations
            overwrite: Overwrite existing translations
            sync_terms: Delete terms not present in the file

        Returns:
            Upload statistics reported by POEditor

        Raises:
            POEditorAPIError: If the upload fails
        """
        params = {"language": language, "updating": updating}
        if overwrite:
            params["overwrite"] = "1"
        if sync_terms:
            params["sync_terms"] = "1"

        logger.debug(f"Uploading {file_name} ({len(content)} bytes)")
        response = self._request(
            "/projects/upload",
            params,
            files={"file": (file_name, content, XLIFF_MIME_TYPE)},
            operation=OperationClass.UPLOAD,
        )
        if not response.is_success:
            raise POEditorAPIError(
                f"POEditor API error for {language}: {response.message}",
                code=response.code,
            )
        return UploadResult.from_dict(response.result)

    def export_translations(
        self,
        language: str,
        file_type: str = "xliff",
        reference_language: str | None = None,
        filters: list[str] | tuple[str, ...] | None = None,
    ) -> str:
        """Request an export and return the temporary download URL.

        The reference language and filters are only sent when the reference
        language differs from the exported language.

        Raises:
            POEditorAPIError: If the export fails
        """
        params = {"language": language, "type": file_type}
        if reference_language and reference_language != language:
            params["reference_language"] = reference_language
            if filters:
                params["filters"] = ",".join(filters)

        response = self._request(
            "/projects/export", params, operation=OperationClass.DOWNLOAD
        )
        if not response.is_success:
            raise POEditorAPIError(
                f"POEditor API error for {language}: {response.message}",
                code=response.code,
            )

        url = response.result.get("url")
        if not isinstance(url, str) or not url:
            raise POEditorInvalidResponseError(
                f"Failed to get download URL for {language}"
            )
        return url

    def download_translations(
        self,
        language: str,
        reference_language: str | None = None,
        filters: list[str] | tuple[str, ...] | None = None,
        file_type: str = "xliff",
    ) -> bytes:
        """Export a language and fetch the exported file.

        Returns:
            Exported file content

        Raises:
            POEditorAPIError: If the export or the download fails
        """
        url = self.export_translations(
            language,
            file_type=file_type,
            reference_language=reference_language,
            filters=filters,
        )
        logger.debug(f"Downloading export for {language}")
        response = self._send("GET", url)
        return response.content
