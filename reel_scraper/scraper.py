"""Scrape client: rendering backends, direct-fetch fallback, retries and
per-source request pacing."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union

import httpx

from .classifier import backoff_delay, classify_error, is_challenge_page, is_retryable_status
from .config import AppConfig
from .extractors.html import strip_tags
from .models import ErrorCode, ScrapeResult

logger = logging.getLogger("reel_scraper")

# Challenge pages are short; scanning only the head keeps article text
# that merely mentions a captcha from pausing a job.
CONTENT_SAMPLE_CHARS = 5000

Cookies = Union[str, Dict[str, str], None]


@dataclass
class BackendResponse:
    status_code: Optional[int]
    markdown: Optional[str] = None
    html: Optional[str] = None
    error: Optional[str] = None
    content: Optional[str] = None


def cookie_header(cookies: Cookies) -> str:
    if not cookies:
        return ""
    if isinstance(cookies, str):
        return cookies
    return "; ".join(f"{k}={v}" for k, v in cookies.items())


class ScrapeClient:
    def __init__(self, config: AppConfig, job_store=None, notifier=None,
                 client: Optional[httpx.Client] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self.config = config
        self.job_store = job_store
        self.notifier = notifier
        self._client = client
        self._sleep = sleep
        self._clock = clock
        self._last_request_time: dict = {}  # per-source timestamps

    @property
    def client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            rc = self.config.rendering
            self._client = httpx.Client(
                timeout=httpx.Timeout(rc.timeout, connect=30),
                follow_redirects=True,
            )
        return self._client

    @property
    def mode(self) -> str:
        return self.config.rendering.mode

    def close(self):
        if self._client and not self._client.is_closed:
            self._client.close()

    def rate_limit(self, source: str, rate: float):
        last = self._last_request_time.get(source)
        if last is not None:
            elapsed = self._clock() - last
            if elapsed < rate:
                self._sleep(rate - elapsed)
        self._last_request_time[source] = self._clock()

    def fetch_json(self, url: str, source: str, headers: Optional[Dict[str, str]] = None):
        """Fetch JSON from a URL with rate limiting (discovery, not scraping)."""
        self.rate_limit(source, self.config.source(source).rate_limit)
        resp = self.client.get(url, headers={"User-Agent": self.config.rendering.user_agent,
                                             **(headers or {})})
        resp.raise_for_status()
        return resp.json()

    def fetch_text(self, url: str, source: str, headers: Optional[Dict[str, str]] = None) -> str:
        """Fetch text/HTML from a URL with rate limiting."""
        self.rate_limit(source, self.config.source(source).rate_limit)
        resp = self.client.get(url, headers={"User-Agent": self.config.rendering.user_agent,
                                             **(headers or {})})
        resp.raise_for_status()
        return resp.text

    def scrape_with_retry(self, url: str, source: str, job_id: Optional[int] = None,
                          cookies: Cookies = None,
                          headers: Optional[Dict[str, str]] = None) -> ScrapeResult:
        """Fetch ``url`` through the configured backend.

        Transient failures (retryable status codes, transport errors and
        timeouts) are retried with exponential backoff. CAPTCHA and BLOCKED
        are never retried: the owning job is paused and a notification is
        sent before the failed result is returned.
        """
        retry = self.config.retry
        rate = self.config.source(source).rate_limit
        max_attempts = max(1, retry.max_attempts)

        last_error = None
        last_code = ErrorCode.UNKNOWN
        last_status = None
        attempt = 0

        while attempt < max_attempts:
            attempt += 1
            self.rate_limit(source, rate)
            try:
                resp = self._render(url, cookies, headers)
            except httpx.TransportError as e:
                last_error = str(e) or e.__class__.__name__
                last_code = ErrorCode.NETWORK_ERROR
                last_status = None
                if attempt < max_attempts:
                    self._backoff(url, attempt, max_attempts, last_error)
                    continue
                break

            content = resp.markdown or resp.html or resp.content or ""

            if resp.error is None:
                # Visible text only: page scripts routinely load captcha widgets
                text = resp.content or resp.markdown or strip_tags(resp.html or "")
                if not is_challenge_page(text[:CONTENT_SAMPLE_CHARS]):
                    return ScrapeResult(
                        success=True,
                        content=resp.content or content,
                        markdown=resp.markdown,
                        html=resp.html,
                        status_code=resp.status_code,
                        retries=attempt - 1,
                    )
                error, code = "Captcha/verification page detected", ErrorCode.CAPTCHA
            else:
                error = resp.error
                code = classify_error(resp.error, resp.status_code, content[:CONTENT_SAMPLE_CHARS])

            if code in ErrorCode.PAUSING:
                self._pause(url, source, job_id, code)
                return ScrapeResult(success=False, error=error, error_code=code,
                                    status_code=resp.status_code, retries=attempt - 1)

            last_error, last_code, last_status = error, code, resp.status_code
            if is_retryable_status(resp.status_code, retry.retryable_status_codes):
                if attempt < max_attempts:
                    self._backoff(url, attempt, max_attempts, error)
                    continue
                break

            return ScrapeResult(success=False, error=error, error_code=code,
                                status_code=resp.status_code, retries=attempt - 1)

        logger.error(f"[{source}] Giving up on {url} after {attempt} attempts: {last_error}")
        return ScrapeResult(
            success=False,
            error=f"Max retries exceeded: {last_error}",
            error_code=last_code,
            status_code=last_status,
            retries=attempt - 1,
        )

    def _backoff(self, url: str, attempt: int, max_attempts: int, error: str):
        retry = self.config.retry
        delay_ms = backoff_delay(attempt, retry.initial_delay_ms, retry.max_delay_ms,
                                 retry.multiplier)
        logger.warning(f"Retry {attempt}/{max_attempts} for {url}: {error} (wait {delay_ms}ms)")
        self._sleep(delay_ms / 1000)

    def _pause(self, url: str, source: str, job_id: Optional[int], code: str):
        logger.warning(f"[{source}] {code} at {url}")
        if job_id is None:
            return
        if self.job_store is not None:
            self.job_store.pause(job_id, code, url)
        if self.notifier is not None:
            self.notifier.dispatch(source, url, code)

    # ------------------------------------------------------------------
    # Backends
    # ------------------------------------------------------------------

    def _render(self, url: str, cookies: Cookies, headers: Optional[Dict[str, str]]) -> BackendResponse:
        if self.mode in ("firecrawl_local", "firecrawl_cloud"):
            return self._firecrawl(url, cookies, headers)
        if self.mode == "flaresolverr":
            return self._flaresolverr(url, cookies)
        return self._direct(url, cookies, headers)

    def _firecrawl(self, url: str, cookies: Cookies, headers: Optional[Dict[str, str]]) -> BackendResponse:
        rc = self.config.rendering
        if self.mode == "firecrawl_local":
            endpoint = f"{rc.local_url.rstrip('/')}/v1/scrape"
            request_headers = {"Content-Type": "application/json"}
        else:
            endpoint = rc.cloud_url
            request_headers = {
                "Content-Type": "application/json",
                "Authorization": f"Bearer {rc.api_key}",
            }

        body = {
            "url": url,
            "formats": ["markdown", "html"],
            "onlyMainContent": True,
            "timeout": rc.timeout * 1000,
        }
        # Firecrawl v1 takes cookies as a Cookie header, not a field
        page_headers = dict(headers or {})
        if cookies:
            page_headers["Cookie"] = cookie_header(cookies)
        if page_headers:
            body["headers"] = page_headers

        resp = self.client.post(endpoint, json=body, headers=request_headers,
                                timeout=rc.timeout + 15)
        try:
            data = resp.json()
        except ValueError:
            return BackendResponse(status_code=resp.status_code,
                                   error=f"HTTP {resp.status_code}: {resp.text[:200]}",
                                   content=resp.text)

        payload = data.get("data") or {}
        markdown = payload.get("markdown")
        html = payload.get("html")
        if data.get("error") or resp.status_code >= 400:
            return BackendResponse(status_code=resp.status_code, markdown=markdown, html=html,
                                   error=data.get("error") or f"HTTP {resp.status_code}")

        target_status = (payload.get("metadata") or {}).get("statusCode")
        if target_status and target_status >= 400:
            return BackendResponse(status_code=target_status, markdown=markdown, html=html,
                                   error=f"HTTP {target_status}")
        return BackendResponse(status_code=resp.status_code, markdown=markdown, html=html,
                               content=markdown or html or "")

    def _flaresolverr(self, url: str, cookies: Cookies) -> BackendResponse:
        rc = self.config.rendering
        body = {"cmd": "request.get", "url": url, "maxTimeout": rc.timeout * 1000}
        if isinstance(cookies, dict):
            body["cookies"] = [{"name": k, "value": v} for k, v in cookies.items()]
        elif cookies:
            pairs = [c.split("=", 1) for c in cookies.split(";") if "=" in c]
            body["cookies"] = [{"name": k.strip(), "value": v.strip()} for k, v in pairs]

        resp = self.client.post(rc.flaresolverr_url, json=body, timeout=rc.timeout + 15)
        try:
            data = resp.json()
        except ValueError:
            return BackendResponse(status_code=resp.status_code,
                                   error=f"HTTP {resp.status_code}: {resp.text[:200]}")

        if data.get("status") != "ok":
            return BackendResponse(status_code=resp.status_code,
                                   error=data.get("message") or "FlareSolverr error")

        solution = data.get("solution") or {}
        html = solution.get("response") or ""
        target_status = solution.get("status") or 200
        if target_status >= 400:
            return BackendResponse(status_code=target_status, html=html,
                                   error=f"HTTP {target_status}")
        return BackendResponse(status_code=target_status, html=html, content=strip_tags(html))

    def _direct(self, url: str, cookies: Cookies, headers: Optional[Dict[str, str]]) -> BackendResponse:
        """Plain GET with tag stripping: no script execution, reduced fidelity."""
        request_headers = {"User-Agent": self.config.rendering.user_agent}
        request_headers.update(headers or {})
        if cookies:
            request_headers["Cookie"] = cookie_header(cookies)

        resp = self.client.get(url, headers=request_headers)
        if resp.status_code >= 400:
            return BackendResponse(status_code=resp.status_code, html=resp.text,
                                   error=f"HTTP {resp.status_code}")
        html = resp.text
        return BackendResponse(status_code=resp.status_code, html=html, content=strip_tags(html))
