"""HTTP downloads with retries on 404, proxy support and a progress bar."""

from __future__ import annotations

import io
import logging
import os
import time
from os import PathLike
from pathlib import Path
from typing import BinaryIO, Iterator
from urllib.parse import urlsplit

import requests
from tqdm import tqdm

logger = logging.getLogger(__name__)

USER_AGENT = "fuelup"

_PROXY_VARS = ("http_proxy", "HTTP_PROXY", "https_proxy", "HTTPS_PROXY", "all_proxy", "ALL_PROXY")
_PROXY_SCHEMES = frozenset({"http", "https", "socks4", "socks4a", "socks5", "socks5h"})

_RETRY_ATTEMPTS = 4
_RETRY_DELAY_SECS = 3
_CHUNK_SIZE = 8192
_TIMEOUT_SECS = 60
_BAR_FORMAT = "[{elapsed}] [{bar:40}] {n_fmt}/{total_fmt} ({remaining}) - {desc}"


class DownloadError(Exception):
    """Raised when a download cannot be completed."""


def _proxy_from_env() -> str | None:
    return next((os.environ[var] for var in _PROXY_VARS if var in os.environ), None)


def _validate_proxy(proxy: str) -> None:
    parts = urlsplit(proxy if "://" in proxy else f"http://{proxy}")
    try:
        parts.port
    except ValueError as exc:
        raise DownloadError(f"invalid proxy port: {exc}") from exc
    if parts.scheme.lower() not in _PROXY_SCHEMES:
        raise DownloadError(f"unsupported proxy protocol: {parts.scheme}")
    if not parts.hostname:
        raise DownloadError("proxy has no host")


def build_session() -> requests.Session:
    """Create an HTTP session with the fuelup user agent and any proxy from the environment."""
    session = requests.Session()
    session.headers["User-Agent"] = USER_AGENT
    proxy = _proxy_from_env()
    if proxy is not None:
        try:
            _validate_proxy(proxy)
        except DownloadError as exc:
            logger.error("Failed to build proxy with http_proxy=%s, %s", proxy, exc)
            session.close()
            raise
        session.proxies = {"http": proxy, "https": proxy}
    return session


def _retry_delay(response: requests.Response) -> int:
    value = response.headers.get("retry-after", "")
    return int(value) if value.isdigit() else _RETRY_DELAY_SECS


def _get_with_retries(session: requests.Session, url: str) -> requests.Response | None:
    """GET the url, retrying on 404; None when every attempt was a 404."""
    for _ in range(1, _RETRY_ATTEMPTS):
        try:
            response = session.get(url, stream=True, timeout=_TIMEOUT_SECS)
        except requests.RequestException as exc:
            raise DownloadError(f"Unexpected error: {exc}") from exc
        if response.status_code == 404:
            logger.error("Failed to download from %s", url)
            delay = _retry_delay(response)
            response.close()
            logger.info("Retrying..")
            time.sleep(delay)
            continue
        if response.status_code >= 400:
            status = response.status_code
            response.close()
            raise DownloadError(f"Unexpected error: {url}: status code {status}")
        return response
    return None


def download(url: str) -> bytes:
    """Download the body at `url` into memory."""
    with build_session() as session:
        response = _get_with_retries(session, url)
        if response is None:
            raise DownloadError("Could not read file")
        with response:
            buffer = io.BytesIO()
            write_response_with_progress_bar(response, buffer, "")
            return buffer.getvalue()


def download_file(url: str, path: str | PathLike[str]) -> None:
    """Download `url` to `path`; the file is removed if the download fails."""
    path = Path(path)
    with build_session() as session:
        try:
            with open(path, "wb") as handle:
                response = _get_with_retries(session, url)
                if response is None:
                    raise DownloadError("Could not download file")
                with response:
                    write_response_with_progress_bar(response, handle, str(path))
        except DownloadError:
            path.unlink(missing_ok=True)
            raise


def _content_length(response: requests.Response) -> int:
    value = response.headers.get("Content-Length", "")
    return int(value) if value.isdigit() else 0


def _chunks(response: requests.Response) -> Iterator[bytes]:
    try:
        yield from response.iter_content(chunk_size=_CHUNK_SIZE)
    except requests.RequestException as exc:
        raise DownloadError(str(exc)) from exc


def _log_progress(bar: tqdm) -> None:
    position = bar.n
    total = bar.total or position
    filled = position * 40 // total if total else 0
    logger.debug(
        "[%s] [%s] %s/%s - %s",
        tqdm.format_interval(bar.format_dict["elapsed"]),
        "#" * filled,
        tqdm.format_sizeof(position, "B", 1024),
        tqdm.format_sizeof(total, "B", 1024),
        bar.desc,
    )


def write_response_with_progress_bar(
    response: requests.Response, writer: BinaryIO, target: str = ""
) -> None:
    """Copy the response body to `writer`, showing progress; `target` names the destination."""
    total_size = _content_length(response)
    downloaded = 0
    bar = tqdm(
        total=total_size or None,
        unit="B",
        unit_scale=True,
        unit_divisor=1024,
        ascii="-#",
        bar_format=_BAR_FORMAT,
        desc="",
    )
    try:
        for chunk in _chunks(response):
            try:
                writer.write(chunk)
            except OSError as exc:
                _log_progress(bar)
                if not target:
                    raise DownloadError(f"Something went wrong writing data: {exc}") from exc
                raise DownloadError(
                    f"Something went wrong writing data to {target}: {exc}"
                ) from exc
            downloaded += len(chunk)
            bar.update(len(chunk))
        if total_size == 0:
            bar.total = downloaded
        bar.set_description_str("Download complete", refresh=True)
        _log_progress(bar)
    finally:
        bar.close()