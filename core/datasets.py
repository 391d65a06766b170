"""
core/datasets.py — Ledgerline
===============================
Dataset manifest + record store. Network/file I/O only, no math, no UI.

Responsibilities:
- Read the dataset manifest (ordered list of {slug, name, file})
- Fetch a dataset source file ({columns, rows}) over HTTP or from disk
- Apply the persisted override: non-empty local rows REPLACE fetched rows
- Derive columns (first record's keys, else source-declared columns)

Failure policy: load_dataset() raises DatasetLoadError on any fetch, parse
or store failure and never returns a partially populated pair. The grid
controller turns that into an empty grid plus an explicit load_error flag,
so an empty but valid source is never mistaken for a failure.

DO NOT add Streamlit calls to this file.
"""

import json
import logging
import os
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin, urlparse
from urllib.request import url2pathname

import requests

from core.local_store import get_data, storage_key

logger = logging.getLogger(__name__)

_DEFAULT_MANIFEST = str(Path(__file__).parent.parent / "data" / "datasets.json")

FETCH_TIMEOUT = 15
MAX_RETRIES = 3


class DatasetLoadError(RuntimeError):
    """A manifest or dataset source could not be fetched or parsed."""


@dataclass(frozen=True)
class Dataset:
    slug: str
    name: str
    file: str


# ---------------------------------------------------------------------------
# Source fetch
# ---------------------------------------------------------------------------

def _manifest_source() -> str:
    return os.environ.get("DATASETS_MANIFEST", _DEFAULT_MANIFEST)


def _is_remote(uri: str) -> bool:
    return urlparse(uri).scheme in ("http", "https")


def resolve_source(file: str, base: str) -> str:
    """
    Resolve a dataset's ``file`` against the manifest location.

    Absolute URLs and absolute paths pass through unchanged.

    >>> resolve_source("bets.json", "https://host/data/datasets.json")
    'https://host/data/bets.json'
    """
    if _is_remote(file) or file.startswith("file://") or os.path.isabs(file):
        return file
    if _is_remote(base):
        return urljoin(base, file)
    return str(Path(base).parent / file)


def _fetch_with_backoff(
    url: str,
    max_retries: int = MAX_RETRIES,
    base_delay: float = 1.0,
) -> Optional[requests.Response]:
    """
    GET url with exponential backoff. Returns None after max_retries failures.

    4xx responses other than 429 are permanent and not retried.
    """
    delay = base_delay
    for attempt in range(1, max_retries + 1):
        try:
            response = requests.get(
                url, timeout=FETCH_TIMEOUT, headers={"Cache-Control": "no-store"}
            )
            if response.status_code == 200:
                return response
            elif response.status_code == 429:
                logger.warning("429 Rate limited. Waiting %.1fs before retry.", delay * 2)
                time.sleep(delay * 2)
            elif 400 <= response.status_code < 500:
                logger.error("HTTP %d for %s, not retrying", response.status_code, url)
                return None
            else:
                logger.warning(
                    "Attempt %d/%d: HTTP %d for %s",
                    attempt, max_retries, response.status_code, url
                )
        except requests.exceptions.Timeout:
            logger.warning("Attempt %d/%d: Timeout for %s", attempt, max_retries, url)
        except requests.exceptions.ConnectionError:
            logger.warning("Attempt %d/%d: Connection error for %s", attempt, max_retries, url)
        except requests.exceptions.RequestException as exc:
            logger.warning("Attempt %d/%d: Request error: %s", attempt, max_retries, exc)

        if attempt < max_retries:
            time.sleep(delay)
            delay *= 2

    logger.error("All %d attempts failed for %s", max_retries, url)
    return None


def fetch_source(uri: str):
    """
    Fetch and decode the JSON document at uri (http(s), file:// or path).

    Raises:
        DatasetLoadError: on any network, file or JSON decoding failure.
    """
    if _is_remote(uri):
        response = _fetch_with_backoff(uri)
        if response is None:
            raise DatasetLoadError(f"could not fetch {uri}")
        try:
            return response.json()
        except ValueError as exc:
            raise DatasetLoadError(f"invalid JSON from {uri}: {exc}") from exc

    path = url2pathname(urlparse(uri).path) if uri.startswith("file://") else uri
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as exc:
        raise DatasetLoadError(f"could not read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise DatasetLoadError(f"invalid JSON in {path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------

def load_manifest(source: Optional[str] = None) -> list[Dataset]:
    """
    Load the ordered dataset manifest.

    Each entry's ``file`` is resolved relative to the manifest location.
    Entries without a slug or file are skipped. Returns [] on failure.
    """
    src = source or _manifest_source()
    try:
        raw = fetch_source(src)
    except DatasetLoadError as exc:
        logger.error("Manifest load error: %s", exc)
        return []

    if not isinstance(raw, list):
        logger.error("Manifest %s is not a list", src)
        return []

    datasets = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("slug") or not item.get("file"):
            logger.warning("Skipping malformed manifest entry: %r", item)
            continue
        datasets.append(
            Dataset(
                slug=str(item["slug"]),
                name=str(item.get("name") or item["slug"]),
                file=resolve_source(str(item["file"]), src),
            )
        )
    return datasets


# ---------------------------------------------------------------------------
# Record store
# ---------------------------------------------------------------------------

def derive_columns(records: list[dict], declared: list) -> list[str]:
    """First record's keys when records exist, else the declared columns."""
    if records:
        return list(records[0].keys())
    return [str(c) for c in declared]


def load_dataset(
    dataset: Dataset,
    db_path: Optional[str] = None,
) -> tuple[list[str], list[dict]]:
    """
    Read (columns, records) for a dataset.

    A non-empty persisted override under storage_key(slug) replaces the
    fetched rows entirely. A source with no rows and no columns is valid
    and yields ([], []).

    Raises:
        DatasetLoadError: fetch, parse or local store failure.
    """
    source = fetch_source(dataset.file)
    if not isinstance(source, dict):
        raise DatasetLoadError(f"{dataset.file} is not a JSON object")

    rows = source.get("rows") or []
    declared = source.get("columns") or []
    if not isinstance(rows, list) or not isinstance(declared, list):
        raise DatasetLoadError(f"{dataset.file} has malformed rows/columns")

    try:
        stored = get_data(storage_key(dataset.slug), db_path)
    except (sqlite3.Error, OSError) as exc:
        raise DatasetLoadError(f"local store unreadable for {dataset.slug}: {exc}") from exc

    records = stored if stored else rows
    logger.info(
        "Loaded %s: %d rows%s", dataset.slug, len(records),
        " (local override)" if stored else "",
    )
    return derive_columns(records, declared), records

