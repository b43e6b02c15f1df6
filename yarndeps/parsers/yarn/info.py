"""Remote package metadata from ``yarn info --json``.

Yarn prints newline-delimited JSON records ``{"type": ..., "data": ...}`` on
stdout and stderr. The metadata is the ``data`` of the ``inspect`` record;
``warning`` and ``error`` records only carry diagnostics. When a network
operation is retried Yarn may print several records, and not every line is
guaranteed to be valid JSON.
"""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from yarndeps.parsers.base import ManifestError
from yarndeps.parsers.yarn.package_json import PackageJson
from yarndeps.storage import DiskCache

logger = logging.getLogger("yarndeps.parsers.yarn.info")

# Produces (stdout, stderr) of the info command for a package name.
InfoProducer = Callable[[str], Tuple[str, str]]


def iter_records(output: str) -> Iterator[Dict[str, Any]]:
    """Yield the JSON object records of a newline-delimited stream.

    Lines that are empty, not valid JSON or not objects are skipped.
    """
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("Skipping non-JSON line in yarn output: %.200s", line)
            continue
        if isinstance(record, dict):
            yield record


def extract_data_nodes(output: str, record_type: str) -> List[Any]:
    """Return the ``data`` payloads of all records of the given type, in order."""
    return [
        record["data"]
        for record in iter_records(output)
        if record.get("type") == record_type and "data" in record
    ]


def parse_yarn_info(stdout: str, stderr: str) -> Optional[PackageJson]:
    """Parse the output of ``yarn info --json`` into a manifest.

    Args:
        stdout: Primary output stream.
        stderr: Diagnostic output stream.

    Returns:
        Optional[PackageJson]: Metadata of the first ``inspect`` record, or
        None if there is none. Diagnostics are logged in that case.
    """
    inspect = extract_data_nodes(stdout, "inspect")
    if inspect:
        try:
            return PackageJson.from_mapping(inspect[0])
        except ManifestError as e:
            logger.warning("Unusable yarn info payload: %s", e)
            return None

    for warning in extract_data_nodes(stderr, "warning"):
        logger.info("Warning running yarn info: %s", warning)

    for error in extract_data_nodes(stderr, "error"):
        logger.warning("Error running yarn info: %s", error)

    return None


class YarnInfoFetcher:
    """Fetch remote package metadata, backed by an optional disk cache.

    Each distinct package name is looked up at most once per fetcher;
    concurrent calls for the same name wait for the in-flight lookup
    instead of starting another one.
    """

    def __init__(self, produce: InfoProducer, cache: Optional[DiskCache] = None) -> None:
        """Initialize the fetcher.

        Args:
            produce: Runs the info command for a package name.
            cache: Optional persistent cache keyed by package name.
        """
        self._produce = produce
        self._cache = cache
        self._results: Dict[str, Optional[PackageJson]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, name: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(name, threading.Lock())

    def fetch(self, name: str) -> Optional[PackageJson]:
        """Return remote metadata for a package name.

        Args:
            name: Bare package name.

        Returns:
            Optional[PackageJson]: The metadata, or None if unavailable.
        """
        with self._lock_for(name):
            if name in self._results:
                return self._results[name]

            result = self._fetch_uncached(name)
            self._results[name] = result
            return result

    def _fetch_uncached(self, name: str) -> Optional[PackageJson]:
        if self._cache is not None:
            cached = self._cache.read(name)
            if cached is not None:
                try:
                    return PackageJson.from_json(cached)
                except ManifestError as e:
                    logger.debug("Ignoring corrupt cache entry for %s: %s", name, e)

        logger.debug("Fetching remote metadata for %s", name)
        stdout, stderr = self._produce(name)
        package_json = parse_yarn_info(stdout, stderr)

        if package_json is None:
            logger.info("No remote metadata available for %s", name)
        elif self._cache is not None:
            self._cache.write(name, package_json.to_json())

        return package_json

    def prefetch(self, names: Iterable[str], max_workers: int = 4) -> None:
        """Fetch metadata for several package names in parallel.

        Args:
            names: Package names; duplicates are fetched once.
            max_workers: Size of the thread pool.
        """
        distinct = [name for name in dict.fromkeys(names) if name not in self._results]
        if not distinct:
            return

        logger.info("Prefetching remote metadata for %d package(s)", len(distinct))
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="yarn-info") as pool:
            # list() re-raises the first exception of a failed lookup.
            list(pool.map(self.fetch, distinct))


__all__ = [
    "InfoProducer",
    "YarnInfoFetcher",
    "extract_data_nodes",
    "iter_records",
    "parse_yarn_info",
]
