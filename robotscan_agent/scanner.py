from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

import httpx

from .config import ScannerConfig
from .domain import normalize_scan_url
from .fetcher import scan_website
from .models import Scan
from .scoring import calculate_scan_score

logger = logging.getLogger(__name__)


def run_scan(url: str, config: ScannerConfig | None = None, *, transport: httpx.BaseTransport | None = None) -> Scan:
    """Fetch, score and freeze one snapshot of `url`.

    Raises InvalidUrlError before any network call, and ScanConnectivityError
    when the site itself cannot be reached.
    """
    t0 = time.perf_counter()
    config = config or ScannerConfig()
    normalized_url = normalize_scan_url(url)

    result = scan_website(normalized_url, config, transport=transport)
    score = calculate_scan_score(result, config.scoring)

    timings = dict(result.timings_ms)
    timings["total"] = int((time.perf_counter() - t0) * 1000)

    logger.info("Scanned %s: score=%d warnings=%d errors=%d", normalized_url, score, len(result.warnings), len(result.errors))

    return Scan(
        **result.model_dump(exclude={"timings_ms"}),
        timings_ms=timings,
        url=url,
        score=score,
        created_at=datetime.now(timezone.utc),
    )
