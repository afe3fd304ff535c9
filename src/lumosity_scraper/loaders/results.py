"""Results Writer: persists the ordered Results Set of a run."""

import hashlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from ..models.report import FailedAccountReport, HarvestResult, parse_result
from ..resilience import ResultsWriteError, ScraperError
from ..scraper_logging import get_logger

logger = get_logger(__name__)


def ensure_dir(path: Path) -> None:
    """Ensure directory exists, creating parent directories as needed."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except Exception as e:
        logger.error("Failed to create directory", path=str(path), error=str(e))
        raise


def write_json_atomic(path: Path, payload: Any) -> Dict[str, Any]:
    """Write pretty JSON through a temp file and an atomic replace.

    Readers see either the previous file or the complete new one.

    Returns:
        Dictionary with metadata: {"bytes": int, "sha1": str}
    """
    ensure_dir(path.parent)
    json_bytes = json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as tmp_file:
            tmp_file.write(json_bytes)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    return {"bytes": len(json_bytes), "sha1": hashlib.sha1(json_bytes).hexdigest()}


def write_results(results: Sequence[HarvestResult], path: Union[str, Path]) -> Dict[str, Any]:
    """Overwrite the Results Set file with ``results`` in their given order.

    Raises:
        ResultsWriteError: the file could not be written
    """
    path = Path(path)
    payload = [result.to_wire() for result in results]
    try:
        meta = write_json_atomic(path, payload)
    except (OSError, TypeError, ValueError) as e:
        logger.error("Failed to save results", path=str(path), error=str(e))
        raise ResultsWriteError(f"Failed to save results to {path}: {e}") from e

    logger.info("Results saved", path=str(path), count=len(payload),
                size_mb=round(meta["bytes"] / 1024 / 1024, 2), sha1=meta["sha1"])
    return meta


def read_results(path: Union[str, Path]) -> List[HarvestResult]:
    """Load a persisted Results Set.

    Raises:
        ScraperError: file missing, unreadable or not a Results Set
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ScraperError(f"Failed to read results from {path}: {e}") from e
    if not isinstance(raw, list):
        raise ScraperError(f"{path} does not contain a list of results")

    results = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ScraperError(f"Result #{index} in {path} is not an object")
        try:
            results.append(parse_result(item))
        except ValueError as e:
            raise ScraperError(f"Result #{index} in {path} is invalid: {e}") from e
    return results


def summarize_results(results: Sequence[HarvestResult]) -> Dict[str, Any]:
    """Counts of a Results Set, plus the identities that failed."""
    failed = [r for r in results if isinstance(r, FailedAccountReport)]
    return {
        "total": len(results),
        "succeeded": len(results) - len(failed),
        "failed": len(failed),
        "failed_identities": [r.account_info.identity for r in failed],
    }
