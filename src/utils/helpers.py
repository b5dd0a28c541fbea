"""Helper functions shared by the stores, the index and the CLI."""

import json
import secrets
import time
from typing import Any, Dict, Generator, List, Optional

from loguru import logger


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def generate_id(prefix: str) -> str:
    """Opaque unique id such as ``entity_1718000000000_9f2c4a1b``."""
    return f"{prefix}_{now_ms()}_{secrets.token_hex(4)}"


def parse_json_object(blob: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parse a serialized JSON object, returning None if it is not one."""
    if blob is None or blob == "":
        return None
    if isinstance(blob, dict):
        return blob
    try:
        parsed = json.loads(blob)
    except (TypeError, ValueError) as e:
        logger.debug(f"Ignoring unparsable JSON blob: {e}")
        return None
    if not isinstance(parsed, dict):
        logger.debug(f"Ignoring non-object JSON blob of type {type(parsed).__name__}")
        return None
    return parsed


def dump_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False, sort_keys=True)


def chunk_list(items: List[Any], size: int) -> Generator[List[Any], None, None]:
    """Yield successive ``size``-sized slices of ``items``."""
    if size <= 0:
        raise ValueError("size must be positive")
    for i in range(0, len(items), size):
        yield items[i : i + size]
