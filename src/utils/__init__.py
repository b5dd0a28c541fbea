from .helpers import (
    chunk_list,
    dump_json,
    generate_id,
    now_ms,
    parse_json_object,
)

__all__ = [
    "now_ms",
    "generate_id",
    "parse_json_object",
    "dump_json",
    "chunk_list",
]
