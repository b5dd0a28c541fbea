"""
Demo module - sample marketplace data and the loader that seeds it.
"""

from demo.sample_data import (
    SAMPLE_ENTITIES,
    SAMPLE_LINKS,
    SAMPLE_PEOPLE,
    SAMPLE_TASKS,
    TEST_QUERIES,
    load_demo_data,
    seed_safely,
)

__all__ = [
    "SAMPLE_ENTITIES",
    "SAMPLE_LINKS",
    "SAMPLE_PEOPLE",
    "SAMPLE_TASKS",
    "TEST_QUERIES",
    "load_demo_data",
    "seed_safely",
]
