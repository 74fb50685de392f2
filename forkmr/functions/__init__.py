from typing import Callable, Dict, NamedTuple

from forkmr.functions.letter_counter import letter_counter_map, letter_counter_reduce
from forkmr.functions.word_finder import word_finder_map, word_finder_reduce


class JobFunctions(NamedTuple):
    map_fn: Callable
    reduce_fn: Callable


BUILTIN_JOBS: Dict[str, JobFunctions] = {
    "letter-count": JobFunctions(letter_counter_map, letter_counter_reduce),
    "word-find": JobFunctions(word_finder_map, word_finder_reduce),
}


def get_job_functions(name: str) -> JobFunctions:
    """Look up a bundled map/reduce pair by job name."""
    if name not in BUILTIN_JOBS:
        raise KeyError(f"Unknown job '{name}'. Available: {', '.join(sorted(BUILTIN_JOBS))}")
    return BUILTIN_JOBS[name]


__all__ = [
    "BUILTIN_JOBS",
    "JobFunctions",
    "get_job_functions",
    "letter_counter_map",
    "letter_counter_reduce",
    "word_finder_map",
    "word_finder_reduce",
]
