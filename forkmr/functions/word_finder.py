"""
Word finder job.

The job context is the word to look for. The map function emits every line
of its split that contains the word as a whole token; the reduce function
concatenates the matches in split order, keeping the first copy of each line.
"""

import re
from typing import List, TextIO

from forkmr.models.split import Split


def _pattern(word: str) -> "re.Pattern[str]":
    # Neighbouring characters must not be letters or digits.
    return re.compile(rf"(?<![^\W_]){re.escape(word)}(?![^\W_])")


def word_finder_map(split: Split, output: TextIO):
    word = split.user_context
    if not isinstance(word, str) or not word:
        raise ValueError("word finder needs a non-empty target word as job context")

    pattern = _pattern(word)
    lines = split.text().split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    for line in lines:
        if pattern.search(line):
            output.write(line + "\n")


def word_finder_reduce(inputs: List[TextIO], output: TextIO):
    seen = set()
    for handle in inputs:
        for line in handle:
            if line in seen:
                continue
            seen.add(line)
            output.write(line)
