"""
Letter counter job.

The map function counts ASCII letters in its split, case-insensitively, and
writes one ``"<LETTER> <count>"`` line per letter of the alphabet. The reduce
function sums those counts across every intermediate file.
"""

import string
from collections import Counter
from typing import List, TextIO

from forkmr.models.split import Split

LETTERS = string.ascii_uppercase


def _write_counts(counts: Counter, output: TextIO):
    for letter in LETTERS:
        output.write(f"{letter} {counts[letter]}\n")


def letter_counter_map(split: Split, output: TextIO):
    counts = Counter(
        ch.upper() for ch in split.text() if ch in string.ascii_letters
    )
    _write_counts(counts, output)


def letter_counter_reduce(inputs: List[TextIO], output: TextIO):
    counts = Counter()
    for handle in inputs:
        for line in handle:
            parts = line.split()
            if len(parts) != 2 or parts[0] not in LETTERS:
                continue
            counts[parts[0]] += int(parts[1])
    _write_counts(counts, output)
