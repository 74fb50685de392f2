"""
Unit tests for the bundled map/reduce functions
"""

import io

import pytest

from forkmr.functions import BUILTIN_JOBS, get_job_functions
from forkmr.functions.letter_counter import letter_counter_map, letter_counter_reduce
from forkmr.functions.word_finder import word_finder_map, word_finder_reduce
from forkmr.models.split import Split


def split_of(data, user_context=None):
    return Split(index=0, offset=0, length=len(data), data=data, user_context=user_context)


class TestLetterCounterFunctions:

    def test_map_writes_all_letters(self):
        output = io.StringIO()
        letter_counter_map(split_of(b"Abc, aB! 123"), output)

        lines = output.getvalue().splitlines()
        assert len(lines) == 26
        assert lines[:3] == ["A 2", "B 2", "C 1"]
        assert lines[25] == "Z 0"

    def test_reduce_sums_and_ignores_malformed_lines(self):
        first = io.StringIO("A 1\nB 2\n")
        second = io.StringIO("A 4\ngarbage\nZ 1\n")
        output = io.StringIO()

        letter_counter_reduce([first, second], output)

        lines = output.getvalue().splitlines()
        assert lines[0] == "A 5"
        assert lines[1] == "B 2"
        assert lines[25] == "Z 1"


class TestWordFinderFunctions:

    def test_map_matches_whole_words_only(self):
        output = io.StringIO()
        word_finder_map(split_of(b"cat\nconcat\ncats\nthe cat.\n_cat_\n(cat)\n", "cat"), output)

        assert output.getvalue() == "cat\nthe cat.\n_cat_\n(cat)\n"

    def test_map_keeps_unterminated_last_line(self):
        output = io.StringIO()
        word_finder_map(split_of(b"no\nlast cat", "cat"), output)

        assert output.getvalue() == "last cat\n"

    def test_map_is_case_sensitive(self):
        output = io.StringIO()
        word_finder_map(split_of(b"Cat\ncat\n", "cat"), output)

        assert output.getvalue() == "cat\n"

    @pytest.mark.parametrize("context", [None, "", 3])
    def test_map_requires_target_word(self, context):
        with pytest.raises(ValueError):
            word_finder_map(split_of(b"cat\n", context), io.StringIO())

    def test_reduce_deduplicates_in_input_order(self):
        output = io.StringIO()
        word_finder_reduce(
            [io.StringIO("b\na\n"), io.StringIO("a\nc\nb\n"), io.StringIO("d\n")], output
        )
        assert output.getvalue() == "b\na\nc\nd\n"


class TestRegistry:

    def test_builtin_jobs(self):
        assert set(BUILTIN_JOBS) == {"letter-count", "word-find"}
        assert get_job_functions("word-find").map_fn is word_finder_map

    def test_unknown_job(self):
        with pytest.raises(KeyError):
            get_job_functions("sort")
