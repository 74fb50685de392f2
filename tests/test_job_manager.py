"""
Tests for the JobManager orchestrator
"""

import asyncio
import os

import pytest

from forkmr.core.errors import InvalidSpecError, ReduceFailureError, WorkerFailureError
from forkmr.core.job_manager import JobManager, run, run_async
from forkmr.models.job import JobPhase, JobResult, JobSpec

from conftest import intermediate_files


def copy_map(split, output):
    output.write(split.text())


def concat_reduce(inputs, output):
    for handle in inputs:
        output.write(handle.read())


def failing_map(split, output):
    return False


def failing_reduce(inputs, output):
    raise RuntimeError("reduce exploded")


def make_spec(path, split_count=2, map_fn=copy_map, reduce_fn=concat_reduce, user_context=None):
    return JobSpec(input_path=path, split_count=split_count, map_fn=map_fn,
                   reduce_fn=reduce_fn, user_context=user_context)


class TestValidation:
    """VALIDATE phase rejections happen before any worker exists"""

    def test_missing_spec(self, settings):
        with pytest.raises(InvalidSpecError) as excinfo:
            run(None, settings)
        assert excinfo.value.phase == JobPhase.VALIDATE

    def test_wrong_spec_type(self, settings):
        with pytest.raises(InvalidSpecError):
            run("input.txt", settings)

    def test_malformed_mapping(self, settings, sample_input_file):
        with pytest.raises(InvalidSpecError):
            run({"input_path": str(sample_input_file), "split_count": "many",
                 "map_fn": copy_map, "reduce_fn": concat_reduce}, settings)

    def test_mapping_spec_is_accepted(self, settings, sample_input_file):
        result = run({"input_path": str(sample_input_file), "split_count": 2,
                      "map_fn": copy_map, "reduce_fn": concat_reduce}, settings)
        assert len(result.map_worker_ids) == 2

    def test_unreadable_input(self, settings, tmp_path):
        with pytest.raises(InvalidSpecError):
            run(make_spec(tmp_path / "does-not-exist.txt"), settings)

    def test_empty_input(self, settings, tmp_path):
        empty = tmp_path / "empty.txt"
        empty.write_bytes(b"")
        with pytest.raises(InvalidSpecError):
            run(make_spec(empty), settings)

    @pytest.mark.parametrize("split_count", [0, -3])
    def test_non_positive_split_count(self, settings, sample_input_file, split_count):
        with pytest.raises(InvalidSpecError):
            run(make_spec(sample_input_file, split_count), settings)

    def test_more_splits_than_bytes(self, settings, tmp_path):
        tiny = tmp_path / "tiny.txt"
        tiny.write_bytes(b"ab\n")

        with pytest.raises(InvalidSpecError) as excinfo:
            run(make_spec(tiny, 5), settings)

        assert excinfo.value.phase == JobPhase.VALIDATE
        assert intermediate_files(settings.work_dir) == []

    def test_plan_with_empty_splits_is_rejected(self, settings, tmp_path):
        no_boundaries = tmp_path / "flat.txt"
        no_boundaries.write_bytes(b"abcdefgh")

        with pytest.raises(InvalidSpecError) as excinfo:
            run(make_spec(no_boundaries, 2), settings)

        assert excinfo.value.phase == JobPhase.SPLIT
        assert intermediate_files(settings.work_dir) == []


class TestJobExecution:
    """Full runs through the orchestrator"""

    def test_result_is_populated(self, settings, sample_input_file, sample_text):
        result = run(make_spec(sample_input_file, 3), settings)

        assert isinstance(result, JobResult)
        assert len(result.map_worker_ids) == 3
        assert result.reduce_worker_id
        assert result.output_path == settings.result_path()
        assert result.elapsed_micros >= 0
        assert result.intermediate_paths == [settings.intermediate_path(i) for i in range(3)]
        with open(result.output_path, encoding="utf-8") as f:
            assert f.read() == sample_text

    def test_process_workers_have_distinct_ids(self, process_settings, sample_input_file):
        result = run(make_spec(sample_input_file, 4), process_settings)

        ids = result.map_worker_ids + [result.reduce_worker_id]
        assert len(set(ids)) == 5
        assert os.getpid() not in ids

    def test_result_is_immutable(self, settings, sample_input_file):
        result = run(make_spec(sample_input_file, 1), settings)
        with pytest.raises(Exception):
            result.elapsed_micros = 0

    def test_runs_are_deterministic(self, settings, sample_input_file):
        def snapshot(result):
            files = result.intermediate_paths + [result.output_path]
            return [open(path, "rb").read() for path in files]

        first = snapshot(run(make_spec(sample_input_file, 4), settings))
        second = snapshot(run(make_spec(sample_input_file, 4), settings))

        assert first == second

    def test_map_failure_produces_no_result(self, settings, sample_input_file, metrics):
        with pytest.raises(WorkerFailureError) as excinfo:
            run(make_spec(sample_input_file, 2, map_fn=failing_map), settings, metrics)

        assert excinfo.value.phase == JobPhase.MAP
        assert excinfo.value.split_index == 0
        assert not os.path.exists(settings.result_path())
        assert metrics.get_value("forkmr_jobs_failed_total") == 1
        assert metrics.get_value("forkmr_workers_completed_total", {"task_type": "reduce"}) == 0

    def test_reduce_failure_is_fatal(self, settings, sample_input_file):
        with pytest.raises(ReduceFailureError) as excinfo:
            run(make_spec(sample_input_file, 2, reduce_fn=failing_reduce), settings)

        assert excinfo.value.phase == JobPhase.REDUCE
        assert "reduce exploded" in str(excinfo.value)
        assert intermediate_files(settings.work_dir) == ["mr-0.itm", "mr-1.itm"]

    def test_phase_tracking(self, settings, sample_input_file):
        manager = JobManager(settings)
        asyncio.run(manager.run_job(make_spec(sample_input_file, 2)))
        assert manager.phase == JobPhase.COMPLETED

        with pytest.raises(WorkerFailureError):
            asyncio.run(manager.run_job(make_spec(sample_input_file, 2, map_fn=failing_map)))
        assert manager.phase == JobPhase.FAILED

    def test_cleanup_removes_intermediates_after_reduce(self, work_dir, sample_input_file, sample_text):
        from forkmr.utils.config import Settings

        settings = Settings(work_dir=str(work_dir), cleanup_intermediates=True)
        result = run(make_spec(sample_input_file, 3), settings)

        assert intermediate_files(work_dir) == []
        with open(result.output_path, encoding="utf-8") as f:
            assert f.read() == sample_text

    def test_metrics_record_successful_job(self, settings, sample_input_file, metrics):
        run(make_spec(sample_input_file, 3), settings, metrics)

        assert metrics.get_value("forkmr_jobs_completed_total") == 1
        assert metrics.get_value("forkmr_workers_completed_total", {"task_type": "map"}) == 3
        assert metrics.get_value("forkmr_workers_completed_total", {"task_type": "reduce"}) == 1
        assert metrics.get_value("forkmr_job_duration_seconds_count") == 1

    def test_run_async_inside_event_loop(self, settings, sample_input_file):
        async def submit():
            return await run_async(make_spec(sample_input_file, 2), settings)

        result = asyncio.run(submit())
        assert len(result.map_worker_ids) == 2
