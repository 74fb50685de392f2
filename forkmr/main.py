"""
Command line interface for forkmr.

Examples:
  forkmr letter-count input.txt --splits 4
  forkmr word-find input.txt --word MapReduce --splits 2
  forkmr custom input.txt --functions my_job.py --splits 8
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import aiofiles

from forkmr.core.errors import MapReduceError
from forkmr.core.job_manager import run_async
from forkmr.functions import BUILTIN_JOBS, get_job_functions
from forkmr.models.job import JobResult, JobSpec
from forkmr.services.function_loader import FunctionLoader
from forkmr.utils.config import Settings, get_settings
from forkmr.utils.logger import setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forkmr",
        description="Run a MapReduce job over a single input file on this machine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        'job',
        choices=sorted(BUILTIN_JOBS) + ['custom'],
        help='Bundled job to run, or "custom" to load functions from --functions'
    )
    parser.add_argument('input', help='Input file path')
    parser.add_argument('--splits', '-n', type=int, default=1, help='Number of map workers (default: 1)')
    parser.add_argument('--word', '-w', help='Target word for word-find')
    parser.add_argument('--functions', '-f', help='Python file defining map_function and reduce_function')
    parser.add_argument('--work-dir', help='Directory for intermediate and result files')
    parser.add_argument('--backend', choices=['process', 'thread'], help='Worker execution unit')
    parser.add_argument('--timeout', type=float, help='Per-worker timeout in seconds')
    parser.add_argument('--cleanup', action='store_true', help='Delete intermediate files after reduce')
    parser.add_argument('--log-level', help='Logging level (debug, info, warning, error)')
    parser.add_argument('--quiet', '-q', action='store_true', help='Do not print the result file')
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {}
    if args.work_dir:
        overrides['work_dir'] = args.work_dir
    if args.backend:
        overrides['worker_backend'] = args.backend
    if args.timeout is not None:
        overrides['worker_timeout_seconds'] = args.timeout
    if args.cleanup:
        overrides['cleanup_intermediates'] = True
    if args.log_level:
        overrides['log_level'] = args.log_level
    return get_settings().model_copy(update=overrides)


def spec_from_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> JobSpec:
    if args.job == 'custom':
        if not args.functions:
            parser.error('custom jobs require --functions')
        loader = FunctionLoader(args.functions)
        map_fn, reduce_fn = loader.get_map_function(), loader.get_reduce_function()
    else:
        map_fn, reduce_fn = get_job_functions(args.job)

    if args.job == 'word-find' and not args.word:
        parser.error('word-find requires --word')

    return JobSpec(
        input_path=args.input,
        split_count=args.splits,
        map_fn=map_fn,
        reduce_fn=reduce_fn,
        user_context=args.word,
    )


async def print_result_file(path: str):
    """Stream the result file to stdout."""
    async with aiofiles.open(path, 'r', encoding='utf-8', newline='') as result_file:
        async for line in result_file:
            sys.stdout.write(line)


async def run_cli(spec: JobSpec, settings: Settings, quiet: bool) -> JobResult:
    result = await run_async(spec, settings)
    if not quiet:
        await print_result_file(result.output_path)
    return result


def main(argv: Optional[List[str]] = None) -> int:
    """Main function with command line interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = settings_from_args(args)
    logger = setup_logger(settings.log_level)

    try:
        spec = spec_from_args(parser, args)
    except (FileNotFoundError, ImportError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        result = asyncio.run(run_cli(spec, settings, args.quiet))
    except MapReduceError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Result file: {result.output_path}")
    print(f"Processing time: {result.elapsed_micros} us")
    return 0


if __name__ == "__main__":
    sys.exit(main())
