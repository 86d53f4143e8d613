"""Command-line interface for blastpoll."""

from __future__ import annotations

import argparse
import sys
import threading
from pathlib import Path
from typing import Callable, List, Optional

from . import __version__
from .config import BLAST_DEFAULTS, RuntimeConfig, collect_runtime_config
from .errors import BlastClientError, CancelledError, InvalidParameterError
from .logging_utils import configure_logging, get_logger
from .params import FormatType, Matrix, PollPolicy, Program, SubmissionParameters
from .poller import BlastJob, JobResult, check_status, delete_job, fetch_results, run_jobs
from .request_builder import results_reference_for
from .transport import RateLimitGate, RequestsTransport, shared_gate

Handler = Callable[[argparse.Namespace], int]

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blastpoll",
        description="Submit searches to NCBI BLAST and poll them until they finish.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    _add_submit_parser(subparsers)
    _add_status_parser(subparsers)
    _add_url_parser(subparsers)
    _add_fetch_parser(subparsers)
    _add_delete_parser(subparsers)
    return parser


def _add_submit_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("submit", help="Submit one or more queries and wait for them.")
    parser.add_argument(
        "--query",
        action="append",
        default=[],
        help="Sequence, accession/GI or FASTA text. Repeat to run several jobs.",
    )
    parser.add_argument(
        "--query-file",
        type=Path,
        action="append",
        default=[],
        help="File whose whole content is sent as one query. Repeatable.",
    )
    parser.add_argument("--db", default=None, help="BLAST database (default: BLAST_DB env or nt).")
    parser.add_argument(
        "--program",
        default=None,
        choices=[program.value for program in Program],
        help="BLAST program (default: BLAST_PROGRAM env or blastn).",
    )
    parser.add_argument(
        "--format",
        default=BLAST_DEFAULTS.format_type,
        choices=[fmt.value for fmt in FormatType],
        help="Report format requested from BLAST.",
    )

    search = parser.add_argument_group("search options")
    search.add_argument("--filter", default=None, help="F, T or L, optionally prefixed by m (e.g. mL).")
    search.add_argument("--expect", type=float, default=None, help="Expect value, greater than zero.")
    search.add_argument("--reward", type=int, default=None, help="Match reward (blastn/megablast), > 0.")
    search.add_argument("--penalty", type=int, default=None, help="Mismatch penalty (blastn/megablast), < 0.")
    search.add_argument("--gap-costs", default=None, help="Gap existence and extension costs, e.g. '11 1'.")
    search.add_argument("--matrix", default=None, choices=[matrix.value for matrix in Matrix])
    search.add_argument("--hitlist-size", type=int, default=None)
    search.add_argument("--descriptions", type=int, default=None)
    search.add_argument("--alignments", type=int, default=None)
    search.add_argument("--ncbi-gi", choices=["T", "F"], default=None, help="Show NCBI GIs in the report.")
    search.add_argument("--threshold", type=int, default=None)
    search.add_argument("--word-size", type=int, default=None)
    search.add_argument("--comp-based-stats", type=int, default=None, choices=[0, 1, 2, 3])

    polling = parser.add_argument_group("polling")
    polling.add_argument("--initial-delay", type=float, default=BLAST_DEFAULTS.initial_delay)
    polling.add_argument(
        "--poll-seconds",
        type=float,
        default=BLAST_DEFAULTS.poll_seconds,
        help="Interval between status checks (never below the NCBI minimum).",
    )
    polling.add_argument("--backoff", type=float, default=BLAST_DEFAULTS.backoff_factor)
    polling.add_argument("--max-interval", type=float, default=BLAST_DEFAULTS.max_interval)
    polling.add_argument("--max-attempts", type=int, default=BLAST_DEFAULTS.max_attempts)
    polling.add_argument(
        "--max-wait",
        type=float,
        default=BLAST_DEFAULTS.max_wait_seconds,
        help="Give up after this many seconds per job.",
    )
    polling.add_argument(
        "--use-rtoe",
        action="store_true",
        help="Wait at least the server's estimated run time before the first check.",
    )
    polling.add_argument("--max-workers", type=int, default=BLAST_DEFAULTS.max_workers)
    polling.add_argument(
        "--rate-limit-seconds",
        type=float,
        default=None,
        help="Minimum wait between HTTP requests across all jobs (default: BLAST_RATE_LIMIT_SECONDS env or 10).",
    )
    _add_transport_arguments(parser)
    parser.set_defaults(handler=_handle_submit)


def _add_status_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("status", help="Run a single status check for a RID.")
    parser.add_argument("rid", help="BLAST request identifier.")
    _add_transport_arguments(parser)
    parser.set_defaults(handler=_handle_status)


def _add_url_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("url", help="Print the results URL for a RID.")
    parser.add_argument("rid", help="BLAST request identifier.")
    parser.set_defaults(handler=_handle_url)


def _add_fetch_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("fetch", help="Print the raw report of a finished RID.")
    parser.add_argument("rid", help="BLAST request identifier.")
    parser.add_argument("--format", default=BLAST_DEFAULTS.format_type, choices=[fmt.value for fmt in FormatType])
    parser.add_argument("--hitlist-size", type=int, default=None)
    parser.add_argument("--descriptions", type=int, default=None)
    parser.add_argument("--alignments", type=int, default=None)
    _add_transport_arguments(parser)
    parser.set_defaults(handler=_handle_fetch)


def _add_delete_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("delete", help="Ask NCBI to discard a RID and its results.")
    parser.add_argument("rid", help="BLAST request identifier.")
    _add_transport_arguments(parser)
    parser.set_defaults(handler=_handle_delete)


def _add_transport_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--timeout-seconds",
        type=float,
        default=None,
        help="Per-request HTTP timeout (default: BLAST_TIMEOUT_SECONDS env or 30).",
    )


def _build_transport(args: argparse.Namespace, config: RuntimeConfig) -> RequestsTransport:
    return RequestsTransport(timeout=args.timeout_seconds or config.timeout_seconds)


def _build_gate(args: argparse.Namespace, config: RuntimeConfig) -> RateLimitGate:
    interval = args.rate_limit_seconds if args.rate_limit_seconds is not None else config.rate_limit_seconds
    return shared_gate(interval)


def _read_queries(args: argparse.Namespace) -> List[str]:
    queries = list(args.query)
    for path in args.query_file:
        queries.append(path.read_text(encoding="utf-8"))
    return queries


def _handle_submit(args: argparse.Namespace) -> int:
    logger = get_logger()
    config = collect_runtime_config()
    queries = _read_queries(args)
    if not queries:
        logger.error("Provide at least one --query or --query-file.")
        return EXIT_INVALID
    if "NCBI_EMAIL" in config.missing_keys():
        logger.warning("NCBI_EMAIL is not set; NCBI asks heavy users to identify themselves.")

    try:
        policy = PollPolicy(
            initial_delay=args.initial_delay,
            poll_interval=args.poll_seconds,
            backoff_factor=args.backoff,
            max_interval=args.max_interval,
            max_attempts=args.max_attempts,
            max_wait=args.max_wait,
            use_server_estimate=args.use_rtoe,
        )
        params_list = [
            SubmissionParameters(
                query=query,
                database=args.db or config.blast_db or BLAST_DEFAULTS.db,
                program=args.program or config.blast_program or BLAST_DEFAULTS.program,
                format_type=args.format,
                filter=args.filter,
                expect=args.expect,
                reward=args.reward,
                penalty=args.penalty,
                gap_costs=args.gap_costs,
                matrix=args.matrix,
                hitlist_size=args.hitlist_size,
                descriptions=args.descriptions,
                alignments=args.alignments,
                ncbi_gi=None if args.ncbi_gi is None else args.ncbi_gi == "T",
                threshold=args.threshold,
                word_size=args.word_size,
                composition_based_stats=args.comp_based_stats,
                email=config.ncbi_email,
                tool=config.ncbi_tool or BLAST_DEFAULTS.tool,
            )
            for query in queries
        ]
    except InvalidParameterError as exc:
        logger.error("Invalid parameters: %s", exc)
        return EXIT_INVALID

    transport = _build_transport(args, config)
    gate = _build_gate(args, config)
    cancel = threading.Event()
    try:
        if len(params_list) == 1:
            job = BlastJob(
                params_list[0], policy, transport, base_url=config.base_url, cancel=cancel, gate=gate
            )
            try:
                outcomes = [job.run()]
            except BlastClientError as exc:
                outcomes = [exc]
        else:
            outcomes = run_jobs(
                params_list,
                policy,
                transport=transport,
                cancel=cancel,
                gate=gate,
                max_workers=args.max_workers,
                base_url=config.base_url,
            )
    except KeyboardInterrupt:
        cancel.set()
        logger.error("Interrupted.")
        return EXIT_CANCELLED
    finally:
        transport.close()

    return _report(outcomes, config.base_url)


def _report(outcomes, base_url: str) -> int:
    logger = get_logger()
    exit_code = EXIT_OK
    for outcome in outcomes:
        if isinstance(outcome, JobResult):
            url = results_reference_for(outcome.rid, base_url)
            print(f"{outcome.rid}\t{outcome.state.value}\t{url}")
            if not outcome.ok:
                exit_code = max(exit_code, EXIT_FAILED)
            continue

        if isinstance(outcome, CancelledError):
            exit_code = max(exit_code, EXIT_CANCELLED)
        elif isinstance(outcome, InvalidParameterError):
            exit_code = max(exit_code, EXIT_INVALID)
        else:
            exit_code = max(exit_code, EXIT_FAILED)
        if outcome.rid:
            url = results_reference_for(outcome.rid, base_url)
            print(f"{outcome.rid}\tABORTED\t{url}")
            logger.error("RID %s aborted: %s (inspect at %s)", outcome.rid, outcome, url)
        else:
            logger.error("Submission failed: %s", outcome)
    return exit_code


def _handle_status(args: argparse.Namespace) -> int:
    config = collect_runtime_config()
    transport = _build_transport(args, config)
    try:
        status = check_status(args.rid, transport=transport, base_url=config.base_url)
    finally:
        transport.close()
    print(f"{args.rid}\t{status.name}")
    return EXIT_OK


def _handle_url(args: argparse.Namespace) -> int:
    config = collect_runtime_config()
    print(results_reference_for(args.rid, config.base_url))
    return EXIT_OK


def _handle_fetch(args: argparse.Namespace) -> int:
    config = collect_runtime_config()
    transport = _build_transport(args, config)
    try:
        text = fetch_results(
            args.rid,
            args.format,
            transport=transport,
            base_url=config.base_url,
            hitlist_size=args.hitlist_size,
            descriptions=args.descriptions,
            alignments=args.alignments,
        )
    finally:
        transport.close()
    sys.stdout.write(text)
    return EXIT_OK


def _handle_delete(args: argparse.Namespace) -> int:
    config = collect_runtime_config()
    transport = _build_transport(args, config)
    try:
        delete_job(args.rid, transport=transport, base_url=config.base_url)
    finally:
        transport.close()
    print(f"{args.rid}\tDELETED")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose)
    logger = get_logger()
    handler: Handler = args.handler

    try:
        return handler(args)
    except InvalidParameterError as exc:
        logger.error("%s", exc)
        return EXIT_INVALID
    except BlastClientError as exc:
        logger.error("%s", exc)
        return EXIT_FAILED
    except FileNotFoundError as exc:
        logger.error(str(exc))
        return EXIT_FAILED


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
