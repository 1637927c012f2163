"""Command-line interface for crawlpace."""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Any, Optional

from rich.console import Console

from . import __version__
from .errors import ProcessingCancelledError
from .http import AiohttpTransport
from .logging_config import setup_logging
from .models.config import CrawlpaceConfig
from .models.events import EventType, ProcessorEvent
from .models.request import RequestResult
from .processing import RequestProcessor
from .sinks import JsonlSink

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="crawlpace",
        description="Fetch a list of URLs with a concurrency cap and adaptive backoff",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Fetch a few URLs with default pacing
  crawlpace https://example.com/ https://example.org/

  # Read URLs from a file and write results as JSON lines
  crawlpace --input urls.txt --output results.jsonl

  # Four at a time, back off by 2s whenever a response takes over 1s
  crawlpace --input urls.txt --max-concurrency 4 --throttle-after 1 --backoff-step 2
        """,
    )

    parser.add_argument("urls", nargs="*", metavar="URL", help="URLs to fetch")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--input",
        "-i",
        type=Path,
        metavar="FILE",
        help="File with one URL per line (blank lines and # comments ignored)",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        metavar="FILE",
        help="YAML configuration file",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        metavar="FILE",
        help="Append results to this JSON lines file",
    )

    # Scheduling
    sched_group = parser.add_argument_group("scheduling")
    sched_group.add_argument("--max-concurrency", type=int, default=None, help="Maximum requests in flight")
    sched_group.add_argument("--delay", type=float, default=None, help="Seconds to wait before each request")
    sched_group.add_argument("--jitter", type=float, default=None, help="Maximum random seconds added to the delay")
    sched_group.add_argument("--timeout", type=float, default=None, help="Per-request timeout in seconds")

    # Throttling
    throttle_group = parser.add_argument_group("throttling")
    throttle_group.add_argument(
        "--throttle-after",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Responses slower than this increase the backoff (0 disables)",
    )
    throttle_group.add_argument(
        "--backoff-step",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Amount the backoff changes by",
    )
    throttle_group.add_argument(
        "--recovery-streak",
        type=int,
        default=None,
        metavar="N",
        help="Fast responses in a row needed to reduce the backoff",
    )

    # Network
    network_group = parser.add_argument_group("network settings")
    network_group.add_argument("--user-agent", type=str, help="Custom User-Agent string")
    network_group.add_argument("--proxy", type=str, metavar="URL", help="Proxy URL")

    # Output control
    output_group = parser.add_argument_group("output control")
    verbosity = output_group.add_mutually_exclusive_group()
    verbosity.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    verbosity.add_argument("--quiet", "-q", action="store_true", help="Suppress output")

    return parser


def load_targets(args: argparse.Namespace) -> list[str]:
    """Collect URLs from the command line and the input file."""
    targets = list(args.urls)
    if args.input:
        for line in args.input.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                targets.append(line)
    return targets


def build_config(args: argparse.Namespace) -> CrawlpaceConfig:
    """Merge the optional config file with command-line overrides."""
    data: dict[str, Any] = {}
    if args.config:
        data = CrawlpaceConfig.from_yaml_file(args.config).model_dump(exclude_none=True)

    overrides = {
        "max_concurrency": args.max_concurrency,
        "delay_between_request_start": args.delay,
        "delay_jitter": args.jitter,
        "request_timeout": args.timeout,
        "timeout_before_throttle": args.throttle_after,
        "throttling_request_backoff": args.backoff_step,
        "min_sequential_successes_to_minimise_throttling": args.recovery_streak,
    }
    processor_kwargs = {key: value for key, value in overrides.items() if value is not None}
    if processor_kwargs:
        data.setdefault("processor", {}).update(processor_kwargs)

    network_kwargs: dict[str, Any] = {}
    if args.user_agent:
        network_kwargs["user_agent"] = args.user_agent
    if args.proxy:
        network_kwargs["proxy"] = args.proxy
    if network_kwargs:
        data.setdefault("network", {}).update(network_kwargs)

    if args.verbose:
        data["log_level"] = "DEBUG"
    elif args.quiet:
        data["log_level"] = "ERROR"

    return CrawlpaceConfig.model_validate(data)


def _install_signal_handlers(cancellation: asyncio.Event) -> None:
    """Set the cancellation event on SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancellation.set)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform (e.g. Windows); Ctrl+C still raises KeyboardInterrupt
            pass


def run_processor(args: argparse.Namespace) -> int:
    """Run the request processor with given arguments."""
    console = Console()

    try:
        targets = load_targets(args)
    except OSError as e:
        console.print(f"[red]Error:[/red] Could not read {args.input}: {e}")
        return EXIT_FAILED

    if not targets:
        console.print("[red]Error:[/red] Please provide at least one URL to fetch")
        return EXIT_FAILED

    try:
        config = build_config(args)
    except Exception as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return EXIT_FAILED

    setup_logging(config.log_level, config.log_file)

    processor = RequestProcessor()
    for target in targets:
        processor.add(target)

    jsonl = JsonlSink(args.output) if args.output else None

    def print_result(result: RequestResult) -> None:
        if jsonl:
            jsonl(result)
        if args.quiet:
            return
        timing = f"{result.elapsed * 1000:.0f}ms"
        if result.is_success:
            console.print(
                f"[green]{result.status_code}[/green] {result.target} "
                f"({result.content_length} bytes, {timing})"
            )
        else:
            error = str(result.error) or type(result.error).__name__
            console.print(f"[red]Failed:[/red] {result.target} - {error} ({timing})")

    def on_event(event: ProcessorEvent) -> None:
        if args.quiet or event.backoff is None:
            return
        if event.type == EventType.BACKOFF_INCREASED:
            console.print(f"[yellow]Backing off:[/yellow] delay now +{event.backoff:.1f}s")
        elif event.type == EventType.BACKOFF_DECREASED:
            console.print(f"[cyan]Recovering:[/cyan] delay now +{event.backoff:.1f}s")

    async def run() -> int:
        cancellation = asyncio.Event()
        _install_signal_handlers(cancellation)

        if not args.quiet:
            console.print(f"[bold blue]crawlpace[/bold blue] v{__version__}")
            console.print(f"Targets: {len(targets)}, max concurrency: {config.processor.max_concurrency}")
            console.print()

        async with AiohttpTransport(config.network) as transport:
            await processor.process(
                transport,
                print_result,
                config.processor,
                cancellation,
                on_event=on_event,
            )

        stats = processor.stats
        if not args.quiet:
            console.print()
            console.print("[bold]Results:[/bold]")
            console.print(f"  Requests: {stats.requests_started}")
            console.print(f"  Succeeded: {stats.results_delivered - stats.soft_failures}")
            console.print(f"  Failed: {stats.soft_failures}")
            console.print(f"  Peak backoff: {stats.peak_backoff:.1f}s")
            console.print(f"  Duration: {stats.duration_seconds:.1f}s")

        return EXIT_OK if stats.soft_failures == 0 else EXIT_FAILED

    try:
        return asyncio.run(run())
    except ProcessingCancelledError:
        console.print("[yellow]Cancelled.[/yellow]")
        return EXIT_CANCELLED
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return EXIT_FAILED
    finally:
        if jsonl:
            jsonl.close()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    return run_processor(args)


if __name__ == "__main__":
    sys.exit(main())
