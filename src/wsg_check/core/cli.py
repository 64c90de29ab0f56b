# src/wsg_check/core/cli.py
import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from wsg_check.auditor.registry import RuleRegistry, select_rules
from wsg_check.core.controllers.check_controller import CheckController
from wsg_check.core.errors import ConfigError
from wsg_check.core.managers.config_manager import config_manager, resolve_settings, split_list
from wsg_check.core.managers.progress_manager import ProgressManager
from wsg_check.core.model import CheckSettings
from wsg_check.core.services.report_service import render_report
from wsg_check.core.utils.configure_logging import configure_logger

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

SILENCED_LOGGERS = {"aiohttp": "WARNING", "asyncio": "WARNING"}


def build_parser() -> argparse.ArgumentParser:
    version = config_manager.get_nested("user_agent.version", "0.1.0")
    parser = argparse.ArgumentParser(
        prog="wsg-check",
        description="Check a web page against the W3C Web Sustainability Guidelines.",
    )
    parser.add_argument("url", help="URL of the page to check")
    parser.add_argument("--version", action="version", version=f"%(prog)s {version}")
    parser.add_argument("-f", "--format", choices=["json", "terminal", "markdown"], help="report format (default: terminal)")
    parser.add_argument("-o", "--output", help="write the report to a file instead of stdout")
    parser.add_argument("-c", "--categories", help="comma-separated categories: ux,web-dev,hosting,business")
    parser.add_argument("-g", "--guidelines", help="comma-separated guideline ids to run, e.g. 3.1,4.3")
    parser.add_argument("--exclude-guidelines", help="comma-separated guideline ids to skip")
    parser.add_argument("--timeout", type=float, help="HTTP timeout in seconds")
    parser.add_argument("--user-agent", help="override the User-Agent header")
    parser.add_argument("--ignore-robots", action="store_true", default=None, help="do not enforce robots.txt")
    parser.add_argument(
        "--no-follow-redirects", dest="follow_redirects", action="store_false", default=None,
        help="report the first redirect response instead of following it",
    )
    parser.add_argument("--fail-threshold", type=int, help="exit with code 1 when the score is below this (0-100)")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    parser.add_argument("--no-progress", action="store_true", help="hide the progress bar")
    return parser


def _overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "format": args.format,
        "output_path": args.output,
        "categories": split_list(args.categories) if args.categories else None,
        "guidelines": split_list(args.guidelines) if args.guidelines else None,
        "exclude_guidelines": split_list(args.exclude_guidelines) if args.exclude_guidelines else None,
        "timeout": args.timeout,
        "user_agent": args.user_agent,
        "ignore_robots": args.ignore_robots,
        "follow_redirects": args.follow_redirects,
        "fail_threshold": args.fail_threshold,
        "log_level": "DEBUG" if args.verbose else None,
    }


async def _run_check(url: str, settings: CheckSettings, show_progress: bool) -> int:
    rules = select_rules(
        RuleRegistry.discover(),
        categories=settings.categories,
        guidelines=settings.guidelines,
        exclude_guidelines=settings.exclude_guidelines,
    )
    if "business" in settings.categories:
        logger.info("The 'business' category has no automated checks; it is reported with the default score.")

    progress = ProgressManager(total=len(rules), desc="Running checks") if show_progress and rules else None
    try:
        async with CheckController(
                settings=settings,
                rules=rules,
                progress_callback=progress.update_to if progress else None,
        ) as controller:
            result = await controller.check(url)
    finally:
        if progress:
            progress.close()

    if not result.ok:
        error = result.error
        stage = error.stage.value if error.stage else "unknown"
        print(f"❌ Error ({stage}): {error.message}", file=sys.stderr)
        return EXIT_FAILURE

    run_result = result.value
    output = render_report(run_result, settings.format)

    if settings.output_path:
        try:
            with open(settings.output_path, "w", encoding="utf-8") as f:
                f.write(output + "\n")
        except OSError as e:
            print(f"❌ Failed to write report to {settings.output_path}: {e}", file=sys.stderr)
            return EXIT_FAILURE
        print(f"✅ Report written to {settings.output_path}", file=sys.stderr)
    else:
        print(output)

    if run_result.overall_score < settings.fail_threshold:
        print(
            f"❌ Score {run_result.overall_score} is below fail-threshold {settings.fail_threshold}",
            file=sys.stderr,
        )
        return EXIT_FAILURE
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits on --help/--version (0) and on usage errors (2)
        return e.code if isinstance(e.code, int) else EXIT_USAGE

    try:
        settings = resolve_settings(_overrides_from_args(args))
    except ConfigError as e:
        print(f"❌ Invalid configuration: {e}", file=sys.stderr)
        return EXIT_USAGE

    configure_logger(settings.log_level, silenced_loggers=SILENCED_LOGGERS)

    try:
        return asyncio.run(_run_check(args.url, settings, show_progress=not args.no_progress))
    except KeyboardInterrupt:
        print("\n🛑 Check interrupted by user.", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
