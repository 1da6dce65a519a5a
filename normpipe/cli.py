import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .core.config import DEFAULT_PARALLELISM, DEFAULT_SCALE_TARGET, build_settings, load_profile
from .core.dispatcher import Dispatcher, temp_workspace
from .core.errors import ArgumentError
from .core.models import JobStatus
from .core.progress import ProgressLine
from .plugins.discovery import collect_files

USAGE_NOTES = """\
First pass the flags you want, then any number of paths.
Each path can be either a file which is then normalized or a folder.
From each given folder all MP3 files will be normalized.
If you pass no path at all, all MP3 files in the current working directory
are normalized.
"""


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="normalize",
        description="Normalize the loudness of audio files in place.",
        epilog=USAGE_NOTES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("-ampl", type=int, default=None, metavar="INT",
                   help=f"Determines the amplitude. Increase this value to make songs louder (default {DEFAULT_SCALE_TARGET}).")
    p.add_argument("-proc", type=int, default=None, metavar="INT",
                   help=f"Files to process in parallel, at least 1 (default {DEFAULT_PARALLELISM}).")
    p.add_argument("--profile", type=str, default=None,
                   help="Profile name (YAML in normpipe/profiles/) or path to a YAML file. Flags override it.")
    p.add_argument("--dry-run", action="store_true",
                   help="Analyze only: report the scale per file, do not modify anything.")
    p.add_argument("--report", type=Path, default=None, help="Write a JSON report of the batch to this path.")
    p.add_argument("--strict", action="store_true", help="Exit with status 1 if any file failed.")
    p.add_argument("-v", "--verbose", action="count", default=0, help="More log output on stderr (-vv for debug).")
    p.add_argument("paths", nargs="*", help="Files or folders. Default: current directory.")
    return p


def main(argv=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    try:
        profile = load_profile(args.profile)
        settings = build_settings(profile, scale_target=args.ampl, parallelism=args.proc, dry_run=args.dry_run)
        files = collect_files(args.paths, settings.extensions)
    except ArgumentError as e:
        print(f"normalize: {e}", file=sys.stderr)
        return 2

    if not files:
        print("No files to normalize.")
        return 0

    progress = ProgressLine()
    with temp_workspace() as tmp:
        report = Dispatcher(settings, tmp, on_outcome=progress).dispatch(files)
    progress.finish()

    if settings.dry_run:
        for o in report.outcomes:
            if o.status == JobStatus.skipped and o.scale is not None:
                print(f"{o.scale:8.3f}  {o.path}")

    if args.report:
        args.report.parent.mkdir(parents=True, exist_ok=True)
        args.report.write_text(json.dumps(report.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        print(f"Report: {args.report}")

    print(f"Done. {report.normalized} normalized, {report.skipped} skipped, {report.failed} failed.")
    if args.strict and report.failed:
        return 1
    return 0
