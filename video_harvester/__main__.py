#!/usr/bin/env python3
"""
Command-line Harvester
======================
Signs in to the LMS, walks the given course addresses and writes every
embedded video link it finds to ``output/youtube_links.{txt,docx}``.

Course-authoring share links (rise.articulate.com) need no credentials.
LMS credentials are resolved from flags, then ``BRIGHTSPACE_*`` /
``HARVESTER_*`` environment variables (a ``.env`` file is honoured), then
an interactive prompt.

Run with: python -m video_harvester URL [URL ...]
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .auth.base_auth import Credentials
from .auth.brightspace_auth import BrightspaceAuthHandler
from .models import RunOutcome
from .orchestrator import SessionOrchestrator, is_lesson_chain_address
from .run_config import HarvestRunConfig
from .utils import ensure_scheme

# Load .env (credentials) before anything reads the environment
env_path = Path(__file__).resolve().parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)
else:
    load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)s | %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)


def print_summary(outcome: RunOutcome):
    """Print run summary."""
    print("\n" + "=" * 65)
    print("HARVEST COMPLETE" if outcome.success else "HARVEST FAILED")
    print("=" * 65)
    print(f"  Addresses:           {len(outcome.addresses)}")
    print(f"  Video links:         {len(outcome.links)}")
    print(f"  Status:              {outcome.status.value}")
    if not outcome.success:
        print(f"  Reason:              {outcome.reason.value}")
        if outcome.message:
            print(f"  Detail:              {outcome.message[:200]}")
    for link in outcome.links:
        print(f"    - {link}")
    for path in outcome.output_files:
        print(f"  Exported: {path}")
    print("=" * 65)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='python -m video_harvester',
        description='Harvest embedded video links from LMS and course-player content',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m video_harvester https://school.brightspace.com/d2l/le/content/123/viewContent/456/View
  python -m video_harvester URL1 URL2 --email me@school.edu      # prompts for the password
  python -m video_harvester https://rise.articulate.com/share/abc#/   # no sign-in needed
  python -m video_harvester URL --single --headed
        """
    )

    parser.add_argument('urls', nargs='+', metavar='URL', help='Course address(es), processed in order')
    parser.add_argument('--single', action='store_true',
                        help='Scrape one content page only (no course entry, no paging)')
    parser.add_argument('--headed', action='store_true', help='Show the browser window')
    parser.add_argument('--output-dir', type=str, help='Output directory (default: output)')
    parser.add_argument('--no-text', action='store_true', help='Skip the .txt export')
    parser.add_argument('--no-docx', action='store_true', help='Skip the .docx export')
    parser.add_argument('--max-pages', type=int,
                        help='Maximum content pages / lessons per address (default: 50)')
    parser.add_argument('--timeout-scale', type=float, default=1.0,
                        help='Multiply every wait bound (e.g. 2.0 on slow networks)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    # ── Authentication flags ──────────────────────────────────────
    auth_group = parser.add_argument_group(
        'Authentication',
        'Resolved from flags, then BRIGHTSPACE_EMAIL / BRIGHTSPACE_PASSWORD '
        '(or HARVESTER_*) env vars, then an interactive prompt.')
    auth_group.add_argument('--email', type=str, help='LMS sign-in email')
    auth_group.add_argument('--password', type=str, help='LMS password (prefer the env var or prompt)')

    return parser


def run_cli_with_args(argv=None) -> int:
    """Parse argv, build HarvestRunConfig, run. Returns the exit code."""
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    addresses = [ensure_scheme(url) for url in args.urls]

    try:
        cfg = HarvestRunConfig.from_cli_args(args)
    except ValueError as e:
        print(f"Error: {e}")
        return 2

    handler = BrightspaceAuthHandler()
    credentials = None
    if not all(is_lesson_chain_address(a) for a in addresses):
        # Flags → env vars → interactive prompt
        cli_creds = Credentials(email=args.email or '', password=args.password or '')
        credentials = handler.resolve_credentials(cli_creds, interactive=sys.stdin.isatty())
        if not credentials.is_complete:
            logger.warning("[AUTH] Credentials incomplete — only an existing session can work")

    orchestrator = SessionOrchestrator(cfg, auth_handler=handler)
    if args.single and len(addresses) == 1:
        outcome = orchestrator.run_single_content_scrape_sync(credentials, addresses[0])
    else:
        if args.single:
            logger.warning("[RUN] --single takes one address — running a module scrape instead")
        outcome = orchestrator.run_module_scrape_sync(credentials, addresses)

    print_summary(outcome)
    return 0 if outcome.success else 1


def main():
    try:
        sys.exit(run_cli_with_args())
    except KeyboardInterrupt:
        print("\n\nHarvest interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
