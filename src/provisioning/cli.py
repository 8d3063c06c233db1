"""
Command-line entry points for provisioning.

    python scripts/deploy.py [--with-analytics] [--env-file PATH]
    python scripts/redeploy.py [--env-file PATH]

Exit status is 0 on success and 1 on failure; logs and errors go to stderr.
"""

import argparse
import asyncio
import sys
from typing import Sequence

import structlog

from src.config import Settings, settings as default_settings
from src.core.exceptions import ProvisioningError, RetailAssistantError
from src.core.logging import configure_logging
from src.provisioning.orchestrator import ProvisioningOrchestrator, ProvisioningResult

logger = structlog.get_logger(__name__)


def build_parser(prog: str, analytics: bool) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog)
    if analytics:
        parser.add_argument(
            "--with-analytics",
            action="store_true",
            help="Also provision the call-analytics service and its scoring operator",
        )
    parser.add_argument(
        "--env-file",
        default=None,
        help="File to write generated identifiers into (default: ENV_FILE_PATH or ./.env)",
    )
    return parser


async def _run(orchestrator: ProvisioningOrchestrator, full: bool, with_analytics: bool) -> ProvisioningResult:
    try:
        if full:
            return await orchestrator.deploy(with_analytics=with_analytics)
        return await orchestrator.redeploy()
    finally:
        await orchestrator.close()


def run(
    argv: Sequence[str] | None,
    full: bool,
    config: Settings | None = None,
    orchestrator: ProvisioningOrchestrator | None = None,
) -> int:
    config = config or default_settings
    prog = "deploy" if full else "redeploy"
    args = build_parser(prog, analytics=full).parse_args(argv)
    configure_logging(config.log_format, config.log_level, stream=sys.stderr)

    try:
        orchestrator = orchestrator or ProvisioningOrchestrator(config, env_file=args.env_file)
        result = asyncio.run(_run(orchestrator, full, getattr(args, "with_analytics", False)))
    except ProvisioningError as exc:
        logger.error("provisioning_failed", step=exc.step, error=exc.message)
        print(f"{prog} failed at step {exc.step or 'unknown'}: {exc.message}", file=sys.stderr)
        return 1
    except (RetailAssistantError, OSError) as exc:
        logger.error("provisioning_failed", error=str(exc))
        print(f"{prog} failed: {exc}", file=sys.stderr)
        return 1

    print(f"Backend URL: {result.base_url}")
    if result.assistant_id:
        print(f"Assistant ID: {result.assistant_id}")
        print(f"Tools attached: {len(result.tool_ids)}")
        print(f"Knowledge sources attached: {len(result.knowledge_ids)}")
    if result.intelligence_service_sid:
        print(f"Intelligence service SID: {result.intelligence_service_sid}")
    return 0


def deploy_main(argv: Sequence[str] | None = None) -> int:
    return run(argv, full=True)


def redeploy_main(argv: Sequence[str] | None = None) -> int:
    return run(argv, full=False)
