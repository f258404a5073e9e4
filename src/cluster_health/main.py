"""CLI entrypoint for cluster-health."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from cluster_health import __version__
from cluster_health.config import Settings, get_settings
from cluster_health.report import print_result, run_report


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Cluster health: analyze a Kubernetes cluster and write a prioritized health report.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--kubeconfig",
        type=Path,
        default=None,
        help="Path to kubeconfig (default: KUBECONFIG env or ~/.kube/config)",
    )
    parser.add_argument(
        "--context",
        default=None,
        help="Kubernetes context to use",
    )
    parser.add_argument(
        "--ai-provider",
        choices=["openai", "openai_compatible", "azure"],
        default=None,
        help="AI provider (default: from env or 'openai')",
    )
    parser.add_argument(
        "--ai-endpoint",
        default=None,
        help="Endpoint URL for Azure OpenAI or an OpenAI-compatible API",
    )
    parser.add_argument(
        "--ai-model",
        default=None,
        help="AI model to use (gpt-4o, gpt-4o-mini, gpt-4-turbo, etc.)",
    )
    parser.add_argument(
        "--no-ai",
        action="store_true",
        help="Skip AI insights and resource suggestions",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory in which the report folder is created",
    )
    parser.add_argument(
        "--workload-pattern",
        default=None,
        help="Pod name substring of the critical workload to check (default: 'rabbit')",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser.parse_args(argv)


def _apply_args(settings: Settings, args: argparse.Namespace) -> Settings:
    """Overlay command-line flags on settings."""
    if args.kubeconfig:
        settings.kubeconfig = args.kubeconfig
    if args.context:
        settings.context = args.context
    if args.ai_provider:
        settings.llm_provider = args.ai_provider
    if args.ai_endpoint:
        if settings.llm_provider == "azure":
            settings.azure_endpoint = args.ai_endpoint
        else:
            settings.openai_base_url = args.ai_endpoint
    if args.ai_model:
        settings.model = args.ai_model
    if args.no_ai:
        settings.ai_enabled = False
    if args.output_dir:
        settings.output_dir = args.output_dir
    if args.workload_pattern:
        settings.workload_pattern = args.workload_pattern
    return settings


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for cluster-health CLI."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    logger = logging.getLogger("cluster_health")
    if not args.verbose:
        logger.setLevel(logging.WARNING)

    try:
        settings = _apply_args(get_settings(), args)
        result = run_report(settings=settings)
        print_result(result, Console())
        return 0
    except Exception as e:
        logging.exception("Cluster analysis failed")
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
