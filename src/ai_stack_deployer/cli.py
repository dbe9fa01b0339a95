"""Command-line interface for the AI stack deployer."""

from __future__ import annotations

import argparse
from dataclasses import replace
from typing import List, Optional, Sequence

from .config import AppConfig, load_config
from .errors import DeployerError
from .orchestrator import Decision, ServiceOutcome
from .utils.logging import get_logger, print_error
from .workflow import DeploymentWorkflow, ServiceStatus

logger = get_logger(__name__)

ON_ENCRYPTED_CHOICES = ["ask"] + [d.value for d in Decision]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ai-stack-deployer",
        description="Configure, encrypt and deploy the on-premises AI services.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file overriding defaults.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    deploy_parser = subparsers.add_parser(
        "deploy", help="Run the configuration and deployment pipeline"
    )
    deploy_parser.add_argument(
        "--python-version",
        default=None,
        help="Python version running the encryption tool (e.g. 3.9)",
    )
    deploy_parser.add_argument(
        "--service", "-s", action="append", dest="services", default=None,
        help="Limit the run to this service (repeatable)",
    )
    deploy_parser.add_argument(
        "--on-encrypted", choices=ON_ENCRYPTED_CHOICES, default="ask",
        help="What to do with already encrypted files (default: ask)",
    )

    startup_parser = subparsers.add_parser(
        "startup", help="Start the stack after a reboot (running containers are kept)"
    )
    startup_parser.add_argument(
        "--service", "-s", action="append", dest="services", default=None,
        help="Limit the run to this service (repeatable)",
    )

    subparsers.add_parser("status", help="Show configuration and container state per service")

    prereq_parser = subparsers.add_parser(
        "prerequisites", help="Install system packages and fetch missing files"
    )
    prereq_parser.add_argument(
        "--skip-packages", action="store_true",
        help="Only fetch files, do not touch system packages",
    )

    for name, help_text in (("encrypt", "Encrypt one service's .env"), ("decrypt", "Decrypt one service's .env")):
        crypto_parser = subparsers.add_parser(name, help=help_text)
        crypto_parser.add_argument("--service", "-s", required=True, help="Service name")
        crypto_parser.add_argument(
            "--python-version", default=None,
            help="Python version running the encryption tool (e.g. 3.9)",
        )

    return parser


def _build_config(args: argparse.Namespace) -> AppConfig:
    config = load_config(args.config)
    python_version = getattr(args, "python_version", None)
    if python_version:
        config = replace(config, crypto=replace(config.crypto, python_version=python_version))
    return config


def print_outcomes(outcomes: Sequence[ServiceOutcome]) -> None:
    print(f"\n{'Service':<16} {'Initial state':<26} {'Actions':<36} {'Result'}")
    print("-" * 90)
    for outcome in outcomes:
        actions = ", ".join(a.value for a in outcome.actions) or "-"
        if outcome.deployed:
            result = f"✅ running ({outcome.target.container_id[:12]})"
        else:
            final = outcome.final_state.value if outcome.final_state else "unknown"
            result = f"⏸️  not deployed ({final})"
        print(f"{outcome.service:<16} {outcome.initial_state.value:<26} {actions:<36} {result}")
    print()


def print_statuses(statuses: Sequence[ServiceStatus]) -> None:
    print(f"\n{'Service':<16} {'Configuration':<26} {'Container':<12} {'File'}")
    print("-" * 90)
    for status in statuses:
        state = status.state.value if status.state else "missing"
        print(f"{status.name:<16} {state:<26} {status.container:<12} {status.env_file}")
    print()


def dispatch(args: argparse.Namespace, workflow: DeploymentWorkflow) -> int:
    if args.command == "deploy":
        decision = None if args.on_encrypted == "ask" else Decision(args.on_encrypted)
        outcomes = workflow.run_deploy(args.services, decision=decision)
        print_outcomes(outcomes)
        return 0

    if args.command == "startup":
        targets = workflow.run_startup(args.services)
        for target in targets:
            state = "kept running" if target.kept else f"started ({target.status})"
            print(f"{target.service:<16} {state}")
        return 0

    if args.command == "status":
        print_statuses(workflow.status())
        return 0

    if args.command == "prerequisites":
        fetched = workflow.run_prerequisites(install_packages=not args.skip_packages)
        for path in fetched:
            print(f"⬇️  {path}")
        return 0

    if args.command == "encrypt":
        workflow.encrypt(args.service)
        return 0

    if args.command == "decrypt":
        workflow.decrypt(args.service)
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def run_cli(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        workflow = DeploymentWorkflow(_build_config(args))
        return dispatch(args, workflow)
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 0
    except DeployerError as exc:
        logger.debug("Command failed", exc_info=True)
        print_error(str(exc))
        return 1
