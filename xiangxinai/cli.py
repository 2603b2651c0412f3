"""Command line access to the guardrails service.

Usage:
    xiangxinai check-prompt "I want to learn programming" --user-id user-123
    xiangxinai check-response "User question" "Assistant answer"
    xiangxinai health
    xiangxinai models

Reads XIANGXINAI_API_KEY (and the other XIANGXINAI_* settings) from the
environment or a .env file.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from xiangxinai.client import XiangxinAIClient
from xiangxinai.common.config import ConfigError, load_client_config
from xiangxinai.common.env import load_env
from xiangxinai.common.logging import configure_logging, get_logger
from xiangxinai.exceptions import XiangxinAIError

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_API_ERROR = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="xiangxinai", description="Xiangxin AI guardrails checks")
    parser.add_argument("--base-url", help="API base URL (default: XIANGXINAI_BASE_URL or the public endpoint)")
    parser.add_argument("--timeout", type=float, help="Per-attempt timeout in seconds")
    parser.add_argument("--max-retries", type=int, help="Maximum retries for transient failures")
    parser.add_argument("--log-level", default="WARNING", help="Log level for JSON logs on stderr")

    commands = parser.add_subparsers(dest="command", required=True)

    prompt = commands.add_parser("check-prompt", help="Check a single user prompt")
    prompt.add_argument("content")
    prompt.add_argument("--user-id")

    response = commands.add_parser("check-response", help="Check a model output in the context of its prompt")
    response.add_argument("prompt")
    response.add_argument("response")
    response.add_argument("--user-id")

    commands.add_parser("health", help="Show service health")
    commands.add_parser("models", help="List available guardrail models")
    return parser


def _run(client: XiangxinAIClient, args: argparse.Namespace) -> Any:
    if args.command == "check-prompt":
        return client.check_prompt(args.content, user_id=args.user_id).model_dump(mode="json")
    if args.command == "check-response":
        return client.check_response_ctx(args.prompt, args.response, user_id=args.user_id).model_dump(mode="json")
    if args.command == "health":
        return client.health_check()
    return client.get_models()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(getattr(logging, str(args.log_level).upper(), logging.WARNING))
    load_env()
    logger.debug("cli_command", extra={"event": "cli_command", "command": args.command})

    try:
        config = load_client_config(base_url=args.base_url, timeout=args.timeout, max_retries=args.max_retries)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    with XiangxinAIClient(config) as client:
        try:
            result = _run(client, args)
        except XiangxinAIError as exc:
            print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
            return EXIT_API_ERROR

    print(json.dumps(result, ensure_ascii=False, indent=2))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
