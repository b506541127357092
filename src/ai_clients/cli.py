"""Command line interface for ai-clients.

Usage:
    ai-clients providers                         # List providers and availability
    ai-clients chat --provider claude "Hello"    # Send one message
    ai-clients chat --provider openai --stream "Tell me a story"
    ai-clients chat --provider mock "Offline smoke test"
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence

from rich.console import Console
from rich.table import Table

from .core.config import LogFormat, LogLevel, Settings, get_settings
from .core.exceptions import AIClientError
from .infrastructure.llm.clients.base_client import ChatClient
from .infrastructure.llm.clients.mock_client import MockClient, MockConfig
from .infrastructure.llm.factory import ChatClientFactory
from .infrastructure.llm.resilience.resilient_client import ResilienceConfig, ResilientClient
from .infrastructure.logging import LoggerConfig, setup_logging

MOCK_PROVIDER = "mock"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ai-clients", description="Multi-provider LLM chat client")
    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        default=None,
        help="Override LOG_LEVEL",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("providers", help="List supported providers and whether they are configured")

    chat = subparsers.add_parser("chat", help="Send one message through a resilient client")
    chat.add_argument("prompt", help="User message")
    chat.add_argument(
        "--provider",
        default="openai",
        help=f"Provider name: {', '.join(ChatClientFactory.get_supported_providers())} or {MOCK_PROVIDER}",
    )
    chat.add_argument("--model", default=None, help="Model or Azure deployment name")
    chat.add_argument("--system", default=None, help="System prompt")
    chat.add_argument("--stream", action="store_true", help="Stream the answer as it arrives")
    chat.add_argument("--retries", type=int, default=None, help="Override RESILIENCE_MAX_RETRIES")
    chat.add_argument("--json-metrics", action="store_true", help="Print resilience metrics as JSON")
    return parser


def _list_providers(console: Console, settings: Settings) -> int:
    table = Table(title="Providers")
    table.add_column("Provider")
    table.add_column("Configured")
    for name in ChatClientFactory.get_supported_providers():
        available = ChatClientFactory.is_provider_available(name, settings)
        table.add_row(name, "yes" if available else "no")
    console.print(table)
    return 0


def _build_client(args: argparse.Namespace, settings: Settings) -> ResilientClient:
    overrides = {} if args.retries is None else {"max_retries": args.retries}
    if args.provider.lower() == MOCK_PROVIDER:
        inner: ChatClient = MockClient(MockConfig(model=args.model) if args.model else None)
        config = ResilienceConfig.model_validate({**settings.resilience_config, **overrides})
        return ResilientClient(inner, config, name=MOCK_PROVIDER)
    return ChatClientFactory.create_resilient_client(args.provider, args.model, settings, config=overrides or None)


async def _chat(args: argparse.Namespace, settings: Settings, console: Console) -> int:
    client = _build_client(args, settings)
    options = {"system": args.system} if args.system else None

    if args.stream:
        await client.chat_stream(args.prompt, lambda chunk: console.print(chunk, end="", markup=False, highlight=False), options)
        console.print()
    else:
        response = await client.chat(args.prompt, options)
        console.print(client.get_text_content(response), markup=False, highlight=False)
        cost = client.calculate_cost(response)
        console.print(f"[dim]tokens: {cost.total_tokens}  cost: ${cost.total_cost:.6f}[/dim]")

    metrics = client.get_metrics()
    if args.json_metrics:
        console.print_json(json.dumps(metrics))
    else:
        console.print(
            f"[dim]requests: {metrics['total_requests']}  retries: {metrics['retried_requests']}  "
            f"circuit: {metrics['circuit_state']}[/dim]"
        )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the ``ai-clients`` console script."""
    args = build_parser().parse_args(argv)
    settings = get_settings()

    logger_config = LoggerConfig.from_settings(settings)
    logger_config.format = LogFormat.CONSOLE
    if args.log_level:
        logger_config.level = LogLevel(args.log_level)
    setup_logging(logger_config)

    console = Console()
    error_console = Console(stderr=True)
    try:
        if args.command == "providers":
            return _list_providers(console, settings)
        return asyncio.run(_chat(args, settings, console))
    except AIClientError as e:
        error_console.print(f"[red]Error:[/red] {e}", highlight=False)
        return 1


if __name__ == "__main__":
    sys.exit(main())
