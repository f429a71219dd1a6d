"""
Command line entry point: resolve one reachable node URL and print it.
"""
import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .errors import NodeResolverError
from .resolver import NodeResolver
from .settings import ResolverSettings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="etcd-node-resolver",
        description="Resolve a reachable Fleet node URL from an etcd discovery token.",
    )
    parser.add_argument(
        "token",
        nargs="?",
        help="etcd discovery token (default: $ETCD_TOKEN)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="overall resolution timeout in seconds (default: $NODE_RESOLVE_TIMEOUT_SECONDS)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="enable debug logging",
    )
    return parser


def print_stats(console: Console, resolver: NodeResolver) -> None:
    stats = resolver.get_stats()
    table = Table(title="Resolver")
    table.add_column("metric", style="cyan")
    table.add_column("value")
    table.add_row("refresh attempts", str(stats.refresh_attempts))
    table.add_row("probes", str(stats.probes))
    table.add_row("valid nodes", str(stats.valid_nodes))
    table.add_row("invalid nodes", str(stats.invalid_nodes))
    table.add_row("unknown nodes", str(stats.unknown_nodes))
    console.print(table)


async def run(settings: ResolverSettings, timeout: Optional[float], console: Console) -> int:
    resolver = NodeResolver.from_settings(settings)
    try:
        url = await resolver.get_node_url(timeout)
    except NodeResolverError as e:
        console.print(Panel(str(e), title=f"[bold red]{e.code}[/bold red]"))
        print_stats(console, resolver)
        return 1
    finally:
        await resolver.destroy()

    console.print(Panel(url, title="[bold green]Node URL[/bold green]"))
    print_stats(console, resolver)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    load_dotenv()

    settings = ResolverSettings()
    if args.token:
        settings = settings.model_copy(update={"ETCD_TOKEN": args.token})

    console = Console()
    if not settings.ETCD_TOKEN.strip():
        console.print("[bold red]No etcd token given (argument or $ETCD_TOKEN)[/bold red]")
        return 2

    return asyncio.run(run(settings, args.timeout, console))


if __name__ == "__main__":
    sys.exit(main())
