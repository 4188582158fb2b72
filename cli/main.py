"""CLI entry point and argument parsing"""

import argparse
import json
import sys

from rich.console import Console

from cli.debug_setup import setup_logging
from cli.status_display import show_token_status
from config.credentials import ConfigError, load_client_config
from gcloud_oauth import AuthError, TokenManager


# stdout is reserved for the token JSON
console = Console(stderr=True)


def _print_url_only(url: str) -> bool:
    """Browser launcher for --no-browser: never opens anything"""
    return False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gcloud-identity-token",
        description="Print a Google OAuth access token and ID token as JSON, signing in when needed",
    )
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--client-file",
        default=None,
        help="OAuth client credentials JSON (default: GCLOUD_OAUTH_CLIENT_FILE or gcloud application default credentials)",
    )
    parser.add_argument(
        "--identity",
        "-i",
        default=None,
        help="Email of the cached account to use (default: last signed-in account)",
    )
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Print the sign-in URL instead of opening a browser",
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--status", action="store_true", help="Show cached token status and exit")
    group.add_argument("--logout", action="store_true", help="Delete cached tokens for the account and exit")
    return parser


def main(argv=None):
    """Entry point for the CLI"""
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug)

    try:
        client_config = load_client_config(args.client_file)
        manager = TokenManager(
            client_config,
            open_browser=_print_url_only if args.no_browser else None,
            console=console,
        )

        if args.status:
            show_token_status(manager.status(args.identity), console)
            return

        if args.logout:
            if manager.logout(args.identity):
                console.print("[green]Cached tokens removed[/green]")
            else:
                console.print("[yellow]No cached tokens found[/yellow]")
            return

        bundle = manager.get_token(args.identity)
        print(json.dumps(bundle.to_output(), indent=2))

    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)
    except AuthError as e:
        console.print(f"[red]Authentication failed:[/red] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
