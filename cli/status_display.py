"""Status display functionality for CLI"""

from typing import Any, Dict

from rich.table import Table


def show_token_status(status: Dict[str, Any], console) -> None:
    """
    Display token status

    Args:
        status: Dictionary from TokenManager.status()
        console: Rich console for output
    """
    table = Table(title="Token Status")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Storage", status["backend"])
    table.add_row("Has Tokens", "Yes" if status["has_tokens"] else "No")

    if status["has_tokens"]:
        table.add_row("Account", status["identity"])
        table.add_row("Expires At", status["expires_at"])
        table.add_row("Time Until Expiry", status["time_until_expiry"])
        table.add_row("Needs Refresh", "Yes" if status["needs_refresh"] else "No")
        table.add_row("Refresh Token", "Yes" if status["has_refresh_token"] else "No")

    console.print(table)
