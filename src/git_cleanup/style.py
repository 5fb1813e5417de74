"""Console styles."""

from types import MappingProxyType

from rich.markup import escape

STYLES = MappingProxyType(
    {
        "reset": ("", ""),
        "red": ("[red]", "[/red]"),
        "green": ("[green]", "[/green]"),
        "yellow": ("[yellow]", "[/yellow]"),
        "blue": ("[blue]", "[/blue]"),
        "magenta": ("[magenta]", "[/magenta]"),
        "cyan": ("[cyan]", "[/cyan]"),
        "dim": ("[dim]", "[/dim]"),
        "bold": ("[bold]", "[/bold]"),
    }
)


def style(name: str) -> tuple[str, str]:
    """Get the markup prefix and suffix for a style name.

    Raises:
        KeyError: If the style is unknown
    """
    return STYLES[name]


def styled(name: str, text: str) -> str:
    """Wrap text in the markup for a style, escaping any markup it contains."""
    prefix, suffix = style(name)
    return f"{prefix}{escape(text)}{suffix}"
