import click
from rich.console import Console
from rich.table import Table

from chatbox.core.app import ChatboxApp
from chatbox.utils.errors import UsageError

console = Console()


@click.command()
@click.pass_context
def providers(ctx):
    """List all configured providers"""
    app: ChatboxApp = ctx.obj["app"]
    cfg = app.config_manager
    enabled = app.provider_manager.list_providers()

    table = Table(title="Providers", show_header=True)
    table.add_column("Provider", style="cyan")
    table.add_column("Type")
    table.add_column("Enabled", justify="center")
    table.add_column("Default Model", style="green")

    for provider_name, p_config in cfg.config.providers.items():
        is_enabled = provider_name in enabled
        status = "✓" if is_enabled else "✗"
        status_color = "green" if is_enabled else "red"
        table.add_row(
            provider_name,
            p_config.type,
            f"[{status_color}]{status}[/{status_color}]",
            p_config.default_model,
        )

    console.print(table)


@click.command()
@click.pass_context
def config(ctx):
    """Show current configuration"""
    cfg = ctx.obj["app"].config_manager

    console.print("\n[bold cyan]Configuration[/bold cyan]")
    console.print(f"  Config file: [yellow]{cfg.config_path}[/yellow]")
    console.print("\n[bold cyan]Defaults[/bold cyan]")
    console.print(f"  Provider: [green]{cfg.get_default_provider()}[/green]")
    console.print(f"  Model: [green]{cfg.get_default_model()}[/green]")
    console.print(f"  Temperature: [green]{cfg.get('defaults.temperature')}[/green]")
    console.print(f"  Max tokens: [green]{cfg.get('defaults.max_tokens')}[/green]")
    console.print(
        f"  Context records: [green]{cfg.get('defaults.max_conversation_context_length')}[/green]"
    )
    console.print("\n[bold cyan]Streaming[/bold cyan]")
    console.print(f"  Transport: [green]{cfg.get('transport.mode')}[/green]")
    console.print(f"  Reasoning throttle: [green]{cfg.get('stream.reasoning_throttle_ms')} ms[/green]")
    console.print(
        f"  Retry cooldown: [green]{cfg.get('conversation.retry_cooldown_seconds')} s[/green]"
    )
    console.print()


@click.command()
@click.argument("selection")
@click.pass_context
def default(ctx, selection):
    """Set the default provider, optionally with a model (provider/model)"""
    cfg = ctx.obj["app"].config_manager
    provider, _, model = selection.partition("/")
    if provider not in cfg.config.providers:
        raise UsageError(
            f"Provider '{provider}' is not configured",
            hint="Run 'chatbox providers' to see configured providers",
        )

    cfg.config.defaults.provider = provider
    cfg.config.defaults.model = model or cfg.get_default_model(provider)
    cfg.save()
    console.print(f"[green]✓[/green] Default: {provider}/{cfg.config.defaults.model}")


@click.command()
def version():
    """Show version information"""
    console.print("[cyan]chatbox[/cyan] v0.1.0")
    console.print("Streaming multi-provider chat with reasoning")


# Export individual commands for top-level CLI registration
providers_command = providers
config_command = config
default_command = default
version_command = version
