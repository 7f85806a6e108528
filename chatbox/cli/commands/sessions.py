import click
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from chatbox.core.app import ChatboxApp

console = Console()


@click.group(name="sessions", invoke_without_command=True)
@click.pass_context
def sessions_group(ctx):
    """Manage stored conversation sessions

    \b
    Commands:
      chatbox sessions              List all sessions
      chatbox sessions show <id>    Display conversation
      chatbox sessions delete <id>  Delete a session
    """
    if ctx.invoked_subcommand is None:
        ctx.invoke(sessions_list)


@sessions_group.command(name="list")
@click.option("--recent", "-r", type=int, help="Show N most recent sessions")
@click.pass_context
def sessions_list(ctx, recent: int):
    """List all sessions"""
    app: ChatboxApp = ctx.obj["app"]
    sessions = app.session_manager.list_sessions()

    if not sessions:
        console.print("[yellow]No sessions found[/yellow]")
        return

    if recent:
        sessions = sessions[:recent]

    table = Table(show_header=True)
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Model")
    table.add_column("Records", justify="right")
    table.add_column("Updated", style="dim")

    for s in sessions:
        table.add_row(
            s.session_id,
            s.session_name,
            f"{s.api_mode or '-'}/{s.model_name}",
            str(len(s.conversation_records)),
            s.updated_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@sessions_group.command(name="show")
@click.argument("session_id")
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(["pretty", "json"]),
    default="pretty",
    help="Output format",
)
@click.pass_context
def sessions_show(ctx, session_id: str, fmt: str):
    """Display session conversation"""
    app: ChatboxApp = ctx.obj["app"]
    session = app.session_manager.load_session(session_id)

    if not session:
        console.print(f"[red]Session '{session_id}' not found[/red]")
        return

    if fmt == "json":
        print(session.model_dump_json(by_alias=True, exclude_none=True, indent=2))
        return

    console.print(f"\n[bold]Session: {session.session_name}[/bold]")
    console.print(
        f"[dim]Model: {session.api_mode or '-'}/{session.model_name} | "
        f"Records: {len(session.conversation_records)}[/dim]\n"
    )

    for record in session.conversation_records:
        console.print("[bold cyan]You:[/bold cyan]")
        console.print(record.question)
        if record.thinking_data is not None:
            seconds = record.thinking_data.thinking_time / 1000
            console.print(f"[dim]💡 Thought for {seconds:.1f}s[/dim]")
        if record.is_error:
            console.print("[bold red]Error:[/bold red]")
        else:
            console.print("[bold green]Assistant:[/bold green]")
        console.print(Markdown(record.answer))
        console.print()


@sessions_group.command(name="delete")
@click.argument("session_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def sessions_delete(ctx, session_id: str, yes: bool):
    """Delete a session"""
    app: ChatboxApp = ctx.obj["app"]
    if not yes and not click.confirm(f"Delete session '{session_id}'?"):
        return

    if app.session_manager.delete_session(session_id):
        console.print(f"[green]Deleted session '{session_id}'[/green]")
    else:
        console.print(f"[red]Session '{session_id}' not found[/red]")
