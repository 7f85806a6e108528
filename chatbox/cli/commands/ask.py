import asyncio
from typing import Optional

import click
from rich.console import Console
from rich.live import Live

from chatbox.cli.render import ConversationView
from chatbox.core.app import ChatboxApp
from chatbox.core.conversation import ConversationCard

console = Console()

POLL_SECONDS = 0.05


async def wait_until_ready(card: ConversationCard) -> None:
    while not card.is_ready:
        await asyncio.sleep(POLL_SECONDS)


async def _run(card: ConversationCard, action, show_reasoning: bool) -> None:
    view = ConversationView(card, show_reasoning=show_reasoning)
    try:
        with Live(view, console=console, refresh_per_second=10, transient=False):
            await action()
            await wait_until_ready(card)
    finally:
        await card.transport.close()


@click.command(name="ask")
@click.argument("question")
@click.option("-m", "--model", help="Model to use (e.g., gpt-4o, deepseek-reasoner)")
@click.option("-p", "--provider", help="Provider to use (openai, anthropic, ollama, ...)")
@click.option("--session", "session_id", default=None, help="Continue a stored session")
@click.option(
    "--transport",
    "transport_mode",
    type=click.Choice(["port", "local"]),
    default=None,
    help="Transport strategy (defaults to config)",
)
@click.option("--show-reasoning", is_flag=True, default=False, help="Expand the thinking block")
@click.pass_context
def ask_command(
    ctx,
    question: str,
    model: Optional[str],
    provider: Optional[str],
    session_id: Optional[str],
    transport_mode: Optional[str],
    show_reasoning: bool,
):
    """Ask a question and stream the answer

    \b
    Examples:
      chatbox ask "what is a monad?"
      chatbox ask -p deepseek "prove it" --show-reasoning
      chatbox ask --session <id> "and then?"
    """
    app: ChatboxApp = ctx.obj["app"]

    if session_id:
        session = app.session_manager.require_session(session_id)
        if model or provider:
            session = session.model_copy(
                update={
                    "model_name": model or session.model_name,
                    "api_mode": provider or session.api_mode,
                }
            )
        card = app.create_card(session, transport_mode=transport_mode)

        async def action():
            await card.submit(question)

    else:
        session = app.new_session(provider, model)
        card = app.create_card(session, question=question, transport_mode=transport_mode)
        action = card.start

    asyncio.run(_run(card, action, show_reasoning))
    console.print(f"[dim]Session: {card.session.session_id}[/dim]")


@click.command(name="retry")
@click.argument("session_id")
@click.option(
    "--transport",
    "transport_mode",
    type=click.Choice(["port", "local"]),
    default=None,
    help="Transport strategy (defaults to config)",
)
@click.option("--show-reasoning", is_flag=True, default=False, help="Expand the thinking block")
@click.pass_context
def retry_command(ctx, session_id: str, transport_mode: Optional[str], show_reasoning: bool):
    """Regenerate the last answer of a stored session"""
    app: ChatboxApp = ctx.obj["app"]
    session = app.session_manager.require_session(session_id)
    card = app.create_card(session, transport_mode=transport_mode)
    asyncio.run(_run(card, card.retry, show_reasoning))
