"""Rich rendering of a live conversation."""

from typing import Dict, List

from rich.console import Group, RenderableType
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from chatbox.conversation.models import ConversationItem, ThinkingState
from chatbox.conversation.thinking import ThinkingClock


class ConversationView:
    """Renders the card's items; re-read on every Live refresh."""

    def __init__(self, card, show_reasoning: bool = False):
        self.card = card
        self.show_reasoning = show_reasoning
        self._clocks: Dict[int, ThinkingClock] = {}
        self._seen: Dict[int, ThinkingState] = {}

    def _clock_for(self, index: int, thinking: ThinkingState) -> ThinkingClock:
        clock = self._clocks.get(index)
        if clock is None:
            clock = self._clocks[index] = ThinkingClock()
        # Re-anchor only when an authoritative update arrived
        if self._seen.get(index) != thinking:
            clock.sync(thinking)
            self._seen[index] = thinking
        return clock

    def _render_answer(self, index: int, item: ConversationItem) -> List[RenderableType]:
        parts: List[RenderableType] = []
        thinking = item.thinking
        if thinking.has_reasoning:
            clock = self._clock_for(index, thinking)
            body: RenderableType = Text(clock.label(), style="dim")
            if self.show_reasoning or thinking.is_thinking:
                body = Group(body, Text(thinking.reasoning_content, style="italic dim"))
            parts.append(Panel(body, title="💡", border_style="green", expand=False))

        if thinking.is_thinking:
            return parts
        if thinking.actual_content.strip():
            parts.append(Markdown(thinking.actual_content))
        elif item.is_loading:
            if not thinking.has_reasoning:
                parts.append(Text("Waiting for response...", style="dim"))
        elif not thinking.has_reasoning and item.content.strip():
            parts.append(Markdown(item.content))
        return parts

    def render(self) -> RenderableType:
        parts: List[RenderableType] = []
        for index, item in enumerate(self.card.items):
            if item.kind == "question":
                parts.append(Text(f"You: {item.content}", style="bold cyan"))
            elif item.kind == "answer":
                parts.extend(self._render_answer(index, item))
            else:
                parts.append(Panel(item.content, title="Error", border_style="red"))
        return Group(*parts)

    def __rich__(self) -> RenderableType:
        return self.render()
