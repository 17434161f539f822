"""
Terminal rendering of generation state.

Subscribes to a GenerationRegistry and prints one line per status change.
Each surfaced error is shown as a single readable sentence, never a stack
trace or raw JSON.
"""

import sys
from typing import Callable, Optional, TextIO

from services.video_generation.formatting import format_cost, format_duration
from services.video_generation.registry import Generation, GenerationStatus, RegistryState


# ANSI color codes
class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"


def colored(text: str, color: str) -> str:
    """Apply color to text."""
    return f"{color}{text}{Colors.RESET}"


STATUS_STYLE = {
    GenerationStatus.IDLE: ("•", Colors.DIM),
    GenerationStatus.QUEUED: ("⏳", Colors.BLUE),
    GenerationStatus.PROCESSING: ("🎬", Colors.YELLOW),
    GenerationStatus.COMPLETED: ("✅", Colors.GREEN),
    GenerationStatus.ERROR: ("❌", Colors.RED),
    GenerationStatus.CANCELED: ("⏹️", Colors.DIM),
    GenerationStatus.STALLED: ("⚠️", Colors.YELLOW + Colors.BOLD),
}


def format_generation(generation: Generation) -> str:
    """Format one generation as a display line."""
    icon, color = STATUS_STYLE.get(generation.status, ("•", Colors.WHITE))
    short_id = generation.id[:8]
    line = (
        f"{icon} {colored(short_id, Colors.DIM)} "
        f"{generation.model_id} {colored(generation.status.value.upper(), color)}"
    )

    if generation.status == GenerationStatus.COMPLETED:
        line += f" {format_duration(generation.elapsed_seconds)} {format_cost(generation.cost)}"
        if generation.video_url:
            line += f"\n    └─ {colored(generation.video_url, Colors.CYAN)}"
    elif generation.error:
        line += f"\n    └─ {colored(generation.error, color)}"

    return line


class RegistryPrinter:
    """
    Prints a line whenever a generation's status changes.

    Usage:
        printer = RegistryPrinter()
        unsubscribe = registry.subscribe(printer)
    """

    def __init__(self, stream: Optional[TextIO] = None, formatter: Callable[[Generation], str] = format_generation):
        self.stream = stream or sys.stdout
        self.formatter = formatter
        self._last_seen: dict[str, GenerationStatus] = {}

    def __call__(self, state: RegistryState) -> None:
        for generation in state.items:
            if self._last_seen.get(generation.id) == generation.status:
                continue
            self._last_seen[generation.id] = generation.status
            print(self.formatter(generation), file=self.stream)

    def summary(self, state: RegistryState) -> str:
        return (
            f"Active: {state.active_count} | Total: {len(state.items)} | "
            f"Session cost: {format_cost(state.session_cost)}"
        )
