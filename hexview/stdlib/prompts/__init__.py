"""System prompts for command sources that generate React projects."""

from hexview.stdlib.prompts.generation import GENERATION_PROMPT, build_turn_message

__all__ = ["GENERATION_PROMPT", "build_turn_message"]
