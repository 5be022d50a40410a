"""User interaction: line prompts, prompt adapters and acquire policies."""

from .base import LinePrompt
from .console import ConsolePrompt
from .adapters import ButtonAdapter, PassphraseAdapter, PinAdapter, PIN_INSTRUCTIONS
from .acquire import AutoApprovePolicy, ConfirmPolicy, DenyPolicy

__all__ = [
    "LinePrompt",
    "ConsolePrompt",
    "PinAdapter",
    "PassphraseAdapter",
    "ButtonAdapter",
    "PIN_INSTRUCTIONS",
    "AutoApprovePolicy",
    "ConfirmPolicy",
    "DenyPolicy",
]
