"""Conversational front end helpers: intent guesses and replies."""

from .intents import IntentGuess, is_affirmative, parse_intent
from .replies import NEXT_REQUEST, WELCOME, question_for, status_reply

__all__ = [
    "IntentGuess",
    "NEXT_REQUEST",
    "WELCOME",
    "is_affirmative",
    "parse_intent",
    "question_for",
    "status_reply",
]
