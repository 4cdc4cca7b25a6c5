# Heuristic that decides whether a model answer should be topped up with a
# fresh web search: the answer hedges about being out of date AND the
# question is about something time-sensitive.

from __future__ import annotations
import re

from .types import AutoSearchDecision
from .web_search import needs_current_information

HEDGING_PHRASES = (
    "i don't have current information",
    "i do not have current information",
    "i don't have real-time",
    "i do not have real-time",
    "i don't have access to real-time",
    "i can't browse",
    "i cannot browse",
    "as of my last update",
    "as of my last knowledge update",
    "my knowledge cutoff",
    "my training data",
    "my information may be outdated",
    "i'm not able to access current",
    "i am not able to access current",
    "check a reliable news source",
)

# curly apostrophes show up in provider output
_APOSTROPHES = re.compile(r"[‘’]")


def is_hedging(answer: str) -> bool:
    text = _APOSTROPHES.sub("'", (answer or "").lower())
    return any(p in text for p in HEDGING_PHRASES)


def should_auto_search(question: str, answer: str) -> AutoSearchDecision:
    if is_hedging(answer) and needs_current_information(question):
        return AutoSearchDecision(trigger=True, query=(question or "").strip())
    return AutoSearchDecision(trigger=False)
