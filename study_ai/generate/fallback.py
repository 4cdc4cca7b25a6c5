# Canned answers used only when every live provider failed.
# Selection is a deterministic keyword match on the question.

import re

from study_ai.search.web_search import needs_current_information

MATH_RE = re.compile(
    r"(\\int|\\sum|\\frac|∫|√|\bderivative|\bdifferentiat|\bintegral|\bintegrate\b|\bsolve\b|\bequation"
    r"|\bfactor\b|\bquadratic\b|\bpolynomial\b|\bsimplify\b|\bmatrix\b|\blimit\b|\bcalculus\b"
    r"|\balgebra\b|\bsin\b|\bcos\b|\btan\b|\btheta\b)",
    re.IGNORECASE,
)

MATH_RESPONSE = (
    "I can't reach my math engine right now, but here is how to approach it: write down what is "
    "given and what you need to find, pick the rule that connects them (for a derivative, the power, "
    "product, quotient or chain rule; for an integral, substitution or integration by parts), and "
    "work one step at a time, checking each line. Send the problem again in a moment and I'll "
    "walk through it with you."
)

CURRENT_INFO_RESPONSE = (
    "I can't look up live information at the moment, so I don't want to guess about something that "
    "changes often. Please try again shortly, or check a reliable, up-to-date source in the meantime."
)

DEFAULT_RESPONSE = (
    "Hi! I'm your study assistant. I'm having trouble reaching my AI services right now, "
    "but I can help you with explanations, practice problems and study plans as soon as they're "
    "back. Please try your question again in a moment."
)


def canned_response(question: str) -> str:
    q = question or ""
    if MATH_RE.search(q):
        return MATH_RESPONSE
    if needs_current_information(q):
        return CURRENT_INFO_RESPONSE
    return DEFAULT_RESPONSE
