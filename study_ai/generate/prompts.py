# Prompt building for every provider. One builder, parameterised by what the
# provider can take (system role, inline image, history as separate turns).

from __future__ import annotations
from typing import List, Optional

from .types import Enrichment, GenerationRequest, LearningProfile, Message, PromptBundle, ProviderCapabilities

BASE_INSTRUCTIONS = """\
You are a patient study assistant helping a student understand their coursework.
Answer the current question directly, then add explanation where it helps.
For math, show the steps and put the final answer in \\boxed{...}.
Use the conversation so far to resolve references like "that" or "it".
If web content or search results are included, ground your answer in them and say when they
do not contain what the student asked for.
"""

THINKING_INSTRUCTIONS = """\
Think the problem through privately before answering.
Do not show your reasoning process or planning language; give only the final, clear answer.
"""

IN_DEPTH_INSTRUCTIONS = """\
Give an in-depth explanation of the topic:
1. Core concept and definitions
2. Step-by-step breakdown
3. Worked examples
4. Common mistakes
5. Practice suggestions and related topics
"""

RESPONSE_STYLES = {
    "concise": "Keep answers short and direct: two or three sentences for simple questions.",
    "detailed": "Give thorough, well-structured explanations with examples.",
    "conversational": "Use a friendly, conversational tone, like a tutor talking one-on-one.",
    "analytical": "Be analytical: break problems into parts and reason about each explicitly.",
}

LEARNING_STYLE_AUDIENCES = {
    "Auditory (discussions)": "auditory learners",
    "Visual (diagrams)": "visual learners",
    "Kinesthetic (hands-on)": "kinesthetic learners",
}


def learning_profile_block(profile: Optional[LearningProfile]) -> str:
    if profile is None:
        return ""
    parts = [
        (label, value)
        for label, value in (
            ("Major/Field", profile.major),
            ("Academic Level", profile.academic_level),
            ("Learning Style", profile.learning_style),
            ("Preferred Explanation Depth", profile.explanation_depth),
            ("Learning Goals", profile.goals),
        )
        if value
    ]
    if not parts:
        return ""
    audience = LEARNING_STYLE_AUDIENCES.get(profile.learning_style or "", "all learners")
    lines = "\n".join(f"{label}: {value}" for label, value in parts)
    return (
        f"Learning profile:\n{lines}\n"
        f"Match explanations to this profile and adapt the approach for {audience}."
    )


def build_system_prompt(request: GenerationRequest, in_depth: bool = False) -> str:
    p = request.personalization
    sections: List[str] = [BASE_INSTRUCTIONS.strip()]
    if p.user_name:
        sections.append(f"You are talking to {p.user_name}. Use their name naturally when it fits.")
    profile = learning_profile_block(p.learning_profile)
    if profile:
        sections.append(profile)
    if request.flags.thinking_mode:
        sections.append(THINKING_INSTRUCTIONS.strip())
    style = RESPONSE_STYLES.get((p.response_style or "").lower())
    if style:
        sections.append(style)
    if in_depth:
        sections.append(IN_DEPTH_INSTRUCTIONS.strip())
    return "\n\n".join(sections)


def history_block(history) -> str:
    if not history:
        return ""
    turns = "\n".join(f"{m.role}: {m.content}" for m in history)
    return f"Previous conversation:\n{turns}"


def file_block(request: GenerationRequest) -> str:
    fc = request.file_context
    if fc is None:
        return ""
    body = fc.file_content or "Document content not available."
    return (
        f"The student uploaded \"{fc.file_name}\" ({fc.file_type}). "
        f"Use it to answer and cite specifics from it when relevant.\n"
        f"Document content:\n{body}"
    )


def build_user_message(
    request: GenerationRequest,
    enrichment: Optional[Enrichment] = None,
    include_history: bool = True,
) -> str:
    """Attach context, history, document and enrichment blocks to the question."""
    blocks = [f"Context: {request.context or 'General'}"]
    if include_history:
        blocks.append(history_block(request.conversation_history))
    blocks.append(file_block(request))
    if enrichment is not None:
        blocks.append(enrichment.search_block)
        blocks.append(enrichment.scraped_block)
    blocks.append(f"Current question: {request.question}")
    return "\n\n".join(b for b in blocks if b)


def alternate_turns(history) -> tuple:
    """Chat history as strictly alternating turns that open with the user.

    Leading assistant turns (a greeting) are dropped and consecutive turns of the
    same role are merged, which is what turn-based chat APIs accept.
    """
    turns: List[Message] = []
    for m in history:
        role = "assistant" if m.role == "assistant" else "user"
        if not (m.content or "").strip():
            continue
        if not turns and role == "assistant":
            continue
        if turns and turns[-1].role == role:
            turns[-1] = Message(role=role, content=f"{turns[-1].content}\n\n{m.content}")
        else:
            turns.append(Message(role=role, content=m.content))
    return tuple(turns)


def build_prompt_bundle(
    request: GenerationRequest,
    capabilities: ProviderCapabilities,
    enrichment: Optional[Enrichment] = None,
    in_depth: bool = False,
) -> PromptBundle:
    system = build_system_prompt(request, in_depth=in_depth)
    history_as_turns = capabilities.supports_history_turns
    user = build_user_message(request, enrichment, include_history=not history_as_turns)
    if not capabilities.supports_system_role:
        user = f"{system}\n\n{user}"
        system = ""
    history: tuple = ()
    if history_as_turns:
        history = alternate_turns(request.conversation_history)
        # the current question is the next user turn; a dangling user turn joins it
        if history and history[-1].role == "user":
            user = f"{history[-1].content}\n\n{user}"
            history = history[:-1]
    image = request.image if capabilities.supports_image else None
    return PromptBundle(system=system, user=user, history=history, image=image)
