from study_ai.generate.prompts import (
    IN_DEPTH_INSTRUCTIONS,
    RESPONSE_STYLES,
    THINKING_INSTRUCTIONS,
    alternate_turns,
    build_prompt_bundle,
    build_system_prompt,
    build_user_message,
)
from study_ai.generate.types import (
    Enrichment,
    FileContext,
    GenerationFlags,
    GenerationRequest,
    ImageAttachment,
    LearningProfile,
    Message,
    Personalization,
    ProviderCapabilities,
)

HISTORY = (Message(role="user", content="What is a cell?"), Message(role="assistant", content="The unit of life."))


def test_user_message_includes_every_block_in_order():
    req = GenerationRequest(
        question="What does it contain?",
        context="BIO 101",
        conversation_history=HISTORY,
        file_context=FileContext(file_name="notes.pdf", file_type="pdf", file_content="Mitochondria..."),
    )
    enrichment = Enrichment(search_block="SEARCH BLOCK", scraped_block="SCRAPED BLOCK")

    text = build_user_message(req, enrichment)

    order = ["Context: BIO 101", "Previous conversation:", "notes.pdf", "SEARCH BLOCK", "SCRAPED BLOCK",
             "Current question: What does it contain?"]
    positions = [text.index(part) for part in order]
    assert positions == sorted(positions)


def test_missing_document_body_is_noted():
    req = GenerationRequest(question="q", file_context=FileContext(file_name="a.docx", file_type="docx"))
    assert "Document content not available." in build_user_message(req)


def test_history_as_turns_for_capable_providers():
    req = GenerationRequest(question="and then?", conversation_history=HISTORY)
    bundle = build_prompt_bundle(req, ProviderCapabilities(supports_history_turns=True))
    assert bundle.history == HISTORY
    assert "Previous conversation:" not in bundle.user


def test_turns_open_with_user_and_alternate():
    history = (
        Message(role="assistant", content="Hi! What are we studying today?"),
        Message(role="user", content="Cells."),
        Message(role="user", content="Mostly organelles."),
        Message(role="assistant", content="Great."),
    )
    assert [(m.role, m.content) for m in alternate_turns(history)] == [
        ("user", "Cells.\n\nMostly organelles."),
        ("assistant", "Great."),
    ]


def test_dangling_user_turn_joins_current_question():
    history = (Message(role="assistant", content="Hello!"), Message(role="user", content="I have a bio quiz."))
    req = GenerationRequest(question="What is osmosis?", conversation_history=history)
    bundle = build_prompt_bundle(req, ProviderCapabilities(supports_history_turns=True))
    assert bundle.history == ()
    assert bundle.user.startswith("I have a bio quiz.\n\n")
    assert bundle.user.endswith("Current question: What is osmosis?")


def test_history_flattened_otherwise():
    req = GenerationRequest(question="and then?", conversation_history=HISTORY)
    bundle = build_prompt_bundle(req, ProviderCapabilities(supports_history_turns=False))
    assert bundle.history == ()
    assert "assistant: The unit of life." in bundle.user


def test_system_folded_into_user_without_system_role():
    bundle = build_prompt_bundle(GenerationRequest(question="hi"), ProviderCapabilities(supports_system_role=False))
    assert bundle.system == ""
    assert bundle.user.startswith("You are a patient study assistant")


def test_image_dropped_for_text_only_provider():
    req = GenerationRequest(question="what is this?", image=ImageAttachment(data="aGVsbG8=", mime_type="image/png"))
    assert build_prompt_bundle(req, ProviderCapabilities(supports_image=False)).image is None
    assert build_prompt_bundle(req, ProviderCapabilities(supports_image=True)).image == req.image


def test_personalization_and_modes():
    req = GenerationRequest(
        question="q",
        flags=GenerationFlags(thinking_mode=True),
        personalization=Personalization(
            user_name="Sam",
            learning_profile=LearningProfile(major="Biology", learning_style="Visual (diagrams)"),
            response_style="Concise",
        ),
    )
    system = build_system_prompt(req, in_depth=True)
    assert "You are talking to Sam." in system
    assert "Major/Field: Biology" in system
    assert "visual learners" in system
    assert THINKING_INSTRUCTIONS.strip() in system
    assert RESPONSE_STYLES["concise"] in system
    assert IN_DEPTH_INSTRUCTIONS.strip() in system


def test_plain_request_has_no_optional_sections():
    system = build_system_prompt(GenerationRequest(question="q", personalization=Personalization(response_style="weird")))
    assert "Learning profile" not in system
    assert "You are talking to" not in system
    assert all(style not in system for style in RESPONSE_STYLES.values())
