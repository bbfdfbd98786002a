"""Content generation tests: LLM path, parsing and template fallback."""

from __future__ import annotations

from unittest.mock import MagicMock

from detection.types import ActionMetadata, ActionParameters, ActionType, DetectedAction
from executor.content_generator import (
    SYSTEM_PROMPT,
    ContentGenerator,
    title_from_prompt,
    topic_from_prompt,
)
from llm.base_llm import Completion, LLMError
from llm.llm_factory import build_llm
from llm.providers.mock_provider import MockProvider


def _action(text: str, **params) -> DetectedAction:
    return DetectedAction(
        action_type=ActionType.CREATE_MULTIPLE,
        confidence=0.9,
        parameters=ActionParameters(**params),
        metadata=ActionMetadata(original_text=text),
    )


def test_prompt_helpers() -> None:
    assert title_from_prompt("create a marketing node") == "Marketing"
    assert title_from_prompt("add the pricing review nodes") == "Pricing Review"
    assert title_from_prompt("create a node") == "New Node"
    assert title_from_prompt("Make an Onboarding Checklist") == "Onboarding Checklist"
    assert title_from_prompt("please") == "Please"
    assert title_from_prompt("   ") == "New Node"
    assert topic_from_prompt("Plan our Coffee shop") == "plan"
    assert topic_from_prompt("hello world") == "general"


def test_mock_provider_output_is_parsed_into_nodes() -> None:
    generator = ContentGenerator(MockProvider())
    contents = generator.many(_action("create 3 pricing nodes", topic="pricing"), 3)

    assert [c.title for c in contents] == ["Pricing Foundations", "Pricing Key Drivers", "Pricing Open Questions"]
    assert contents[0].description == "Foundations of pricing worth capturing on the board."


def test_llm_receives_request_details() -> None:
    llm = MagicMock()
    llm.complete.return_value = Completion(text="Only Line: one description")
    generator = ContentGenerator(llm)

    action = _action('create a node "keep it short"', style="simple", custom_instructions="keep it short")
    content = generator.single(action)

    assert content.title == "Only Line"
    prompt = llm.complete.call_args.args[0]
    assert "Generate 1 node board node(s)." in prompt
    assert "Style: simple" in prompt
    assert "Instructions: keep it short" in prompt
    assert llm.complete.call_args.kwargs["system_prompt"] == SYSTEM_PROMPT


def test_llm_error_falls_back_to_templates() -> None:
    llm = MagicMock()
    llm.complete.side_effect = LLMError("openai", "rate limited")
    generator = ContentGenerator(llm)

    contents = generator.many(_action("brainstorm coffee flavors", topic="coffee flavors"), 2)
    assert [c.title for c in contents] == ["Lavender Honey Latte", "Maple Cinnamon Cold Brew"]


def test_short_llm_output_falls_back_to_templates() -> None:
    llm = MagicMock()
    llm.complete.return_value = Completion(text="Just prose without any structure")
    generator = ContentGenerator(llm)

    contents = generator.many(_action("create 2 launch nodes", topic="launch"), 2, kind="step")
    assert [c.title for c in contents] == ["2 Launch - Step 1", "2 Launch - Step 2"]
    assert "launch" in contents[0].description


def test_parse_lines_accepts_bullets_and_numbering() -> None:
    parsed = ContentGenerator.parse_lines("1. Alpha: first\n- Beta: second\n\nnot a node\n* Gamma:   third  ")
    assert [(c.title, c.description) for c in parsed] == [
        ("Alpha", "first"),
        ("Beta", "second"),
        ("Gamma", "third"),
    ]


def test_plan_phases_follow_topic() -> None:
    generator = ContentGenerator()
    business = generator.plan_phases(_action("plan a coffee business", topic="coffee business"))
    generic = generator.plan_phases(_action("plan a website", topic="website"))

    assert business[0].title == "Phase 1: Planning & Research"
    assert generic[0].title == "Phase 1: Planning & Design"
    assert "website" in generic[1].description


def test_factory_selects_configured_provider() -> None:
    assert isinstance(build_llm({}), MockProvider)
    assert isinstance(build_llm({"models": {"llm": {"active_provider": "mock"}}}), MockProvider)
    assert str(LLMError("openai", "missing key")) == "[openai] missing key"
