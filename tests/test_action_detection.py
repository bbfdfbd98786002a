"""Action detection behavior tests."""

from __future__ import annotations

import time

import pytest

from board.models import BoardEdge, BoardNode, Position
from detection.action_detector import ActionDetector
from detection.context import AIContext, BoardContext, DocumentContext, DocumentInfo
from detection.patterns import default_patterns
from detection.text_analysis import extract_keywords, normalize
from detection.types import ActionType, Scope


def _board(nodes: int, edges: int = 0, selected: str | None = None) -> BoardContext:
    board_nodes = [
        BoardNode(id=f"n{i}", label=f"Node {i}", position=Position(x=i * 300, y=0)) for i in range(nodes)
    ]
    board_edges = [
        BoardEdge(id=f"e{i}", source=f"n{i}", target=f"n{i + 1}") for i in range(min(edges, max(nodes - 1, 0)))
    ]
    return BoardContext(nodes=board_nodes, edges=board_edges, selected_node_id=selected)


def test_create_single_on_empty_board_scores_with_sparse_bonus() -> None:
    detector = ActionDetector()
    actions = detector.detect("create a marketing node", AIContext(board=BoardContext()))

    assert len(actions) == 1
    action = actions[0]
    assert action.action_type == ActionType.CREATE_SINGLE
    assert action.confidence >= 0.8
    assert action.confidence == pytest.approx(0.84)
    assert action.parameters.count == 1
    assert action.intent.primary_goal == "create"


def test_organize_on_dense_board_gets_relevance_bonus() -> None:
    detector = ActionDetector()
    dense = detector.detect("organize the nodes", AIContext(board=_board(12, 3)))
    empty = detector.detect("organize the nodes", AIContext(board=BoardContext()))

    assert dense[0].action_type == ActionType.ORGANIZE_NODES
    assert empty[0].action_type == ActionType.ORGANIZE_NODES
    assert dense[0].confidence > empty[0].confidence
    assert empty[0].confidence == pytest.approx(0.52)
    assert dense[0].context.node_count == 12
    assert dense[0].context.edge_count == 3


def test_node_actions_require_board_context() -> None:
    detector = ActionDetector()
    assert detector.detect("organize the nodes", AIContext()) == []


def test_document_actions_require_documents() -> None:
    detector = ActionDetector()
    without = detector.detect("summarize the document", AIContext(board=BoardContext()))
    with_docs = detector.detect(
        "summarize the document",
        AIContext(
            board=BoardContext(),
            documents=DocumentContext(documents=[DocumentInfo(id="d1", name="brief.pdf")]),
        ),
    )

    assert ActionType.DOCUMENT_PROCESS not in [a.action_type for a in without]
    assert with_docs[0].action_type == ActionType.DOCUMENT_PROCESS
    assert with_docs[0].context.document_present is True


def test_count_request_maps_to_create_multiple() -> None:
    detector = ActionDetector()
    actions = detector.detect("create 5 marketing nodes", AIContext(board=BoardContext()))

    assert [a.action_type for a in actions] == [ActionType.CREATE_MULTIPLE]
    assert actions[0].parameters.count == 5
    assert actions[0].intent.scope == Scope.MULTIPLE


def test_brainstorm_uses_pattern_default_count() -> None:
    detector = ActionDetector()
    actions = detector.detect("brainstorm marketing ideas")

    assert actions[0].action_type == ActionType.BRAINSTORM_IDEAS
    assert actions[0].parameters.count == 3
    assert actions[0].intent.primary_goal == "brainstorm"


def test_analyze_selected_node_is_boosted_and_clamped() -> None:
    detector = ActionDetector()
    actions = detector.detect("analyze this node", AIContext(board=_board(3, selected="n1")))

    assert actions[0].action_type == ActionType.ANALYZE_NODE
    assert actions[0].confidence == 1.0
    assert actions[0].parameters.target == "n1"
    assert actions[0].context.selected_nodes == ["n1"]


def test_conversational_input_yields_no_actions() -> None:
    detector = ActionDetector()
    assert detector.detect("hello there, how are you?", AIContext(board=BoardContext())) == []
    assert detector.detect("   ", AIContext()) == []


def test_detection_is_deterministic() -> None:
    detector = ActionDetector()
    context = AIContext(board=_board(2))
    text = "brainstorm 4 creative coffee flavor ideas then connect them"

    first = detector.detect(text, context)
    second = detector.detect(text, context)

    assert [(a.action_type, a.confidence) for a in first] == [(a.action_type, a.confidence) for a in second]


def test_candidates_and_results_are_bounded() -> None:
    detector = ActionDetector(max_candidates=2, max_results=1)
    actions = detector.detect("brainstorm 4 creative coffee flavor ideas then connect them", AIContext(board=_board(2)))
    assert len(actions) <= 1


@pytest.mark.parametrize(
    "text",
    [
        "create a marketing node",
        "brainstorm brainstorm ideas ideas think creative concepts flavor generate",
        "plan a project roadmap with strategy timeline phases and steps",
        "connect link relate relationship nodes edges related",
        "",
        "!!!",
    ],
)
def test_confidence_stays_within_bounds(text: str) -> None:
    normalized = normalize(text)
    keywords = extract_keywords(normalized)
    for pattern in default_patterns():
        assert 0.0 <= pattern.score(normalized, keywords) <= 1.0

    board = _board(1, selected="n0")
    for action in ActionDetector().detect(text, AIContext(board=board)):
        assert 0.0 <= action.confidence <= 1.0


def test_every_action_type_has_a_pattern() -> None:
    covered = {pattern.action_type for pattern in default_patterns()}
    assert covered == set(ActionType)


def test_action_context_is_a_copy() -> None:
    detector = ActionDetector()
    actions = detector.detect("brainstorm marketing ideas then research competitors", AIContext(board=_board(1)))
    assert len(actions) >= 2
    actions[0].context.selected_nodes.append("mutated")
    assert "mutated" not in actions[1].context.selected_nodes


def test_metadata_keeps_raw_entities() -> None:
    detector = ActionDetector()
    actions = detector.detect('Create a node about "Q3 Launch" for Acme', AIContext(board=BoardContext()))

    assert actions
    metadata = actions[0].metadata
    assert "Q3 Launch" in metadata.entities
    assert "Acme" in metadata.entities
    assert actions[0].parameters.custom_instructions == "Q3 Launch"


@pytest.mark.parametrize(
    "text",
    ["word " * 4000, "create " * 4000, "what " * 4000 + "missing", "ideas for " * 2000],
)
def test_pasted_walls_of_text_are_detected_quickly(text: str) -> None:
    started = time.perf_counter()
    actions = ActionDetector().detect(text, AIContext(board=BoardContext()))

    assert time.perf_counter() - started < 1.0
    assert all(0.0 <= action.confidence <= 1.0 for action in actions)


def test_bounded_idea_pattern_still_matches_short_requests() -> None:
    [brainstorm] = [p for p in default_patterns() if p.action_type == ActionType.BRAINSTORM_IDEAS]
    assert brainstorm.regex_hit("coffee flavor ideas")
    assert brainstorm.regex_hit("create some fresh onboarding ideas")
    assert not brainstorm.regex_hit("ideas")
