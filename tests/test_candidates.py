from __future__ import annotations

from healwright.utils.candidates import (
    CandidateStrategy,
    SelectorCandidate,
    generate_candidates,
    generate_heuristic_candidates,
    generate_label_patterns,
    generate_semantic_candidates,
)
from tests.helpers import FakePage


def test_label_patterns_strip_generic_words():
    patterns = generate_label_patterns("Username field")
    assert patterns[0] == r"Username\ field"
    assert "Username" in patterns
    assert generate_label_patterns("   ") == []


def test_label_patterns_allow_flexible_whitespace():
    patterns = generate_label_patterns("Sign In button")
    assert patterns[-1] == r"Sign\s*In"


def test_semantic_candidates_follow_action_kind():
    click = generate_semantic_candidates("click", "Submit")
    assert [(c.strategy, c.role) for c in click] == [
        (CandidateStrategy.ROLE, "button"),
        (CandidateStrategy.ROLE, "link"),
    ]

    fill = generate_semantic_candidates("fill", "Email")
    assert [(c.strategy, c.role) for c in fill] == [
        (CandidateStrategy.LABEL, None),
        (CandidateStrategy.ROLE, "textbox"),
    ]

    select = generate_semantic_candidates("select", "Country")
    assert select[1].role == "combobox"


def test_heuristic_candidates_cover_username_and_are_unique():
    candidates = generate_heuristic_candidates("username")
    expressions = [candidate.expression for candidate in candidates]

    assert '[name="username"]' in expressions
    assert "#username" in expressions
    assert 'input[type="email"]' in expressions
    assert candidates[0].strategy is CandidateStrategy.LABEL
    assert candidates[-1].strategy is CandidateStrategy.TEXT

    keys = [(c.strategy, c.expression, c.role) for c in candidates]
    assert len(keys) == len(set(keys))


def test_heuristic_candidates_emit_name_variants():
    expressions = [c.expression for c in generate_heuristic_candidates("First Name")]
    assert '[name="first-name"]' in expressions
    assert '[name="first_name"]' in expressions
    assert '[name="firstname"]' in expressions
    assert '[name="firstName"]' in expressions


def test_generic_fallbacks_use_generic_strategy():
    candidates = generate_heuristic_candidates("checkout")
    generic = [c for c in candidates if c.strategy is CandidateStrategy.GENERIC]
    assert [c.expression for c in generic] == ["input:nth-child(1)"]


def test_generate_candidates_puts_semantic_first():
    candidates = generate_candidates("fill", "Password")
    assert candidates[0].strategy is CandidateStrategy.LABEL
    assert any(c.expression == 'input[type="password"]' for c in candidates)


def test_candidate_descriptors_are_replayable():
    role = SelectorCandidate.of(CandidateStrategy.ROLE, "Submit", role="button")
    text = SelectorCandidate.of(CandidateStrategy.TEXT, "Continue")
    css = SelectorCandidate.of(CandidateStrategy.CSS, "#go")

    assert role.to_descriptor().model_dump(exclude_none=True) == {"type": "role", "role": "button", "name": "Submit"}
    assert text.to_descriptor().selector == "text=/Continue/i"
    assert css.to_descriptor().selector == "#go"
    assert role.describe() == "role=button[name=/Submit/i]"


def test_candidate_locators_use_matching_page_api():
    page = FakePage()
    assert SelectorCandidate.of(CandidateStrategy.LABEL, "Email").to_locator(page).key == "label=Email"
    assert SelectorCandidate.of(CandidateStrategy.ROLE, "Go", role="link").to_locator(page).key == "role=link:Go"
    assert SelectorCandidate.of(CandidateStrategy.TEXT, "Help").to_locator(page).key == "text=Help"
    assert SelectorCandidate.of(CandidateStrategy.CSS, "#go").to_locator(page).key == "#go"
