import pytest

from tagquest.core.rng import RNG
from tagquest.domain.tags import (
    TagState,
    format_tag,
    missing_requirements,
    mutation_tags,
    parse_tag,
    passes_tag_gate,
    preferred_tags,
    signature_tags,
)


@pytest.mark.parametrize(
    "raw, operator, base, comparison, value",
    [
        ("@key", "@", "key", None, None),
        ("!quest", "!", "quest", None, None),
        ("+q:wolves", "+", "q:wolves", None, None),
        ("-coin", "-", "coin", None, None),
        ("brave", "", "brave", None, None),
        ("@inv:silver>2", "@", "inv:silver", ">", 2),
        ("!level=3", "!", "level", "=", 3),
        ("@might<4", "@", "might", "<", 4),
    ],
)
def test_parse_tag_splits_operator_and_comparison(raw, operator, base, comparison, value) -> None:
    parsed = parse_tag(raw)
    assert parsed.operator == operator
    assert parsed.base_name == base
    assert parsed.comparison == comparison
    assert parsed.value == value
    assert format_tag(parsed) == raw


def test_parse_tag_only_inspects_first_character() -> None:
    parsed = parse_tag("@!odd")
    assert parsed.is_required
    assert parsed.base_name == "!odd"


def test_required_and_blocked_presence() -> None:
    state = TagState.from_tags(["key"])
    assert passes_tag_gate(["@key"], state)
    assert not passes_tag_gate(["!key"], state)
    assert not passes_tag_gate(["@map"], state)
    assert passes_tag_gate(["!map"], state)


def test_mutation_and_preferred_tags_never_exclude() -> None:
    assert passes_tag_gate(["+gift", "-coin", "brave"], [])


def test_comparisons_count_copies() -> None:
    state = TagState.from_tags(["inv:silver"] * 3)
    assert passes_tag_gate(["@inv:silver>2"], state)
    assert passes_tag_gate(["@inv:silver=3"], state)
    assert not passes_tag_gate(["@inv:silver<3"], state)
    assert not passes_tag_gate(["!inv:silver>2"], state)


def test_comparison_against_missing_tag_uses_zero() -> None:
    assert passes_tag_gate(["@coin<1"], [])
    assert not passes_tag_gate(["@coin>0"], [])


def test_whitelisted_stats_compare_by_value() -> None:
    state = TagState.from_tags(["might"], {"might": 4})
    assert passes_tag_gate(["@might>3"], state)
    assert not passes_tag_gate(["@might<2"], state)


def test_unlisted_stat_compares_tag_count() -> None:
    state = TagState.from_tags(["magic"], {"might": 4})
    assert passes_tag_gate(["@magic=1"], state)


def test_adding_tags_never_breaks_required_only_gate() -> None:
    tags = ["@a", "@b>1"]
    held = ["a", "b", "b"]
    assert passes_tag_gate(tags, held)
    assert passes_tag_gate(tags, held + ["b", "c", "a"])


def test_missing_requirements_lists_failed_gates() -> None:
    missing = missing_requirements(["@key", "!cursed", "+gift", "@map"], ["key", "cursed"])
    assert missing == ["!cursed", "@map"]


def test_signature_and_mutation_tags_use_base_names() -> None:
    required, blocked = signature_tags(["@inv:silver>2", "!quest", "+gift", "brave"])
    grants, consumes = mutation_tags(["+gift", "-coin", "+gift", "@key"])
    assert required == {"inv:silver"}
    assert blocked == {"quest"}
    assert grants == ["gift", "gift"]
    assert consumes == ["coin"]


def test_preferred_tags_keep_repeats() -> None:
    assert preferred_tags(["brave", "brave", "@key", "+gift"]) == ["brave", "brave"]


def test_non_numeric_comparison_falls_back_to_presence() -> None:
    parsed = parse_tag("@gold>x")
    assert parsed.base_name == "gold"
    assert parsed.malformed
    assert not parsed.has_comparison
    assert passes_tag_gate(["@gold>x"], ["gold"])
    assert not passes_tag_gate(["@gold>x"], [])
    assert not passes_tag_gate(["!gold=many"], ["gold"])


def test_adding_blocked_tag_never_widens_gate() -> None:
    rng = RNG(11)
    names = ["a", "b", "c"]
    operators = ["@", "!", "+", ""]
    suffixes = ["", ">1", "=2", "<2"]
    for _ in range(300):
        tags = [rng.choice(operators) + rng.choice(names) + rng.choice(suffixes) for _ in range(rng.randint(0, 3))]
        held = [rng.choice(names) for _ in range(rng.randint(0, 4))]
        extra = "!" + rng.choice(names) + rng.choice(suffixes)
        if passes_tag_gate(tags + [extra], held):
            assert passes_tag_gate(tags, held)


def test_repeated_required_tag_needs_one_copy() -> None:
    assert passes_tag_gate(["@silver", "@silver"], ["silver"])
    assert not passes_tag_gate(["@silver>1"], ["silver"])
