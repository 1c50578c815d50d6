import itertools

from tagquest.core.rng import RNG
from tagquest.domain.compatibility import are_compatible, incompatibility_reasons
from tagquest.domain.defs import OptionDef, StepDef


def test_grant_conflicts_with_target_block() -> None:
    source = StepDef(id="a", tags=("+marked",))
    target = StepDef(id="b", tags=("!marked",))
    assert not are_compatible(source, target)
    assert incompatibility_reasons(source, target) == ["source grants 'marked' which the target blocks"]


def test_consume_conflicts_with_target_requirement() -> None:
    assert not are_compatible(StepDef(id="a", tags=("-key",)), StepDef(id="b", tags=("@key",)))


def test_source_block_conflicts_unless_granted() -> None:
    target = StepDef(id="b", tags=("@lit",))
    assert not are_compatible(StepDef(id="a", tags=("!lit",)), target)
    assert are_compatible(StepDef(id="a", tags=("!lit", "+lit")), target)


def test_source_requirement_conflicts_unless_consumed() -> None:
    target = StepDef(id="b", tags=("!key",))
    assert not are_compatible(StepDef(id="a", tags=("@key",)), target)
    assert are_compatible(StepDef(id="a", tags=("@key",)), target, option=OptionDef(label="Use", tags=("-key",)))


def test_comparisons_compare_base_names() -> None:
    source = StepDef(id="a", tags=("@inv:silver>2",))
    target = StepDef(id="b", tags=("!inv:silver",))
    assert not are_compatible(source, target)


def test_raw_mappings_are_accepted() -> None:
    assert are_compatible({"id": "a", "tags": ["+x"]}, {"id": "b", "tags": ["@x"]})


def test_enumerated_tag_combinations_match_the_four_rules() -> None:
    rng = RNG(2024)
    names = ["a", "b", "c"]
    operators = ["@", "!", "+", "-", ""]
    for _ in range(300):
        source_tags = [rng.choice(operators) + name for name in names if rng.random() < 0.6]
        target_tags = [rng.choice(operators) + name for name in names if rng.random() < 0.6]
        source = StepDef(id="s", tags=tuple(source_tags))
        target = StepDef(id="t", tags=tuple(target_tags))
        expected = True
        for s_raw, t_raw in itertools.product(source_tags, target_tags):
            s_op, s_name = (s_raw[0], s_raw[1:]) if s_raw[0] in "@!+-" else ("", s_raw)
            t_op, t_name = (t_raw[0], t_raw[1:]) if t_raw[0] in "@!+-" else ("", t_raw)
            if s_name != t_name:
                continue
            if (s_op, t_op) in (("+", "!"), ("-", "@")):
                expected = False
        for name in names:
            if f"!{name}" in source_tags and f"@{name}" in target_tags and f"+{name}" not in source_tags:
                expected = False
            if f"@{name}" in source_tags and f"!{name}" in target_tags and f"-{name}" not in source_tags:
                expected = False
        assert are_compatible(source, target) == expected
