from tagquest.core.rng import RNG
from tagquest.domain.defs import OptionDef, PatchDef, StepDef, TextModificationDef
from tagquest.domain.selection import (
    available_options,
    candidate_ids,
    eligible_steps,
    is_virtual_location,
    select_step,
)
from tagquest.domain.tags import TagState
from tests.helpers.content import ScriptedRNG


def test_unmet_requirement_filters_variant() -> None:
    plain = StepDef(id="A1", text="X")
    locked = StepDef(id="A1", tags=("@has_key",), text="Y")

    chosen = select_step("A1", [], [plain, locked], rng=RNG(1))

    assert chosen is plain


def test_higher_preferred_score_always_wins() -> None:
    double = StepDef(id="A1", tags=("friendly", "friendly"), text="X")
    single = StepDef(id="A1", tags=("friendly",), text="Y")
    for seed in range(20):
        chosen = select_step("A1", ["friendly"], [single, double], rng=RNG(seed))
        assert chosen is double


def test_single_survivor_does_not_consume_randomness() -> None:
    rng = ScriptedRNG()
    select_step("A1", [], [StepDef(id="A1")], rng=rng)
    assert rng.choice_calls == 0


def test_ties_are_broken_through_rng() -> None:
    first = StepDef(id="A1", text="first")
    second = StepDef(id="A1", text="second")
    rng = ScriptedRNG(choices=[1])
    assert select_step("A1", [], [first, second], rng=rng) is second
    assert rng.choice_calls == 1


def test_same_seed_gives_same_pick() -> None:
    pool = [StepDef(id="A1", text=str(index)) for index in range(5)]
    picks_a = [select_step("A1", [], pool, rng=RNG(42)).text for _ in range(3)]
    picks_b = [select_step("A1", [], pool, rng=RNG(42)).text for _ in range(3)]
    assert picks_a == picks_b


def test_nothing_eligible_returns_none() -> None:
    assert select_step("A1", [], [StepDef(id="A1", tags=("@key",))], rng=RNG(1)) is None
    assert select_step("Z9", [], [StepDef(id="A1")], rng=RNG(1)) is None


def test_location_names_match_ids_case_insensitively() -> None:
    locations = {"A1": "Village"}
    assert candidate_ids("village", locations) == {"village", "a1"}
    step = StepDef(id="A1")
    assert select_step("Village", [], [step], rng=RNG(1), locations=locations) is step


def test_selected_step_is_patched() -> None:
    step = StepDef(id="A1", text="Base.")
    patch = PatchDef(target="A1", tags=("@lamp",), text=TextModificationDef(append="Lit."))

    lit = select_step("A1", ["lamp"], [step], rng=RNG(1), patches=[patch])
    dark = select_step("A1", [], [step], rng=RNG(1), patches=[patch])

    assert lit.text == "Base.\nLit."
    assert dark is step


def test_eligible_steps_reports_scores() -> None:
    pool = [StepDef(id="A1", tags=("brave",)), StepDef(id="A1")]
    scores = [scored.score for scored in eligible_steps("A1", ["brave"], pool, preferred_weight=3)]
    assert scores == [3, 0]


def test_stat_comparison_uses_supplied_stats() -> None:
    strong = StepDef(id="A1", tags=("@might>3",))
    assert select_step("A1", [], [strong], rng=RNG(1), stats={"might": 4}) is strong
    assert select_step("A1", [], [strong], rng=RNG(1), stats={"might": 2}) is None


def test_virtual_locations() -> None:
    locations = {"A1": "Village"}
    assert not is_virtual_location("B7")
    assert not is_virtual_location("village", locations)
    assert is_virtual_location("cave_mouth", locations)


def test_available_options_marks_missing_and_hides_hidden() -> None:
    step = StepDef(
        id="A1",
        options=(
            OptionDef(label="Open", tags=("@key", "-key")),
            OptionDef(label="Secret", tags=("@map",), hidden=True),
            OptionDef(label="Leave"),
        ),
    )
    resolved = available_options(step, TagState.from_tags([]))
    assert [option.label for option in resolved] == ["Open", "Leave"]
    assert resolved[0].available is False
    assert resolved[0].missing_tags == ("@key",)
    assert resolved[0].consumes == ("key",)
    assert resolved[1].available is True


def test_non_numeric_comparison_still_selects_on_presence() -> None:
    steps = [StepDef(id="A1", tags=("@gold>x",))]
    assert select_step("A1", ["gold"], steps, rng=RNG(1)) is not None
    assert select_step("A1", [], steps, rng=RNG(1)) is None
