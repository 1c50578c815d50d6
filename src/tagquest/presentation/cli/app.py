"""Console entry points: the interactive game plus authoring tools."""
from __future__ import annotations

import argparse
import json
import logging
import secrets
import sys
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Sequence

from tagquest.core.types import STAT_NAMES
from tagquest.data import DataError, get_definitions_path, load_document
from tagquest.data.repositories import ContentBundle, load_content_bundle
from tagquest.domain.state import GameState
from tagquest.presentation.cli import config as cli_config
from tagquest.presentation.cli.render import (
    format_coverage_rows,
    format_skill_check,
    format_step_tree,
    render_bullet_lines,
    render_heading,
    render_menu,
    render_step_view,
    wrap_text,
)
from tagquest.presentation.cli.save_slots import SaveSlotStore
from tagquest.services import (
    ActionResult,
    AdventureService,
    CharacterCreationError,
    LevelUpEvent,
    LogEntryAddedEvent,
    NothingHereEvent,
    SaveLoadError,
    SaveService,
    SessionStateError,
    SkillCheckResolvedEvent,
    StatIncreaseAvailableEvent,
    StatIncreasedEvent,
    StepView,
    TagsChangedEvent,
    build_step_tree,
    flow_to_dict,
    format_issue,
    generate_coverage_matrix,
    lint_quest_file,
    transform_tree_to_flow,
)
from tagquest.services.coverage_service import DEFAULT_MAX_TAGS
from tagquest.services.quest_file import collect_presets, indexed_steps, location_ids

logger = logging.getLogger(__name__)

MenuAction = Literal["new_game", "load_game", "quit"]
_MAX_RANDOM_SEED = 2**31 - 1
DEFAULT_CONTENT = "steps.json"


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="tagquest", description="Tag-driven text adventure engine.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log loader and engine diagnostics.")
    subparsers = parser.add_subparsers(dest="command")

    play = subparsers.add_parser("play", help="Play a content bundle interactively.")
    play.add_argument("content", nargs="?", help="Path to a content bundle (JSON or YAML).")

    lint = subparsers.add_parser("lint", help="Check quest files for authoring mistakes.")
    lint.add_argument("files", nargs="+", help="Quest files to check.")
    lint.add_argument("--locations", help="JSON/YAML file mapping location ids to names.")

    graph = subparsers.add_parser("graph", help="Export the step flowchart of a quest file.")
    graph.add_argument("file", help="Quest file to graph.")
    graph.add_argument("--output", help="Write the flowchart JSON here instead of stdout.")
    graph.add_argument("--tree", action="store_true", help="Print the grouped step outline instead.")

    coverage = subparsers.add_parser("coverage", help="Show which variant runs for each gate-tag combination.")
    coverage.add_argument("file", help="Content bundle to inspect.")
    coverage.add_argument("location", help="Location id or name.")
    coverage.add_argument("--max-tags", type=int, default=DEFAULT_MAX_TAGS, help="Gate tags to enumerate.")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Dispatch to the requested subcommand; no subcommand starts the game."""
    args = parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.command == "lint":
        return run_lint(args.files, args.locations)
    if args.command == "graph":
        return run_graph(args.file, output=args.output, tree=args.tree)
    if args.command == "coverage":
        return run_coverage(args.file, args.location, max_tags=args.max_tags)
    return run_game(getattr(args, "content", None))


def _load_quest_file(path: Path) -> Dict[str, Any]:
    document = load_document(path)
    if isinstance(document, list):
        return {"steps": document}
    if not isinstance(document, dict):
        raise DataError(f"Expected a step list or object in {path}")
    return document


def _load_locations(path: str | None, document: Mapping[str, Any]) -> Dict[str, str]:
    if path is None:
        raw = document.get("locations")
        return dict(raw) if isinstance(raw, dict) else {}
    raw = load_document(Path(path))
    if not isinstance(raw, dict):
        raise DataError(f"Expected a location map in {path}")
    return {str(key): str(value) for key, value in raw.items()}


def run_lint(files: Sequence[str], locations_path: str | None = None) -> int:
    """Lint each file; the exit status is 1 when any file has an error."""
    failed = False
    for name in files:
        path = Path(name)
        try:
            quest_file = _load_quest_file(path)
            locations = _load_locations(locations_path, quest_file)
        except DataError as exc:
            print(f"{path}: {exc}")
            failed = True
            continue
        issues = lint_quest_file(quest_file, locations)
        if not issues:
            print(f"{path}: no issues found.")
            continue
        print(f"{path}:")
        for issue in issues:
            print(f" - {format_issue(issue)}")
        if any(issue.severity == "ERROR" for issue in issues):
            failed = True
    return 1 if failed else 0


def run_graph(file: str, *, output: str | None = None, tree: bool = False) -> int:
    path = Path(file)
    try:
        quest_file = _load_quest_file(path)
        locations = _load_locations(None, quest_file)
    except DataError as exc:
        print(f"{path}: {exc}")
        return 1
    presets = collect_presets(quest_file)
    steps = quest_file.get("steps") or []
    step_tree = build_step_tree(steps, presets, location_ids(indexed_steps(quest_file), locations))
    if tree:
        for line in format_step_tree(step_tree):
            print(line)
        return 0
    payload = json.dumps(flow_to_dict(transform_tree_to_flow(step_tree, presets)), indent=2)
    if output:
        Path(output).write_text(payload, encoding="utf-8")
        print(f"Flowchart written to {output}.")
    else:
        print(payload)
    return 0


def run_coverage(file: str, location: str, *, max_tags: int = DEFAULT_MAX_TAGS) -> int:
    bundle = load_content_bundle(Path(file))
    if not isinstance(bundle, ContentBundle):
        print(f"Failed to load {file}: {bundle['error']}")
        return 1
    rows = generate_coverage_matrix(bundle.steps, location, max_tags, locations=bundle.locations)
    render_heading(f"Coverage for {location}")
    for line in format_coverage_rows(rows, [step.id for step in bundle.steps]):
        print(line)
    return 0


def run_game(content: str | None = None) -> int:
    """Start the interactive CLI session."""
    path = Path(content) if content else get_definitions_path() / DEFAULT_CONTENT
    bundle = load_content_bundle(path)
    if not isinstance(bundle, ContentBundle):
        print(f"Failed to load {path}: {bundle['error']}")
        return 1
    for warning in bundle.warnings:
        print(f"Warning: {warning}")
    settings = cli_config.load_config()
    service = AdventureService(bundle)
    save_service = SaveService(max_log_entries=bundle.config.max_log_entries)
    store = SaveSlotStore()
    print("=== TagQuest ===")
    while True:
        action = _main_menu_loop()
        if action == "quit":
            break
        if action == "load_game":
            state = _load_game(save_service, store)
            if state is None:
                continue
        else:
            state = _start_new_game(service)
        if not _run_adventure_loop(service, save_service, store, state, settings["text_width"]):
            break
    print("Goodbye!")
    return 0


def _main_menu_loop() -> MenuAction:
    while True:
        render_menu("Main Menu", ["New Game", "Load Game", "Quit"])
        choice = input("Select an option: ").strip()
        if choice == "1":
            return "new_game"
        if choice == "2":
            return "load_game"
        if choice == "3":
            return "quit"
        print("Invalid selection. Please enter 1, 2 or 3.")


def _start_new_game(service: AdventureService) -> GameState:
    seed = _prompt_seed()
    player_name = _prompt_player_name()
    while True:
        allocation = _prompt_allocation(service.content.config.starting_points)
        try:
            state = service.start_new_game(seed=seed, player_name=player_name, allocation=allocation)
        except CharacterCreationError as exc:
            print(exc)
            continue
        print(f"Game started with seed: {seed}")
        return state


def _prompt_seed() -> int:
    while True:
        raw_value = input("Enter seed (blank for random): ").strip()
        if not raw_value:
            return secrets.randbelow(_MAX_RANDOM_SEED)
        try:
            return int(raw_value)
        except ValueError:
            print("Invalid seed. Please enter a valid integer.")


def _prompt_player_name() -> str:
    name = input("Enter your name (default Adventurer): ").strip()
    return name or "Adventurer"


def _prompt_allocation(points: int) -> Dict[str, int]:
    allocation: Dict[str, int] = {}
    remaining = points
    for stat in STAT_NAMES:
        if remaining <= 0:
            break
        while True:
            raw = input(f"Points for {stat} ({remaining} left): ").strip()
            if not raw:
                value = 0
                break
            try:
                value = int(raw)
            except ValueError:
                print("Please enter a number.")
                continue
            if 0 <= value <= remaining:
                break
            print(f"Please enter a value between 0 and {remaining}.")
        allocation[stat] = value
        remaining -= value
    return allocation


def _load_game(save_service: SaveService, store: SaveSlotStore) -> GameState | None:
    slot = _prompt_slot(store, "Load Game")
    if slot is None:
        return None
    try:
        state = save_service.deserialize(store.read_slot(slot))
    except SaveLoadError as exc:
        print(f"Could not load slot {slot}: {exc}")
        return None
    print(f"Loaded slot {slot}.")
    return state


def _save_game(save_service: SaveService, store: SaveSlotStore, state: GameState) -> None:
    slot = _prompt_slot(store, "Save Game")
    if slot is None:
        return
    store.write_slot(slot, save_service.serialize(state))
    print(f"Saved to slot {slot}.")


def _prompt_slot(store: SaveSlotStore, title: str) -> int | None:
    labels: List[str] = []
    for slot in store.list_slots():
        if slot.is_corrupt:
            labels.append(f"Slot {slot.slot}: (corrupt)")
        elif slot.exists and slot.metadata:
            meta = slot.metadata
            labels.append(f"Slot {slot.slot}: {meta.get('player_name')} - {meta.get('steps_completed')} steps")
        else:
            labels.append(f"Slot {slot.slot}: (empty)")
    labels.append("Back")
    render_menu(title, labels)
    index = _prompt_choice(len(labels))
    if index == len(labels) - 1:
        return None
    return index + 1


def _prompt_choice(choice_count: int) -> int:
    while True:
        raw = input("Select an option: ").strip()
        try:
            index = int(raw) - 1
        except ValueError:
            print("Please enter a number.")
            continue
        if 0 <= index < choice_count:
            return index
        print(f"Please enter a value between 1 and {choice_count}.")


def _run_adventure_loop(
    service: AdventureService,
    save_service: SaveService,
    store: SaveSlotStore,
    state: GameState,
    width: int,
) -> bool:
    """Drive the phase machine until the player returns to the menu or quits."""
    while True:
        try:
            if state.phase == "level_up":
                _handle_events(_prompt_stat_increase(service, state), width)
                continue
            if state.phase == "skill_check_roll":
                input("A skill check is required. Press Enter to roll...")
                _handle_events(service.roll_skill_check(state), width)
                continue
            if state.phase == "skill_check_result":
                input("Press Enter to continue...")
                _handle_events(service.continue_after_skill_check(state), width)
                continue
            view = service.get_current_view(state)
            if view is not None:
                render_step_view(view, width)
            command = input(_command_prompt(view)).strip()
            if not command:
                continue
            lowered = command.lower()
            if lowered in ("q", "quit"):
                return False
            if lowered in ("m", "menu"):
                return True
            if lowered in ("h", "help"):
                render_bullet_lines(
                    [
                        "<number>: choose an option of the current step",
                        "<location>: travel somewhere (e.g. a location name or coordinate like B3)",
                        "c: character sheet",
                        "j: quest journal",
                        "l: known locations",
                        "s: save game",
                        "m: main menu",
                        "q: quit",
                    ]
                )
            elif lowered == "c":
                _render_character(service, state)
            elif lowered == "j":
                _render_journal(state, width)
            elif lowered == "l":
                _render_locations(service)
            elif lowered == "s":
                _save_game(save_service, store, state)
            elif command.isdigit() and view is not None and view.options:
                _handle_events(service.choose_option(state, int(command) - 1), width)
            else:
                _handle_events(service.navigate(state, command), width)
        except SessionStateError as exc:
            print(exc)


def _prompt_stat_increase(service: AdventureService, state: GameState) -> ActionResult:
    player = state.player
    labels = [f"{stat.title()} ({player.stat(stat)})" for stat in STAT_NAMES]
    render_menu("Choose a stat to increase", labels)
    index = _prompt_choice(len(labels))
    return service.increase_stat(state, STAT_NAMES[index])


def _render_character(service: AdventureService, state: GameState) -> None:
    config = service.content.config
    player = state.player
    stats = player.effective_stats(config.stat_modifiers)
    render_heading(player.name)
    render_bullet_lines(
        [
            f"Level {player.level(config.xp_per_level)} ({player.xp} XP)",
            *(f"{stat.title()}: {stats[stat]}" for stat in STAT_NAMES),
            f"Steps completed: {player.steps_completed}",
            f"Tags: {', '.join(player.tags) if player.tags else '(none)'}",
        ]
    )


def _render_journal(state: GameState, width: int) -> None:
    render_heading("Journal")
    if not state.quest_log:
        print("Nothing recorded yet.")
        return
    for entry in state.quest_log:
        for line in wrap_text(f"- {entry}", width, indent_continuation=True):
            print(line)


def _command_prompt(view: StepView | None) -> str:
    if view is not None and view.virtual and view.options:
        return "\nChoose an option number, or 'help': "
    return "\nEnter a location, an option number, or 'help': "


def _render_locations(service: AdventureService) -> None:
    render_heading("Locations")
    locations = service.content.locations
    if not locations:
        print("This bundle defines no named locations.")
        return
    render_bullet_lines(f"{location_id}: {name}" for location_id, name in locations.items())


def _handle_events(result: ActionResult, width: int) -> None:
    if not result.events:
        return
    for event in result.events:
        if isinstance(event, TagsChangedEvent):
            if event.added:
                print(f"+ {', '.join(event.added)}")
            if event.removed:
                print(f"- {', '.join(event.removed)}")
        elif isinstance(event, LogEntryAddedEvent):
            for line in wrap_text(f"Journal: {event.entry}", width):
                print(line)
        elif isinstance(event, SkillCheckResolvedEvent):
            render_bullet_lines(format_skill_check(event.result))
        elif isinstance(event, LevelUpEvent):
            print(f"You reached level {event.level}!")
        elif isinstance(event, StatIncreaseAvailableEvent):
            print(f"{event.steps_completed} steps completed: you may increase a stat.")
        elif isinstance(event, StatIncreasedEvent):
            print(f"{event.stat.title()} is now {event.new_value}.")
        elif isinstance(event, NothingHereEvent):
            print(event.message)
        else:
            logger.debug("Unhandled event %s", event)
