"""Tests for recipe composition and level generation entry points."""

from __future__ import annotations

import random

import numpy as np
import pytest

from undercroft.environment.generators.common import UNREACHABLE, distance_map
from undercroft.environment.generators.pipeline import (
    RECIPES,
    AreaStartingPosition,
    BspInteriorBuilder,
    BuildContext,
    BuilderChain,
    BuilderPreconditionError,
    CellularAutomataBuilder,
    CullUnreachable,
    DistantExit,
    DoglegCorridors,
    InitialBuilder,
    LevelRejectedError,
    LevelValidationError,
    MazeBuilder,
    PrefabBuilder,
    RoomDrawer,
    XHint,
    YHint,
    create_pipeline,
    describe_recipe,
    generate_level,
    random_builder,
)
from undercroft.environment.generators.pipeline import factory
from undercroft.environment.generators.pipeline.factory import (
    ROOM_DRAWING,
    SECTIONS,
    SHAPE_STARTERS,
    WeightedOption,
    roll,
)
from undercroft.environment.generators.pipeline.layers.prefab_templates import ORC_CAMP
from undercroft.environment.tile_types import TileTypeID
from undercroft.util.rng import RNG


def assert_playable(level) -> None:
    walkable = level.walkable_mask()
    start = level.starting_position

    assert walkable[start]
    exits = np.argwhere(level.tiles == TileTypeID.DOWN_STAIRS)
    assert len(exits) == 1
    assert tuple(exits[0]) == level.exit_position
    assert level.exit_position != start

    dist = distance_map(level.tiles, start)
    assert not (walkable & (dist == UNREACHABLE)).any()

    flat_walkable = walkable.ravel(order="F")
    for entry in level.spawn_list:
        assert flat_walkable[entry.index], entry


# =============================================================================
# Weighted tables
# =============================================================================


class TestRoll:
    def test_zero_weight_options_never_roll(self) -> None:
        table = (
            WeightedOption("never", 0, lambda: "never"),
            WeightedOption("always", 1, lambda: "always"),
        )
        rng = random.Random(3)
        assert {roll(rng, table) for _ in range(50)} == {"always"}

    def test_skip_option_yields_none(self) -> None:
        table = (WeightedOption("none", 1, lambda: None),)
        assert roll(random.Random(3), table) is None

    def test_each_roll_builds_a_fresh_stage(self) -> None:
        rng = random.Random(3)
        first = roll(rng, SHAPE_STARTERS)
        second = roll(rng, SHAPE_STARTERS)
        assert first is not second


# =============================================================================
# Random composition
# =============================================================================


class TestRandomBuilder:
    @pytest.mark.parametrize("seed", [1, 2, 3, 4, 5, 6])
    def test_same_seed_same_recipe(self, seed: int) -> None:
        first = random_builder(1, random.Random(seed))
        second = random_builder(1, random.Random(seed))
        assert describe_recipe(first) == describe_recipe(second)

    @pytest.mark.parametrize("seed", range(20))
    def test_recipe_ends_with_shared_tail(self, seed: int) -> None:
        names = random_builder(1, random.Random(seed)).describe()

        assert names[-3:] == ["DoorPlacement", "RoomVaults", "CullUnreachable"]
        assert "CullUnreachable" in names[:-1]

    def test_chain_is_unbuilt(self) -> None:
        chain = random_builder(1, random.Random(9))
        assert chain.starter is not None
        assert chain.stages_run == 0

    def test_rolls_reach_every_new_slot(self) -> None:
        recipes = [
            describe_recipe(random_builder(2, random.Random(seed)))
            for seed in range(400)
        ]
        assert any("MazeBuilder" in recipe for recipe in recipes)
        assert any("RoomDrawer" in recipe for recipe in recipes)
        assert any("orc_camp" in recipe for recipe in recipes)


class TestSlotTables:
    def test_maze_is_a_shape_starter(self) -> None:
        options = {option.label: option for option in SHAPE_STARTERS}
        assert isinstance(options["maze"].make(), MazeBuilder)

    def test_room_drawing_slot(self) -> None:
        options = {option.label: option for option in ROOM_DRAWING}
        assert options["as_carved"].make() is None
        assert isinstance(options["drawer"].make(), RoomDrawer)

    def test_sections_include_the_orc_camp(self) -> None:
        options = {option.label: option for option in SECTIONS}
        assert options["orc_camp"].make().name == "Prefab(sectional:orc_camp)"
        assert options["fort"].make().name == "Prefab(sectional:underground_fort)"

    def test_orc_camp_over_caves_is_playable(self) -> None:
        chain = (
            BuilderChain(80, 50, depth=2, name="camp")
            .start_with(CellularAutomataBuilder())
            .with_(PrefabBuilder.sectional(ORC_CAMP))
            .with_(AreaStartingPosition(XHint.CENTER, YHint.CENTER))
            .with_(CullUnreachable())
            .with_(DistantExit())
        )
        level = chain.build(random.Random(5))

        assert_playable(level)
        assert "Orc" in {entry.tag for entry in level.spawn_list}


# =============================================================================
# Named recipes
# =============================================================================


class TestCreatePipeline:
    def test_recipe_names(self) -> None:
        assert RECIPES == ("rooms", "caves", "synthesis", "random")

    def test_unknown_recipe_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown recipe"):
            create_pipeline("labyrinth", random.Random(1))

    def test_rooms_recipe_stages(self) -> None:
        chain = create_pipeline("rooms", random.Random(1))
        assert describe_recipe(chain) == (
            "BspDungeonBuilder -> RoomSorter(leftmost) -> DoglegCorridors -> "
            "RoomBasedStartingPosition -> CullUnreachable -> RoomBasedStairs -> "
            "RoomBasedSpawner -> DoorPlacement -> CullUnreachable"
        )

    def test_fixed_recipes_do_not_draw(self) -> None:
        rng = random.Random(1)
        state = rng.getstate()
        create_pipeline("caves", rng)
        assert rng.getstate() == state


# =============================================================================
# Level generation
# =============================================================================


class TestGenerateLevel:
    @pytest.mark.parametrize("recipe", ["rooms", "caves", "synthesis"])
    def test_named_recipes_are_playable(self, recipe: str) -> None:
        level = generate_level(1, random.Random(42), recipe=recipe)
        assert level.name == recipe
        assert_playable(level)

    @pytest.mark.parametrize("depth", [1, 3, 6])
    @pytest.mark.parametrize("seed", range(12))
    def test_random_recipes_are_playable(self, seed: int, depth: int) -> None:
        assert_playable(generate_level(depth, random.Random(seed * 7919 + depth)))

    @pytest.mark.parametrize("depth", [1, 4])
    @pytest.mark.parametrize("seed", range(10))
    def test_random_recipes_are_deterministic(self, seed: int, depth: int) -> None:
        first = generate_level(depth, random.Random(seed))
        second = generate_level(depth, random.Random(seed))

        np.testing.assert_array_equal(first.tiles, second.tiles)
        assert first.spawn_list == second.spawn_list
        assert first.exit_position == second.exit_position

    def test_same_seed_same_level(self) -> None:
        first = generate_level(3, random.Random(1234))
        second = generate_level(3, random.Random(1234))

        np.testing.assert_array_equal(first.tiles, second.tiles)
        assert first.spawn_list == second.spawn_list
        assert first.starting_position == second.starting_position
        assert first.exit_position == second.exit_position

    def test_rejected_recipes_are_retried_then_raised(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        class Unplayable(InitialBuilder):
            def generate(self, rng: RNG, ctx: BuildContext) -> None:
                ctx.tiles[1:-1, 1:-1] = TileTypeID.FLOOR

        attempts: list[str] = []

        def fake_create(name, rng, depth, width, height) -> BuilderChain:
            attempts.append(name)
            return BuilderChain(width, height, depth).start_with(Unplayable())

        monkeypatch.setattr(factory, "create_pipeline", fake_create)

        with pytest.raises(LevelValidationError):
            generate_level(1, random.Random(1), 20, 20, max_attempts=3)
        assert attempts == ["random"] * 3

    def test_layout_rejections_are_retried(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        class SolidRock(InitialBuilder):
            def generate(self, rng: RNG, ctx: BuildContext) -> None:
                ctx.take_snapshot()

        attempts: list[str] = []

        def fake_create(name, rng, depth, width, height) -> BuilderChain:
            attempts.append(name)
            return (
                BuilderChain(width, height, depth)
                .start_with(SolidRock())
                .with_(AreaStartingPosition(XHint.CENTER, YHint.CENTER))
            )

        monkeypatch.setattr(factory, "create_pipeline", fake_create)

        with pytest.raises(LevelRejectedError):
            generate_level(1, random.Random(1), 20, 20, max_attempts=4)
        assert len(attempts) == 4

    def test_miswired_recipe_fails_on_first_attempt(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        attempts: list[str] = []

        def fake_create(name, rng, depth, width, height) -> BuilderChain:
            attempts.append(name)
            return (
                BuilderChain(width, height, depth)
                .start_with(BspInteriorBuilder())
                .with_(DoglegCorridors())
            )

        monkeypatch.setattr(factory, "create_pipeline", fake_create)

        with pytest.raises(BuilderPreconditionError, match="DoglegCorridors"):
            generate_level(1, random.Random(1), max_attempts=5)
        assert attempts == ["random"]
