"""
Tests for Chance and Community Chest card effects.
"""

from conftest import give, load_dice

from tycoon.cards import Card, CardType
from tycoon.phases import Phase
from tycoon.rules import dispatch
from tycoon.spaces import SpaceType


def _stack_chance(game, card):
    game.chance_deck.cards.insert(0, card)


def _land_on_chance(game, player_id=0):
    """Move the player from GO onto the first Chance space."""
    load_dice(game, 3, 4)
    dispatch(game, player_id, "rollDice")


def test_collect_card(basic_game):
    _stack_chance(basic_game, Card("Dividend", CardType.COLLECT, value=50))
    _land_on_chance(basic_game)

    assert basic_game.players[0].cash == 1550
    assert basic_game.last_card == "Dividend"
    assert basic_game.phase == Phase.RESOLVING_SPACE


def test_jail_card_is_held(basic_game):
    card = Card("Get Out of Jail Free", CardType.GET_OUT_OF_JAIL)
    _stack_chance(basic_game, card)
    _land_on_chance(basic_game)

    assert basic_game.players[0].jail_free_cards == 1
    assert card in basic_game.chance_deck.held_cards


def test_repairs_skip_insured_properties(basic_game):
    """Insured properties are exempt from repair assessments."""
    give(basic_game, 0, 1, 3)
    basic_game.property_ownership[1].houses = 2
    basic_game.property_ownership[3].houses = 2
    basic_game.property_ownership[3].is_insured = True
    basic_game.property_ownership[3].insurance_paid_until_round = 5
    _stack_chance(basic_game, Card("Repairs", CardType.PAY_PER_BUILDING, value=25, hotel_value=100))

    _land_on_chance(basic_game)

    assert basic_game.players[0].cash == 1500 - 50


def test_nearest_railroad_pays_double(basic_game):
    """The nearest-railroad card doubles the rent owed on arrival."""
    give(basic_game, 1, 15)
    _stack_chance(
        basic_game,
        Card("Nearest railroad", CardType.MOVE_TO_NEAREST, target_type=SpaceType.RAILROAD, rent_multiplier=2),
    )

    _land_on_chance(basic_game)

    assert basic_game.players[0].position == 15
    assert basic_game.players[0].cash == 1450
    assert basic_game.players[1].cash == 1550
    assert basic_game.railroad_rent_multiplier is None


def test_pay_to_players(three_player_game):
    _stack_chance(three_player_game, Card("Chairman", CardType.PAY_TO_PLAYERS, value=50))
    _land_on_chance(three_player_game)

    assert three_player_game.players[0].cash == 1400
    assert three_player_game.players[1].cash == 1550
    assert three_player_game.players[2].cash == 1550


def test_card_shortfall_leaves_player_in_the_red(basic_game):
    """A card can push cash negative; ending the turn then settles the debt."""
    basic_game.players[0].cash = 10
    _stack_chance(basic_game, Card("Fees", CardType.PAY, value=50))
    _land_on_chance(basic_game)
    assert basic_game.players[0].cash == -40

    dispatch(basic_game, 0, "endTurn")

    # Nothing to restructure: liquidated to the bank
    assert basic_game.players[0].is_bankrupt
    assert basic_game.phase == Phase.GAME_OVER
    assert basic_game.winner == 1


def test_go_back_three_spaces(basic_game):
    _stack_chance(basic_game, Card("Back 3", CardType.MOVE_SPACES, value=-3))
    _land_on_chance(basic_game)

    # From Chance (7) back to Income Tax (4)
    assert basic_game.players[0].position == 4
    assert basic_game.phase == Phase.AWAITING_TAX_DECISION
