"""
Tests for the public game snapshot.
"""

import json

from conftest import give, load_dice

from tycoon.game import create_game
from tycoon.rules import dispatch
from tycoon.snapshot import serialize_snapshot


def test_setup_snapshot(game_settings, two_players):
    game = create_game(game_settings, two_players)

    snapshot = serialize_snapshot(game)

    assert snapshot.phase == "setup"
    assert snapshot.active_player_id is None
    assert snapshot.turn_number == 0
    assert [p.name for p in snapshot.players] == ["Alice", "Bob"]


def test_started_snapshot(basic_game):
    snapshot = serialize_snapshot(basic_game)

    assert snapshot.phase == "rolling"
    assert snapshot.current_player_id == 0
    assert snapshot.active_player_id == 0
    assert snapshot.dice_roll is None
    assert len(snapshot.spaces) == 40
    assert snapshot.houses_available == 32
    assert snapshot.hotels_available == 12
    assert snapshot.current_go_salary == 200
    assert snapshot.gini_coefficient == 0.0
    assert snapshot.money_in_circulation == 3000
    assert snapshot.settings["starting_cash"] == 1500


def test_player_view(basic_game):
    give(basic_game, 0, 1, 39)
    basic_game.property_ownership[39].mortgaged = True

    alice = serialize_snapshot(basic_game).players[0]

    assert alice.properties == [1, 39]
    assert alice.net_worth == 1500 + 60 + 200
    assert alice.ai_difficulty == "medium"
    assert not alice.in_chapter11


def test_space_view(basic_game):
    give(basic_game, 1, 39)
    basic_game.property_ownership[39].houses = 2

    spaces = serialize_snapshot(basic_game).spaces
    boardwalk = spaces[39]

    assert boardwalk.name == "Boardwalk"
    assert boardwalk.owner_id == 1
    assert boardwalk.houses == 2
    assert boardwalk.current_price == 400
    assert spaces[0].price is None
    assert spaces[4].space_type == "tax"


def test_dice_and_auction_views(basic_game):
    load_dice(basic_game, 1, 2)
    dispatch(basic_game, 0, "rollDice")
    snapshot = dispatch(basic_game, 0, "declineProperty", 3)

    assert snapshot.dice_roll.total == 3
    assert not snapshot.dice_roll.is_doubles
    assert snapshot.auction.property_position == 3
    assert snapshot.auction.minimum_bid == 10
    assert snapshot.active_player_id == 0


def test_trade_view(basic_game):
    give(basic_game, 1, 3)
    dispatch(basic_game, 0, "startTrade", 1)
    snapshot = dispatch(basic_game, 0, "proposeTrade", {"cash_offered": 80, "properties_requested": [3]})

    assert snapshot.trade.status == "pending"
    assert snapshot.trade.offer.properties_requested == [3]
    assert snapshot.active_player_id == 1


def test_rent_negotiation_view(basic_game):
    give(basic_game, 1, 3)
    basic_game.players[0].cash = 1
    load_dice(basic_game, 1, 2)

    snapshot = dispatch(basic_game, 0, "rollDice")

    view = snapshot.pending_rent_negotiation
    assert snapshot.phase == "awaiting_rent_negotiation"
    assert view.rent_amount == 4
    assert view.debtor_can_afford == 1
    assert view.status == "creditor_decision"
    assert snapshot.active_player_id == 1


def test_tax_decision_view(basic_game):
    load_dice(basic_game, 1, 3)

    snapshot = dispatch(basic_game, 0, "rollDice")

    assert snapshot.awaiting_tax_decision.flat_amount == 200
    assert snapshot.awaiting_tax_decision.percentage_amount == 150


def test_snapshot_is_json_serializable(basic_game):
    give(basic_game, 0, 1)
    payload = serialize_snapshot(basic_game).model_dump(mode="json")

    assert json.loads(json.dumps(payload))["players"][0]["properties"] == [1]


def test_deck_order_not_exposed(basic_game):
    payload = serialize_snapshot(basic_game).model_dump()

    assert "chance_deck" not in payload
    assert "rng" not in payload
