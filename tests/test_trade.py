"""
Tests for trade negotiation between players.
"""

import pytest
from conftest import give

from tycoon.phases import Phase
from tycoon.rules import Action, apply_action, dispatch
from tycoon.trade import TradeOffer, TradeStatus


@pytest.fixture
def trade_game(basic_game):
    """Alice holds Mediterranean, Bob holds Baltic; Alice opens a trade with Bob."""
    give(basic_game, 0, 1)
    give(basic_game, 1, 3)
    dispatch(basic_game, 0, "startTrade", 1)
    return basic_game


SWAP = {"properties_offered": [1], "cash_offered": 50, "properties_requested": [3]}


class TestTradeLifecycle:
    def test_start_trade_enters_trading(self, trade_game):
        trade = trade_game.trade
        assert trade_game.phase == Phase.TRADING
        assert trade.status == TradeStatus.DRAFT
        assert trade.initiator_id == 0
        assert trade.receiver_id == 1
        assert trade_game.active_actor_id() == 0
        assert trade_game.players[0].last_trade_turn == trade_game.turn_number

    def test_cannot_trade_with_self(self, basic_game):
        assert not apply_action(basic_game, Action("startTrade", 0), 0)
        assert basic_game.trade is None

    def test_propose_and_accept_executes(self, trade_game):
        dispatch(trade_game, 0, "proposeTrade", SWAP)
        assert trade_game.trade.status == TradeStatus.PENDING
        assert trade_game.active_actor_id() == 1

        dispatch(trade_game, 1, "acceptTrade")

        assert trade_game.trade is None
        assert trade_game.property_ownership[1].owner_id == 1
        assert trade_game.property_ownership[3].owner_id == 0
        assert trade_game.players[0].cash == 1450
        assert trade_game.players[1].cash == 1550
        assert trade_game.phase == Phase.ROLLING

    def test_update_then_propose(self, trade_game):
        dispatch(trade_game, 0, "updateTradeOffer", SWAP)
        assert trade_game.trade.status == TradeStatus.DRAFT

        dispatch(trade_game, 0, "proposeTrade")
        assert trade_game.trade.offer.properties_requested == {3}
        assert trade_game.trade.status == TradeStatus.PENDING

    def test_gift_needs_confirmation(self, trade_game):
        gift = {"cash_offered": 100}
        dispatch(trade_game, 0, "proposeTrade", gift)
        assert trade_game.trade.status == TradeStatus.DRAFT
        assert trade_game.trade.needs_confirmation

        dispatch(trade_game, 0, "proposeTrade", gift, True)
        assert trade_game.trade.status == TradeStatus.PENDING

    def test_reject_closes_trade(self, trade_game):
        dispatch(trade_game, 0, "proposeTrade", SWAP)
        dispatch(trade_game, 1, "rejectTrade")

        assert trade_game.trade is None
        assert trade_game.property_ownership[1].owner_id == 0
        assert trade_game.phase == Phase.ROLLING

    def test_reject_records_attempt_for_computer_initiator(self, trade_game):
        trade_game.players[0].is_ai = True
        dispatch(trade_game, 0, "proposeTrade", SWAP)
        dispatch(trade_game, 1, "rejectTrade")

        record = trade_game.players[0].trade_history["1-3"]
        assert record.attempts == 1
        assert record.last_offer == 50

    def test_counter_offer_goes_back_to_initiator(self, trade_game):
        dispatch(trade_game, 0, "proposeTrade", SWAP)
        counter = {"properties_offered": [1], "cash_offered": 150, "properties_requested": [3]}
        dispatch(trade_game, 1, "counterOffer", counter)

        assert trade_game.trade.status == TradeStatus.COUNTER_PENDING
        assert trade_game.active_actor_id() == 0
        # Counter offers are final
        assert not apply_action(trade_game, Action("counterOffer", SWAP), 0)

        dispatch(trade_game, 0, "acceptTrade")
        assert trade_game.players[0].cash == 1350
        assert trade_game.property_ownership[3].owner_id == 0

    def test_cancel_by_initiator(self, trade_game):
        dispatch(trade_game, 0, "proposeTrade", SWAP)
        assert not apply_action(trade_game, Action("cancelTrade"), 1)

        dispatch(trade_game, 0, "cancelTrade")
        assert trade_game.trade is None
        assert trade_game.phase == Phase.ROLLING


class TestTradeValidation:
    def test_empty_offer_rejected(self, trade_game):
        assert not apply_action(trade_game, Action("proposeTrade", {}), 0)
        assert trade_game.trade.status == TradeStatus.DRAFT

    def test_cannot_offer_unowned_property(self, trade_game):
        assert not apply_action(trade_game, Action("proposeTrade", {"properties_offered": [3]}), 0)

    def test_cannot_offer_more_cash_than_held(self, trade_game):
        assert not apply_action(trade_game, Action("proposeTrade", {"cash_offered": 5000}), 0)

    def test_buildings_block_trading(self, trade_game):
        trade_game.property_ownership[1].houses = 1

        assert not apply_action(trade_game, Action("proposeTrade", SWAP), 0)

    def test_malformed_offer_rejected(self, trade_game):
        assert not apply_action(trade_game, Action("proposeTrade", {"cash_offered": -5}), 0)
        assert not apply_action(trade_game, Action("proposeTrade", "everything"), 0)

    def test_stale_offer_is_cancelled_on_accept(self, trade_game):
        dispatch(trade_game, 0, "proposeTrade", SWAP)
        trade_game.players[0].cash = 10

        dispatch(trade_game, 1, "acceptTrade")

        assert trade_game.trade is None
        assert trade_game.property_ownership[3].owner_id == 1
        assert trade_game.players[1].cash == 1500

    def test_offer_from_dict_accepts_jail_cards(self):
        offer = TradeOffer.from_dict({"jail_cards_offered": 1, "cash_requested": 20})

        assert offer.jail_cards_offered == 1
        assert not offer.requests_nothing()
        assert not offer.is_empty()
