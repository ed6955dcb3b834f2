"""
Tests for rent negotiation and IOUs.
"""

import pytest
from conftest import give, load_dice

from tycoon.game import create_game
from tycoon.negotiation import NegotiationStatus, create_iou, pay_iou
from tycoon.phases import Phase
from tycoon.rules import Action, apply_action, dispatch


@pytest.fixture
def short_of_rent(basic_game):
    """Alice, holding £2 and Mediterranean Avenue, lands on Bob's Baltic Avenue (rent £4)."""
    give(basic_game, 0, 1)
    give(basic_game, 1, 3)
    basic_game.players[0].cash = 2
    load_dice(basic_game, 1, 2)
    dispatch(basic_game, 0, "rollDice")
    return basic_game


class TestOpening:
    def test_shortfall_opens_negotiation(self, short_of_rent):
        negotiation = short_of_rent.pending_rent_negotiation
        assert short_of_rent.phase == Phase.AWAITING_RENT_NEGOTIATION
        assert negotiation.status == NegotiationStatus.CREDITOR_DECISION
        assert negotiation.rent_amount == 4
        assert negotiation.debtor_cash == 2
        assert short_of_rent.active_actor_id() == 1
        # Nothing has been paid yet
        assert short_of_rent.players[0].cash == 2

    def test_shortfall_without_negotiation_offers_restructuring(self, game_settings, two_players):
        game = create_game(game_settings.model_copy(update={"enable_rent_negotiation": False}), two_players)
        game.start()
        give(game, 0, 1)
        give(game, 1, 3)
        game.players[0].cash = 2
        load_dice(game, 1, 2)
        dispatch(game, 0, "rollDice")

        assert game.phase == Phase.AWAITING_BANKRUPTCY_DECISION
        assert game.pending_bankruptcy.creditor_id == 1
        assert game.pending_bankruptcy.debt_amount == 4

    def test_debtor_cannot_decide_for_creditor(self, short_of_rent):
        assert not apply_action(short_of_rent, Action("forgiveRent"), 0)
        assert not apply_action(short_of_rent, Action("rollDice"), 0)


class TestCreditorOptions:
    def test_forgive_rent(self, short_of_rent):
        dispatch(short_of_rent, 1, "forgiveRent")

        assert short_of_rent.pending_rent_negotiation is None
        assert short_of_rent.phase == Phase.ROLLING
        assert short_of_rent.players[0].cash == 2
        assert short_of_rent.players[1].cash == 1500
        assert not short_of_rent.players[0].ious_payable

    def test_payment_plan_accepted(self, short_of_rent):
        dispatch(short_of_rent, 1, "offerPaymentPlan", 2, 0.1)
        assert short_of_rent.pending_rent_negotiation.status == NegotiationStatus.DEBTOR_DECISION
        assert short_of_rent.active_actor_id() == 0

        dispatch(short_of_rent, 0, "acceptPaymentPlan")

        alice, bob = short_of_rent.players[0], short_of_rent.players[1]
        assert alice.cash == 0
        assert bob.cash == 1502
        assert len(alice.ious_payable) == 1
        iou = alice.ious_payable[0]
        assert iou.original_amount == 2
        assert iou.interest_rate == pytest.approx(0.1)
        assert iou in bob.ious_receivable
        assert short_of_rent.phase == Phase.ROLLING

    def test_payment_plan_rejected(self, short_of_rent):
        dispatch(short_of_rent, 1, "offerPaymentPlan", 2, 0.1)
        dispatch(short_of_rent, 0, "rejectPaymentPlan")

        negotiation = short_of_rent.pending_rent_negotiation
        assert negotiation.status == NegotiationStatus.CREDITOR_DECISION
        assert negotiation.plan_rejected
        assert negotiation.proposed_plan is None

    @pytest.mark.parametrize("partial,rate", [(-1, 0.1), (5, 0.1), (2, 1.5), ("2", 0.1)])
    def test_invalid_payment_plan(self, short_of_rent, partial, rate):
        assert not apply_action(short_of_rent, Action("offerPaymentPlan", partial, rate), 1)
        assert short_of_rent.pending_rent_negotiation.status == NegotiationStatus.CREDITOR_DECISION

    def test_demand_property(self, short_of_rent):
        dispatch(short_of_rent, 1, "demandImmediatePaymentOrProperty", 1)

        assert short_of_rent.property_ownership[1].owner_id == 1
        # Mediterranean is worth more than the rent, so no cash changes hands
        assert short_of_rent.players[0].cash == 2
        assert short_of_rent.phase == Phase.ROLLING

    def test_demand_property_not_owned_by_debtor(self, short_of_rent):
        assert not apply_action(short_of_rent, Action("demandImmediatePaymentOrProperty", 39), 1)

    def test_demand_without_property_escalates(self, short_of_rent):
        dispatch(short_of_rent, 1, "demandImmediatePaymentOrProperty")

        assert short_of_rent.pending_rent_negotiation is None
        assert short_of_rent.phase == Phase.AWAITING_BANKRUPTCY_DECISION
        assert short_of_rent.pending_bankruptcy.player_id == 0
        assert short_of_rent.active_actor_id() == 0


class TestDebtorOptions:
    def test_create_rent_iou(self, short_of_rent):
        dispatch(short_of_rent, 1, "offerPaymentPlan", 2, 0.2)
        dispatch(short_of_rent, 0, "createRentIOU", 1)

        iou = short_of_rent.players[0].ious_payable[0]
        assert short_of_rent.players[0].cash == 1
        assert iou.original_amount == 3
        assert iou.interest_rate == pytest.approx(short_of_rent.settings.iou_interest_rate)

    def test_create_rent_iou_only_when_debtor_decides(self, short_of_rent):
        assert not apply_action(short_of_rent, Action("createRentIOU", 1), 0)

    def test_partial_above_cash_rejected(self, short_of_rent):
        dispatch(short_of_rent, 1, "offerPaymentPlan", 2, 0.2)
        assert not apply_action(short_of_rent, Action("createRentIOU", 3), 0)


class TestIOUs:
    def test_simple_interest_per_round(self, basic_game):
        iou = create_iou(basic_game, 0, 1, 100, 0.05, reason="loan")

        basic_game.rounds_completed = 3
        assert iou.interest_accrued(3) == 15
        assert iou.amount_owed(3) == 115

    def test_interest_rounds_half_up(self, basic_game):
        iou = create_iou(basic_game, 0, 1, 10, 0.05, reason="loan")

        assert iou.interest_accrued(1) == 1

    def test_due_round(self, basic_game):
        iou = create_iou(basic_game, 0, 1, 100, 0.05, reason="loan")

        assert iou.due_round == basic_game.rounds_completed + 5
        assert not iou.is_overdue(4)
        assert iou.is_overdue(5)

    def test_partial_payment(self, basic_game):
        iou = create_iou(basic_game, 0, 1, 100, 0.05, reason="loan")

        dispatch(basic_game, 0, "payIOU", iou.iou_id, 40)

        assert basic_game.players[0].cash == 1460
        assert basic_game.players[1].cash == 1540
        assert iou.amount_owed(0) == 60
        assert iou in basic_game.players[0].ious_payable

    def test_full_payment_discharges(self, basic_game):
        iou = create_iou(basic_game, 0, 1, 100, 0.05, reason="loan")

        dispatch(basic_game, 0, "payIOU", iou.iou_id)

        assert basic_game.players[0].cash == 1400
        assert not basic_game.players[0].ious_payable
        assert not basic_game.players[1].ious_receivable

    def test_payment_capped_at_cash(self, basic_game):
        iou = create_iou(basic_game, 0, 1, 100, 0.05, reason="loan")
        basic_game.players[0].cash = 30

        assert pay_iou(basic_game, 0, iou.iou_id) == 30
        assert basic_game.players[0].cash == 0

    def test_unknown_iou(self, basic_game):
        assert not apply_action(basic_game, Action("payIOU", 99), 0)
