"""
Tests for bank loans, property insurance and value fluctuation.
"""

import pytest
from conftest import give, load_dice

from tycoon.economics import EconomicEventType, trigger_economic_event
from tycoon.finance import (
    apply_loan_interest,
    check_insurance_expiry,
    insurance_cost,
    max_loan_amount,
)
from tycoon.game import create_game
from tycoon.rules import Action, apply_action, dispatch


@pytest.fixture
def fluctuating_game(game_settings, two_players):
    game = create_game(game_settings.model_copy(update={"enable_property_value_fluctuation": True}), two_players)
    game.start()
    return game


class TestLoans:
    def test_take_loan(self, basic_game):
        dispatch(basic_game, 0, "takeLoan", 200)

        alice = basic_game.players[0]
        assert alice.cash == 1700
        assert len(alice.bank_loans) == 1
        assert alice.total_loan_debt == 200

    def test_minimum_loan(self, basic_game):
        assert not apply_action(basic_game, Action("takeLoan", 49), 0)
        assert apply_action(basic_game, Action("takeLoan", 50), 0)

    def test_limit_is_share_of_collateral(self, basic_game):
        give(basic_game, 0, 39)
        assert max_loan_amount(basic_game, 0) == 950

        assert not apply_action(basic_game, Action("takeLoan", 951), 0)
        assert apply_action(basic_game, Action("takeLoan", 950), 0)

    def test_existing_loans_reduce_limit(self, basic_game):
        dispatch(basic_game, 0, "takeLoan", 300)

        # (1800 - 300) * 0.5 - 300
        assert max_loan_amount(basic_game, 0) == 450

    def test_interest_rounds_up(self, basic_game):
        dispatch(basic_game, 0, "takeLoan", 55)

        assert apply_loan_interest(basic_game, 0) == 6
        assert basic_game.players[0].bank_loans[0].amount_owed == 61

    def test_banking_crisis_doubles_interest(self, basic_game):
        dispatch(basic_game, 0, "takeLoan", 100)
        trigger_economic_event(basic_game, event_type=EconomicEventType.BANKING_CRISIS)

        assert apply_loan_interest(basic_game, 0) == 20

    def test_interest_charged_at_end_of_turn(self, basic_game):
        dispatch(basic_game, 0, "takeLoan", 100)
        load_dice(basic_game, 1, 2)
        dispatch(basic_game, 0, "rollDice")
        dispatch(basic_game, 0, "declineProperty", 3)
        dispatch(basic_game, 0, "passAuction")
        dispatch(basic_game, 0, "endTurn")

        assert basic_game.current_player_id == 1
        assert basic_game.players[0].bank_loans[0].amount_owed == 110

    def test_repay_partially_then_fully(self, basic_game):
        loans = basic_game.players[0].bank_loans
        dispatch(basic_game, 0, "takeLoan", 100)
        loan_id = loans[0].loan_id

        dispatch(basic_game, 0, "repayLoan", loan_id, 40)
        assert loans[0].amount_owed == 60

        dispatch(basic_game, 0, "repayLoan", loan_id, 100)
        assert not loans
        assert basic_game.players[0].cash == 1500

    def test_repay_unknown_loan(self, basic_game):
        assert not apply_action(basic_game, Action("repayLoan", 7, 10), 0)

    def test_disabled_loans(self, game_settings, two_players):
        game = create_game(game_settings.model_copy(update={"enable_bank_loans": False}), two_players)
        game.start()

        assert not apply_action(game, Action("takeLoan", 100), 0)


class TestInsurance:
    def test_cost_is_share_of_price(self, basic_game):
        assert insurance_cost(basic_game, 39) == 20
        assert insurance_cost(basic_game, 1) == 3

    def test_buy_insurance(self, basic_game):
        give(basic_game, 0, 39)

        dispatch(basic_game, 0, "buyPropertyInsurance", 39)

        ownership = basic_game.property_ownership[39]
        assert ownership.is_insured
        assert ownership.insurance_paid_until_round == 5
        assert basic_game.players[0].cash == 1480

    def test_cannot_insure_twice(self, basic_game):
        give(basic_game, 0, 39)
        dispatch(basic_game, 0, "buyPropertyInsurance", 39)

        assert not apply_action(basic_game, Action("buyPropertyInsurance", 39), 0)

    def test_cannot_insure_unowned(self, basic_game):
        assert not apply_action(basic_game, Action("buyPropertyInsurance", 39), 0)

    def test_expiry(self, basic_game):
        give(basic_game, 0, 39)
        dispatch(basic_game, 0, "buyPropertyInsurance", 39)

        basic_game.rounds_completed = 4
        assert check_insurance_expiry(basic_game) == []

        basic_game.rounds_completed = 5
        assert check_insurance_expiry(basic_game) == [39]
        assert not basic_game.property_ownership[39].is_insured


class TestValueFluctuation:
    def test_building_appreciates_group(self, fluctuating_game):
        give(fluctuating_game, 0, 1, 3)

        dispatch(fluctuating_game, 0, "buildHouse", 1)

        assert fluctuating_game.property_ownership[1].value_multiplier == pytest.approx(1.05)
        assert fluctuating_game.property_ownership[3].value_multiplier == pytest.approx(1.05)
        assert fluctuating_game.current_price(1) == 63

    def test_mortgage_depreciates_group(self, fluctuating_game):
        give(fluctuating_game, 0, 1)

        dispatch(fluctuating_game, 0, "mortgageProperty", 1)

        assert fluctuating_game.property_ownership[1].value_multiplier == pytest.approx(0.95)
        assert fluctuating_game.property_ownership[3].value_multiplier == pytest.approx(0.95)

    def test_multiplier_floor(self, fluctuating_game):
        give(fluctuating_game, 0, 5)
        fluctuating_game.property_ownership[5].value_multiplier = 0.5

        dispatch(fluctuating_game, 0, "mortgageProperty", 5)

        assert fluctuating_game.property_ownership[5].value_multiplier == pytest.approx(0.5)

    def test_no_fluctuation_by_default(self, basic_game):
        give(basic_game, 0, 1, 3)

        dispatch(basic_game, 0, "buildHouse", 1)

        assert basic_game.property_ownership[1].value_multiplier == 1.0
