"""
Tests for the rule-based computer player and its valuation helpers.
"""

import pytest
from conftest import give, load_dice

from tycoon.agents import PROFILES, HeuristicAgent, get_profile
from tycoon.agents.valuation import calculate_valuation, return_on_investment
from tycoon.bankruptcy import offer_restructuring
from tycoon.foreclosure import open_foreclosure
from tycoon.negotiation import create_iou
from tycoon.phases import Phase
from tycoon.player import Difficulty, TradeAttempts
from tycoon.rules import Action, apply_action, dispatch
from tycoon.snapshot import serialize_snapshot


def agent_for(player_id, difficulty=Difficulty.MEDIUM):
    return HeuristicAgent(player_id, f"Bot {player_id}", difficulty)


@pytest.fixture
def short_of_rent(basic_game):
    """Alice, holding £2 and Mediterranean Avenue, cannot pay Bob's rent on Baltic Avenue."""
    give(basic_game, 0, 1)
    give(basic_game, 1, 3)
    basic_game.players[0].cash = 2
    load_dice(basic_game, 1, 2)
    dispatch(basic_game, 0, "rollDice")
    return basic_game


class TestProfiles:
    def test_tiers_ordered(self):
        easy, medium, hard = (PROFILES[d] for d in (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD))

        assert easy.cash_reserve > medium.cash_reserve > hard.cash_reserve
        assert easy.auction_aggressiveness < medium.auction_aggressiveness < hard.auction_aggressiveness
        assert easy.trade_margin > hard.trade_margin

    def test_lookup_by_name(self):
        assert get_profile("hard") is PROFILES[Difficulty.HARD]


class TestValuation:
    def test_empty_bundle_is_worthless(self, basic_game):
        assert calculate_valuation(basic_game, 0, 0, [], 0) == 0

    def test_cash_and_jail_cards(self, basic_game):
        assert calculate_valuation(basic_game, 0, 100, [], 2) == 200

    def test_completing_piece_is_worth_more(self, basic_game):
        assert calculate_valuation(basic_game, 0, 0, [3], 0) == 60

        give(basic_game, 0, 1)
        assert calculate_valuation(basic_game, 0, 0, [3], 0) == 240

    def test_railroad_return(self, basic_game):
        assert return_on_investment(basic_game, 0, 5) == pytest.approx(0.125)


class TestBuying:
    def test_reserve_blocks_purchase(self, basic_game):
        give(basic_game, 0, 37, 39)
        basic_game.players[0].cash = 400

        assert not agent_for(0, Difficulty.EASY).should_buy(basic_game, 9)
        assert agent_for(0, Difficulty.MEDIUM).should_buy(basic_game, 9)

    def test_completing_monopoly_keeps_reserve(self, basic_game):
        give(basic_game, 0, 1, 39)
        basic_game.players[0].cash = 70

        assert not agent_for(0).should_buy(basic_game, 3)

        basic_game.players[0].cash = 200
        assert agent_for(0).should_buy(basic_game, 3)

    def test_blocking_monopoly_keeps_reserve(self, basic_game):
        give(basic_game, 1, 1)
        basic_game.players[0].cash = 65

        assert not agent_for(0).should_buy(basic_game, 3)

        basic_game.players[0].cash = 1500
        assert agent_for(0).should_buy(basic_game, 3)

    def test_completion_waives_return_threshold(self, basic_game, monkeypatch):
        give(basic_game, 0, 1)
        monkeypatch.setattr("tycoon.agents.heuristic.return_on_investment", lambda *args: 0.0)

        assert agent_for(0, Difficulty.EASY).should_buy(basic_game, 3)
        assert not agent_for(0, Difficulty.EASY).should_buy(basic_game, 9)

    def test_never_buys_unaffordable(self, basic_game):
        basic_game.players[0].cash = 50

        assert not agent_for(0, Difficulty.HARD).should_buy(basic_game, 39)

    def test_return_threshold_by_tier(self, basic_game):
        assert not agent_for(0, Difficulty.EASY).should_buy(basic_game, 5)
        assert agent_for(0, Difficulty.HARD).should_buy(basic_game, 5)

    def test_buy_decision_action(self, basic_game):
        load_dice(basic_game, 1, 2)
        dispatch(basic_game, 0, "rollDice")

        assert agent_for(0).choose_action(basic_game) == Action("buyProperty", 3)


class TestTurn:
    def test_rolls_on_own_turn(self, basic_game):
        assert agent_for(0).choose_action(basic_game) == Action("rollDice")

    def test_idle_when_not_its_decision(self, basic_game):
        assert agent_for(1).choose_action(basic_game) is None

    def test_ends_turn_after_resolving(self, basic_game):
        load_dice(basic_game, 1, 2)
        dispatch(basic_game, 0, "rollDice")
        dispatch(basic_game, 0, "buyProperty", 3)

        assert agent_for(0).choose_action(basic_game) == Action("endTurn")

    def test_choice_does_not_mutate_state(self, basic_game):
        give(basic_game, 0, 1, 3)
        before = serialize_snapshot(basic_game)

        agent_for(0).choose_action(basic_game)

        assert serialize_snapshot(basic_game) == before

    def test_builds_on_completed_group(self, basic_game):
        give(basic_game, 0, 1, 3)

        assert agent_for(0).choose_action(basic_game) == Action("buildHouse", 1)

    def test_optimal_tax_choice(self, basic_game):
        load_dice(basic_game, 1, 3)
        dispatch(basic_game, 0, "rollDice")

        assert agent_for(0).choose_action(basic_game) == Action("chooseTaxOption", "percentage")


class TestJail:
    @pytest.fixture
    def jailed(self, basic_game):
        basic_game.send_to_jail(0)
        basic_game.begin_turn()
        return basic_game

    def test_uses_card(self, jailed):
        jailed.players[0].jail_free_cards = 1

        assert agent_for(0).choose_action(jailed) == Action("getOutOfJail", "card")

    def test_tries_to_roll_first(self, jailed):
        assert agent_for(0).choose_action(jailed) == Action("getOutOfJail", "roll")

    def test_pays_after_failed_roll(self, jailed):
        jailed.players[0].jail_turns = 1

        assert agent_for(0).choose_action(jailed) == Action("getOutOfJail", "pay")


class TestAuction:
    @pytest.fixture
    def auction_game(self, basic_game):
        load_dice(basic_game, 1, 2)
        dispatch(basic_game, 0, "rollDice")
        dispatch(basic_game, 0, "declineProperty", 3)
        return basic_game

    def test_bids_minimum(self, auction_game):
        assert agent_for(0).choose_action(auction_game) == Action("placeBid", 10)

    def test_passes_above_ceiling(self, auction_game):
        dispatch(auction_game, 0, "placeBid", 10)
        dispatch(auction_game, 1, "placeBid", 60)

        assert agent_for(0).choose_action(auction_game) == Action("passAuction")

    def test_hard_pays_premium_to_complete_group(self, auction_game):
        give(auction_game, 0, 1)
        dispatch(auction_game, 0, "placeBid", 10)
        dispatch(auction_game, 1, "placeBid", 100)

        # 60 * 1.1 * 2.0 ceiling
        assert agent_for(0, Difficulty.HARD).choose_action(auction_game) == Action("placeBid", 110)


class TestTrading:
    def test_accepts_generous_offer(self, basic_game):
        give(basic_game, 1, 3)
        dispatch(basic_game, 0, "startTrade", 1)
        dispatch(basic_game, 0, "proposeTrade", {"cash_offered": 200, "properties_requested": [3]})

        action = agent_for(1).choose_action(basic_game)

        assert action == Action("acceptTrade")
        assert apply_action(basic_game, action, 1)
        assert basic_game.property_ownership[3].owner_id == 0

    def test_rejects_lowball_offer(self, basic_game):
        give(basic_game, 1, 3)
        dispatch(basic_game, 0, "startTrade", 1)
        dispatch(basic_game, 0, "proposeTrade", {"cash_offered": 20, "properties_requested": [3]})

        assert agent_for(1).choose_action(basic_game) == Action("rejectTrade")

    def test_opens_trade_for_missing_piece(self, basic_game):
        give(basic_game, 0, 1)
        give(basic_game, 1, 3)
        agent = agent_for(0)

        assert agent.choose_action(basic_game) == Action("startTrade", 1)

        dispatch(basic_game, 0, "startTrade", 1)
        proposal = agent.choose_action(basic_game)
        assert proposal == Action("proposeTrade", {"cash_offered": 90, "properties_requested": [3]})

    def test_cooldown_between_trades(self, basic_game):
        give(basic_game, 0, 1)
        give(basic_game, 1, 3)
        dispatch(basic_game, 0, "startTrade", 1)
        dispatch(basic_game, 0, "cancelTrade")

        assert agent_for(0).choose_action(basic_game) == Action("rollDice")

    def test_gives_up_after_repeated_rejections(self, basic_game):
        give(basic_game, 0, 1)
        give(basic_game, 1, 3)
        basic_game.players[0].trade_history["1-3"] = TradeAttempts(attempts=3, last_offer=120, last_turn=0)

        assert agent_for(0).choose_action(basic_game) == Action("rollDice")

    def test_offer_rises_with_attempts(self, basic_game):
        give(basic_game, 0, 1)
        give(basic_game, 1, 3)
        basic_game.players[0].trade_history["1-3"] = TradeAttempts(attempts=1, last_offer=90, last_turn=0)
        agent = agent_for(0)
        dispatch(basic_game, 0, "startTrade", 1)

        assert agent.choose_action(basic_game) == Action("proposeTrade", {"cash_offered": 120, "properties_requested": [3]})


class TestDistress:
    def test_mortgages_when_in_the_red(self, basic_game):
        give(basic_game, 0, 39)
        basic_game.players[0].cash = -50
        basic_game.phase = Phase.RESOLVING_SPACE

        assert agent_for(0).choose_action(basic_game) == Action("mortgageProperty", 39)

    def test_sells_hotel_first(self, basic_game):
        give(basic_game, 0, 37, 39)
        basic_game.property_ownership[39].hotel = True
        basic_game.property_ownership[37].houses = 4
        basic_game.players[0].cash = -50
        basic_game.phase = Phase.RESOLVING_SPACE

        assert agent_for(0).choose_action(basic_game) == Action("sellHotel", 39)

    def test_skips_hotel_the_bank_cannot_break_up(self, basic_game):
        give(basic_game, 0, 5, 37, 39)
        basic_game.property_ownership[39].hotel = True
        basic_game.property_ownership[37].houses = 4
        basic_game.bank.houses_available = 3
        basic_game.players[0].cash = -50
        basic_game.phase = Phase.RESOLVING_SPACE

        action = agent_for(0).choose_action(basic_game)

        assert action == Action("mortgageProperty", 5)
        assert apply_action(basic_game, action, 0)
        assert basic_game.players[0].cash == 50

    def test_enters_chapter11_when_solvent_on_paper(self, basic_game):
        give(basic_game, 0, 39)
        offer_restructuring(basic_game, 0, 1, 300)

        assert agent_for(0).choose_action(basic_game) == Action("enterChapter11")

    def test_declines_hopeless_restructuring(self, basic_game):
        give(basic_game, 0, 1)
        basic_game.players[0].cash = 0
        offer_restructuring(basic_game, 0, 1, 5000)

        assert agent_for(0).choose_action(basic_game) == Action("declineRestructuring")

    def test_pays_affordable_debt_service(self, basic_game):
        alice = basic_game.players[0]
        alice.in_chapter11 = True
        alice.chapter11_debt_target = 100
        alice.chapter11_turns_remaining = 3
        basic_game.begin_turn()

        assert agent_for(0).choose_action(basic_game) == Action("payDebtService")

        alice.cash = 1
        assert agent_for(0).choose_action(basic_game) == Action("deferDebtService")


class TestRentNegotiation:
    def test_medium_offers_plan(self, short_of_rent):
        action = agent_for(1).choose_action(short_of_rent)

        assert action == Action("offerPaymentPlan", 2, short_of_rent.settings.iou_interest_rate)

    def test_easy_forgives_small_rent(self, short_of_rent):
        assert agent_for(1, Difficulty.EASY).choose_action(short_of_rent) == Action("forgiveRent")

    def test_hard_demands_property(self, short_of_rent):
        assert agent_for(1, Difficulty.HARD).choose_action(short_of_rent) == Action(
            "demandImmediatePaymentOrProperty", 1
        )

    def test_demands_after_rejection(self, short_of_rent):
        dispatch(short_of_rent, 1, "offerPaymentPlan", 2, 0.1)
        dispatch(short_of_rent, 0, "rejectPaymentPlan")

        assert agent_for(1).choose_action(short_of_rent) == Action("demandImmediatePaymentOrProperty", 1)

    def test_debtor_accepts_affordable_plan(self, short_of_rent):
        dispatch(short_of_rent, 1, "offerPaymentPlan", 2, 0.1)

        assert agent_for(0).choose_action(short_of_rent) == Action("acceptPaymentPlan")

    def test_debtor_rejects_unaffordable_plan(self, short_of_rent):
        dispatch(short_of_rent, 1, "offerPaymentPlan", 4, 0.1)

        assert agent_for(0).choose_action(short_of_rent) == Action("rejectPaymentPlan")


class TestForeclosure:
    @pytest.fixture
    def overdue(self, basic_game):
        give(basic_game, 0, 39)
        iou = create_iou(basic_game, 0, 1, 200, 0.05, reason="rent")
        open_foreclosure(basic_game, iou)
        return basic_game

    def test_easy_extends(self, overdue):
        assert agent_for(1, Difficulty.EASY).choose_action(overdue) == Action("extendIOU")

    def test_medium_forecloses(self, overdue):
        assert agent_for(1).choose_action(overdue) == Action("foreclose")
