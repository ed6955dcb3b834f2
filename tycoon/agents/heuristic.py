"""
Rule-based computer player.

The agent is a pure step function: each call inspects the game and
returns at most one command. The server calls it again on the next tick,
so multi-step plans (raising cash, building up a group, opening and then
proposing a trade) unfold one command at a time.

Decision order:
    1. Answer any decision the game is waiting on this player for
    2. Raise cash while in the red
    3. Try to trade for a missing monopoly piece
    4. Build on completed groups
    5. Play the turn: jail, roll, buy or decline, end turn
"""

import logging
import math
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

from tycoon import finance
from tycoon.agents.base import Agent
from tycoon.agents.profiles import DifficultyProfile, get_profile
from tycoon.agents.valuation import (
    auction_premium,
    blocks_monopoly,
    calculate_valuation,
    cash_reserve,
    completes_monopoly,
    return_on_investment,
)
from tycoon.economics import calculate_building_cost, get_optimal_tax_choice
from tycoon.negotiation import NegotiationStatus
from tycoon.phases import MANAGEMENT_PHASES, Phase
from tycoon.player import Difficulty, PlayerState
from tycoon.rent import has_monopoly
from tycoon.rules import Action, capabilities as session_capabilities
from tycoon.spaces import PropertySpace
from tycoon.trade import TradeStatus

if TYPE_CHECKING:
    from tycoon.game import GameState

logger = logging.getLogger(__name__)

TRADE_COOLDOWN_TURNS = 5
MAX_TRADE_ATTEMPTS = 3
BASE_TRADE_MULTIPLIER = 1.5
TRADE_MULTIPLIER_STEP = 0.5
SMALL_RENT = 50


class HeuristicAgent(Agent):
    """Computer player driven by a difficulty profile."""

    def __init__(self, player_id: int, name: str, difficulty: Difficulty = Difficulty.MEDIUM):
        super().__init__(player_id, name)
        self.difficulty = Difficulty(difficulty)
        self.profile: DifficultyProfile = get_profile(self.difficulty)

    def choose_action(self, game: "GameState", capabilities: Optional[Iterable[str]] = None) -> Optional[Action]:
        if game.phase in (Phase.SETUP, Phase.GAME_OVER):
            return None
        player = game.players.get(self.player_id)
        if player is None or player.is_bankrupt:
            return None
        if game.active_actor_id() != self.player_id:
            return None
        caps = set(capabilities) if capabilities is not None else set(session_capabilities(game))

        action = self._respond(game, player, caps)
        if action is not None or game.phase not in MANAGEMENT_PHASES:
            return action
        if game.current_player_id != self.player_id:
            return None

        if player.cash < 0:
            action = self._raise_cash(game, player, caps)
            if action is not None:
                return action

        if game.phase == Phase.ROLLING and game.dice_roll is None and not player.in_jail:
            action = self._initiate_trade(game, player)
            if action is not None:
                return action
            action = self._build(game, player)
            if action is not None:
                return action

        return self._play_turn(game, player)

    def reserve(self, game: "GameState") -> int:
        return cash_reserve(game, self.player_id, self.profile.cash_reserve)

    # Obligations

    def _respond(self, game: "GameState", player: PlayerState, caps) -> Optional[Action]:
        phase = game.phase
        if phase == Phase.AWAITING_DEBT_SERVICE:
            if player.cash >= game.pending_debt_service.amount:
                return Action("payDebtService")
            return Action("deferDebtService")

        if phase == Phase.AWAITING_FORECLOSURE_DECISION:
            if self.difficulty == Difficulty.EASY:
                return Action("extendIOU")
            return Action("foreclose")

        if phase == Phase.AWAITING_BANKRUPTCY_DECISION:
            pending = game.pending_bankruptcy
            if "enterChapter11" in caps and game.net_worth(self.player_id) - pending.debt_amount > 0:
                return Action("enterChapter11")
            return Action("declineRestructuring")

        if phase == Phase.AWAITING_TAX_DECISION:
            return Action("chooseTaxOption", get_optimal_tax_choice(game.net_worth(self.player_id)))

        if phase == Phase.AWAITING_RENT_NEGOTIATION:
            return self._rent_negotiation(game, player)

        if phase == Phase.TRADING:
            return self._trade_response(game, player)

        if phase == Phase.AUCTION:
            return self._bid(game, player)
        return None

    def _rent_negotiation(self, game: "GameState", player: PlayerState) -> Optional[Action]:
        negotiation = game.pending_rent_negotiation
        debtor = game.players[negotiation.debtor_id]

        if negotiation.status == NegotiationStatus.DEBTOR_DECISION:
            plan = negotiation.proposed_plan
            if plan is None:
                return Action("createRentIOU", max(0, min(player.cash, negotiation.rent_amount)))
            if plan.partial_payment <= player.cash:
                return Action("acceptPaymentPlan")
            return Action("rejectPaymentPlan")

        partial = max(0, min(debtor.cash, negotiation.rent_amount))
        plan = Action("offerPaymentPlan", partial, game.settings.iou_interest_rate)
        if negotiation.plan_rejected:
            return Action("demandImmediatePaymentOrProperty", self._most_valuable_seizable(game, debtor))
        if self.difficulty == Difficulty.EASY:
            return Action("forgiveRent") if negotiation.rent_amount <= SMALL_RENT else plan
        if self.difficulty == Difficulty.HARD:
            position = self._most_valuable_seizable(game, debtor)
            if position is not None:
                return Action("demandImmediatePaymentOrProperty", position)
        return plan

    @staticmethod
    def _most_valuable_seizable(game: "GameState", debtor: PlayerState) -> Optional[int]:
        candidates = [p for p in debtor.properties if not game.property_ownership[p].has_buildings()]
        if not candidates:
            return None
        return max(candidates, key=lambda p: (game.equity_value(p), p))

    def _trade_response(self, game: "GameState", player: PlayerState) -> Optional[Action]:
        trade = game.trade
        if trade.status == TradeStatus.DRAFT and trade.initiator_id == self.player_id:
            plan = self._monopoly_trade_plan(game, player, target=trade.receiver_id)
            if plan is None:
                return Action("cancelTrade")
            _, positions, cash = plan
            return Action("proposeTrade", {"cash_offered": cash, "properties_requested": positions})

        if trade.responder_id != self.player_id:
            return None
        if trade.status == TradeStatus.COUNTER_PENDING:
            offer = trade.counter_offer
            received = calculate_valuation(
                game, self.player_id, offer.cash_requested, offer.properties_requested, offer.jail_cards_requested
            )
            given = calculate_valuation(
                game, self.player_id, offer.cash_offered, offer.properties_offered, offer.jail_cards_offered
            )
        else:
            offer = trade.offer
            received = calculate_valuation(
                game, self.player_id, offer.cash_offered, offer.properties_offered, offer.jail_cards_offered
            )
            given = calculate_valuation(
                game, self.player_id, offer.cash_requested, offer.properties_requested, offer.jail_cards_requested
            )
        if received >= self.profile.trade_margin * given:
            return Action("acceptTrade")
        return Action("rejectTrade")

    def _bid(self, game: "GameState", player: PlayerState) -> Action:
        auction = game.auction
        premium = auction_premium(game, self.player_id, auction.property_position)
        ceiling = math.floor(auction.property_price * self.profile.auction_aggressiveness * premium)
        limit = min(ceiling, player.cash - self.reserve(game))
        if auction.highest_bidder != self.player_id and auction.minimum_bid <= limit:
            return Action("placeBid", auction.minimum_bid)
        return Action("passAuction")

    # Own turn

    def _raise_cash(self, game: "GameState", player: PlayerState, caps) -> Optional[Action]:
        """Sell a building, else mortgage, else borrow."""
        owned = sorted(player.properties)
        for position in owned:
            if game.can_sell_hotel(self.player_id, position):
                return Action("sellHotel", position)
        for position in owned:
            ownership = game.property_ownership[position]
            if ownership.houses and self._is_tallest_in_group(game, position):
                return Action("sellHouse", position)

        for position in owned:
            ownership = game.property_ownership[position]
            if ownership.mortgaged:
                continue
            space = game.board.get_ownable(position)
            group = game.board.get_color_group(space.color_group) if space.color_group else [position]
            if not any(game.property_ownership[p].has_buildings() for p in group):
                return Action("mortgageProperty", position)

        if "takeLoan" in caps:
            needed = max(finance.MIN_LOAN, -player.cash)
            willing = math.floor(finance.loan_net_worth(game, self.player_id) * self.profile.loan_appetite)
            if needed <= min(willing, finance.max_loan_amount(game, self.player_id)):
                return Action("takeLoan", needed)
        return None

    @staticmethod
    def _is_tallest_in_group(game: "GameState", position: int) -> bool:
        space = game.board.get_ownable(position)
        houses = game.property_ownership[position].houses
        return all(
            game.property_ownership[p].houses <= houses and not game.property_ownership[p].hotel
            for p in game.board.get_color_group(space.color_group)
        )

    def _monopoly_trade_plan(
        self, game: "GameState", player: PlayerState, target: Optional[int] = None
    ) -> Optional[Tuple[int, List[int], int]]:
        """Find a group where one opponent holds every missing piece. Returns (owner, positions, cash offer)."""
        reserve = self.reserve(game)
        for color_group, group in game.board.color_groups.items():
            mine = [p for p in group if game.property_ownership[p].owner_id == self.player_id]
            if not mine or len(mine) == len(group):
                continue
            missing = [p for p in group if p not in mine]
            owners = {game.property_ownership[p].owner_id for p in missing}
            if len(owners) != 1:
                continue
            owner = owners.pop()
            if owner is None or owner == self.player_id or game.players[owner].is_bankrupt:
                continue
            if target is not None and owner != target:
                continue
            if any(game.property_ownership[p].has_buildings() for p in missing):
                continue

            attempts = 0
            for position in missing:
                record = player.trade_history.get(f"{owner}-{position}")
                if record is not None:
                    attempts = max(attempts, record.attempts)
            if attempts >= MAX_TRADE_ATTEMPTS:
                continue

            value = sum(game.current_price(p) for p in missing)
            cash = math.floor(value * (BASE_TRADE_MULTIPLIER + TRADE_MULTIPLIER_STEP * attempts))
            if player.cash - cash < reserve:
                continue
            logger.debug("%s eyes %s from player %d for £%d", self.name, color_group, owner, cash)
            return owner, sorted(missing), cash
        return None

    def _initiate_trade(self, game: "GameState", player: PlayerState) -> Optional[Action]:
        if player.last_trade_turn is not None and game.turn_number - player.last_trade_turn < TRADE_COOLDOWN_TURNS:
            return None
        plan = self._monopoly_trade_plan(game, player)
        if plan is None:
            return None
        return Action("startTrade", plan[0])

    def _build(self, game: "GameState", player: PlayerState) -> Optional[Action]:
        """One building on the least developed street of a completed group."""
        reserve = self.reserve(game)
        candidates = []
        for position in player.properties:
            space = game.board.get_ownable(position)
            if not isinstance(space, PropertySpace) or not has_monopoly(game, self.player_id, space.color_group):
                continue
            ownership = game.property_ownership[position]
            if ownership.hotel or ownership.mortgaged:
                continue
            candidates.append((ownership.houses, position))

        for houses, position in sorted(candidates):
            space = game.board.get_ownable(position)
            if player.cash - calculate_building_cost(game, space) < reserve:
                continue
            if houses == 4 and game.can_build_hotel(self.player_id, position):
                return Action("buildHotel", position)
            if houses < 4 and game.can_build_house(self.player_id, position):
                return Action("buildHouse", position)
        return None

    def _play_turn(self, game: "GameState", player: PlayerState) -> Optional[Action]:
        phase = game.phase
        if phase == Phase.JAIL_DECISION:
            if player.jail_free_cards > 0:
                return Action("getOutOfJail", "card")
            if player.jail_turns >= 1 and player.cash - game.settings.jail_fine >= self.reserve(game):
                return Action("getOutOfJail", "pay")
            return Action("getOutOfJail", "roll")

        if phase == Phase.ROLLING:
            if game.dice_roll is None and not player.in_jail:
                return Action("rollDice")
            return Action("endTurn")

        if phase == Phase.AWAITING_BUY_DECISION:
            position = player.position
            if self.should_buy(game, position):
                return Action("buyProperty", position)
            return Action("declineProperty", position)

        if phase == Phase.RESOLVING_SPACE:
            return Action("endTurn")
        return None

    def should_buy(self, game: "GameState", position: int) -> bool:
        """
        Decide whether to buy an unowned space at its current price.

        The purchase must always leave the cash reserve intact. Completing
        or blocking a monopoly then waives the return-on-investment threshold.
        """
        player = game.players[self.player_id]
        price = game.current_price(position)
        if player.cash - price < self.reserve(game):
            return False
        if completes_monopoly(game, self.player_id, position) or blocks_monopoly(game, self.player_id, position):
            return True
        return return_on_investment(game, self.player_id, position) >= self.profile.roi_threshold
