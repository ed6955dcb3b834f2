"""
Main game engine and state management.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from tycoon import bankruptcy, finance, foreclosure, negotiation
from tycoon.auction import Auction, start_auction
from tycoon.board import JAIL_POSITION, Board
from tycoon.cards import Card, CardType, Deck, create_chance_deck, create_community_chest_deck
from tycoon.economics import (
    FLAT_INCOME_TAX,
    ActiveEconomicEvent,
    EconomicEventType,
    calculate_building_cost,
    calculate_current_price,
    calculate_game_gini,
    calculate_go_salary,
    calculate_money_in_circulation,
    calculate_net_worth,
    calculate_percentage_tax,
    is_event_active,
    tick_economic_events,
    trigger_economic_event,
)
from tycoon.exceptions import InvalidActionError, ValidationError
from tycoon.money import Bank, EventLog, EventType
from tycoon.phases import Phase
from tycoon.player import Player, PlayerState, PropertyOwnership
from tycoon.rent import calculate_rent, has_monopoly
from tycoon.settings import GameSettings
from tycoon.spaces import PropertySpace, SpaceType, TaxSpace
from tycoon.trade import Trade

logger = logging.getLogger(__name__)

MIN_PLAYERS = 2
MAX_PLAYERS = 8
UNMORTGAGE_INTEREST = 1.1


@dataclass
class DiceRoll:
    die1: int
    die2: int

    @property
    def total(self) -> int:
        return self.die1 + self.die2

    @property
    def is_doubles(self) -> bool:
        return self.die1 == self.die2


@dataclass
class TaxDecision:
    """Income tax owed, with both ways of paying it."""

    player_id: int
    flat_amount: int
    percentage_amount: int


@dataclass
class MarketHistoryEntry:
    round: int
    inflation: int
    gini: float
    money_in_circulation: int


class GameState:
    """
    Represents the complete state of a game session.
    This is the main interface for the game engine; commands reach it
    through tycoon.rules, which checks phase and actor first.
    """

    def __init__(self, settings: GameSettings, players: List[Player], board: Optional[Board] = None):
        self.settings = settings
        self.board = board or Board()
        self.bank = Bank(settings.house_limit, settings.hotel_limit, settings.enable_housing_scarcity)
        self.event_log = EventLog()
        self.rng = random.Random(settings.seed)

        self.players: Dict[int, PlayerState] = {}
        for player in players:
            self.players[player.player_id] = PlayerState(
                player.player_id,
                player.name,
                settings.starting_cash,
                color=player.color,
                is_ai=player.is_ai,
                ai_difficulty=player.ai_difficulty,
            )

        self.property_ownership: Dict[int, PropertyOwnership] = {
            position: PropertyOwnership() for position in self.board.get_ownable_positions()
        }

        self.chance_deck = create_chance_deck(self.rng)
        self.community_chest_deck = create_community_chest_deck(self.rng)

        self.phase = Phase.SETUP
        self.current_player_index = 0
        self.turn_number = 0
        self.rounds_completed = 0
        self.current_go_salary = calculate_go_salary(0)
        self.dice_roll: Optional[DiceRoll] = None
        self.last_card: Optional[str] = None
        self.winner: Optional[int] = None

        # Pending sub-negotiations; at most one is set at a time
        self.auction: Optional[Auction] = None
        self.trade: Optional[Trade] = None
        self.pending_rent_negotiation: Optional[negotiation.RentNegotiation] = None
        self.pending_bankruptcy: Optional[bankruptcy.PendingBankruptcy] = None
        self.pending_foreclosure: Optional[foreclosure.PendingForeclosure] = None
        self.pending_debt_service: Optional[foreclosure.PendingDebtService] = None
        self.awaiting_tax_decision: Optional[TaxDecision] = None

        self.market_history: List[MarketHistoryEntry] = []
        self.active_economic_events: List[ActiveEconomicEvent] = []

        # Card effects that change the rent of the next landing
        self.utility_multiplier_override: Optional[int] = None
        self.railroad_rent_multiplier: Optional[int] = None

        self.next_trade_id = 0
        self.next_iou_id = 0
        self.next_loan_id = 0

    # Lookups

    def turn_order(self) -> List[int]:
        return sorted(self.players)

    @property
    def current_player_id(self) -> int:
        order = self.turn_order()
        return order[self.current_player_index % len(order)]

    def get_current_player(self) -> PlayerState:
        """Get the player whose turn it is."""
        return self.players[self.current_player_id]

    def get_active_players(self) -> List[PlayerState]:
        """Get all non-bankrupt players."""
        return [p for p in self.players.values() if not p.is_bankrupt]

    def has_pending_decision(self) -> bool:
        return any(
            pending is not None
            for pending in (
                self.auction,
                self.trade,
                self.pending_rent_negotiation,
                self.pending_bankruptcy,
                self.pending_foreclosure,
                self.pending_debt_service,
                self.awaiting_tax_decision,
            )
        )

    def active_actor_id(self) -> Optional[int]:
        """The player whose decision the game is waiting on."""
        if self.phase in (Phase.SETUP, Phase.GAME_OVER):
            return None
        if self.phase == Phase.AUCTION and self.auction is not None:
            return self.auction.active_player_id
        if self.phase == Phase.AWAITING_FORECLOSURE_DECISION and self.pending_foreclosure is not None:
            return self.pending_foreclosure.creditor_id
        if self.phase == Phase.AWAITING_RENT_NEGOTIATION and self.pending_rent_negotiation is not None:
            return self.pending_rent_negotiation.deciding_player_id
        if self.phase == Phase.AWAITING_DEBT_SERVICE and self.pending_debt_service is not None:
            return self.pending_debt_service.player_id
        if self.phase == Phase.AWAITING_BANKRUPTCY_DECISION and self.pending_bankruptcy is not None:
            return self.pending_bankruptcy.player_id
        if self.phase == Phase.TRADING and self.trade is not None:
            return self.trade.responder_id if self.trade.responder_id is not None else self.trade.initiator_id
        return self.current_player_id

    def current_price(self, position: int) -> int:
        return calculate_current_price(
            self.board.get_ownable(position), self.property_ownership[position], self.active_economic_events
        )

    def equity_value(self, position: int) -> int:
        """Market price less the mortgage, if any."""
        price = self.current_price(position)
        if self.property_ownership[position].mortgaged:
            return price - self.board.get_ownable(position).mortgage_value
        return price

    def net_worth(self, player_id: int) -> int:
        return calculate_net_worth(self, player_id)

    # Ownership

    def assign_property(self, position: int, player_id: int) -> None:
        self.property_ownership[position].owner_id = player_id
        self.players[player_id].properties.add(position)

    def transfer_property(self, position: int, new_owner_id: int) -> None:
        """Move a property between players, keeping mortgage and buildings as they are."""
        ownership = self.property_ownership[position]
        if ownership.owner_id is not None:
            self.players[ownership.owner_id].properties.discard(position)
        self.assign_property(position, new_owner_id)
        self.event_log.log(EventType.TRANSFER, player_id=new_owner_id, position=position)

    # Turn lifecycle

    def start(self) -> None:
        """Leave setup and begin the first player's turn."""
        if self.phase != Phase.SETUP:
            raise InvalidActionError("Game has already started")
        self.turn_number = 1
        self.event_log.log(
            EventType.GAME_START,
            players=[p.name for p in self.players.values()],
            starting_cash=self.settings.starting_cash,
            seed=self.settings.seed,
        )
        logger.info("Game started with %d players", len(self.players))
        self.begin_turn()

    def begin_turn(self) -> None:
        """Put the current player into the right opening phase."""
        if self.phase == Phase.GAME_OVER:
            return
        player = self.get_current_player()
        if foreclosure.open_debt_service(self, player.player_id):
            return
        overdue = foreclosure.find_overdue_iou(self, player.player_id)
        if overdue is not None:
            foreclosure.open_foreclosure(self, overdue)
            return
        self.phase = Phase.JAIL_DECISION if player.in_jail else Phase.ROLLING

    def resume_turn(self) -> None:
        """Return to the turn after a side negotiation closes. The roll stays on record."""
        if self.phase == Phase.GAME_OVER:
            return
        player = self.get_current_player()
        if player.in_jail and self.dice_roll is None:
            self.phase = Phase.JAIL_DECISION
        else:
            self.phase = Phase.ROLLING

    def end_turn(self) -> None:
        """
        Finish the current player's turn.

        A player in the red is sent to restructuring instead. After a
        non-jail double the same player rolls again.
        """
        player = self.get_current_player()
        if player.cash < 0:
            bankruptcy.offer_restructuring(self, player.player_id, None, -player.cash)
            return

        roll = self.dice_roll
        if roll is not None and roll.is_doubles and player.consecutive_doubles > 0 and not player.in_jail:
            self.dice_roll = None
            self.phase = Phase.ROLLING
            logger.debug("%s rolled doubles and goes again", player.name)
            return

        self.advance_turn(upkeep=True)

    def advance_turn(self, upkeep: bool = False) -> None:
        """Hand the turn to the next non-bankrupt player."""
        ending = self.get_current_player()
        if upkeep and not ending.is_bankrupt:
            finance.apply_loan_interest(self, ending.player_id)
            bankruptcy.check_chapter11_status(self, ending.player_id)
            if ending.is_bankrupt or self.phase == Phase.GAME_OVER:
                # Liquidation already moved the turn on
                return
        ending.consecutive_doubles = 0

        order = self.turn_order()
        count = len(order)
        current = self.current_player_index % count
        next_index = current
        for _ in range(count):
            next_index = (next_index + 1) % count
            if not self.players[order[next_index]].is_bankrupt:
                break

        active = [i for i, pid in enumerate(order) if not self.players[pid].is_bankrupt]
        completed_round = bool(active) and next_index <= current and next_index == active[0] and len(active) > 1

        self.dice_roll = None
        self.utility_multiplier_override = None
        self.railroad_rent_multiplier = None
        self.current_player_index = next_index
        self.turn_number += 1

        if completed_round:
            self._complete_round()

        self.event_log.log(EventType.TURN_START, player_id=order[next_index], turn=self.turn_number)
        self.begin_turn()

    def _complete_round(self) -> None:
        self.rounds_completed += 1
        if self.settings.enable_inflation:
            self.current_go_salary = calculate_go_salary(self.rounds_completed)
        self.market_history.append(
            MarketHistoryEntry(
                round=self.rounds_completed,
                inflation=self.current_go_salary,
                gini=calculate_game_gini(self),
                money_in_circulation=calculate_money_in_circulation(self),
            )
        )
        tick_economic_events(self)
        finance.check_insurance_expiry(self)
        self.event_log.log(EventType.ROUND_COMPLETE, round=self.rounds_completed, go_salary=self.current_go_salary)

    def check_win_condition(self) -> bool:
        """End the game if at most one player is still solvent."""
        active = self.get_active_players()
        if len(active) > 1:
            return False
        self.winner = active[0].player_id if active else None
        self.phase = Phase.GAME_OVER
        self.auction = None
        self.trade = None
        self.pending_rent_negotiation = None
        self.pending_bankruptcy = None
        self.pending_foreclosure = None
        self.pending_debt_service = None
        self.awaiting_tax_decision = None
        self.event_log.log(EventType.GAME_END, player_id=self.winner)
        logger.info("Game over; winner: %s", self.winner)
        return True

    # Dice and movement

    def _roll(self) -> DiceRoll:
        roll = DiceRoll(self.rng.randint(1, 6), self.rng.randint(1, 6))
        self.dice_roll = roll
        self.event_log.log(
            EventType.DICE_ROLL,
            player_id=self.current_player_id,
            die1=roll.die1,
            die2=roll.die2,
            total=roll.total,
            doubles=roll.is_doubles,
        )
        return roll

    def roll_dice(self, player_id: int) -> DiceRoll:
        """
        Roll and move the current player.

        The third consecutive double goes to jail without moving.
        """
        player = self.players[player_id]
        roll = self._roll()
        player.consecutive_doubles = player.consecutive_doubles + 1 if roll.is_doubles else 0

        if player.consecutive_doubles >= 3:
            self.send_to_jail(player_id)
            self.phase = Phase.RESOLVING_SPACE
            return roll

        self.move_player(player_id, roll.total)
        self.resolve_landing(player_id)
        return roll

    def move_player(self, player_id: int, spaces: int, collect_go: bool = True) -> int:
        """
        Move a player by a number of spaces (negative moves backwards).
        Returns the new position.
        """
        player = self.players[player_id]
        old_position = player.position
        new_position = (old_position + spaces) % len(self.board.spaces)
        if collect_go and spaces > 0 and new_position < old_position:
            self._collect_go(player_id)
        player.position = new_position
        self.event_log.log(EventType.MOVE, player_id=player_id, **{"from": old_position, "to": new_position})
        return new_position

    def move_player_to(self, player_id: int, position: int, collect_go: bool = True) -> None:
        player = self.players[player_id]
        old_position = player.position
        if collect_go and position <= old_position:
            self._collect_go(player_id)
        player.position = position
        self.event_log.log(EventType.MOVE, player_id=player_id, direct=True, **{"from": old_position, "to": position})

    def _collect_go(self, player_id: int) -> None:
        player = self.players[player_id]
        player.cash += self.current_go_salary
        self.event_log.log(EventType.PASS_GO, player_id=player_id, amount=self.current_go_salary)

    def send_to_jail(self, player_id: int) -> None:
        player = self.players[player_id]
        player.position = JAIL_POSITION
        player.in_jail = True
        player.jail_turns = 0
        player.consecutive_doubles = 0
        self.event_log.log(EventType.GO_TO_JAIL, player_id=player_id)

    def _release_from_jail(self, player_id: int, method: str) -> None:
        player = self.players[player_id]
        player.in_jail = False
        player.jail_turns = 0
        player.consecutive_doubles = 0
        self.event_log.log(EventType.JAIL_RELEASE, player_id=player_id, method=method)

    def get_out_of_jail(self, player_id: int, method: str) -> None:
        """
        Leave jail by paying the fine, using a card, or rolling for doubles.

        Args:
            method: "pay", "card" or "roll"
        """
        player = self.players[player_id]
        fine = self.settings.jail_fine

        if method == "pay":
            if player.cash < fine:
                raise InvalidActionError(f"{player.name} cannot afford the £{fine} fine")
            player.cash -= fine
            self._release_from_jail(player_id, method)
            self.phase = Phase.ROLLING
        elif method == "card":
            if player.jail_free_cards < 1:
                raise InvalidActionError(f"{player.name} has no Get Out of Jail Free card")
            player.jail_free_cards -= 1
            self.return_jail_card()
            self._release_from_jail(player_id, method)
            self.phase = Phase.ROLLING
        elif method == "roll":
            roll = self._roll()
            if roll.is_doubles:
                self._release_from_jail(player_id, method)
            else:
                player.jail_turns += 1
                self.event_log.log(EventType.JAIL_ATTEMPT, player_id=player_id, attempt=player.jail_turns)
                if player.jail_turns < self.settings.max_jail_turns:
                    self.end_turn()
                    return
                # Last attempt failed: the fine is compulsory
                player.cash -= fine
                self._release_from_jail(player_id, "forced_fine")
            self.move_player(player_id, roll.total)
            self.resolve_landing(player_id)
        else:
            raise InvalidActionError(f"Unknown jail exit method '{method}'")

    # Landing

    def resolve_landing(self, player_id: int) -> None:
        """Apply the effect of the space the player is standing on."""
        player = self.players[player_id]
        position = player.position
        space = self.board.get_space(position)
        self.event_log.log(EventType.LAND, player_id=player_id, position=position, space=space.name)
        self.phase = Phase.RESOLVING_SPACE

        if space.is_ownable:
            ownership = self.property_ownership[position]
            if ownership.owner_id is None:
                self.phase = Phase.AWAITING_BUY_DECISION
                return
            if ownership.owner_id != player_id and not ownership.mortgaged:
                dice_total = self.dice_roll.total if self.dice_roll else 0
                rent = calculate_rent(self, position, dice_total)
                self._charge_rent(player_id, ownership.owner_id, position, rent)
            self.utility_multiplier_override = None
            self.railroad_rent_multiplier = None
        elif isinstance(space, TaxSpace):
            self._resolve_tax(player_id, space)
        elif space.space_type == SpaceType.CHANCE:
            self._draw_card(player_id, self.chance_deck)
        elif space.space_type == SpaceType.COMMUNITY_CHEST:
            self._draw_card(player_id, self.community_chest_deck)
        elif space.space_type == SpaceType.GO_TO_JAIL:
            self.send_to_jail(player_id)
        elif space.space_type == SpaceType.FREE_PARKING:
            if self.settings.enable_economic_events:
                trigger_economic_event(self, player_id)

    def _charge_rent(self, payer_id: int, owner_id: int, position: int, rent: int) -> None:
        if rent <= 0:
            return
        payer = self.players[payer_id]
        if payer.cash >= rent:
            payer.cash -= rent
            self.players[owner_id].cash += rent
            self.event_log.log(EventType.RENT_PAYMENT, player_id=payer_id, owner=owner_id, position=position, amount=rent)
            return

        if self.settings.enable_rent_negotiation:
            negotiation.open_rent_negotiation(self, payer_id, owner_id, position, rent)
        else:
            bankruptcy.offer_restructuring(self, payer_id, owner_id, rent)

    def _resolve_tax(self, player_id: int, space: TaxSpace) -> None:
        if not space.has_choice:
            self._pay_tax(player_id, space.amount)
            return
        if is_event_active(self, EconomicEventType.TAX_HOLIDAY):
            self.event_log.log(EventType.TAX_PAYMENT, player_id=player_id, amount=0, holiday=True)
            return
        if self.settings.enable_progressive_tax:
            self.awaiting_tax_decision = TaxDecision(
                player_id=player_id,
                flat_amount=FLAT_INCOME_TAX,
                percentage_amount=calculate_percentage_tax(self.net_worth(player_id)),
            )
            self.phase = Phase.AWAITING_TAX_DECISION
            return
        self._pay_tax(player_id, space.amount)

    def _pay_tax(self, player_id: int, amount: int) -> None:
        """Pay tax to the bank. A shortfall leaves the player in the red until they raise cash."""
        self.players[player_id].cash -= amount
        self.event_log.log(EventType.TAX_PAYMENT, player_id=player_id, amount=amount)

    def choose_tax_option(self, player_id: int, choice: str) -> None:
        decision = self.awaiting_tax_decision
        if choice == "flat":
            amount = decision.flat_amount
        elif choice == "percentage":
            amount = decision.percentage_amount
        else:
            raise InvalidActionError(f"Unknown tax option '{choice}'")
        self.awaiting_tax_decision = None
        self._pay_tax(player_id, amount)
        self.resume_turn()

    # Cards

    def _draw_card(self, player_id: int, deck: Deck) -> None:
        card = deck.draw()
        self.last_card = card.description
        self.event_log.log(EventType.CARD_DRAW, player_id=player_id, deck=deck.name, card=card.description)
        self._apply_card(player_id, card, deck)

    def _apply_card(self, player_id: int, card: Card, deck: Deck) -> None:
        player = self.players[player_id]
        others = [p for p in self.get_active_players() if p.player_id != player_id]

        if card.card_type == CardType.GET_OUT_OF_JAIL:
            deck.hold_card(card)
            player.jail_free_cards += 1
            return
        deck.discard(card)

        if card.card_type == CardType.COLLECT:
            player.cash += card.value
        elif card.card_type == CardType.PAY:
            player.cash -= card.value
        elif card.card_type == CardType.PAY_PER_BUILDING:
            cost = 0
            for position in player.properties:
                ownership = self.property_ownership[position]
                if ownership.is_insured:
                    continue
                cost += card.hotel_value if ownership.hotel else card.value * ownership.houses
            player.cash -= cost
        elif card.card_type == CardType.COLLECT_FROM_PLAYERS:
            for other in others:
                other.cash -= card.value
                player.cash += card.value
        elif card.card_type == CardType.PAY_TO_PLAYERS:
            for other in others:
                other.cash += card.value
                player.cash -= card.value
        elif card.card_type == CardType.GO_TO_JAIL:
            self.send_to_jail(player_id)
        elif card.card_type == CardType.MOVE_TO:
            self.move_player_to(player_id, card.target_position)
            self.resolve_landing(player_id)
        elif card.card_type == CardType.MOVE_TO_NEAREST:
            target = self.board.find_nearest(player.position, card.target_type)
            if card.target_type == SpaceType.UTILITY:
                self.utility_multiplier_override = card.rent_multiplier
            else:
                self.railroad_rent_multiplier = card.rent_multiplier
            self.move_player_to(player_id, target)
            self.resolve_landing(player_id)
        elif card.card_type == CardType.MOVE_SPACES:
            self.move_player(player_id, card.value, collect_go=False)
            self.resolve_landing(player_id)

        self.event_log.log(EventType.CARD_EFFECT, player_id=player_id, card=card.description, cash=player.cash)

    def return_jail_card(self) -> None:
        """Return a used Get Out of Jail Free card to the deck it came from."""
        deck = self.chance_deck if self.chance_deck.held_cards else self.community_chest_deck
        deck.return_held_card()

    # Buying

    def buy_property(self, player_id: int, position: int) -> None:
        player = self.players[player_id]
        space = self.board.get_ownable(position)
        if space is None or position != player.position:
            raise InvalidActionError(f"Player {player_id} is not on an ownable space at {position}")
        if self.property_ownership[position].is_owned():
            raise InvalidActionError(f"{space.name} is already owned")
        price = self.current_price(position)
        if player.cash < price:
            raise InvalidActionError(f"{player.name} cannot afford {space.name} (£{price})")

        player.cash -= price
        self.assign_property(position, player_id)
        self.phase = Phase.RESOLVING_SPACE
        self.event_log.log(EventType.PURCHASE, player_id=player_id, property=space.name, price=price)

    def decline_property(self, player_id: int, position: int) -> None:
        player = self.players[player_id]
        if self.board.get_ownable(position) is None or position != player.position:
            raise InvalidActionError(f"Player {player_id} is not on an ownable space at {position}")
        start_auction(self, position, player_id)

    # Building and mortgages

    def _owned_street(self, player_id: int, position: int) -> PropertySpace:
        space = self.board.get_ownable(position)
        if not isinstance(space, PropertySpace):
            raise InvalidActionError(f"Position {position} is not a street")
        if self.property_ownership[position].owner_id != player_id:
            raise InvalidActionError(f"Player {player_id} does not own {space.name}")
        return space

    def _building_level(self, position: int) -> int:
        ownership = self.property_ownership[position]
        return 5 if ownership.hotel else ownership.houses

    def _require_buildable_group(self, player_id: int, space: PropertySpace) -> List[int]:
        if not has_monopoly(self, player_id, space.color_group):
            raise InvalidActionError(f"Player {player_id} does not own all of {space.color_group}")
        group = self.board.get_color_group(space.color_group)
        if any(self.property_ownership[p].mortgaged for p in group):
            raise InvalidActionError(f"A property in {space.color_group} is mortgaged")
        return group

    def _check_build_house(self, player_id: int, position: int) -> int:
        space = self._owned_street(player_id, position)
        ownership = self.property_ownership[position]
        group = self._require_buildable_group(player_id, space)
        if ownership.hotel or ownership.houses >= 4:
            raise InvalidActionError(f"{space.name} cannot take another house")
        if ownership.houses > min(self._building_level(p) for p in group):
            raise InvalidActionError("Houses must be built evenly across the group")
        if not self.bank.has_houses(1):
            raise InvalidActionError("The bank has no houses left")
        cost = calculate_building_cost(self, space)
        if self.players[player_id].cash < cost:
            raise InvalidActionError(f"A house costs £{cost}")
        return cost

    def _check_build_hotel(self, player_id: int, position: int) -> int:
        space = self._owned_street(player_id, position)
        ownership = self.property_ownership[position]
        group = self._require_buildable_group(player_id, space)
        if ownership.hotel or ownership.houses != 4:
            raise InvalidActionError(f"{space.name} needs four houses before a hotel")
        if any(self._building_level(p) < 4 for p in group):
            raise InvalidActionError("Every property in the group needs four houses first")
        if not self.bank.has_hotel():
            raise InvalidActionError("The bank has no hotels left")
        cost = calculate_building_cost(self, space)
        if self.players[player_id].cash < cost:
            raise InvalidActionError(f"A hotel costs £{cost}")
        return cost

    def can_build_house(self, player_id: int, position: int) -> bool:
        try:
            self._check_build_house(player_id, position)
        except InvalidActionError:
            return False
        return True

    def can_build_hotel(self, player_id: int, position: int) -> bool:
        try:
            self._check_build_hotel(player_id, position)
        except InvalidActionError:
            return False
        return True

    def build_house(self, player_id: int, position: int) -> None:
        cost = self._check_build_house(player_id, position)
        space = self.board.get_ownable(position)
        ownership = self.property_ownership[position]
        self.players[player_id].cash -= cost
        self.bank.take_houses(1)
        ownership.houses += 1
        finance.appreciate_color_group(self, position)
        self.event_log.log(
            EventType.BUILD_HOUSE, player_id=player_id, property=space.name, cost=cost, houses=ownership.houses
        )

    def build_hotel(self, player_id: int, position: int) -> None:
        cost = self._check_build_hotel(player_id, position)
        space = self.board.get_ownable(position)
        ownership = self.property_ownership[position]
        self.players[player_id].cash -= cost
        self.bank.upgrade_to_hotel(houses_replaced=4)
        ownership.houses = 0
        ownership.hotel = True
        finance.appreciate_color_group(self, position)
        self.event_log.log(EventType.BUILD_HOTEL, player_id=player_id, property=space.name, cost=cost)

    def sell_house(self, player_id: int, position: int) -> None:
        space = self._owned_street(player_id, position)
        ownership = self.property_ownership[position]
        if ownership.hotel or ownership.houses == 0:
            raise InvalidActionError(f"{space.name} has no houses to sell")
        group = self.board.get_color_group(space.color_group)
        if ownership.houses < max(self._building_level(p) for p in group):
            raise InvalidActionError("Houses must be sold evenly across the group")

        refund = space.building_cost // 2
        ownership.houses -= 1
        self.bank.release_houses(1)
        self.players[player_id].cash += refund
        self.event_log.log(EventType.SELL_BUILDING, player_id=player_id, property=space.name, refund=refund)

    def _check_sell_hotel(self, player_id: int, position: int) -> PropertySpace:
        space = self._owned_street(player_id, position)
        if not self.property_ownership[position].hotel:
            raise InvalidActionError(f"{space.name} has no hotel")
        if not self.bank.has_houses(4):
            raise InvalidActionError("The bank has too few houses to break up the hotel")
        return space

    def can_sell_hotel(self, player_id: int, position: int) -> bool:
        try:
            self._check_sell_hotel(player_id, position)
        except InvalidActionError:
            return False
        return True

    def sell_hotel(self, player_id: int, position: int) -> None:
        """Sell a hotel back for half cost; it is replaced by four houses."""
        space = self._check_sell_hotel(player_id, position)
        ownership = self.property_ownership[position]
        self.bank.downgrade_hotel(houses_needed=4)

        refund = space.building_cost // 2
        ownership.hotel = False
        ownership.houses = 4
        self.players[player_id].cash += refund
        self.event_log.log(EventType.SELL_BUILDING, player_id=player_id, property=space.name, refund=refund, hotel=True)

    def mortgage_property(self, player_id: int, position: int) -> None:
        space = self.board.get_ownable(position)
        ownership = self.property_ownership.get(position)
        if space is None or ownership.owner_id != player_id:
            raise InvalidActionError(f"Player {player_id} does not own position {position}")
        if ownership.mortgaged:
            raise InvalidActionError(f"{space.name} is already mortgaged")
        group = self.board.get_color_group(space.color_group) if space.color_group else [position]
        if any(self.property_ownership[p].has_buildings() for p in group):
            raise InvalidActionError("Sell all buildings in the group before mortgaging")

        ownership.mortgaged = True
        self.players[player_id].cash += space.mortgage_value
        finance.depreciate_color_group(self, position)
        self.event_log.log(EventType.MORTGAGE, player_id=player_id, property=space.name, amount=space.mortgage_value)

    def unmortgage_property(self, player_id: int, position: int) -> None:
        space = self.board.get_ownable(position)
        ownership = self.property_ownership.get(position)
        if space is None or ownership.owner_id != player_id:
            raise InvalidActionError(f"Player {player_id} does not own position {position}")
        if not ownership.mortgaged:
            raise InvalidActionError(f"{space.name} is not mortgaged")
        cost = math.floor(space.mortgage_value * UNMORTGAGE_INTEREST)
        player = self.players[player_id]
        if player.cash < cost:
            raise InvalidActionError(f"Unmortgaging {space.name} costs £{cost}")

        player.cash -= cost
        ownership.mortgaged = False
        self.event_log.log(EventType.UNMORTGAGE, player_id=player_id, property=space.name, cost=cost)


def create_game(settings: Optional[GameSettings], players: List[Player], board: Optional[Board] = None) -> GameState:
    """
    Create a new game in the setup phase.

    Args:
        settings: Session rules; defaults apply when None
        players: Roster; player ids must be 0..n-1 and double as seat order
        board: Board definition; the standard board when None

    Raises:
        ValidationError: If the roster is invalid
    """
    if not MIN_PLAYERS <= len(players) <= MAX_PLAYERS:
        raise ValidationError(f"A game needs {MIN_PLAYERS} to {MAX_PLAYERS} players")
    ids = sorted(p.player_id for p in players)
    if ids != list(range(len(players))):
        raise ValidationError("Player ids must be 0..n-1 without gaps or duplicates")
    return GameState(settings or GameSettings(), players, board)
