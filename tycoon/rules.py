"""
Command surface and phase gating.

Every mutation of a game goes through this module. Each command names
the phases it is legal in, the player entitled to issue it, and, where
relevant, the feature toggle that enables it. A command that fails any
of these checks, or whose arguments are rejected by the engine, is a
logged no-op: the state is left exactly as it was.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, List, Optional

from tycoon import auction, bankruptcy, finance, foreclosure, negotiation, trade
from tycoon.exceptions import InvalidActionError, TycoonError, UnknownCommandError
from tycoon.game import GameState
from tycoon.negotiation import NegotiationStatus
from tycoon.phases import MANAGEMENT_PHASES, Phase
from tycoon.snapshot import GameSnapshot, serialize_snapshot
from tycoon.trade import TradeStatus

logger = logging.getLogger(__name__)


class Action:
    """A command name with its positional arguments."""

    def __init__(self, name: str, *args: Any):
        self.name = name
        self.args = args

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Action) and (self.name, self.args) == (other.name, other.args)

    def __repr__(self) -> str:
        return f"Action({self.name}, {list(self.args)})"


ActorSelector = Callable[[GameState], Optional[int]]


@dataclass(frozen=True)
class Command:
    name: str
    handler: Callable[..., Any]
    phases: FrozenSet[Phase]
    actor: Optional[ActorSelector]
    feature: Optional[str] = None
    guard: Optional[Callable[[GameState], bool]] = None


# Actor selectors


def _current(game: GameState) -> Optional[int]:
    return game.current_player_id


def _bidder(game: GameState) -> Optional[int]:
    return game.auction.active_player_id if game.auction else None


def _trade_initiator_drafting(game: GameState) -> Optional[int]:
    if game.trade and game.trade.status == TradeStatus.DRAFT:
        return game.trade.initiator_id
    return None


def _trade_initiator_cancelling(game: GameState) -> Optional[int]:
    if game.trade and game.trade.status in (TradeStatus.DRAFT, TradeStatus.PENDING):
        return game.trade.initiator_id
    return None


def _trade_responder(game: GameState) -> Optional[int]:
    return game.trade.responder_id if game.trade else None


def _trade_receiver_pending(game: GameState) -> Optional[int]:
    if game.trade and game.trade.status == TradeStatus.PENDING:
        return game.trade.receiver_id
    return None


def _rent_creditor(game: GameState) -> Optional[int]:
    n = game.pending_rent_negotiation
    if n and n.status == NegotiationStatus.CREDITOR_DECISION:
        return n.creditor_id
    return None


def _rent_debtor(game: GameState) -> Optional[int]:
    n = game.pending_rent_negotiation
    if n and n.status == NegotiationStatus.DEBTOR_DECISION:
        return n.debtor_id
    return None


def _tax_payer(game: GameState) -> Optional[int]:
    return game.awaiting_tax_decision.player_id if game.awaiting_tax_decision else None


def _restructuring_player(game: GameState) -> Optional[int]:
    return game.pending_bankruptcy.player_id if game.pending_bankruptcy else None


def _debt_service_player(game: GameState) -> Optional[int]:
    return game.pending_debt_service.player_id if game.pending_debt_service else None


def _foreclosure_creditor(game: GameState) -> Optional[int]:
    return game.pending_foreclosure.creditor_id if game.pending_foreclosure else None


# Argument checks


def _int(value: Any, label: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidActionError(f"{label} must be an integer, got {value!r}")
    return value


def _rate(value: Any, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidActionError(f"{label} must be a number, got {value!r}")
    return float(value)


# Handlers


def _start_game(game: GameState, player_id: int) -> None:
    game.start()


def _roll_dice(game: GameState, player_id: int) -> None:
    game.roll_dice(player_id)


def _buy_property(game: GameState, player_id: int, position: Any) -> None:
    game.buy_property(player_id, _int(position, "position"))


def _decline_property(game: GameState, player_id: int, position: Any) -> None:
    game.decline_property(player_id, _int(position, "position"))


def _place_bid(game: GameState, player_id: int, amount: Any) -> None:
    auction.place_bid(game, player_id, _int(amount, "amount"))


def _pass_auction(game: GameState, player_id: int) -> None:
    auction.pass_auction(game, player_id)


def _end_turn(game: GameState, player_id: int) -> None:
    game.end_turn()


def _get_out_of_jail(game: GameState, player_id: int, method: Any) -> None:
    game.get_out_of_jail(player_id, method)


def _choose_tax_option(game: GameState, player_id: int, choice: Any) -> None:
    game.choose_tax_option(player_id, choice)


def _build_house(game: GameState, player_id: int, position: Any) -> None:
    game.build_house(player_id, _int(position, "position"))


def _build_hotel(game: GameState, player_id: int, position: Any) -> None:
    game.build_hotel(player_id, _int(position, "position"))


def _sell_house(game: GameState, player_id: int, position: Any) -> None:
    game.sell_house(player_id, _int(position, "position"))


def _sell_hotel(game: GameState, player_id: int, position: Any) -> None:
    game.sell_hotel(player_id, _int(position, "position"))


def _mortgage(game: GameState, player_id: int, position: Any) -> None:
    game.mortgage_property(player_id, _int(position, "position"))


def _unmortgage(game: GameState, player_id: int, position: Any) -> None:
    game.unmortgage_property(player_id, _int(position, "position"))


def _take_loan(game: GameState, player_id: int, amount: Any) -> None:
    finance.take_loan(game, player_id, _int(amount, "amount"))


def _repay_loan(game: GameState, player_id: int, loan_id: Any, amount: Any) -> None:
    finance.repay_loan(game, player_id, _int(loan_id, "loan id"), _int(amount, "amount"))


def _buy_insurance(game: GameState, player_id: int, position: Any) -> None:
    finance.buy_insurance(game, player_id, _int(position, "position"))


def _pay_iou(game: GameState, player_id: int, iou_id: Any, amount: Any = None) -> None:
    negotiation.pay_iou(
        game, player_id, _int(iou_id, "IOU id"), None if amount is None else _int(amount, "amount")
    )


def _start_trade(game: GameState, player_id: int, to_player: Any) -> None:
    trade.start_trade(game, player_id, _int(to_player, "player"))


def _update_trade_offer(game: GameState, player_id: int, offer: Any) -> None:
    trade.update_offer(game, player_id, offer)


def _propose_trade(game: GameState, player_id: int, offer: Any = None, confirm: Any = False) -> None:
    trade.propose_trade(game, player_id, offer, bool(confirm))


def _accept_trade(game: GameState, player_id: int) -> None:
    trade.accept_trade(game, player_id)


def _reject_trade(game: GameState, player_id: int) -> None:
    trade.reject_trade(game, player_id)


def _counter_offer(game: GameState, player_id: int, offer: Any) -> None:
    trade.counter_offer(game, player_id, offer)


def _cancel_trade(game: GameState, player_id: int) -> None:
    trade.cancel_trade(game, player_id)


def _forgive_rent(game: GameState, player_id: int) -> None:
    negotiation.forgive_rent(game, player_id)


def _offer_payment_plan(game: GameState, player_id: int, partial: Any, rate: Any) -> None:
    negotiation.offer_payment_plan(game, player_id, _int(partial, "partial payment"), _rate(rate, "interest rate"))


def _accept_payment_plan(game: GameState, player_id: int) -> None:
    negotiation.accept_payment_plan(game, player_id)


def _reject_payment_plan(game: GameState, player_id: int) -> None:
    negotiation.reject_payment_plan(game, player_id)


def _create_rent_iou(game: GameState, player_id: int, partial: Any) -> None:
    negotiation.create_rent_iou(game, player_id, _int(partial, "partial payment"))


def _demand_payment(game: GameState, player_id: int, position: Any = None) -> None:
    negotiation.demand_immediate_payment_or_property(
        game, player_id, None if position is None else _int(position, "position")
    )


def _enter_chapter11(game: GameState, player_id: int) -> None:
    bankruptcy.enter_chapter11(game, player_id)


def _decline_restructuring(game: GameState, player_id: int) -> None:
    bankruptcy.decline_restructuring(game, player_id)


def _declare_bankruptcy(game: GameState, player_id: int) -> None:
    bankruptcy.declare_bankruptcy(game, player_id, None)


def _pay_debt_service(game: GameState, player_id: int) -> None:
    foreclosure.pay_debt_service(game, player_id)


def _defer_debt_service(game: GameState, player_id: int) -> None:
    foreclosure.defer_debt_service(game, player_id)


def _foreclose(game: GameState, player_id: int) -> None:
    foreclosure.foreclose(game, player_id)


def _extend_iou(game: GameState, player_id: int) -> None:
    foreclosure.extend_iou(game, player_id)


# Guards


def _can_roll(game: GameState) -> bool:
    return game.dice_roll is None and not game.get_current_player().in_jail


def _can_end_turn(game: GameState) -> bool:
    return game.phase == Phase.RESOLVING_SPACE or game.dice_roll is not None


def _in_the_red(game: GameState) -> bool:
    return game.get_current_player().cash < 0


_ONLY = frozenset
_TRADE_START_PHASES = frozenset({Phase.ROLLING, Phase.RESOLVING_SPACE, Phase.JAIL_DECISION})

_COMMAND_LIST = [
    Command("startGame", _start_game, _ONLY({Phase.SETUP}), None),
    Command("rollDice", _roll_dice, _ONLY({Phase.ROLLING}), _current, guard=_can_roll),
    Command("buyProperty", _buy_property, _ONLY({Phase.AWAITING_BUY_DECISION}), _current),
    Command("declineProperty", _decline_property, _ONLY({Phase.AWAITING_BUY_DECISION}), _current),
    Command("placeBid", _place_bid, _ONLY({Phase.AUCTION}), _bidder),
    Command("passAuction", _pass_auction, _ONLY({Phase.AUCTION}), _bidder),
    Command("endTurn", _end_turn, _ONLY({Phase.ROLLING, Phase.RESOLVING_SPACE}), _current, guard=_can_end_turn),
    Command("getOutOfJail", _get_out_of_jail, _ONLY({Phase.JAIL_DECISION}), _current),
    Command("chooseTaxOption", _choose_tax_option, _ONLY({Phase.AWAITING_TAX_DECISION}), _tax_payer),
    Command("buildHouse", _build_house, MANAGEMENT_PHASES, _current),
    Command("buildHotel", _build_hotel, MANAGEMENT_PHASES, _current),
    Command("sellHouse", _sell_house, MANAGEMENT_PHASES, _current),
    Command("sellHotel", _sell_hotel, MANAGEMENT_PHASES, _current),
    Command("mortgageProperty", _mortgage, MANAGEMENT_PHASES, _current),
    Command("unmortgageProperty", _unmortgage, MANAGEMENT_PHASES, _current),
    Command("takeLoan", _take_loan, MANAGEMENT_PHASES, _current, feature="enable_bank_loans"),
    Command("repayLoan", _repay_loan, MANAGEMENT_PHASES, _current, feature="enable_bank_loans"),
    Command(
        "buyPropertyInsurance", _buy_insurance, MANAGEMENT_PHASES, _current, feature="enable_property_insurance"
    ),
    Command("payIOU", _pay_iou, MANAGEMENT_PHASES, _current),
    Command("declareBankruptcy", _declare_bankruptcy, MANAGEMENT_PHASES, _current, guard=_in_the_red),
    Command("startTrade", _start_trade, _TRADE_START_PHASES, _current),
    Command("updateTradeOffer", _update_trade_offer, _ONLY({Phase.TRADING}), _trade_initiator_drafting),
    Command("proposeTrade", _propose_trade, _ONLY({Phase.TRADING}), _trade_initiator_drafting),
    Command("acceptTrade", _accept_trade, _ONLY({Phase.TRADING}), _trade_responder),
    Command("rejectTrade", _reject_trade, _ONLY({Phase.TRADING}), _trade_responder),
    Command("counterOffer", _counter_offer, _ONLY({Phase.TRADING}), _trade_receiver_pending),
    Command("cancelTrade", _cancel_trade, _ONLY({Phase.TRADING}), _trade_initiator_cancelling),
    Command(
        "forgiveRent",
        _forgive_rent,
        _ONLY({Phase.AWAITING_RENT_NEGOTIATION}),
        _rent_creditor,
        feature="enable_rent_negotiation",
    ),
    Command(
        "offerPaymentPlan",
        _offer_payment_plan,
        _ONLY({Phase.AWAITING_RENT_NEGOTIATION}),
        _rent_creditor,
        feature="enable_rent_negotiation",
    ),
    Command(
        "demandImmediatePaymentOrProperty",
        _demand_payment,
        _ONLY({Phase.AWAITING_RENT_NEGOTIATION}),
        _rent_creditor,
        feature="enable_rent_negotiation",
    ),
    Command(
        "acceptPaymentPlan",
        _accept_payment_plan,
        _ONLY({Phase.AWAITING_RENT_NEGOTIATION}),
        _rent_debtor,
        feature="enable_rent_negotiation",
    ),
    Command(
        "rejectPaymentPlan",
        _reject_payment_plan,
        _ONLY({Phase.AWAITING_RENT_NEGOTIATION}),
        _rent_debtor,
        feature="enable_rent_negotiation",
    ),
    Command(
        "createRentIOU",
        _create_rent_iou,
        _ONLY({Phase.AWAITING_RENT_NEGOTIATION}),
        _rent_debtor,
        feature="enable_rent_negotiation",
    ),
    Command(
        "enterChapter11",
        _enter_chapter11,
        _ONLY({Phase.AWAITING_BANKRUPTCY_DECISION}),
        _restructuring_player,
        feature="enable_bankruptcy_restructuring",
    ),
    Command(
        "declineRestructuring",
        _decline_restructuring,
        _ONLY({Phase.AWAITING_BANKRUPTCY_DECISION}),
        _restructuring_player,
    ),
    Command("payDebtService", _pay_debt_service, _ONLY({Phase.AWAITING_DEBT_SERVICE}), _debt_service_player),
    Command("deferDebtService", _defer_debt_service, _ONLY({Phase.AWAITING_DEBT_SERVICE}), _debt_service_player),
    Command("foreclose", _foreclose, _ONLY({Phase.AWAITING_FORECLOSURE_DECISION}), _foreclosure_creditor),
    Command("extendIOU", _extend_iou, _ONLY({Phase.AWAITING_FORECLOSURE_DECISION}), _foreclosure_creditor),
]

COMMANDS: Dict[str, Command] = {command.name: command for command in _COMMAND_LIST}


def _authorize(game: GameState, command: Command, player_id: int) -> None:
    """Raise InvalidActionError unless the player may issue the command right now."""
    player = game.players.get(player_id)
    if player is None:
        raise InvalidActionError(f"Player {player_id} is not seated in this game")
    if player.is_bankrupt:
        raise InvalidActionError(f"Player {player_id} is bankrupt")
    if command.feature and not getattr(game.settings, command.feature):
        raise InvalidActionError(f"{command.name} is disabled for this game")
    if game.phase not in command.phases:
        raise InvalidActionError(f"{command.name} is not legal during {game.phase.value}")
    if command.actor is not None and command.actor(game) != player_id:
        raise InvalidActionError(f"Player {player_id} may not {command.name} now")
    if command.guard is not None and not command.guard(game):
        raise InvalidActionError(f"{command.name} is not available right now")


def is_command_legal(game: GameState, player_id: int, name: str) -> bool:
    """Check phase, actor and toggles for a command (arguments are not checked)."""
    command = COMMANDS.get(name)
    if command is None:
        return False
    try:
        _authorize(game, command, player_id)
    except InvalidActionError:
        return False
    return True


def get_legal_commands(game: GameState, player_id: int) -> List[str]:
    """
    Get the commands a player may currently issue.

    Args:
        game: Current game state
        player_id: Player to list commands for

    Returns:
        Command names, in declaration order
    """
    return [name for name in COMMANDS if is_command_legal(game, player_id, name)]


def capabilities(game: GameState) -> FrozenSet[str]:
    """Command names enabled by this game's settings."""
    return frozenset(
        name
        for name, command in COMMANDS.items()
        if command.feature is None or getattr(game.settings, command.feature)
    )


def active_actor(game: GameState) -> Optional[int]:
    """The player whose decision the game is waiting on."""
    return game.active_actor_id()


def apply_action(game: GameState, action: Action, player_id: int) -> bool:
    """
    Apply an action for a player.

    Args:
        game: Game to mutate
        action: Command name and arguments
        player_id: Player issuing the command

    Returns:
        True if the command took effect, False if it was rejected
        (the game is unchanged in that case)
    """
    try:
        command = COMMANDS.get(action.name)
        if command is None:
            raise UnknownCommandError(f"Unknown command '{action.name}'")
        _authorize(game, command, player_id)
        try:
            inspect.signature(command.handler).bind(game, player_id, *action.args)
        except TypeError as exc:
            raise InvalidActionError(f"Bad arguments for {action.name}: {exc}") from exc
        command.handler(game, player_id, *action.args)
    except TycoonError as exc:
        logger.info("Rejected %r from player %s: %s", action, player_id, exc)
        return False
    return True


def dispatch(game: GameState, player_id: int, name: str, *args: Any) -> GameSnapshot:
    """Apply a command and return the resulting snapshot (unchanged if rejected)."""
    apply_action(game, Action(name, *args), player_id)
    return serialize_snapshot(game)
