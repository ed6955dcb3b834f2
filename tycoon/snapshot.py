"""
Public snapshot serialization of GameState.

The snapshot is the only observable output of the engine: every
command returns one and every subscriber receives one. Deck order and
the RNG state are never exposed.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from tycoon.economics import calculate_game_gini, calculate_money_in_circulation
from tycoon.game import GameState
from tycoon.player import IOU
from tycoon.spaces import OwnableSpace


class DiceView(BaseModel):
    die1: int
    die2: int
    total: int
    is_doubles: bool


class LoanView(BaseModel):
    loan_id: int
    amount: int
    interest_rate: float
    amount_owed: int
    turn_taken: int


class IOUView(BaseModel):
    iou_id: int
    debtor_id: int
    creditor_id: int
    original_amount: int
    current_amount: int
    interest_rate: float
    created_round: int
    created_turn: int
    due_round: int
    reason: str


class TradeAttemptsView(BaseModel):
    attempts: int
    last_offer: int
    last_turn: int


class PlayerView(BaseModel):
    player_id: int
    name: str
    color: str
    cash: int
    position: int
    in_jail: bool
    jail_turns: int
    jail_free_cards: int
    is_bankrupt: bool
    is_ai: bool
    ai_difficulty: str
    net_worth: int
    properties: List[int]
    bank_loans: List[LoanView]
    ious_payable: List[IOUView]
    last_trade_turn: Optional[int] = None
    trade_history: Dict[str, TradeAttemptsView] = Field(default_factory=dict)
    in_chapter11: bool = False
    chapter11_turns_remaining: int = 0
    chapter11_debt_target: int = 0


class SpaceView(BaseModel):
    position: int
    name: str
    space_type: str
    color_group: Optional[str] = None
    price: Optional[int] = None
    current_price: Optional[int] = None
    mortgage_value: Optional[int] = None
    owner_id: Optional[int] = None
    houses: int = 0
    hotel: bool = False
    mortgaged: bool = False
    value_multiplier: float = 1.0
    is_insured: bool = False
    insurance_paid_until_round: Optional[int] = None


class AuctionView(BaseModel):
    property_position: int
    property_name: str
    current_bid: int
    minimum_bid: int
    highest_bidder: Optional[int]
    active_player_id: int
    passed_players: List[int]


class TradeOfferView(BaseModel):
    cash_offered: int
    properties_offered: List[int]
    jail_cards_offered: int
    cash_requested: int
    properties_requested: List[int]
    jail_cards_requested: int


class TradeView(BaseModel):
    trade_id: int
    initiator_id: int
    receiver_id: int
    status: str
    offer: TradeOfferView
    counter_offer: Optional[TradeOfferView] = None
    needs_confirmation: bool = False


class PaymentPlanView(BaseModel):
    partial_payment: int
    interest_rate: float


class RentNegotiationView(BaseModel):
    debtor_id: int
    creditor_id: int
    property_position: int
    rent_amount: int
    debtor_can_afford: int
    status: str
    proposed_plan: Optional[PaymentPlanView] = None


class PendingBankruptcyView(BaseModel):
    player_id: int
    creditor_id: Optional[int]
    debt_amount: int


class PendingForeclosureView(BaseModel):
    debtor_id: int
    creditor_id: int
    iou_id: int
    amount_owed: int


class PendingDebtServiceView(BaseModel):
    player_id: int
    creditor_id: Optional[int]
    amount: int


class TaxDecisionView(BaseModel):
    player_id: int
    flat_amount: int
    percentage_amount: int


class MarketHistoryView(BaseModel):
    round: int
    inflation: int
    gini: float
    money_in_circulation: int


class EconomicEventView(BaseModel):
    event_type: str
    turns_remaining: int
    description: str


class GameSnapshot(BaseModel):
    """Everything a client may see about a game."""

    phase: str
    turn_number: int
    rounds_completed: int
    current_player_index: int
    current_player_id: int
    active_player_id: Optional[int]
    dice_roll: Optional[DiceView] = None
    last_card: Optional[str] = None
    winner_id: Optional[int] = None
    players: List[PlayerView]
    spaces: List[SpaceView]
    auction: Optional[AuctionView] = None
    trade: Optional[TradeView] = None
    pending_rent_negotiation: Optional[RentNegotiationView] = None
    pending_bankruptcy: Optional[PendingBankruptcyView] = None
    pending_foreclosure: Optional[PendingForeclosureView] = None
    pending_debt_service: Optional[PendingDebtServiceView] = None
    awaiting_tax_decision: Optional[TaxDecisionView] = None
    houses_available: int
    hotels_available: int
    current_go_salary: int
    gini_coefficient: float
    money_in_circulation: int
    market_history: List[MarketHistoryView]
    active_economic_events: List[EconomicEventView]
    settings: Dict[str, Any]


def _iou_view(game: GameState, iou: IOU) -> IOUView:
    return IOUView(
        iou_id=iou.iou_id,
        debtor_id=iou.debtor_id,
        creditor_id=iou.creditor_id,
        original_amount=iou.original_amount,
        current_amount=iou.amount_owed(game.rounds_completed),
        interest_rate=iou.interest_rate,
        created_round=iou.created_round,
        created_turn=iou.created_turn,
        due_round=iou.due_round,
        reason=iou.reason,
    )


def _offer_view(offer) -> TradeOfferView:
    return TradeOfferView(
        cash_offered=offer.cash_offered,
        properties_offered=sorted(offer.properties_offered),
        jail_cards_offered=offer.jail_cards_offered,
        cash_requested=offer.cash_requested,
        properties_requested=sorted(offer.properties_requested),
        jail_cards_requested=offer.jail_cards_requested,
    )


def _space_view(game: GameState, space) -> SpaceView:
    view = SpaceView(position=space.position, name=space.name, space_type=space.space_type.value)
    if isinstance(space, OwnableSpace):
        ownership = game.property_ownership[space.position]
        view.color_group = space.color_group
        view.price = space.price
        view.current_price = game.current_price(space.position)
        view.mortgage_value = space.mortgage_value
        view.owner_id = ownership.owner_id
        view.houses = ownership.houses
        view.hotel = ownership.hotel
        view.mortgaged = ownership.mortgaged
        view.value_multiplier = ownership.value_multiplier
        view.is_insured = ownership.is_insured
        view.insurance_paid_until_round = ownership.insurance_paid_until_round
    return view


def serialize_snapshot(game: GameState) -> GameSnapshot:
    """Build the public snapshot of a game."""
    players = [
        PlayerView(
            player_id=pid,
            name=p.name,
            color=p.color,
            cash=p.cash,
            position=p.position,
            in_jail=p.in_jail,
            jail_turns=p.jail_turns,
            jail_free_cards=p.jail_free_cards,
            is_bankrupt=p.is_bankrupt,
            is_ai=p.is_ai,
            ai_difficulty=p.ai_difficulty.value,
            net_worth=game.net_worth(pid),
            properties=sorted(p.properties),
            bank_loans=[
                LoanView(
                    loan_id=loan.loan_id,
                    amount=loan.amount,
                    interest_rate=loan.interest_rate,
                    amount_owed=loan.amount_owed,
                    turn_taken=loan.turn_taken,
                )
                for loan in p.bank_loans
            ],
            ious_payable=[_iou_view(game, iou) for iou in p.ious_payable],
            last_trade_turn=p.last_trade_turn,
            trade_history={
                key: TradeAttemptsView(attempts=r.attempts, last_offer=r.last_offer, last_turn=r.last_turn)
                for key, r in p.trade_history.items()
            },
            in_chapter11=p.in_chapter11,
            chapter11_turns_remaining=p.chapter11_turns_remaining,
            chapter11_debt_target=p.chapter11_debt_target,
        )
        for pid, p in sorted(game.players.items())
    ]

    auction = None
    if game.auction is not None:
        a = game.auction
        auction = AuctionView(
            property_position=a.property_position,
            property_name=a.property_name,
            current_bid=a.current_bid,
            minimum_bid=a.minimum_bid,
            highest_bidder=a.highest_bidder,
            active_player_id=a.active_player_id,
            passed_players=sorted(a.passed_players),
        )

    trade = None
    if game.trade is not None:
        t = game.trade
        trade = TradeView(
            trade_id=t.trade_id,
            initiator_id=t.initiator_id,
            receiver_id=t.receiver_id,
            status=t.status.value,
            offer=_offer_view(t.offer),
            counter_offer=_offer_view(t.counter_offer) if t.counter_offer is not None else None,
            needs_confirmation=t.needs_confirmation,
        )

    rent_negotiation = None
    if game.pending_rent_negotiation is not None:
        n = game.pending_rent_negotiation
        rent_negotiation = RentNegotiationView(
            debtor_id=n.debtor_id,
            creditor_id=n.creditor_id,
            property_position=n.property_position,
            rent_amount=n.rent_amount,
            debtor_can_afford=n.debtor_cash,
            status=n.status.value,
            proposed_plan=(
                PaymentPlanView(
                    partial_payment=n.proposed_plan.partial_payment,
                    interest_rate=n.proposed_plan.interest_rate,
                )
                if n.proposed_plan is not None
                else None
            ),
        )

    roll = game.dice_roll
    return GameSnapshot(
        phase=game.phase.value,
        turn_number=game.turn_number,
        rounds_completed=game.rounds_completed,
        current_player_index=game.current_player_index,
        current_player_id=game.current_player_id,
        active_player_id=game.active_actor_id(),
        dice_roll=(
            DiceView(die1=roll.die1, die2=roll.die2, total=roll.total, is_doubles=roll.is_doubles)
            if roll is not None
            else None
        ),
        last_card=game.last_card,
        winner_id=game.winner,
        players=players,
        spaces=[_space_view(game, space) for space in game.board.spaces],
        auction=auction,
        trade=trade,
        pending_rent_negotiation=rent_negotiation,
        pending_bankruptcy=(
            PendingBankruptcyView(**vars(game.pending_bankruptcy)) if game.pending_bankruptcy else None
        ),
        pending_foreclosure=(
            PendingForeclosureView(**vars(game.pending_foreclosure)) if game.pending_foreclosure else None
        ),
        pending_debt_service=(
            PendingDebtServiceView(**vars(game.pending_debt_service)) if game.pending_debt_service else None
        ),
        awaiting_tax_decision=(
            TaxDecisionView(**vars(game.awaiting_tax_decision)) if game.awaiting_tax_decision else None
        ),
        houses_available=game.bank.houses_available,
        hotels_available=game.bank.hotels_available,
        current_go_salary=game.current_go_salary,
        gini_coefficient=calculate_game_gini(game),
        money_in_circulation=calculate_money_in_circulation(game),
        market_history=[MarketHistoryView(**vars(entry)) for entry in game.market_history],
        active_economic_events=[
            EconomicEventView(event_type=e.event_type.value, turns_remaining=e.turns_remaining, description=e.description)
            for e in game.active_economic_events
        ],
        settings=game.settings.model_dump(),
    )
