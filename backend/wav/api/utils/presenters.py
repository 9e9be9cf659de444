"""
Model-to-response builders shared by route modules.

Energy and trade status are evaluated here at response time, never read
from storage.
"""
from datetime import datetime

from wav.core.constants import TradeStatus
from wav.core.utils import ensure_utc
from wav.models.card import Card
from wav.models.trade import Trade
from wav.models.user_card import UserCard
from wav.schemas.card import CardResponse, OwnedCardResponse
from wav.schemas.trade import TradeResponse
from wav.schemas.user import UserSummary
from wav.services.stat_clock import calculate_energy, is_maxed


def card_response(card: Card, now: datetime) -> CardResponse:
    response = CardResponse.model_validate(card)
    response.energy = calculate_energy(card.momentum, card.created_at, now)
    response.is_maxed = is_maxed(card.momentum, card.created_at, now)
    response.created_at = ensure_utc(card.created_at)
    return response


def owned_card_response(card: Card, ownership: UserCard, now: datetime) -> OwnedCardResponse:
    return OwnedCardResponse(
        card=card_response(card, now),
        acquired_via=ownership.acquired_via,
        acquired_at=ownership.acquired_at,
    )


def trade_response(trade: Trade, status: TradeStatus, now: datetime) -> TradeResponse:
    return TradeResponse(
        id=trade.id,
        sender_id=trade.sender_id,
        receiver_id=trade.receiver_id,
        sender=UserSummary.model_validate(trade.sender),
        receiver=UserSummary.model_validate(trade.receiver),
        status=status,
        stored_status=trade.status,
        sender_cards=[card_response(tc.card, now) for tc in trade.sender_cards],
        receiver_cards=[card_response(tc.card, now) for tc in trade.receiver_cards],
        created_at=ensure_utc(trade.created_at),
        expires_at=trade.expires_at,
    )
