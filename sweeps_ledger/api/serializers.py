"""Response payloads. Amounts leave the API as two-decimal coin strings."""

from typing import Any

from sweeps_ledger.models.bonus import Bonus, PlayerBonus
from sweeps_ledger.models.player import Player
from sweeps_ledger.models.redemption import RedemptionRequest
from sweeps_ledger.models.ticket import SavedWin, TicketPurchase, TicketType
from sweeps_ledger.models.tournament import ScoringRule, Tournament, TournamentParticipant
from sweeps_ledger.models.wallet import CoinPackage, WalletTransaction
from sweeps_ledger.services.settlement import NewBalance
from sweeps_ledger.utils.money import bp_to_multiplier, from_minor


def coins(amount: int) -> str:
    return str(from_minor(amount))


def balance_dict(balance: NewBalance) -> dict[str, Any]:
    return {
        "gcBalance": coins(balance.gc_balance),
        "scBalance": coins(balance.sc_balance),
        "transactionId": balance.transaction_id,
    }


def player_dict(player: Player) -> dict[str, Any]:
    return {
        "id": player.id,
        "username": player.username,
        "email": player.email,
        "role": player.role.value,
        "status": player.status.value,
        "kycStatus": player.kyc_status.value,
        "gcBalance": coins(player.gc_balance),
        "scBalance": coins(player.sc_balance),
        "referralCode": player.referral_code,
    }


def transaction_dict(tx: WalletTransaction) -> dict[str, Any]:
    return {
        "id": tx.id,
        "type": tx.tx_type.value,
        "gcDelta": coins(tx.gc_delta),
        "scDelta": coins(tx.sc_delta),
        "gcBalanceAfter": coins(tx.gc_balance_after),
        "scBalanceAfter": coins(tx.sc_balance_after),
        "description": tx.description,
        "referenceId": tx.reference_id,
        "createdAt": tx.created_at.isoformat(),
    }


def package_dict(package: CoinPackage) -> dict[str, Any]:
    return {
        "id": package.id,
        "name": package.name,
        "gcAmount": coins(package.gc_amount),
        "scAmount": coins(package.sc_amount),
        "priceCents": package.price_cents,
        "isFeatured": package.is_featured,
    }


def bonus_dict(bonus: Bonus) -> dict[str, Any]:
    return {
        "id": bonus.id,
        "name": bonus.name,
        "type": bonus.bonus_type.value,
        "description": bonus.description,
        "code": bonus.code,
        "rewardGc": coins(bonus.reward_gc),
        "rewardSc": coins(bonus.reward_sc),
        "minDeposit": coins(bonus.min_deposit),
        "wageringRequirement": bonus.wagering_requirement,
        "gameEligibility": bonus.game_eligibility,
        "maxWin": coins(bonus.max_win) if bonus.max_win is not None else None,
        "expirationDays": bonus.expiration_days,
        "status": bonus.status.value,
    }


def player_bonus_dict(claim: PlayerBonus, bonus: Bonus) -> dict[str, Any]:
    return {
        "id": claim.id,
        "bonusId": claim.bonus_id,
        "name": bonus.name,
        "type": bonus.bonus_type.value,
        "status": claim.status.value,
        "wageringTarget": coins(claim.wagering_target),
        "expiresAt": claim.expires_at.isoformat() if claim.expires_at else None,
        "claimedAt": claim.claimed_at.isoformat(),
    }


def redemption_dict(request: RedemptionRequest) -> dict[str, Any]:
    return {
        "id": request.id,
        "playerId": request.player_id,
        "amountSc": coins(request.amount_sc),
        "feeSc": coins(request.fee_sc),
        "payoutAmount": coins(request.payout_amount),
        "paymentMethod": request.payment_method,
        "status": request.status.value,
        "processedAt": request.processed_at.isoformat() if request.processed_at else None,
        "adminNote": request.admin_note,
        "createdAt": request.created_at.isoformat(),
    }


def ticket_type_dict(ticket_type: TicketType) -> dict[str, Any]:
    return {
        "id": ticket_type.id,
        "name": ticket_type.name,
        "kind": ticket_type.kind.value,
        "description": ticket_type.description,
        "priceSc": coins(ticket_type.price_sc),
        "winProbability": ticket_type.win_probability,
        "minPrize": coins(ticket_type.min_prize),
        "maxPrize": coins(ticket_type.max_prize),
        "remainingTickets": ticket_type.remaining_tickets,
        "imageUrl": ticket_type.image_url,
        "isActive": ticket_type.is_active,
    }


def purchase_dict(purchase: TicketPurchase, *, reveal: bool) -> dict[str, Any]:
    """The outcome is only included once the ticket has been revealed."""
    data: dict[str, Any] = {
        "id": purchase.id,
        "ticketTypeId": purchase.ticket_type_id,
        "costSc": coins(purchase.cost_sc),
        "status": purchase.status.value,
    }
    if reveal:
        data["isWin"] = purchase.is_win
        data["winAmount"] = coins(purchase.win_amount)
    return data


def saved_win_dict(saved: SavedWin) -> dict[str, Any]:
    return {
        "id": saved.id,
        "purchaseId": saved.purchase_id,
        "ticketName": saved.ticket_name,
        "amountWon": coins(saved.amount_won),
        "imageUrl": saved.image_url,
        "claimed": saved.claimed,
        "createdAt": saved.created_at.isoformat(),
    }


def tournament_dict(tournament: Tournament) -> dict[str, Any]:
    return {
        "id": tournament.id,
        "name": tournament.name,
        "gameSlug": tournament.game_slug,
        "startTime": tournament.start_time.isoformat(),
        "endTime": tournament.end_time.isoformat(),
        "entryFee": coins(tournament.entry_fee),
        "prizePool": coins(tournament.prize_pool),
        "currency": tournament.currency.value,
        "status": tournament.status.value,
        "scoringRule": tournament.scoring_rule.value,
        "maxParticipants": tournament.max_participants,
    }


def participant_dict(
    participant: TournamentParticipant, tournament: Tournament
) -> dict[str, Any]:
    if tournament.scoring_rule == ScoringRule.HIGHEST_WIN_MULTIPLIER:
        score = str(bp_to_multiplier(participant.score))
    else:
        score = coins(participant.score)
    return {
        "playerId": participant.player_id,
        "score": score,
        "rank": participant.rank,
        "prizeAmount": coins(participant.prize_amount),
        "joinedAt": participant.joined_at.isoformat(),
    }
