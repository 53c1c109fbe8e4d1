"""
Pending Quantity Service - keeps sauda.pending_quantity_packs in step with its loadings
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import logging

from sqlalchemy.orm import Session
from sqlalchemy import func

from app.core import advisory_lock
from app.models import TradeContract, FulfillmentEvent
from .units import Quantity, Unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingUpdate:
    sauda_id: int
    pending_quantity_packs: int
    delivered_kg: Decimal
    over_delivered_kg: Decimal


class PendingQuantityService:
    """Pending-quantity updater"""

    @staticmethod
    def delivered(db: Session, sauda_id: int) -> Quantity:
        total_kg = db.query(func.sum(FulfillmentEvent.vajan_kg)).filter(
            FulfillmentEvent.sauda_id == sauda_id
        ).scalar()
        return Quantity.kg(total_kg)

    @staticmethod
    def update_pending(db: Session, sauda_id: int) -> Optional[PendingUpdate]:
        """
        pending = round(max(0, quantity - delivered_kg / 1000)).

        Idempotent; call after every create/update/delete of a loading on
        this sauda. Over-delivery clamps to zero and is reported back.
        """
        advisory_lock(db, "pending", sauda_id)

        contract = db.query(TradeContract).filter(TradeContract.id == sauda_id).first()
        if not contract:
            return None

        ordered = Quantity.packs(contract.quantity_packs)
        delivered = PendingQuantityService.delivered(db, sauda_id)
        remaining = ordered - delivered.to_packs()

        over_kg = Quantity.zero(Unit.KG)
        if remaining.value < 0:
            over_kg = delivered - ordered.to_kg()
            logger.warning(
                f"Over-delivery on sauda {contract.sauda_no}: "
                f"{delivered.quantized()} kg loaded against {contract.quantity_packs} packs "
                f"({over_kg.quantized()} kg over)"
            )

        pending = remaining.clamp_zero().whole()
        contract.pending_quantity_packs = pending
        db.flush()

        logger.debug(f"Sauda {contract.sauda_no}: pending {pending} packs")
        return PendingUpdate(
            sauda_id=sauda_id,
            pending_quantity_packs=pending,
            delivered_kg=delivered.quantized(),
            over_delivered_kg=over_kg.quantized(),
        )
