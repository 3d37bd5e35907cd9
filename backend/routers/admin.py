"""
Admin Router - administrative correction of profile levels
"""
from fastapi import APIRouter, HTTPException, Depends
import logging

from dependencies import get_admin_user, get_xp_ledger
from models.progress import XPAwardResult
from models.user import Session
from services.xp_ledger import XPLedger

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/profiles/{user_id}/relevel", response_model=XPAwardResult)
def relevel_profile(
    user_id: str,
    current_user: Session = Depends(get_admin_user),
    ledger: XPLedger = Depends(get_xp_ledger)
):
    """Recompute a profile's cached level from its XP"""
    result = ledger.relevel(user_id)
    if not result.success:
        if result.reason == "Profile not found":
            raise HTTPException(status_code=404, detail=result.reason)
        logger.error(f"Relevel error: {result.reason}")
        raise HTTPException(status_code=500, detail="Failed to correct level")
    logger.info(f"Level checked by admin: level={result.new_level} xp={result.new_xp}")
    return result
