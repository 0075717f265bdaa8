"""
Background job that asks for check-in rewards once an invite reaches its due date
Each due invite is asked about at most once per local calendar day.
"""

import logging
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional

from handlers.commands import checkin_prompt
from services.invite_service import is_pending
from services.ledger_services import LedgerServices
from models import Invite
from utils.conversation_state import ConversationStateStore, PendingKind
from utils.datetime_helpers import parse_timestamp, same_local_day

logger = logging.getLogger(__name__)

SendFunc = Callable[[str, str], Awaitable[None]]


def _skip_reason(invite: Optional[Invite], now: datetime, tz) -> Optional[str]:
    """Why the invite gets no reminder right now, or None when it is due one"""
    if invite is None:
        return "no longer pending"
    due = parse_timestamp(invite.due_date, tz)
    if due is None:
        return "unparseable due date"
    if now < due:
        return "not due yet"
    last = parse_timestamp(invite.last_reminded_at, tz)
    if last is not None and same_local_day(last, now, tz):
        return "already asked today"
    if not invite.chat_id:
        logger.warning(f"⚠️ DUE_SWEEP: Invite #{invite.id} has no chat id, cannot ask")
        return "no chat id"
    return None


async def run_due_date_sweep(services: LedgerServices, states: ConversationStateStore, send: SendFunc) -> Dict:
    """
    Main entry point for the due-date sweep
    Sends the reward question for every pending invite whose due date has passed
    """
    results = {"processed": 0, "reminded": 0, "skipped": 0, "errors": 0}
    clock = services.clock
    now = clock()

    try:
        invites = await services.store.fetch_all(Invite)
    except Exception as e:
        logger.error(f"❌ DUE_SWEEP_ERROR: Could not load invites: {e}")
        return {"success": False, "error": str(e)}

    for invite in invites:
        if not is_pending(invite):
            continue
        results["processed"] += 1
        key = f"invite:{invite.game}"
        try:
            # re-read under the lock; a check-in may have landed since the bulk load
            async with services.invites.locks.hold(key):
                current = await services.invites.reload_pending(invite.id)
                reason = _skip_reason(current, now, clock.tz)
            if reason:
                logger.debug(f"⏭️ DUE_SWEEP: Invite #{invite.id} skipped ({reason})")
                results["skipped"] += 1
                continue

            await send(current.chat_id, checkin_prompt(current.game, current.name))

            async with services.invites.locks.hold(key):
                if not await services.invites.mark_reminded(current.id, now):
                    logger.info(f"ℹ️ DUE_SWEEP: Invite #{current.id} was completed while asking, question not opened")
                    results["skipped"] += 1
                    continue
                states.open(
                    current.chat_id, PendingKind.CHECKIN_REWARD,
                    game=current.game, name=current.name, email=current.email,
                )
            results["reminded"] += 1
            logger.info(f"⏰ DUE_SWEEP: Asked chat {current.chat_id} for {current.game} {current.name}")

        except Exception as e:
            results["errors"] += 1
            logger.error(f"❌ DUE_SWEEP: Invite #{invite.id} failed: {e}")

    if results["reminded"] > 0:
        logger.info(
            f"✅ DUE_SWEEP_COMPLETE: Sent {results['reminded']} reminders "
            f"from {results['processed']} pending invites"
        )
    else:
        logger.debug(f"✅ DUE_SWEEP_COMPLETE: Nothing due ({results['processed']} pending invites checked)")

    results["success"] = True
    return results
