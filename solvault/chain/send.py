"""
solvault.chain.send
===================

Hand an Intent to a ChainWriter and wait for its confirmation.

- submit_and_confirm(writer, intent, signer, cosigners=()) -> str
    Submits, then waits on `writer.confirm`. Returns the signature once the
    transaction is FINALIZED; any other confirmation raises
    TransactionFailedError. Submission alone is never reported as success.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Sequence

from ..errors import TransactionFailedError
from .base import ChainWriter, Confirmation, Intent

if TYPE_CHECKING:  # pragma: no cover
    from ..wallet.keypair import Keypair

_log = logging.getLogger("solvault.chain.send")


async def submit_and_confirm(
    writer: ChainWriter,
    intent: Intent,
    signer: Keypair,
    cosigners: Sequence[Keypair] = (),
    *,
    logger: Optional[logging.Logger] = None,
) -> str:
    log = logger or _log
    signature = await writer.submit(intent, signer, cosigners)
    log.info("%s submitted for %s: %s", intent.kind.value, intent.vault, signature)
    result = await writer.confirm(signature)
    if result != Confirmation.FINALIZED:
        log.error("%s for %s failed to confirm: %s", intent.kind.value, intent.vault, signature)
        raise TransactionFailedError(signature, intent.kind.value)
    log.info("%s confirmed for %s: %s", intent.kind.value, intent.vault, signature)
    return signature


__all__ = ["submit_and_confirm"]
