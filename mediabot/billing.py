# mediabot/billing.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from .downloader import ensure_valid_url
from .errors import MediaError, ValidationError
from .ledger import TokenLedger, InsufficientTokens
from .models import MediaKind
from .player import MediaOrchestrator

log = logging.getLogger("mediabot.billing")

_REFUND_TEXT = {
    "forbidden": "Acceso bloqueado (error 403).",
    "age_restricted": "Video con restricción de edad, prueba con otro.",
    "private": "Video privado, no accesible.",
    "unavailable": "Video no disponible.",
    "invalid_url": "URL de YouTube inválida.",
}


def refund_reason_text(err: MediaError) -> str:
    if isinstance(err, ValidationError):
        return str(err)
    return _REFUND_TEXT.get(err.reason, "El pedido falló.")


@dataclass
class PaidRequestOutcome:
    success: bool
    message: str
    charged: int = 0
    refunded: bool = False


async def submit_paid_request(
    media: MediaOrchestrator,
    ledger: TokenLedger,
    url: str,
    username: str,
    kind: MediaKind,
    cost: int,
) -> PaidRequestOutcome:
    """Cobra, encola y devuelve los tokens si el orquestador rechaza el pedido."""
    label = "Música" if kind == MediaKind.DOWNLOADED else "Video"

    try:
        url = ensure_valid_url(url)
    except ValidationError:
        return PaidRequestOutcome(False, "¡URL de YouTube inválida! Manda un link válido.")

    if not await ledger.has_tokens(username, cost):
        balance = await ledger.balance(username)
        return PaidRequestOutcome(False, f"No tienes tokens suficientes: tienes {balance}, necesitas {cost}.")

    try:
        await ledger.spend(username, cost, f"Pedido de {label}")
    except InsufficientTokens as e:
        return PaidRequestOutcome(False, f"No tienes tokens suficientes: tienes {e.balance}, necesitas {cost}.")

    try:
        result = await media.queue_media(url, username, kind)
    except MediaError as e:
        log.warning("Pedido de %s de %s falló (%s): %s", label, username, e.reason, e)
        await ledger.add(username, cost, f"Reembolso {label} - pedido fallido")
        return PaidRequestOutcome(False, f"{refund_reason_text(e)} Tokens devueltos.", charged=cost, refunded=True)

    return PaidRequestOutcome(
        True,
        f'"{result.title}" agregado a la cola. Posición: {result.position}',
        charged=cost,
    )
