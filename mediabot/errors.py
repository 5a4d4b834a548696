# mediabot/errors.py
from __future__ import annotations

from typing import Optional


class MediaError(Exception):
    """Base de todos los errores del orquestador."""

    reason = "generic"


class ValidationError(MediaError):
    """URL mal formada o medio demasiado largo."""

    reason = "validation"

    def __init__(self, message: str, *, max_minutes: Optional[int] = None, actual_minutes: Optional[int] = None):
        super().__init__(message)
        self.max_minutes = max_minutes
        self.actual_minutes = actual_minutes


class ExternalToolError(MediaError):
    """Fallo de yt-dlp. `reason` es estable: los frontends ramifican por él."""

    reason = "generic"


class ForbiddenError(ExternalToolError):
    reason = "forbidden"


class AgeRestrictedError(ExternalToolError):
    reason = "age_restricted"


class PrivateMediaError(ExternalToolError):
    reason = "private"


class UnavailableError(ExternalToolError):
    reason = "unavailable"


class InvalidUrlError(ExternalToolError):
    reason = "invalid_url"


class DownloadFailedError(ExternalToolError):
    reason = "generic"


class ProtocolError(MediaError):
    """Socket de VLC no conectado. Se loguea, nunca llega al llamador."""

    reason = "protocol"


def classify_tool_error(text: str, *, stage: str = "info") -> ExternalToolError:
    """
    Traduce el texto de diagnóstico de yt-dlp a la taxonomía fija.
    Único punto donde se hace matching de strings.
    `stage` es "info" (metadatos) o "download".
    """
    low = (text or "").lower()

    if "http error 403" in low or "403: forbidden" in low:
        return ForbiddenError(
            "HTTP Error 403: acceso prohibido. El video puede estar bloqueado o requerir permisos."
        )

    if "age" in low and "restricted" in low:
        return AgeRestrictedError("Video con restricción de edad, no se puede acceder")
    if "private video" in low:
        return PrivateMediaError("Video privado")
    if "video unavailable" in low:
        return UnavailableError("Video no disponible")

    if stage == "download":
        return DownloadFailedError("No se pudo descargar el audio")
    return InvalidUrlError("URL de YouTube inválida o video inaccesible")
