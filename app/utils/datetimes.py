# app/utils/datetimes.py
import re
from datetime import datetime
from typing import Any

from app.core.errors import InvalidTimestampError

# 2025-08-28T11:24 ou 2025-08-28T11:24:00 (padrão de <input type="datetime-local">)
_ISO_LOCAL = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2})?$")
# 28/08/2025 11:24
_BR_LOCAL = re.compile(r"^(\d{2})/(\d{2})/(\d{4})[ T](\d{2}):(\d{2})$")

FORMATS = {
    "iso": "%Y-%m-%dT%H:%M",
    "br": "%d/%m/%Y %H:%M",
}


def _to_local_naive(value: datetime) -> datetime:
    # horários com fuso viram hora local do servidor; o banco guarda hora de parede
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def parse_timestamp(value: Any) -> datetime:
    """
    Aceita datetime, "YYYY-MM-DDTHH:mm[:ss]", "DD/MM/YYYY HH:mm" e, por último,
    qualquer ISO-8601 que datetime.fromisoformat entenda.
    """
    if isinstance(value, datetime):
        return _to_local_naive(value)

    if isinstance(value, str):
        s = value.strip()

        try:
            if _ISO_LOCAL.match(s):
                return datetime.fromisoformat(s)

            m = _BR_LOCAL.match(s)
            if m:
                dd, mm, yyyy, hh, mi = (int(g) for g in m.groups())
                return datetime(yyyy, mm, dd, hh, mi)

            if s:
                return _to_local_naive(datetime.fromisoformat(s.replace("Z", "+00:00")))
        except ValueError as e:
            raise InvalidTimestampError(f"Data/hora inválida: {value!r}") from e

    raise InvalidTimestampError(f"Data/hora inválida: {value!r}")


def format_timestamp(value: datetime, style: str = "iso") -> str:
    return value.strftime(FORMATS[style])
