from __future__ import annotations

import re
from datetime import datetime
from typing import Any

_TOKEN_RE = re.compile(r"\[([a-z_]+)(?::([A-Za-z_]+))?\]")


def build_token_data(now: datetime | None = None, **values: Any) -> dict[str, str]:
    now_ = now or datetime.utcnow()
    data = {k: str(v) for k, v in values.items() if v is not None}
    data["date:Y"] = now_.strftime("%Y")
    data["date:m"] = now_.strftime("%m")
    data["date:d"] = now_.strftime("%d")
    return data


def expand_tokens(template: str, data: dict[str, str]) -> str:
    """Replace `[name]` and `[group:name]` tokens; unknown tokens are kept."""

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1) if match.group(2) is None else f"{match.group(1)}:{match.group(2)}"
        return data.get(name, match.group(0))

    return _TOKEN_RE.sub(_replace, template)
