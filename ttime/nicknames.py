"""
Course nicknames.

Official course names are often long or awkward; the nickname table maps an
official name to the name people actually use. beautify() returns None when
no override exists.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

from ttime import config

logger = logging.getLogger(__name__)


class Nicknames:
    def __init__(self, table: Optional[Mapping[str, str]] = None) -> None:
        self._table: Dict[str, str] = dict(table or {})

    @classmethod
    def load(cls, path: str | Path | None = None) -> "Nicknames":
        """
        Load nicknames from a JSON object {"official name": "nickname"}.

        Missing or broken files yield an empty table.
        """
        nick_path = Path(path) if path is not None else config.nicknames_path()
        if not nick_path.exists():
            return cls()
        try:
            data = json.loads(nick_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Could not read nicknames from %s: %s", nick_path, e)
            return cls()
        if not isinstance(data, dict):
            return cls()
        table = {str(k): str(v) for k, v in data.items() if isinstance(v, str) and v.strip()}
        return cls(table)

    def beautify(self, name: str) -> Optional[str]:
        return self._table.get(name)

    def display_name(self, name: str) -> str:
        return self.beautify(name) or name

    def __len__(self) -> int:
        return len(self._table)
