"""
Per-wallet dust thresholds (<DATA_ROOT>/thresholds/<wallet>.json).
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from ....core.domain.entities.token_entity import DustThresholds
from ....core.repositories.threshold_repository import ThresholdRepository


class ThresholdRepositoryFile(ThresholdRepository):

    def __init__(self, data_root: str, default_usd_ceiling: float = 10.0):
        self._dir = Path(data_root) / "thresholds"
        self._default = DustThresholds(usd_ceiling=default_usd_ceiling)
        self._logger = logging.getLogger(self.__class__.__name__)

    def _path(self, wallet: str) -> Path:
        return self._dir / f"{wallet.lower()}.json"

    async def get(self, wallet: str) -> DustThresholds:
        p = self._path(wallet)
        if not p.exists():
            return self._default.model_copy()
        try:
            return DustThresholds.model_validate(json.loads(p.read_text()))
        except (OSError, ValueError, ValidationError) as exc:
            self._logger.warning("unreadable thresholds for %s, using default: %s", wallet, exc)
            return self._default.model_copy()

    async def save(self, wallet: str, thresholds: DustThresholds) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        self._path(wallet).write_text(json.dumps(thresholds.model_dump(), indent=2))
