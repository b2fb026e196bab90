import os
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from .base import CENT


class EngineConfig(BaseModel):
    """Settings of the snapshot engine."""

    model_config = ConfigDict(extra="forbid")

    lookback_months: int = 36
    balance_tolerance: Decimal = CENT
    snapshot_dir: Path | None = None

    @classmethod
    def from_env(cls, environ=None):
        """Read `TALLY_*` environment variables, keeping defaults for the missing ones."""
        environ = os.environ if environ is None else environ
        values = {}
        if v := environ.get("TALLY_LOOKBACK_MONTHS"):
            values["lookback_months"] = int(v)
        if v := environ.get("TALLY_BALANCE_TOLERANCE"):
            values["balance_tolerance"] = Decimal(v)
        if v := environ.get("TALLY_SNAPSHOT_DIR"):
            values["snapshot_dir"] = Path(v)
        return cls(**values)
