"""BetView - one entry of a bettor's append-only bet list."""

from pydantic import BaseModel

from bbforecast.models.handle import Handle


class BetView(BaseModel):
    selection: Handle  # euint32
    stake: Handle  # euint128
    placed_at: int  # unix seconds
